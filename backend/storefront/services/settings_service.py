# Overview: Settings registry; typed storefront configuration and the service profit schedule.

"""
Settings are stored as key/value rows (StoreSetting) holding only the keys
an admin has overridden. get_settings() merges them over DEFAULT_SETTINGS
and returns an immutable StoreSettings value.

The ledger receives that value explicitly on every transaction creation, so
profit and tax are computed against the settings current at call time and
never against a shared mutable object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Mapping

from flask import current_app

from ..extensions import db
from ..models import StoreSetting
from ..validation import ValidationError, coerce_int
from .permission_service import Identity, require_permission


SERVICE_PROFIT_KEYS = (
    "installments",
    "electricity",
    "water",
    "gas",
    "deposit",
    "recharge",
    "bill",
    "wallet",
    "instapay",
)

LANGUAGES = ("ar", "en")
PRINT_FORMATS = ("A4", "thermal")
THEMES = ("light", "dark")

MAX_TAX_RATE_BPS = 10_000


@dataclass(frozen=True)
class ProfitRule:
    """Operator margin for one service kind: percentage of the amount plus a fixed fee."""
    percentage: Decimal = Decimal("0")
    fixed_cents: int = 0

    def to_dict(self) -> dict:
        return {"percentage": float(self.percentage), "fixed_cents": self.fixed_cents}


ZERO_RULE = ProfitRule()


@dataclass(frozen=True)
class ProfitSchedule:
    rules: Mapping[str, ProfitRule]

    def rule_for(self, service_kind: str) -> ProfitRule:
        return self.rules.get(service_kind, ZERO_RULE)

    def with_rule(self, service_kind: str, rule: ProfitRule) -> "ProfitSchedule":
        rules = dict(self.rules)
        rules[service_kind] = rule
        return ProfitSchedule(rules=MappingProxyType(rules))

    def to_dict(self) -> dict:
        return {key: self.rules[key].to_dict() for key in sorted(self.rules)}


DEFAULT_PROFIT_SCHEDULE = ProfitSchedule(rules=MappingProxyType({
    "installments": ProfitRule(Decimal("5"), 0),
    "electricity": ProfitRule(Decimal("0"), 1000),
    "water": ProfitRule(Decimal("0"), 500),
    "gas": ProfitRule(Decimal("0"), 500),
    "deposit": ProfitRule(Decimal("0"), 0),
    "recharge": ProfitRule(Decimal("0"), 0),
    "bill": ProfitRule(Decimal("0"), 500),
    "wallet": ProfitRule(Decimal("0"), 500),
    "instapay": ProfitRule(Decimal("0"), 0),
}))


@dataclass(frozen=True)
class StoreSettings:
    language: str = "ar"
    currency: str = "EGP"
    tax_rate_bps: int = 1400
    print_format: str = "thermal"
    theme: str = "light"
    notifications_enabled: bool = True
    logo_url: str | None = None
    service_profits: ProfitSchedule = field(default_factory=lambda: DEFAULT_PROFIT_SCHEDULE)

    def to_dict(self) -> dict:
        return {
            "language": self.language,
            "currency": self.currency,
            "tax_rate_bps": self.tax_rate_bps,
            "print_format": self.print_format,
            "theme": self.theme,
            "notifications_enabled": self.notifications_enabled,
            "logo_url": self.logo_url,
            "service_profits": self.service_profits.to_dict(),
        }


DEFAULT_SETTINGS = StoreSettings()

SETTING_KEYS = tuple(DEFAULT_SETTINGS.to_dict().keys())


def _parse_percentage(value: Any, field_name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    try:
        pct = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    if not pct.is_finite() or pct < 0 or pct > 100:
        raise ValidationError(f"{field_name} must be between 0 and 100", field=field_name)
    return pct


def parse_profit_rule(raw: Any, service_kind: str, base: ProfitRule = ZERO_RULE) -> ProfitRule:
    """Build a rule from a (possibly partial) {percentage, fixed_cents} mapping."""
    prefix = f"service_profits.{service_kind}"
    if not isinstance(raw, dict):
        raise ValidationError(f"{prefix} must be an object", field=prefix)

    unknown = set(raw) - {"percentage", "fixed_cents"}
    if unknown:
        name = sorted(unknown)[0]
        raise ValidationError(f"Field not allowed: {prefix}.{name}", field=f"{prefix}.{name}")

    percentage = base.percentage
    if "percentage" in raw:
        percentage = _parse_percentage(raw["percentage"], f"{prefix}.percentage")

    fixed_cents = base.fixed_cents
    if "fixed_cents" in raw:
        fixed_cents = coerce_int(raw["fixed_cents"], f"{prefix}.fixed_cents")
        if fixed_cents < 0:
            raise ValidationError(f"{prefix}.fixed_cents must be >= 0", field=f"{prefix}.fixed_cents")

    return ProfitRule(percentage=percentage, fixed_cents=fixed_cents)


def parse_profit_schedule(raw: Any, base: ProfitSchedule = DEFAULT_PROFIT_SCHEDULE) -> ProfitSchedule:
    """Merge a partial {service_kind: rule} mapping over base, per key and per field."""
    if not isinstance(raw, dict):
        raise ValidationError("service_profits must be an object", field="service_profits")

    schedule = base
    for service_kind, rule_raw in raw.items():
        if service_kind not in SERVICE_PROFIT_KEYS:
            raise ValidationError(
                f"Unknown service kind: {service_kind}", field=f"service_profits.{service_kind}"
            )
        schedule = schedule.with_rule(
            service_kind, parse_profit_rule(rule_raw, service_kind, base=base.rule_for(service_kind))
        )
    return schedule


def _validate_setting(key: str, value: Any, current: StoreSettings) -> Any:
    """Normalize one setting value; raises ValidationError naming the field."""
    if key == "language":
        if value not in LANGUAGES:
            raise ValidationError(f"language must be one of {', '.join(LANGUAGES)}", field=key)
        return value
    if key == "currency":
        if not isinstance(value, str) or not value.strip() or len(value.strip()) > 8:
            raise ValidationError("currency must be a short non-empty code", field=key)
        return value.strip().upper()
    if key == "tax_rate_bps":
        bps = coerce_int(value, key)
        if bps < 0 or bps > MAX_TAX_RATE_BPS:
            raise ValidationError(f"tax_rate_bps must be between 0 and {MAX_TAX_RATE_BPS}", field=key)
        return bps
    if key == "print_format":
        if value not in PRINT_FORMATS:
            raise ValidationError(f"print_format must be one of {', '.join(PRINT_FORMATS)}", field=key)
        return value
    if key == "theme":
        if value not in THEMES:
            raise ValidationError(f"theme must be one of {', '.join(THEMES)}", field=key)
        return value
    if key == "notifications_enabled":
        if not isinstance(value, bool):
            raise ValidationError("notifications_enabled must be true or false", field=key)
        return value
    if key == "logo_url":
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError("logo_url must be a string", field=key)
        return value.strip() or None
    if key == "service_profits":
        return parse_profit_schedule(value, base=current.service_profits)
    raise ValidationError(f"Unknown setting: {key}", field=key)


def _serialize(key: str, value: Any) -> Any:
    if key == "service_profits":
        # Percentages persisted as strings so Decimal values round-trip exactly
        return {
            kind: {"percentage": str(rule.percentage), "fixed_cents": rule.fixed_cents}
            for kind, rule in value.rules.items()
        }
    return value


def settings_from_mapping(values: Mapping[str, Any], base: StoreSettings = DEFAULT_SETTINGS) -> StoreSettings:
    """Build settings from stored or imported values, validating each key."""
    merged = {}
    current = base
    for key, raw in values.items():
        if key not in SETTING_KEYS:
            continue
        merged[key] = _validate_setting(key, raw, current)
    return StoreSettings(**{**_as_kwargs(base), **merged})


def _as_kwargs(settings: StoreSettings) -> dict:
    return {key: getattr(settings, key) for key in SETTING_KEYS}


def get_settings() -> StoreSettings:
    """Current settings: stored overrides merged over the defaults."""
    rows = db.session.query(StoreSetting).all()
    return settings_from_mapping({row.key: row.value for row in rows})


def update_settings(actor: Identity | None, patch: dict) -> StoreSettings:
    """
    Apply a partial settings update (admin only).

    service_profits merges per service kind and per field, so
    {"service_profits": {"wallet": {"fixed_cents": 700}}} leaves every other
    rule and the wallet percentage untouched.
    """
    require_permission(actor, "MANAGE_SETTINGS")

    if not isinstance(patch, dict) or not patch:
        raise ValidationError("Settings patch must be a non-empty object")

    current = get_settings()
    cleaned = {key: _validate_setting(key, value, current) for key, value in patch.items()}

    for key, value in cleaned.items():
        row = db.session.query(StoreSetting).filter_by(key=key).first()
        if row is None:
            row = StoreSetting(key=key)
            db.session.add(row)
        row.value = _serialize(key, value)
        row.updated_by_user_id = actor.id

    db.session.commit()
    current_app.logger.info("Settings updated by user=%s keys=%s", actor.id, ",".join(sorted(cleaned)))
    return get_settings()


def replace_settings(values: Mapping[str, Any]) -> StoreSettings:
    """Overwrite stored settings wholesale (snapshot import). Caller commits."""
    settings = settings_from_mapping(values)
    db.session.query(StoreSetting).delete()
    for key in SETTING_KEYS:
        value = getattr(settings, key)
        if value == getattr(DEFAULT_SETTINGS, key):
            continue
        db.session.add(StoreSetting(key=key, value=_serialize(key, value)))
    return settings
