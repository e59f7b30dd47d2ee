# Overview: Catalog of payment services end users can request (top-ups, bills, wallets, deposits).

from __future__ import annotations

from dataclasses import dataclass, field

from ..validation import ValidationError

PHONE_LENGTH = 11

# Identifier rules
IDENT_DIGITS = "digits"
IDENT_PHONE = "phone"
IDENT_TEXT = "text"


@dataclass(frozen=True)
class ServiceDefinition:
    id: str
    type: str
    name: str
    profit_key: str
    identifier_rule: str
    identifier_label: str
    payment_method: str = "cash"
    phone_prefix: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "profit_key": self.profit_key,
            "identifier_rule": self.identifier_rule,
            "identifier_label": self.identifier_label,
            "payment_method": self.payment_method,
            "phone_prefix": self.phone_prefix,
        }


@dataclass(frozen=True)
class RechargeSubService:
    id: str
    name: str
    packages: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "packages": list(self.packages)}


@dataclass(frozen=True)
class RechargeProvider:
    id: str
    name: str
    sub_services: tuple[RechargeSubService, ...] = field(default_factory=tuple)

    def sub_service(self, sub_service_id: str) -> RechargeSubService | None:
        for sub in self.sub_services:
            if sub.id == sub_service_id:
                return sub
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sub_services": [s.to_dict() for s in self.sub_services],
        }


SERVICES: dict[str, ServiceDefinition] = {
    s.id: s
    for s in (
        ServiceDefinition("deposit", "deposit", "Order Deposit", "deposit", IDENT_DIGITS, "Order ID",
                          payment_method="deposit"),
        ServiceDefinition("vodafone", "wallet", "Vodafone Cash", "wallet", IDENT_PHONE, "Phone",
                          phone_prefix="010"),
        ServiceDefinition("etisalat", "wallet", "Etisalat Cash", "wallet", IDENT_PHONE, "Phone",
                          phone_prefix="011"),
        ServiceDefinition("orange", "wallet", "Orange Cash", "wallet", IDENT_PHONE, "Phone",
                          phone_prefix="012"),
        ServiceDefinition("we", "wallet", "WE Pay", "wallet", IDENT_PHONE, "Phone",
                          phone_prefix="015"),
        ServiceDefinition("instapay", "instapay", "InstaPay", "instapay", IDENT_TEXT, "IPA or Phone"),
        ServiceDefinition("installments", "installments", "Installments", "installments", IDENT_TEXT,
                          "Account No."),
        ServiceDefinition("water", "bill", "Water Bill", "water", IDENT_DIGITS, "Subscriber ID"),
        ServiceDefinition("electricity", "bill", "Electricity Bill", "electricity", IDENT_DIGITS,
                          "Subscriber ID"),
        ServiceDefinition("gas", "bill", "Gas Bill", "gas", IDENT_DIGITS, "Subscriber ID"),
        ServiceDefinition("recharge", "recharge", "Mobile Recharge", "recharge", IDENT_PHONE, "Phone",
                          payment_method="recharge"),
    )
}

_CREDIT = RechargeSubService("credit", "Top-up")
_BILL = RechargeSubService("bill", "Pay Bill")

RECHARGE_PROVIDERS: dict[str, RechargeProvider] = {
    p.id: p
    for p in (
        RechargeProvider("vodafone", "Vodafone", (
            _CREDIT,
            RechargeSubService("flex", "Flex Bundles", ("Flex 30", "Flex 45", "Flex 70", "Flex 100")),
            _BILL,
        )),
        RechargeProvider("orange", "Orange", (
            _CREDIT,
            RechargeSubService("bundles", "Bundles", ("Control", "Dolphin", "Dolphin 25", "Dolphin 40", "Dolphin 70")),
            _BILL,
        )),
        RechargeProvider("etisalat", "Etisalat", (
            _CREDIT,
            RechargeSubService("bundles", "Bundles", ("Hekaya", "Hekaya 25", "Hekaya 40", "Hekaya 75")),
            _BILL,
        )),
        RechargeProvider("we", "WE", (
            _CREDIT,
            RechargeSubService("bundles", "Bundles", ("Control", "Super", "Mix")),
            _BILL,
        )),
    )
}


def get_service(service_id: str) -> ServiceDefinition:
    service = SERVICES.get(service_id)
    if service is None:
        raise ValidationError(f"Unknown service: {service_id}", field="service_id")
    return service


def validate_identifier(service: ServiceDefinition, identifier) -> str:
    """Check the account/phone/subscriber identifier against the service's rule."""
    if not isinstance(identifier, str) or not identifier.strip():
        raise ValidationError("identifier is required", field="identifier")
    value = identifier.strip()

    if service.identifier_rule == IDENT_PHONE:
        if not value.isdigit() or len(value) != PHONE_LENGTH:
            raise ValidationError(f"identifier must be a {PHONE_LENGTH}-digit phone number", field="identifier")
    elif service.identifier_rule == IDENT_DIGITS:
        if not value.isdigit():
            raise ValidationError("identifier must contain digits only", field="identifier")
    elif len(value) > 64:
        raise ValidationError("identifier exceeds max length 64", field="identifier")

    return value


def resolve_recharge(provider_id, sub_service_id, package) -> tuple[RechargeProvider, RechargeSubService, str | None]:
    """Validate a provider / sub-service / package selection for a recharge request."""
    provider = RECHARGE_PROVIDERS.get(provider_id) if isinstance(provider_id, str) else None
    if provider is None:
        raise ValidationError("provider must be one of " + ", ".join(RECHARGE_PROVIDERS), field="provider")

    sub = provider.sub_service(sub_service_id) if isinstance(sub_service_id, str) else None
    if sub is None:
        allowed = ", ".join(s.id for s in provider.sub_services)
        raise ValidationError(f"sub_service must be one of {allowed}", field="sub_service")

    if sub.packages:
        if package not in sub.packages:
            raise ValidationError(f"package must be one of {', '.join(sub.packages)}", field="package")
        return provider, sub, package

    if package not in (None, ""):
        raise ValidationError(f"{sub.id} does not take a package", field="package")
    return provider, sub, None


def profit_key_for(service: ServiceDefinition, sub_service_id: str | None = None) -> str:
    """
    Schedule key used to price a request.

    Wallet transfers share the `wallet` rule and a recharge bill payment is
    priced as `bill`, rather than keying by the service id.
    """
    if service.id == "recharge" and sub_service_id == "bill":
        return "bill"
    return service.profit_key


def catalog_to_dict() -> dict:
    return {
        "services": [s.to_dict() for s in SERVICES.values()],
        "recharge_providers": [p.to_dict() for p in RECHARGE_PROVIDERS.values()],
    }
