# Overview: Structured transaction metadata (tagged by "type") and the rendered note text.

"""
Each ledger entry carries typed details instead of free text. The
human-readable note stored on the sale is rendered from them once, at
creation, and is what the transactions search matches against.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Union

from ..validation import ValidationError
from .service_catalog import RECHARGE_PROVIDERS

MAX_NOTE_LENGTH = 500


@dataclass(frozen=True)
class PosSaleDetails:
    note: str | None = None
    type: str = "pos_sale"


@dataclass(frozen=True)
class ShopOrderDetails:
    note: str | None = None
    delivery_address: str | None = None
    type: str = "shop_order"


@dataclass(frozen=True)
class ServiceRequestDetails:
    service_id: str
    service_name: str
    identifier: str
    identifier_label: str
    provider: str | None = None
    sub_service: str | None = None
    package: str | None = None
    user_note: str | None = None
    type: str = "service_request"


TransactionDetails = Union[PosSaleDetails, ShopOrderDetails, ServiceRequestDetails]

_DETAIL_TYPES = {
    "pos_sale": PosSaleDetails,
    "shop_order": ShopOrderDetails,
    "service_request": ServiceRequestDetails,
}


def clean_note(value, field: str = "note") -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    value = value.strip()
    if len(value) > MAX_NOTE_LENGTH:
        raise ValidationError(f"{field} exceeds max length {MAX_NOTE_LENGTH}", field=field)
    return value or None


def details_to_dict(details: TransactionDetails) -> dict:
    return {k: v for k, v in asdict(details).items() if v is not None}


def details_from_dict(data: dict | None) -> TransactionDetails | None:
    """Rebuild typed details from the stored JSON; unknown keys are ignored."""
    if not data:
        return None
    cls = _DETAIL_TYPES.get(data.get("type"))
    if cls is None:
        raise ValidationError(f"Unknown details type: {data.get('type')}", field="details.type")
    allowed = cls.__dataclass_fields__.keys()
    return cls(**{k: v for k, v in data.items() if k in allowed})


def render_note(details: TransactionDetails | None) -> str | None:
    """
    Note text shown on receipts and searched by the ledger, e.g.
    "Electricity Bill | Subscriber ID: 1234 | Notes: paid early".
    """
    if details is None:
        return None

    if isinstance(details, ServiceRequestDetails):
        if details.provider:
            provider = RECHARGE_PROVIDERS.get(details.provider)
            sub = provider.sub_service(details.sub_service) if provider else None
            selection = sub.name if sub else details.sub_service
            if details.package:
                selection = f"{selection} ({details.package})"
            parts = [details.service_name, provider.name if provider else details.provider, selection]
        else:
            parts = [details.service_name]
        parts.append(f"{details.identifier_label}: {details.identifier}")
        if details.user_note:
            parts.append(f"Notes: {details.user_note}")
        return " | ".join(p for p in parts if p)

    if isinstance(details, ShopOrderDetails):
        parts = []
        if details.note:
            parts.append(details.note)
        if details.delivery_address:
            parts.append(f"Deliver to: {details.delivery_address}")
        return " | ".join(parts) or None

    return details.note
