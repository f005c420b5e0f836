# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Transaction ledgers for FinPlan.

Actuals are derived from four flat, user-maintained ledgers:

- ``SalesLedgerEntry``   : one order (revenue by sales channel),
- ``CashJournalEntry``   : one cash movement (inflow/outflow, categorized),
- ``InventoryLedgerItem``: one stock movement (inbound with landed costs,
                           or outbound to a destination/channel),
- ``ActivityLogEntry``   : non-financial counters, never aggregated.

Entries are immutable dataclasses. ``from_dict`` / ``to_dict`` use the
camelCase keys of the exchange document and raise ``ValueError`` with a
clear message on malformed input.

This module also holds the fixed reference data the ledgers rely on: the
cash journal category taxonomy and the product catalogue (per-unit mass).
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional


class SalesChannel(str, Enum):
    ONLINE = "Sales - Online"
    RETAIL = "Sales - Retail"
    HORECA = "Sales - HORECA"

    @classmethod
    def parse(cls, value: str) -> "SalesChannel":
        key = str(value).strip()
        channel = _CHANNEL_ALIASES.get(key.lower())
        if channel is None:
            raise ValueError(f"Unknown sales channel: {value!r}")
        return channel


_CHANNEL_ALIASES: dict[str, SalesChannel] = {
    "sales - online": SalesChannel.ONLINE,
    "online": SalesChannel.ONLINE,
    "sales - retail": SalesChannel.RETAIL,
    "retail": SalesChannel.RETAIL,
    # Older documents named the retail channel "wholesale".
    "sales - wholesale": SalesChannel.RETAIL,
    "wholesale": SalesChannel.RETAIL,
    "sales - horeca": SalesChannel.HORECA,
    "horeca": SalesChannel.HORECA,
}


class CashFlowType(str, Enum):
    INFLOW = "Inflow"
    OUTFLOW = "Outflow"


class InventoryMovement(str, Enum):
    IN = "In"
    OUT = "Out"


class Currency(str, Enum):
    EUR = "EUR"
    USD = "USD"
    UGX = "UGX"
    THB = "THB"


JOURNAL_CATEGORIES: dict[str, tuple[str, ...]] = {
    "Operating Expenses": (
        "OpEx: Marketing & Sales",
        "OpEx: Logistics & Distribution",
        "OpEx: Salaries & Wages",
        "OpEx: Rent & Utilities",
        "OpEx: Other",
    ),
    "Investing Activities": (
        "Investing: Startup Cost",
        "Investing: Asset Purchase",
    ),
    "Financing Activities": (
        "Financing: Equity",
        "Financing: Debt",
    ),
}

STARTUP_COST_CATEGORY = "Investing: Startup Cost"

# OpEx sub-category -> operating expense field. Anything else in the OpEx
# group is booked under "other".
OPEX_CATEGORY_FIELDS: dict[str, str] = {
    "Marketing & Sales": "marketing_and_sales",
    "Logistics & Distribution": "logistics_and_distribution",
    "Salaries & Wages": "salaries_and_wages",
}


def category_group(category: str) -> str:
    """Return the group prefix of a journal category ("OpEx", "Investing"...)."""
    head, sep, _ = category.partition(":")
    return head.strip() if sep else ""


def opex_field_for(category: str) -> Optional[str]:
    """
    Operating expense field fed by a journal category, or None.

    Only categories of the OpEx group map to the income statement.
    """
    if category_group(category) != "OpEx":
        return None
    sub = category.partition(":")[2].strip()
    return OPEX_CATEGORY_FIELDS.get(sub, "other")


@dataclass(frozen=True)
class ProductSKU:
    sku: str
    product_name: str
    mass_kg: float


PRODUCT_SKUS: tuple[ProductSKU, ...] = (
    ProductSKU("COF-ARA-250", "Arabica Coffee 250g", 0.25),
    ProductSKU("COF-ROB-250", "Robusta Coffee 250g", 0.25),
    ProductSKU("COF-ARA-1000", "Arabica Coffee 1kg", 1.0),
)


def find_product(
    sku: str, products: tuple[ProductSKU, ...] = PRODUCT_SKUS
) -> Optional[ProductSKU]:
    for product in products:
        if product.sku == sku:
            return product
    return None


def mass_for_units(
    sku: str, units: float, products: tuple[ProductSKU, ...] = PRODUCT_SKUS
) -> Optional[float]:
    """units x the product's fixed per-unit mass, or None for unknown SKUs."""
    product = find_product(sku, products)
    if product is None:
        return None
    return product.mass_kg * units


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _require(raw: Mapping[str, Any], key: str, kind: str) -> Any:
    if key not in raw or raw[key] is None:
        raise ValueError(f"{kind} entry is missing required field {key!r}.")
    return raw[key]


def _parse_date(value: Any, field_name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        # Accept full ISO timestamps as well ("2025-01-10T00:00:00Z").
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid date in {field_name!r}: {value!r}") from exc


def _parse_optional_date(value: Any, field_name: str) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _parse_date(value, field_name)


def _parse_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Invalid number in {field_name!r}: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid number in {field_name!r}: {value!r}") from exc


def _parse_optional_number(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    return _parse_number(value, field_name)


def _parse_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    try:
        return enum_cls(str(value).strip())
    except ValueError as exc:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValueError(
            f"Invalid value for {field_name!r}: {value!r} (expected one of {allowed})."
        ) from exc


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# ---------------------------------------------------------------------------
# Ledger entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SalesLedgerEntry:
    """
    One sales order.

    A sale without ``invoice_paid_date`` is "pipeline" (booked, not yet
    collected); with it, the sale is "realized". Both count as revenue in
    the aggregated statements.
    """

    id: str
    order_date: date
    sku: str
    units: float
    unit_price: float
    channel: SalesChannel
    customer_id: str = ""
    invoice_paid_date: Optional[date] = None
    support_donation: Optional[float] = None

    @property
    def total(self) -> float:
        return self.units * self.unit_price

    @property
    def is_realized(self) -> bool:
        return self.invoice_paid_date is not None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SalesLedgerEntry":
        kind = "Sales ledger"
        return cls(
            id=str(raw.get("id", "")),
            order_date=_parse_date(_require(raw, "orderDate", kind), "orderDate"),
            invoice_paid_date=_parse_optional_date(
                raw.get("invoicePaidDate"), "invoicePaidDate"
            ),
            sku=str(_require(raw, "sku", kind)),
            units=_parse_number(_require(raw, "units", kind), "units"),
            unit_price=_parse_number(_require(raw, "unitPrice", kind), "unitPrice"),
            channel=SalesChannel.parse(_require(raw, "channel", kind)),
            customer_id=str(raw.get("customerId") or ""),
            support_donation=_parse_optional_number(
                raw.get("supportDonation"), "supportDonation"
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "orderDate": self.order_date.isoformat(),
                "invoicePaidDate": (
                    self.invoice_paid_date.isoformat()
                    if self.invoice_paid_date
                    else None
                ),
                "sku": self.sku,
                "units": self.units,
                "unitPrice": self.unit_price,
                "channel": self.channel.value,
                "customerId": self.customer_id,
                "supportDonation": self.support_donation,
            }
        )


@dataclass(frozen=True)
class CashJournalEntry:
    """
    One cash movement.

    ``amount`` is always non-negative; the sign is carried by ``type``.
    """

    id: str
    date: date
    description: str
    type: CashFlowType
    amount: float
    currency: Currency
    category: str
    sub_category: Optional[str] = None
    remarks: Optional[str] = None

    @property
    def signed_amount(self) -> float:
        return self.amount if self.type is CashFlowType.INFLOW else -self.amount

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "CashJournalEntry":
        kind = "Cash journal"
        amount = _parse_number(_require(raw, "amount", kind), "amount")
        if amount < 0:
            raise ValueError(
                f"Cash journal amounts must be non-negative, got {amount!r}; "
                "use the Inflow/Outflow type for the direction."
            )
        return cls(
            id=str(raw.get("id", "")),
            date=_parse_date(_require(raw, "date", kind), "date"),
            description=str(raw.get("description") or ""),
            type=_parse_enum(CashFlowType, _require(raw, "type", kind), "type"),
            amount=amount,
            currency=_parse_enum(Currency, raw.get("currency") or "EUR", "currency"),
            category=str(_require(raw, "category", kind)).strip(),
            sub_category=_optional_str(raw.get("subCategory")),
            remarks=_optional_str(raw.get("remarks")),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "date": self.date.isoformat(),
                "description": self.description,
                "type": self.type.value,
                "amount": self.amount,
                "currency": self.currency.value,
                "category": self.category,
                "subCategory": self.sub_category,
                "remarks": self.remarks,
            }
        )


@dataclass(frozen=True)
class Money:
    amount: float
    currency: Currency

    @classmethod
    def from_dict(cls, raw: Any, field_name: str) -> Optional["Money"]:
        if raw is None:
            return None
        if not isinstance(raw, Mapping):
            raise ValueError(f"Invalid {field_name!r}: expected an object.")
        return cls(
            amount=_parse_number(raw.get("amount", 0), f"{field_name}.amount"),
            currency=_parse_enum(
                Currency, raw.get("currency") or "EUR", f"{field_name}.currency"
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"amount": self.amount, "currency": self.currency.value}


@dataclass(frozen=True)
class InventoryLedgerItem:
    """
    One inventory movement.

    Inflows carry their cost components (coffee cost and inbound logistics
    in any supported currency, taxes and fees in EUR); the landed cost per
    kilogram is derived from them by ``landed_cost.py``. Outflows carry a
    destination and a sales channel instead.
    """

    id: str
    sku: str
    date: date
    type: InventoryMovement
    units: float
    mass_kg: float
    coffee_cost: Optional[Money] = None
    inbound_logistics_cost: Optional[Money] = None
    taxes_and_fees_eur: Optional[float] = None
    landed_cost_per_kg_eur: Optional[float] = None
    destination: Optional[str] = None
    channel: Optional[str] = None
    checked: bool = False

    @property
    def is_inflow(self) -> bool:
        return self.type is InventoryMovement.IN

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "InventoryLedgerItem":
        kind = "Inventory ledger"
        return cls(
            id=str(raw.get("id", "")),
            sku=str(_require(raw, "sku", kind)),
            date=_parse_date(_require(raw, "date", kind), "date"),
            type=_parse_enum(InventoryMovement, _require(raw, "type", kind), "type"),
            units=_parse_number(_require(raw, "units", kind), "units"),
            mass_kg=_parse_number(raw.get("massKg", 0), "massKg"),
            coffee_cost=Money.from_dict(raw.get("coffeeCost"), "coffeeCost"),
            inbound_logistics_cost=Money.from_dict(
                raw.get("inboundLogisticsCost"), "inboundLogisticsCost"
            ),
            taxes_and_fees_eur=_parse_optional_number(
                raw.get("taxesAndFeesEUR"), "taxesAndFeesEUR"
            ),
            landed_cost_per_kg_eur=_parse_optional_number(
                raw.get("landedCostPerKgEUR"), "landedCostPerKgEUR"
            ),
            destination=_optional_str(raw.get("destination")),
            channel=_optional_str(raw.get("channel")),
            checked=bool(raw.get("checked", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "id": self.id,
                "sku": self.sku,
                "date": self.date.isoformat(),
                "type": self.type.value,
                "units": self.units,
                "massKg": self.mass_kg,
                "coffeeCost": self.coffee_cost.to_dict() if self.coffee_cost else None,
                "inboundLogisticsCost": (
                    self.inbound_logistics_cost.to_dict()
                    if self.inbound_logistics_cost
                    else None
                ),
                "taxesAndFeesEUR": self.taxes_and_fees_eur,
                "landedCostPerKgEUR": self.landed_cost_per_kg_eur,
                "destination": self.destination,
                "channel": self.channel,
                "checked": self.checked,
            }
        )


@dataclass(frozen=True)
class ActivityLogEntry:
    """Non-financial counter (visits, tastings, ...). Never aggregated."""

    id: str
    date: date
    type: str
    value: float
    notes: str = ""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ActivityLogEntry":
        kind = "Activity log"
        return cls(
            id=str(raw.get("id", "")),
            date=_parse_date(_require(raw, "date", kind), "date"),
            type=str(raw.get("type") or ""),
            value=_parse_number(raw.get("value", 0), "value"),
            notes=str(raw.get("notes") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "type": self.type,
            "value": self.value,
            "notes": self.notes,
        }
