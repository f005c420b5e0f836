# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Planning assumptions for FinPlan.

Only the sections consumed by the engine are typed:

- ``cogs``     : sourcing and logistics cost drivers,
- ``startup``  : the startup cost budget (one line per item),
- ``forex``    : flat conversion multipliers,
- ``exogenous``: tax, duty and VAT rates (percentages).

Every other section of the document (webshop, retail, horeca, company,
shopMetrics, ...) is carried verbatim in ``Assumptions.extra`` so that an
exported document can be imported back unchanged.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Optional

from .ledgers import Currency
from .statements import to_camel


def _key(f: Any) -> str:
    return f.metadata.get("key") or to_camel(f.name)


def _keyed(key: str) -> Any:
    return field(default=0.0, metadata={"key": key})


def _numbers_from(cls: type, raw: Any, section: str) -> Any:
    """Build a flat numeric dataclass from a camelCase mapping."""
    if raw is None:
        return cls()
    if not isinstance(raw, Mapping):
        raise ValueError(f"Assumption section {section!r} must be an object.")
    values: dict[str, Any] = {}
    for f in fields(cls):
        key = _key(f)
        if key not in raw or raw[key] is None:
            continue
        value = raw[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Invalid number for {section}.{key}: {value!r}")
        values[f.name] = float(value)
    return cls(**values)


def _numbers_to(obj: Any) -> dict[str, Any]:
    return {
        _key(f): getattr(obj, f.name)
        for f in fields(obj)
        if getattr(obj, f.name) is not None
    }


@dataclass(frozen=True)
class CogsAssumptions:
    green_bean_cost_per_kilo_ugx: float = _keyed("greenBeanCostPerKiloUGX")
    roasting_cost_per_kilo_ugx: float = _keyed("roastingCostPerKiloUGX")
    packaging_cost_per_250gr_ugx: float = _keyed("packagingCostPer250grUGX")
    shipping_cost_per_kg_usd: float = _keyed("shippingCostPerKgUSD")
    insurance_per_kg_usd: float = _keyed("insurancePerKgUSD")
    port_handling_eur: float = _keyed("portHandlingEUR")
    fulfillment_per_order_eur: float = _keyed("fulfillmentPerOrderEU")


@dataclass(frozen=True)
class ForexAssumptions:
    """
    Flat conversion multipliers.

    ``thb_to_eur`` is optional: when unset, THB amounts are converted with
    the placeholder rate ``eur_to_ugx / 4100 * 0.92``.
    """

    eur_to_ugx: float = 0.0
    ugx_to_usd: float = 0.0
    usd_to_eur: float = 0.0
    ugx_to_eur: float = 0.0
    thb_to_eur: Optional[float] = None


@dataclass(frozen=True)
class ExogenousAssumptions:
    """Rates in percent, except ``excise_duty`` which is EUR per kilogram."""

    corporate_tax_rate_low: float = 0.0
    corporate_tax_rate_high: float = 0.0
    inflation: float = 0.0
    vat_low: float = 0.0
    vat_high: float = 0.0
    import_duty: float = 0.0
    excise_duty: float = 0.0
    vat_coffee_shops: float = 0.0


@dataclass(frozen=True)
class StartupCostItem:
    name: str
    budget: float


@dataclass(frozen=True)
class Assumptions:
    cogs: CogsAssumptions = field(default_factory=CogsAssumptions)
    forex: ForexAssumptions = field(default_factory=ForexAssumptions)
    exogenous: ExogenousAssumptions = field(default_factory=ExogenousAssumptions)
    startup_items: tuple[StartupCostItem, ...] = ()
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def startup_budget_total(self) -> float:
        return sum(item.budget for item in self.startup_items)


def to_eur(amount: float, currency: Currency, forex: ForexAssumptions) -> float:
    """Convert ``amount`` to EUR with the flat multipliers of ``forex``."""
    if currency is Currency.EUR:
        return amount
    if currency is Currency.USD:
        return amount * forex.usd_to_eur
    if currency is Currency.UGX:
        return amount * forex.ugx_to_eur
    if currency is Currency.THB:
        if forex.thb_to_eur is not None:
            return amount * forex.thb_to_eur
        # Placeholder until a real THB rate is configured.
        return amount * forex.eur_to_ugx / 4100 * 0.92
    raise ValueError(f"Unsupported currency: {currency!r}")


_TYPED_SECTIONS = ("cogs", "forex", "exogenous", "startup")


def assumptions_from_dict(raw: Mapping[str, Any]) -> Assumptions:
    """
    Parse the ``assumptionsData`` section of a document.

    Raises:
        ValueError: if a typed section is malformed or
            ``startup.items`` is not a list.
    """
    if not isinstance(raw, Mapping):
        raise ValueError("assumptionsData must be an object.")

    startup = raw.get("startup") or {}
    if not isinstance(startup, Mapping):
        raise ValueError("assumptionsData.startup must be an object.")
    items_raw = startup.get("items", [])
    if not isinstance(items_raw, list):
        raise ValueError("assumptionsData.startup.items must be a list.")

    items = []
    for index, item in enumerate(items_raw):
        if not isinstance(item, Mapping) or "name" not in item:
            raise ValueError(f"Invalid startup cost item at index {index}.")
        budget = item.get("budget", 0)
        if isinstance(budget, bool) or not isinstance(budget, (int, float)):
            raise ValueError(f"Invalid budget for startup item {item['name']!r}.")
        items.append(StartupCostItem(name=str(item["name"]), budget=float(budget)))

    return Assumptions(
        cogs=_numbers_from(CogsAssumptions, raw.get("cogs"), "cogs"),
        forex=_numbers_from(ForexAssumptions, raw.get("forex"), "forex"),
        exogenous=_numbers_from(
            ExogenousAssumptions, raw.get("exogenous"), "exogenous"
        ),
        startup_items=tuple(items),
        extra={k: v for k, v in raw.items() if k not in _TYPED_SECTIONS},
    )


def assumptions_to_dict(assumptions: Assumptions) -> dict[str, Any]:
    out: dict[str, Any] = {
        "cogs": _numbers_to(assumptions.cogs),
        "startup": {
            "items": [
                {"name": item.name, "budget": item.budget}
                for item in assumptions.startup_items
            ]
        },
        "forex": _numbers_to(assumptions.forex),
        "exogenous": _numbers_to(assumptions.exogenous),
    }
    out.update(assumptions.extra)
    return out
