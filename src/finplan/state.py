# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Application state and document exchange for FinPlan.

``AppState`` is the immutable snapshot of everything the user maintains:

- the planned budget tree,
- the planning assumptions,
- OKRs and retail pricing (opaque, carried through unchanged),
- the four ledgers (sales, cash journal, inventory, activity log).

Actuals are never stored: they are derived from the ledgers on demand by
``aggregate_state``.

The whole state is exchanged as one versioned JSON document. Importing a
document is all-or-nothing: it is fully validated and parsed before the
current state is replaced, and any problem rejects the whole document.
``Workspace`` is the small mutable holder used by front-ends (the CLI) to
swap states.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union

from .aggregation import aggregate_actuals
from .assumptions import Assumptions, assumptions_from_dict, assumptions_to_dict
from .distribution import apply_yearly_edits, build_budget
from .landed_cost import refresh_landed_costs
from .ledgers import (
    ActivityLogEntry,
    CashJournalEntry,
    InventoryLedgerItem,
    SalesLedgerEntry,
)
from .periods import Granularity, select
from .seed import default_assumptions, default_okrs, default_pricing, seed_budget
from .statements import (
    YEARS,
    DetailedFinancialData,
    FinancialData,
    tree_from_dict,
    tree_to_dict,
)

logger = logging.getLogger(__name__)

DATA_VERSION = "1.0.0"

REQUIRED_KEYS: tuple[str, ...] = (
    "plannedBudget",
    "assumptionsData",
    "okrs",
    "pricingData",
    "inventoryLedgerData",
    "cashJournalData",
    "salesLedgerData",
    "activityLogData",
)

LIST_KEYS: tuple[str, ...] = (
    "okrs",
    "inventoryLedgerData",
    "cashJournalData",
    "salesLedgerData",
    "activityLogData",
)


class DocumentValidationError(ValueError):
    """Raised when an exchange document is rejected."""


@dataclass(frozen=True)
class AppState:
    planned_budget: DetailedFinancialData
    assumptions: Assumptions
    okrs: tuple[Any, ...] = ()
    pricing: Mapping[str, Any] = field(default_factory=dict)
    sales_ledger: tuple[SalesLedgerEntry, ...] = ()
    cash_journal: tuple[CashJournalEntry, ...] = ()
    inventory_ledger: tuple[InventoryLedgerItem, ...] = ()
    activity_log: tuple[ActivityLogEntry, ...] = ()
    years: tuple[int, ...] = YEARS


def default_state(years: tuple[int, ...] = YEARS) -> AppState:
    """Seed budget, default assumptions and empty ledgers."""
    return AppState(
        planned_budget=seed_budget(years),
        assumptions=default_assumptions(),
        okrs=tuple(default_okrs()),
        pricing=default_pricing(),
        years=years,
    )


def aggregate_state(state: AppState) -> DetailedFinancialData:
    """Actuals tree derived from the ledgers of ``state``."""
    return aggregate_actuals(
        state.sales_ledger,
        state.cash_journal,
        state.inventory_ledger,
        state.assumptions,
        state.years,
    )


# ---------------------------------------------------------------------------
# Export / import
# ---------------------------------------------------------------------------


def export_document(state: AppState) -> dict[str, Any]:
    """Serialize ``state`` into a JSON-ready document."""
    return {
        "version": DATA_VERSION,
        "plannedBudget": tree_to_dict(state.planned_budget),
        "assumptionsData": assumptions_to_dict(state.assumptions),
        "okrs": list(state.okrs),
        "pricingData": dict(state.pricing),
        "inventoryLedgerData": [item.to_dict() for item in state.inventory_ledger],
        "cashJournalData": [entry.to_dict() for entry in state.cash_journal],
        "salesLedgerData": [entry.to_dict() for entry in state.sales_ledger],
        "activityLogData": [entry.to_dict() for entry in state.activity_log],
    }


def validate_document(raw: Any, years: Sequence[int] = YEARS) -> None:
    """
    Structural checks run before anything is parsed.

    Raises:
        DocumentValidationError: with a message meant for the end user.
    """
    if not isinstance(raw, Mapping):
        raise DocumentValidationError("Invalid file: the document must be a JSON object.")

    version = raw.get("version")
    if not version or not isinstance(version, str):
        raise DocumentValidationError("Invalid file: Missing or invalid version number.")
    if version != DATA_VERSION:
        raise DocumentValidationError(
            f"Version mismatch. App requires v{DATA_VERSION}, file is v{version}."
        )

    for key in REQUIRED_KEYS:
        if key not in raw:
            raise DocumentValidationError(
                f'Invalid file: Missing required data key "{key}".'
            )

    for key in LIST_KEYS:
        if not isinstance(raw[key], list):
            raise DocumentValidationError(
                f'Invalid file: Data key "{key}" should be an array.'
            )

    assumptions = raw["assumptionsData"]
    startup = assumptions.get("startup") if isinstance(assumptions, Mapping) else None
    items = startup.get("items") if isinstance(startup, Mapping) else None
    if not isinstance(items, list):
        raise DocumentValidationError(
            "Invalid file: assumptionsData.startup.items is missing or not an array."
        )

    budget = raw["plannedBudget"]
    first_year = years[0]
    if not isinstance(budget, Mapping) or not (
        budget.get(str(first_year)) or budget.get(first_year)
    ):
        raise DocumentValidationError(
            "Invalid file: plannedBudget is missing or has an invalid structure."
        )


def _parse_list(raw: Iterable[Any], parser, key: str) -> tuple[Any, ...]:
    out = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise DocumentValidationError(
                f"Invalid file: {key}[{index}] should be an object."
            )
        try:
            out.append(parser(item))
        except ValueError as exc:
            raise DocumentValidationError(f"Invalid file: {key}[{index}]: {exc}") from exc
    return tuple(out)


def parse_document(raw: Any, years: tuple[int, ...] = YEARS) -> AppState:
    """
    Validate and parse an exchange document into a new ``AppState``.

    Nothing is returned unless the whole document is valid. The planned
    budget is rebuilt from its yearly leaf inputs, so stored totals never
    override the recalculated ones.

    Raises:
        DocumentValidationError: on any structural or content problem.
    """
    validate_document(raw, years)

    try:
        stored_budget = tree_from_dict(raw["plannedBudget"], years)
    except ValueError as exc:
        raise DocumentValidationError(f"Invalid file: plannedBudget: {exc}") from exc
    # Only the yearly leaf inputs are trusted: totals, cash links and the
    # month / week split are rebuilt from them.
    planned_budget = build_budget(
        {year: node.summary for year, node in stored_budget.items()}, years
    )
    try:
        assumptions = assumptions_from_dict(raw["assumptionsData"])
    except ValueError as exc:
        raise DocumentValidationError(f"Invalid file: assumptionsData: {exc}") from exc

    pricing = raw["pricingData"]
    if not isinstance(pricing, Mapping):
        raise DocumentValidationError("Invalid file: pricingData should be an object.")

    return AppState(
        planned_budget=planned_budget,
        assumptions=assumptions,
        okrs=tuple(raw["okrs"]),
        pricing=dict(pricing),
        sales_ledger=_parse_list(
            raw["salesLedgerData"], SalesLedgerEntry.from_dict, "salesLedgerData"
        ),
        cash_journal=_parse_list(
            raw["cashJournalData"], CashJournalEntry.from_dict, "cashJournalData"
        ),
        inventory_ledger=_parse_list(
            raw["inventoryLedgerData"],
            InventoryLedgerItem.from_dict,
            "inventoryLedgerData",
        ),
        activity_log=_parse_list(
            raw["activityLogData"], ActivityLogEntry.from_dict, "activityLogData"
        ),
        years=years,
    )


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class Workspace:
    """
    Holder of the current ``AppState``.

    Every operation builds a new state and swaps it in one assignment, so
    a failed operation never leaves a half-updated state behind.
    """

    def __init__(self, state: Optional[AppState] = None) -> None:
        self.state = state if state is not None else default_state()

    def import_document(self, raw: Any) -> Optional[str]:
        """
        Replace the current state with the content of ``raw``.

        Returns:
            None on success, otherwise the human-readable reason of the
            rejection (the current state is left untouched).
        """
        try:
            new_state = parse_document(raw, self.state.years)
        except DocumentValidationError as exc:
            logger.warning("Document rejected: %s", exc)
            return str(exc)
        self.state = new_state
        return None

    def export_document(self) -> dict[str, Any]:
        return export_document(self.state)

    def edit_budget(self, year: int, path: str, value: float) -> None:
        """Edit one yearly leaf field of the plan (see ``apply_yearly_edits``)."""
        self.edit_budget_many([(year, path, value)])

    def edit_budget_many(self, edits: Iterable[tuple[int, str, float]]) -> None:
        budget = apply_yearly_edits(self.state.planned_budget, edits, self.state.years)
        self.state = replace(self.state, planned_budget=budget)

    def update_assumptions(self, assumptions: Assumptions) -> None:
        """Swap the assumptions and refresh every inventory landed cost."""
        inventory = tuple(
            refresh_landed_costs(self.state.inventory_ledger, assumptions)
        )
        self.state = replace(
            self.state, assumptions=assumptions, inventory_ledger=inventory
        )

    def replace_ledgers(
        self,
        sales: Optional[Iterable[SalesLedgerEntry]] = None,
        cash_journal: Optional[Iterable[CashJournalEntry]] = None,
        inventory: Optional[Iterable[InventoryLedgerItem]] = None,
        activity_log: Optional[Iterable[ActivityLogEntry]] = None,
    ) -> None:
        """Replace the given ledgers; ``None`` keeps the current one."""
        changes: dict[str, Any] = {}
        if sales is not None:
            changes["sales_ledger"] = tuple(sales)
        if cash_journal is not None:
            changes["cash_journal"] = tuple(cash_journal)
        if inventory is not None:
            changes["inventory_ledger"] = tuple(
                refresh_landed_costs(inventory, self.state.assumptions)
            )
        if activity_log is not None:
            changes["activity_log"] = tuple(activity_log)
        if changes:
            self.state = replace(self.state, **changes)

    def actuals(self) -> DetailedFinancialData:
        return aggregate_state(self.state)

    def budget_vs_actual(
        self,
        year: int,
        granularity: Union[Granularity, str] = Granularity.YEARLY,
        sub_period: int = 1,
    ) -> tuple[FinancialData, FinancialData]:
        """Return the ``(budget, actual)`` statements of one sub-period."""
        return (
            select(self.state.planned_budget, year, granularity, sub_period),
            select(self.actuals(), year, granularity, sub_period),
        )
