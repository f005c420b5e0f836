# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Seed data for FinPlan.

A fresh workspace starts from a six-year business plan (yearly leaf figures
only; every derived field is recomputed) and a default set of planning
assumptions. OKRs and retail pricing are opaque to the engine and only
carried through the exchange document.
"""

from copy import deepcopy
from typing import Any

from .assumptions import Assumptions, assumptions_from_dict
from .distribution import build_budget
from .statements import YEARS, DetailedFinancialData, FinancialData, with_value

# Dotted leaf path -> one value per planning year (2025..2030).
SEED_FIGURES: dict[str, tuple[float, ...]] = {
    # Income statement
    "incomeStatement.revenue.online": (22931, 660418, 1073180, 1444665, 1934819, 2579759),
    "incomeStatement.revenue.retail": (52633, 680856, 733962, 791212, 852926, 919454),
    "incomeStatement.revenue.horeca": (4033, 49754, 51147, 52579, 54051, 55565),
    "incomeStatement.cogs": (2751, 442001, 579613, 706787, 869672, 1078785),
    "incomeStatement.operatingExpenses.marketingAndSales": (
        62980, 205151, 233914, 247323, 298278, 364301,
    ),
    "incomeStatement.operatingExpenses.logisticsAndDistribution": (
        5500, 141600, 222600, 295500, 391688, 518250,
    ),
    "incomeStatement.operatingExpenses.salariesAndWages": (
        24947, 99789, 99789, 99789, 99789, 99789,
    ),
    "incomeStatement.operatingExpenses.rentAndUtilities": (500, 6000, 6000, 6000, 6000, 6000),
    "incomeStatement.operatingExpenses.techAndSoftware": (
        1500, 18000, 18000, 18000, 18000, 18000,
    ),
    "incomeStatement.operatingExpenses.professionalFees": (500, 6000, 6000, 6000, 6000, 6000),
    "incomeStatement.operatingExpenses.depreciation": (5775, 23100, 17325, 0, 0, 0),
    "incomeStatement.operatingExpenses.other": (300, 3600, 3600, 3600, 3600, 3600),
    "incomeStatement.interestExpense": (2185, 6700, 3127, 172, 0, 0),
    "incomeStatement.incomeTaxExpense": (0, 99684, 158827, 219964, 282783, 363094),
    # Cash flow
    "cashFlow.operatingActivities.depreciation": (5775, 23100, 17325, 0, 0, 0),
    "cashFlow.operatingActivities.changeInAccountsReceivable": (
        -3271, -53894, -19203, -17678, -22740, -29301,
    ),
    "cashFlow.operatingActivities.changeInInventory": (
        -4551, -74978, -26715, -24594, -31636, -40763,
    ),
    "cashFlow.operatingActivities.changeInAccountsPayable": (
        226, 36103, 11310, 10453, 13388, 17187,
    ),
    "cashFlow.operatingActivities.changeInVatPayable": (371, 5463, 1481, 1397, 1749, 2201),
    "cashFlow.operatingActivities.changeInDeferredTaxes": (
        0, 99684, 59143, 61137, 62819, 80311,
    ),
    "cashFlow.investingActivities.capitalizedStartupCosts": (-46200, 0, 0, 0, 0, 0),
    "cashFlow.financingActivities.netIncreaseFromBorrowings": (75000, 0, 0, 0, 0, 0),
    "cashFlow.financingActivities.repaymentOfLoans": (-6533, -28173, -31747, -8547, 0, 0),
    "cashFlow.financingActivities.dividendsPaid": (
        0, -25974, -322432, -484020, -651056, -822688,
    ),
    # Balance sheet
    "balanceSheet.assets.current.accountsReceivable": (
        3271, 57166, 76368, 94046, 116786, 146087,
    ),
    "balanceSheet.assets.current.inventory": (4551, 79529, 106244, 130837, 162474, 203237),
    "balanceSheet.assets.nonCurrent.intangibleAssets": (
        46200, 46200, 46200, 46200, 46200, 46200,
    ),
    "balanceSheet.assets.nonCurrent.accumulatedDepreciation": (
        -5775, -28875, -46200, -46200, -46200, -46200,
    ),
    "balanceSheet.liabilitiesAndEquity.liabilities.current.accountsPayable": (
        226, 36329, 47639, 58092, 71480, 88667,
    ),
    "balanceSheet.liabilitiesAndEquity.liabilities.current.shortTermDebt": (
        28173, 31747, 8547, 0, 0, 0,
    ),
    "balanceSheet.liabilitiesAndEquity.liabilities.current.vatPayable": (
        371, 5835, 7316, 8713, 10462, 12663,
    ),
    "balanceSheet.liabilitiesAndEquity.liabilities.current.deferredTaxes": (
        0, 99684, 158827, 219964, 282783, 363094,
    ),
    "balanceSheet.liabilitiesAndEquity.liabilities.current.dividendsPayable": (
        25974, 322432, 484020, 651056, 822688, 1042111,
    ),
    "balanceSheet.liabilitiesAndEquity.liabilities.nonCurrent.longTermDebt": (
        40293, 8547, 0, 0, 0, 0,
    ),
}

DEFAULT_ASSUMPTIONS: dict[str, Any] = {
    "cogs": {
        "greenBeanCostPerKiloUGX": 10000,
        "roastingCostPerKiloUGX": 5000,
        "packagingCostPer250grUGX": 1000,
        "shippingCostPerKgUSD": 5,
        "insurancePerKgUSD": 0.5,
        "portHandlingEUR": 100,
        "fulfillmentPerOrderEU": 2.5,
    },
    "startup": {
        "items": [
            {"name": "Tickets", "budget": 450},
            {"name": "Lodging", "budget": 5000},
            {"name": "Food", "budget": 2000},
            {"name": "Sales visits", "budget": 3000},
            {"name": "Legal (BV incorporation)", "budget": 2500},
            {"name": "Shop design", "budget": 5000},
            {"name": "Technology costs", "budget": 2500},
            {"name": "Content creation", "budget": 25000},
        ]
    },
    "forex": {"eurToUgx": 4100, "ugxToUsd": 0.00027, "usdToEur": 0.92, "ugxToEur": 0.00025},
    "exogenous": {
        "corporateTaxRateLow": 19,
        "corporateTaxRateHigh": 25.8,
        "inflation": 2,
        "vatLow": 9,
        "vatHigh": 21,
        "importDuty": 0,
        "exciseDuty": 0.5,
        "vatCoffeeShops": 9,
    },
    "webshop": {
        "cac": 15,
        "aovInclVat": 30,
        "aovExclVat": 27.5,
        "avgOrderMass": 0.75,
        "cagr": 50,
        "supportOptInRate": 10,
    },
    "retail": {
        "cagr": 30,
        "discountPercentage": 20,
        "assumedStartingOrderKg": 10,
        "startingAccounts": 5,
        "avgSalesPerAccountYear": 5000,
    },
    "horeca": {
        "cagr": 20,
        "discountPercentage": 25,
        "assumedStartingOrderKg": 20,
        "startingAccounts": 2,
    },
    "company": {
        "owners": {"dividendsPayoutRatio": 50},
        "marketing": {
            "salesPersonnelSalary": 3000,
            "tradeShowBudgetPercent": 2,
            "prBrandingBudgetPercent": 3,
        },
        "logistics": {"warehousingCostMonth": 500, "localDeliveryCostShipment": 5},
        "otherExpenses": {
            "managementSalaryMonthUGX": 8000000,
            "adminSalaryMonthUGX": 4000000,
            "rentOfficeMonth": 1000,
            "techSoftwareMonth": 250,
            "profFeesMonth": 300,
            "otherExpensesMonth": 200,
        },
    },
    "shopMetrics": {
        "2025": {"visitors": 15000, "conversionRate": 2.5, "newCustomers": 375,
                 "returningCustomers": 100, "totalOrders": 475, "churnRate": 8},
        "2026": {"visitors": 22500, "conversionRate": 3, "newCustomers": 675,
                 "returningCustomers": 200, "totalOrders": 875, "churnRate": 6},
        "2027": {"visitors": 33750, "conversionRate": 3.5, "newCustomers": 1181,
                 "returningCustomers": 400, "totalOrders": 1581, "churnRate": 5},
        "2028": {"visitors": 50625, "conversionRate": 4, "newCustomers": 2025,
                 "returningCustomers": 800, "totalOrders": 2825, "churnRate": 4},
        "2029": {"visitors": 75938, "conversionRate": 4.5, "newCustomers": 3417,
                 "returningCustomers": 1600, "totalOrders": 5017, "churnRate": 3},
        "2030": {"visitors": 113906, "conversionRate": 5, "newCustomers": 5695,
                 "returningCustomers": 3200, "totalOrders": 8895, "churnRate": 2},
    },
}

DEFAULT_OKRS: list[dict[str, Any]] = [
    {
        "id": 1,
        "objective": "Achieve Product-Market Fit",
        "keyResults": [
            {"id": 1, "name": "Net Revenue", "target": 250000, "current": 75000, "unit": "€"},
            {"id": 2, "name": "Gross Margin", "target": 45, "current": 38, "unit": "%"},
        ],
    }
]

DEFAULT_PRICING: dict[str, Any] = {
    "grams250": 10,
    "grams500": 18,
    "kilo1": 35,
    "kilos5": 150,
    "subscription250": 9,
    "subscription500": 16,
    "subscription1000": 32,
    "subscription5000": 140,
}


def seed_yearly_summaries(
    years: tuple[int, ...] = YEARS,
) -> dict[int, FinancialData]:
    """Yearly statements with only the seed leaf figures set."""
    summaries = {}
    for index, year in enumerate(years):
        statement = FinancialData()
        for path, values in SEED_FIGURES.items():
            if index < len(values):
                statement = with_value(statement, path, values[index])
        summaries[year] = statement
    return summaries


def seed_budget(years: tuple[int, ...] = YEARS) -> DetailedFinancialData:
    """The seed plan, recalculated and distributed over the planning window."""
    return build_budget(seed_yearly_summaries(years), years)


def default_assumptions() -> Assumptions:
    return assumptions_from_dict(deepcopy(DEFAULT_ASSUMPTIONS))


def default_okrs() -> list[dict[str, Any]]:
    return deepcopy(DEFAULT_OKRS)


def default_pricing() -> dict[str, Any]:
    return deepcopy(DEFAULT_PRICING)
