# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
FinPlan
-------

A Python planning engine for Small and Medium-sized Businesses (SMBs)
comparing a multi-year budget with actuals derived from transaction
ledgers.

Main capabilities:
- a Year -> Month -> Week tree of income statement, cash flow statement,
  balance sheet and mass figures,
- deterministic recalculation of every derived field, with cash and
  retained earnings carried from one year to the next,
- even distribution of yearly budget figures to months and model weeks,
  with forward cascade of yearly edits,
- aggregation of sales, cash journal and inventory ledgers into actual
  statements, with landed-cost based COGS,
- yearly / quarterly / monthly / weekly budget vs actual queries,
- configurable ratios engine, multi-period series and operational reports,
- versioned JSON document exchange of the whole application state,
- optional narrative analysis through a text generation model.

FinPlan separates computation (engine), configuration (TOML) and
presentation (CLI), making it suitable for scripting and automation.


Version: 1.0.0

Usage:
    finplan --help
"""

__all__ = [
    "statements",
    "engine",
    "distribution",
    "aggregation",
    "periods",
    "state",
    "views",
    "io",
]

__version__ = "1.0.0"
