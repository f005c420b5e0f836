# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Narrative budget vs actual analysis.

The analysis is delegated to a text generation model. This module builds
the prompt from a budget and an actual statement, calls the model through
the ``TextGenerator`` protocol and turns every failure into a displayable
message: callers always get a string back.

``AnalysisSession`` serializes interactive use: only the most recent
request may publish its result, an older one still in flight is cancelled
and its result discarded.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from .engine import safe_ratio
from .periods import Granularity
from .statements import FinancialData

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_API_KEY_ENV = "API_KEY"

ERROR_MESSAGE = (
    "An error occurred while analyzing the financial data. "
    "Please check the logs for details."
)


def format_eur(value: float) -> str:
    """``1234.5`` -> ``"€1,234.50"``, ``-10`` -> ``"-€10.00"``."""
    sign = "-" if value < 0 else ""
    return f"{sign}€{abs(value):,.2f}"


def _gross_margin(statement: FinancialData) -> str:
    income = statement.income_statement
    return f"{safe_ratio(income.gross_profit, income.revenue.total) * 100:.1f}"


def _weekly_block(title: str, statement: FinancialData) -> str:
    cash_flow = statement.cash_flow
    return (
        f"**{title}:**\n"
        f"- Net Change in Cash: {format_eur(cash_flow.net_change_in_cash)}\n"
        f"- Cash at End of Period: {format_eur(cash_flow.cash_at_end_of_year)}\n"
    )


def _period_block(title: str, statement: FinancialData) -> str:
    income = statement.income_statement
    return (
        f"**{title}:**\n"
        f"- Total Revenue: {format_eur(income.revenue.total)}\n"
        f"- Net Income: {format_eur(income.net_income)}\n"
        f"- Gross Margin: {_gross_margin(statement)}%\n"
        f"- Total Operating Expenses: "
        f"{format_eur(income.operating_expenses.total)}\n"
        f"- Cash at End of Period: "
        f"{format_eur(statement.cash_flow.cash_at_end_of_year)}\n"
    )


def build_analysis_prompt(
    budget: FinancialData,
    actual: FinancialData,
    period_label: str,
    granularity: Union[Granularity, str],
) -> str:
    """
    Prompt asking for a budget vs actual review of one period.

    Weekly periods only carry cash figures; other granularities cover
    revenue, net income, gross margin, operating expenses and closing cash.
    """
    if Granularity.parse(granularity) is Granularity.WEEKLY:
        block = _weekly_block
        data = "**Focus Area: Weekly Cash Flow**\n\n"
    else:
        block = _period_block
        data = ""
    data += block(f"Budgeted Data for {period_label}", budget)
    data += "\n"
    data += block(f"Actual Data for {period_label}", actual)

    return (
        "You are a senior financial analyst providing a performance review "
        "for a coffee startup.\n"
        f"Analyze the following financial data for the period: {period_label}.\n"
        "The currency is in Euros (€).\n\n"
        f"{data}\n"
        "Based on this data, provide a concise analysis in Markdown format. "
        "Address the following points:\n"
        "1. **Overall Performance Summary:** Give a brief overview of "
        "performance against the budget for this specific period.\n"
        "2. **Key Highlights (Positive Variances):** Identify 1-2 areas where "
        "the company outperformed its budget.\n"
        "3. **Areas for Improvement (Negative Variances):** Identify 1-2 areas "
        "of underperformance or concern.\n"
        "4. **Actionable Recommendation:** Suggest one strategic action for "
        "management to focus on based on this period's results.\n\n"
        "Structure your response with clear headings. Be insightful and direct.\n"
    )


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str: ...


class GeminiTextGenerator:
    """Google Gemini client (``google-generativeai``)."""

    def __init__(self, api_key: str, model_name: str = DEFAULT_MODEL):
        try:
            import google.generativeai as genai
        except ImportError as exc:
            raise ImportError(
                "Install google-generativeai: pip install 'finplan[ai]'"
            ) from exc
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.model = genai.GenerativeModel(model_name)

    def generate(self, prompt: str) -> str:
        response = self.model.generate_content(prompt)
        return response.text


@dataclass
class NarrativeAnalyzer:
    """
    Runs the analysis of one period and never raises.

    ``generator`` is built on first use from the API key found in the
    ``api_key_env`` environment variable unless one is injected.
    """

    generator: Optional[TextGenerator] = None
    model_name: str = DEFAULT_MODEL
    api_key_env: str = DEFAULT_API_KEY_ENV

    def _generator(self) -> Optional[TextGenerator]:
        if self.generator is None:
            api_key = os.environ.get(self.api_key_env)
            if not api_key:
                return None
            self.generator = GeminiTextGenerator(api_key, self.model_name)
        return self.generator

    def analyze(
        self,
        budget: FinancialData,
        actual: FinancialData,
        period_label: str,
        granularity: Union[Granularity, str],
    ) -> str:
        try:
            generator = self._generator()
        except ImportError as exc:
            logger.error("Analysis client unavailable: %s", exc)
            return str(exc)
        if generator is None:
            logger.error("%s environment variable not set.", self.api_key_env)
            return (
                "API Key not configured. Please set the "
                f"{self.api_key_env} environment variable to use the AI "
                "analysis feature."
            )

        prompt = build_analysis_prompt(budget, actual, period_label, granularity)
        try:
            return generator.generate(prompt)
        except Exception:
            logger.exception("Error fetching financial analysis for %s", period_label)
            return ERROR_MESSAGE


class AnalysisSession:
    """
    Last-request-wins wrapper around a ``NarrativeAnalyzer``.

    Every request takes a new token. Starting a request cancels the one
    still pending; a request whose token is no longer the current one
    returns None and leaves ``latest`` untouched.
    """

    def __init__(self, analyzer: NarrativeAnalyzer):
        self.analyzer = analyzer
        self.latest: Optional[str] = None
        self.latest_token = 0
        self._token = 0
        self._pending: Optional[asyncio.Future] = None

    @property
    def current_token(self) -> int:
        return self._token

    async def request(
        self,
        budget: FinancialData,
        actual: FinancialData,
        period_label: str,
        granularity: Union[Granularity, str],
    ) -> Optional[str]:
        self._token += 1
        token = self._token
        if self._pending is not None and not self._pending.done():
            logger.debug("Cancelling superseded analysis request")
            self._pending.cancel()

        pending = asyncio.ensure_future(
            asyncio.to_thread(
                self.analyzer.analyze, budget, actual, period_label, granularity
            )
        )
        self._pending = pending
        try:
            result = await pending
        except asyncio.CancelledError:
            if token != self._token:
                return None
            raise

        if token != self._token:
            return None
        self.latest = result
        self.latest_token = token
        return result
