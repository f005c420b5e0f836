# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for FinPlan.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import tomllib  # Python 3.11+

from .analysis import DEFAULT_API_KEY_ENV, DEFAULT_MODEL
from .ratios import LEVEL_ORDER
from .statements import YEARS

DEFAULT_CONFIG_FILE = "finplan_config.toml"

DISPLAY_MODES: tuple[str, ...] = ("table", "csv", "both")
VIEW_LEVELS: tuple[str, ...] = ("simplified", "regular", "detailed")
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class PlanningConfig:
    """Planning horizon: consecutive calendar years starting at first_year."""

    first_year: int = YEARS[0]
    years: int = len(YEARS)
    currency: str = "EUR"

    @property
    def year_range(self) -> tuple[int, ...]:
        return tuple(range(self.first_year, self.first_year + self.years))


@dataclass(frozen=True)
class DataConfig:
    state_file: Path = Path("data/finplan_state.json")
    output_dir: Path = Path("data/output")


@dataclass(frozen=True)
class LedgersConfig:
    """Optional CSV ledgers loaded by ``finplan import-ledgers``."""

    sales: Optional[Path] = None
    cash_journal: Optional[Path] = None
    inventory: Optional[Path] = None


@dataclass(frozen=True)
class RatiosConfig:
    enabled: bool = True
    default_level: str = "basic"
    rules_file: Optional[Path] = None
    decimals: int = 1


@dataclass(frozen=True)
class DisplayConfig:
    mode: str = "table"
    decimals: int = 2
    view: str = "regular"


@dataclass(frozen=True)
class AnalysisConfig:
    enabled: bool = False
    model: str = DEFAULT_MODEL
    api_key_env: str = DEFAULT_API_KEY_ENV


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "WARNING"


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for FinPlan.

    This aggregates:
    - the planning horizon and presentation currency,
    - where the application state and report outputs are stored,
    - optional ledger CSV inputs,
    - ratio and display options,
    - the narrative analysis settings,
    - the logging level.
    """

    planning: PlanningConfig = field(default_factory=PlanningConfig)
    data: DataConfig = field(default_factory=DataConfig)
    ledgers: LedgersConfig = field(default_factory=LedgersConfig)
    ratios: RatiosConfig = field(default_factory=RatiosConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: Optional[Path] = None


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Config section [{name}] must be a table.")
    return section


def _int(section: Mapping[str, Any], key: str, default: int, name: str) -> int:
    value = section.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{name}.{key}' in the configuration. "
            "Expected an integer."
        ) from exc


def _choice(
    section: Mapping[str, Any],
    key: str,
    default: str,
    choices: tuple[str, ...],
    name: str,
) -> str:
    value = str(section.get(key, default))
    if value not in choices:
        raise ValueError(
            f"Invalid value for '{name}.{key}': {value!r} "
            f"(expected one of: {', '.join(choices)})."
        )
    return value


def _path(base_dir: Path, raw: Any) -> Optional[Path]:
    if not raw:
        return None
    return (base_dir / str(raw)).resolve()


def parse_app_config(raw: Mapping[str, Any], base_dir: Path) -> AppConfig:
    """Build an ``AppConfig`` from parsed TOML, resolving paths from ``base_dir``."""
    planning = _section(raw, "planning")
    first_year = _int(planning, "first_year", YEARS[0], "planning")
    years = _int(planning, "years", len(YEARS), "planning")
    if years < 1:
        raise ValueError("'planning.years' must be at least 1.")

    data = _section(raw, "data")
    ledgers = _section(raw, "ledgers")
    ratios = _section(raw, "ratios")
    display = _section(raw, "display")
    analysis = _section(raw, "analysis")
    logging_section = _section(raw, "logging")

    defaults = DataConfig()
    return AppConfig(
        planning=PlanningConfig(
            first_year=first_year,
            years=years,
            currency=str(planning.get("currency", "EUR")),
        ),
        data=DataConfig(
            state_file=_path(base_dir, data.get("state_file"))
            or (base_dir / defaults.state_file).resolve(),
            output_dir=_path(base_dir, data.get("output_dir"))
            or (base_dir / defaults.output_dir).resolve(),
        ),
        ledgers=LedgersConfig(
            sales=_path(base_dir, ledgers.get("sales")),
            cash_journal=_path(base_dir, ledgers.get("cash_journal")),
            inventory=_path(base_dir, ledgers.get("inventory")),
        ),
        ratios=RatiosConfig(
            enabled=bool(ratios.get("enabled", True)),
            default_level=_choice(
                ratios, "default_level", "basic", LEVEL_ORDER, "ratios"
            ),
            rules_file=_path(base_dir, ratios.get("rules_file")),
            decimals=_int(ratios, "decimals", 1, "ratios"),
        ),
        display=DisplayConfig(
            mode=_choice(display, "mode", "table", DISPLAY_MODES, "display"),
            decimals=_int(display, "decimals", 2, "display"),
            view=_choice(display, "view", "regular", VIEW_LEVELS, "display"),
        ),
        analysis=AnalysisConfig(
            enabled=bool(analysis.get("enabled", False)),
            model=str(analysis.get("model", DEFAULT_MODEL)),
            api_key_env=str(analysis.get("api_key_env", DEFAULT_API_KEY_ENV)),
        ),
        logging=LoggingConfig(
            level=_choice(
                {k: str(v).upper() for k, v in logging_section.items()},
                "level",
                "WARNING",
                LOG_LEVELS,
                "logging",
            ),
        ),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the FinPlan application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [planning]
        first_year, years (planning horizon) and presentation currency.

    [data]
        state_file (JSON document holding the application state) and
        output_dir (CSV exports).

    [ledgers]
        Optional sales / cash_journal / inventory CSV files.

    [ratios]
        enabled, default_level (basic / advanced / full), rules_file
        (TOML ratio rules, built-in rules otherwise), decimals.

    [display]
        mode (table / csv / both), decimals, view (simplified / regular /
        detailed).

    [analysis]
        enabled, model, api_key_env (environment variable holding the key).

    [logging]
        level.

    All sections are optional. All file paths are resolved relative to the
    directory of the TOML file itself.

    When ``config_path`` is None, ``finplan_config.toml`` in the current
    directory is used if it exists; otherwise the defaults are returned
    (relative paths resolved from the current directory).

    Raises
    ------
    FileNotFoundError
        If an explicit ``config_path`` does not exist.
    ValueError
        If the file cannot be parsed or holds invalid values.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
        if not config_file.is_file():
            return parse_app_config({}, Path.cwd())
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    return replace(parse_app_config(raw, config_file.parent), source=config_file)
