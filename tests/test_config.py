from pathlib import Path

import pytest

from finplan.config import (
    AppConfig,
    PlanningConfig,
    load_app_config,
    parse_app_config,
)


def test_defaults_without_config_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    config = load_app_config()

    assert isinstance(config, AppConfig)
    assert config.source is None
    assert config.planning.year_range == (2025, 2026, 2027, 2028, 2029, 2030)
    assert config.data.state_file == (tmp_path / "data/finplan_state.json").resolve()
    assert config.ratios.default_level == "basic"
    assert config.display.view == "regular"
    assert config.analysis.enabled is False
    assert config.analysis.api_key_env == "API_KEY"
    assert config.logging.level == "WARNING"


def test_default_config_file_in_working_directory(
    tmp_path: Path, monkeypatch
) -> None:
    (tmp_path / "finplan_config.toml").write_text(
        '[display]\nview = "detailed"\n', encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)

    config = load_app_config()

    assert config.display.view == "detailed"
    assert config.source == (tmp_path / "finplan_config.toml").resolve()


def test_paths_are_relative_to_config_file(tmp_path: Path) -> None:
    config_dir = tmp_path / "conf"
    config_dir.mkdir()
    config_file = config_dir / "finplan.toml"
    config_file.write_text(
        """
[planning]
first_year = 2026
years = 3

[data]
state_file = "../state/plan.json"

[ledgers]
sales = "ledgers/sales.csv"

[ratios]
default_level = "full"
rules_file = "rules.toml"

[logging]
level = "debug"
""",
        encoding="utf-8",
    )

    config = load_app_config(str(config_file))

    assert config.planning.year_range == (2026, 2027, 2028)
    assert config.data.state_file == (tmp_path / "state" / "plan.json").resolve()
    assert config.data.output_dir == (config_dir / "data" / "output").resolve()
    assert config.ledgers.sales == (config_dir / "ledgers" / "sales.csv").resolve()
    assert config.ledgers.inventory is None
    assert config.ratios.rules_file == (config_dir / "rules.toml").resolve()
    assert config.ratios.default_level == "full"
    assert config.logging.level == "DEBUG"


def test_missing_explicit_config_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "nope.toml"))


def test_invalid_toml(tmp_path: Path) -> None:
    config_file = tmp_path / "bad.toml"
    config_file.write_text("[display\nview = 1", encoding="utf-8")

    with pytest.raises(ValueError, match="Failed to parse"):
        load_app_config(str(config_file))


@pytest.mark.parametrize(
    "raw, message",
    [
        ({"display": {"view": "fancy"}}, "display.view"),
        ({"display": {"mode": "html"}}, "display.mode"),
        ({"ratios": {"default_level": "expert"}}, "ratios.default_level"),
        ({"ratios": {"decimals": "two"}}, "ratios.decimals"),
        ({"planning": {"years": 0}}, "planning.years"),
        ({"logging": {"level": "loud"}}, "logging.level"),
        ({"display": "table"}, r"\[display\]"),
    ],
)
def test_invalid_values(raw: dict, message: str, tmp_path: Path) -> None:
    with pytest.raises(ValueError, match=message):
        parse_app_config(raw, tmp_path)


def test_planning_year_range() -> None:
    assert PlanningConfig(first_year=2030, years=2).year_range == (2030, 2031)
