"""Tests for TOML-based ladder config loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from domain.ratings.glicko2.config import load_ladder_config

REPO_DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "configs" / "ladder" / "default.toml"


def test_load_ladder_config(tmp_path: Path) -> None:
    config_path = tmp_path / "custom.toml"
    config_path.write_text(
        """
[ladder]
name = "ladder_a"
description = "A test ladder"

[glicko2]
initial_rating = 1520.0
initial_rd = 320.0
initial_volatility = 0.05
tau = 0.6
epsilon = 0.000001

[recalculation]
batch_size = 50
batch_delay_seconds = 0.01
progress_interval = 5
denormalize_match_changes = false
""".strip()
    )

    config = load_ladder_config(config_path)

    assert config.name == "ladder_a"
    assert config.description == "A test ladder"
    assert config.file_path == config_path
    assert config.parameters.initial_rating == pytest.approx(1520.0)
    assert config.parameters.initial_rd == pytest.approx(320.0)
    assert config.parameters.initial_volatility == pytest.approx(0.05)
    assert config.parameters.tau == pytest.approx(0.6)
    assert config.parameters.epsilon == pytest.approx(0.000001)
    assert config.recalculation.batch_size == 50
    assert config.recalculation.batch_delay_seconds == pytest.approx(0.01)
    assert config.recalculation.progress_interval == 5
    assert config.recalculation.denormalize_match_changes is False
    assert config.as_config_json()["tau"] == pytest.approx(0.6)


def test_missing_sections_fall_back_to_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "minimal.toml"
    config_path.write_text('[ladder]\nname = "minimal"\n')

    config = load_ladder_config(config_path)

    assert config.parameters.initial_rating == pytest.approx(1500.0)
    assert config.parameters.initial_rd == pytest.approx(350.0)
    assert config.parameters.initial_volatility == pytest.approx(0.06)
    assert config.parameters.tau == pytest.approx(0.5)
    assert config.recalculation.batch_size == 500
    assert config.recalculation.progress_interval == 10
    assert config.recalculation.denormalize_match_changes is True


def test_repository_default_config_loads() -> None:
    config = load_ladder_config(REPO_DEFAULT_CONFIG)
    assert config.name == "ladder_default"


def test_missing_name_raises(tmp_path: Path) -> None:
    config_path = tmp_path / "nameless.toml"
    config_path.write_text("[glicko2]\ntau = 0.5\n")

    with pytest.raises(ValueError, match=r"\[ladder\]\.name is required"):
        load_ladder_config(config_path)


@pytest.mark.parametrize(
    ("section", "body", "message"),
    [
        ("glicko2", "tau = 0.0", r"\[glicko2\]\.tau must be > 0"),
        ("glicko2", "initial_rd = -1.0", r"\[glicko2\]\.initial_rd must be > 0"),
        ("recalculation", "batch_size = 0", r"\[recalculation\]\.batch_size must be > 0"),
        ("recalculation", "batch_delay_seconds = -0.5", r"\[recalculation\]\.batch_delay_seconds must be >= 0"),
    ],
)
def test_invalid_values_raise(tmp_path: Path, section: str, body: str, message: str) -> None:
    config_path = tmp_path / "invalid.toml"
    config_path.write_text(f'[ladder]\nname = "bad"\n\n[{section}]\n{body}\n')

    with pytest.raises(ValueError, match=message):
        load_ladder_config(config_path)


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_ladder_config(tmp_path / "absent.toml")
