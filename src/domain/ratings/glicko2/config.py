"""Load ladder Glicko-2 and recalculation settings from a TOML file."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
import tomllib

from domain.ratings.glicko2.calculator import Glicko2Parameters


@dataclass(frozen=True)
class RecalculationSettings:
    """Knobs for the batched persistence of one recalculation pass."""

    batch_size: int = 500
    batch_delay_seconds: float = 0.0
    progress_interval: int = 10
    denormalize_match_changes: bool = True


@dataclass(frozen=True)
class LadderConfig:
    """Configuration for one ladder: rating parameters plus pass settings."""

    name: str
    description: str | None = None
    file_path: Path | None = None
    parameters: Glicko2Parameters = field(default_factory=Glicko2Parameters)
    recalculation: RecalculationSettings = field(default_factory=RecalculationSettings)

    def as_config_json(self) -> dict[str, Any]:
        return {
            "initial_rating": self.parameters.initial_rating,
            "initial_rd": self.parameters.initial_rd,
            "initial_volatility": self.parameters.initial_volatility,
            "tau": self.parameters.tau,
            "epsilon": self.parameters.epsilon,
            "batch_size": self.recalculation.batch_size,
            "batch_delay_seconds": self.recalculation.batch_delay_seconds,
            "progress_interval": self.recalculation.progress_interval,
            "denormalize_match_changes": self.recalculation.denormalize_match_changes,
        }


def load_ladder_config(file_path: Path) -> LadderConfig:
    """Load and validate one ladder TOML config file."""
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")
    if not file_path.is_file():
        raise ValueError(f"Config path is not a file: {file_path}")

    with file_path.open("rb") as file:
        raw = tomllib.load(file)

    ladder_raw = raw.get("ladder", {})
    glicko2_raw = raw.get("glicko2", {})
    recalculation_raw = raw.get("recalculation", {})

    name = str(ladder_raw.get("name", "")).strip()
    if not name:
        raise ValueError(f"{file_path}: [ladder].name is required")

    description_value = ladder_raw.get("description")
    description = None if description_value is None else str(description_value)

    parameters = Glicko2Parameters(
        initial_rating=float(glicko2_raw.get("initial_rating", 1500.0)),
        initial_rd=float(glicko2_raw.get("initial_rd", 350.0)),
        initial_volatility=float(glicko2_raw.get("initial_volatility", 0.06)),
        tau=float(glicko2_raw.get("tau", 0.5)),
        epsilon=float(glicko2_raw.get("epsilon", 1e-6)),
    )
    _validate_parameters(file_path=file_path, parameters=parameters)

    recalculation = RecalculationSettings(
        batch_size=int(recalculation_raw.get("batch_size", 500)),
        batch_delay_seconds=float(recalculation_raw.get("batch_delay_seconds", 0.0)),
        progress_interval=int(recalculation_raw.get("progress_interval", 10)),
        denormalize_match_changes=bool(recalculation_raw.get("denormalize_match_changes", True)),
    )
    _validate_recalculation(file_path=file_path, settings=recalculation)

    return LadderConfig(
        name=name,
        description=description,
        file_path=file_path,
        parameters=parameters,
        recalculation=recalculation,
    )


def _validate_parameters(*, file_path: Path, parameters: Glicko2Parameters) -> None:
    if parameters.initial_rating <= 0.0:
        raise ValueError(f"{file_path}: [glicko2].initial_rating must be > 0")
    if parameters.initial_rd <= 0.0:
        raise ValueError(f"{file_path}: [glicko2].initial_rd must be > 0")
    if parameters.initial_volatility <= 0.0:
        raise ValueError(f"{file_path}: [glicko2].initial_volatility must be > 0")
    if parameters.tau <= 0.0:
        raise ValueError(f"{file_path}: [glicko2].tau must be > 0")
    if parameters.epsilon <= 0.0:
        raise ValueError(f"{file_path}: [glicko2].epsilon must be > 0")


def _validate_recalculation(*, file_path: Path, settings: RecalculationSettings) -> None:
    if settings.batch_size <= 0:
        raise ValueError(f"{file_path}: [recalculation].batch_size must be > 0")
    if settings.batch_delay_seconds < 0.0:
        raise ValueError(f"{file_path}: [recalculation].batch_delay_seconds must be >= 0")
    if settings.progress_interval <= 0:
        raise ValueError(f"{file_path}: [recalculation].progress_interval must be > 0")
