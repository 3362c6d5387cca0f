"""Project configuration (paths, physical constants, engine settings)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from transit_enrichment.models.enums import TransfersMode

# Mean Earth radius used for great-circle distances (meters).
EARTH_RADIUS_M: float = 6_372_797.560856

# Walking speed a `speed_factor` of 1.0 stands for (meters per second).
NOMINAL_WALKING_SPEED_MPS: float = 1.0

# Relative slack on the spatial-index radius; exact distances are filtered afterwards.
INDEX_RADIUS_SLACK: float = 1e-6


def project_root() -> Path:
    """Return repository root assuming this file lives in `<root>/transit_enrichment/core/config.py`."""
    return Path(__file__).resolve().parents[2]


def default_config_path() -> Path:
    return project_root() / "config" / "enrichment.yaml"


class TransferSettings(BaseModel):
    """Parameters of one transfer generation run."""

    max_distance: float = Field(default=500.0, gt=0)  # meters
    speed_factor: float = Field(default=0.785, gt=0, le=1)
    max_duration: int = Field(default=900, gt=0)  # seconds
    waiting_time: int = Field(default=0, ge=0)  # seconds
    mode: TransfersMode = TransfersMode.INTRA_CONTRIBUTOR
    workers: int | None = Field(default=None, ge=1)


class CodeSettings(BaseModel):
    # Systems whose codes may carry several values for the same object.
    multi_valued_systems: tuple[str, ...] = Field(default_factory=tuple)


class EnrichmentSettings(BaseModel):
    transfers: TransferSettings = Field(default_factory=TransferSettings)
    codes: CodeSettings = Field(default_factory=CodeSettings)


def load_settings(path: Path | None = None) -> EnrichmentSettings:
    """Load a YAML settings file; a missing default file yields empty settings."""
    cfg_path = default_config_path() if path is None else Path(path)
    if not cfg_path.exists():
        if path is not None:
            raise FileNotFoundError(f"Settings file not found: {cfg_path}")
        return EnrichmentSettings()
    data: Any = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise TypeError(f"{cfg_path}: expected a mapping at the top level")
    return EnrichmentSettings.model_validate(data)


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
