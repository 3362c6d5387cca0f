from __future__ import annotations

import math
import textwrap
from pathlib import Path
from typing import Callable

import pandas as pd
import pytest

from transit_enrichment.core.config import EARTH_RADIUS_M
from transit_enrichment.models import Model

ORIGIN = (48.8566, 2.3522)

#                    206m
# sp_1 *--------------------------------* sp_3
#       \                        ______/
#   65m  \           ___________/  146m
#         \_________/
#         sp_2
THREE_STOPS: dict[str, tuple[float, float]] = {
    "sp_1": (0.0, 0.0),
    "sp_2": (61.52, -20.99),
    "sp_3": (206.0, 0.0),
}


def offset_to_latlon(east_m: float, north_m: float, origin=ORIGIN) -> tuple[float, float]:
    lat0, lon0 = origin
    lat = lat0 + math.degrees(north_m / EARTH_RADIUS_M)
    lon = lon0 + math.degrees(east_m / (EARTH_RADIUS_M * math.cos(math.radians(lat0))))
    return lat, lon


def stop_points_frame(
    offsets: dict[str, tuple[float, float]],
    contributors: dict[str, str | None] | None = None,
) -> pd.DataFrame:
    rows = []
    for stop_id, (east, north) in offsets.items():
        lat, lon = offset_to_latlon(east, north)
        contributor = "c1" if contributors is None else contributors.get(stop_id, "c1")
        rows.append(
            {
                "stop_point_id": stop_id,
                "name": stop_id.upper(),
                "lat": lat,
                "lon": lon,
                "contributor_id": contributor,
            }
        )
    return pd.DataFrame(rows)


@pytest.fixture
def make_model() -> Callable[..., Model]:
    """Build a model from metric offsets (meters east/north of a fixed origin)."""

    def _make(
        offsets: dict[str, tuple[float, float]] | None = None,
        contributors: dict[str, str | None] | None = None,
        **tables: pd.DataFrame,
    ) -> Model:
        return Model(
            stop_points=stop_points_frame(offsets or THREE_STOPS, contributors), **tables
        )

    return _make


@pytest.fixture
def three_stop_model(make_model) -> Model:
    return make_model()


@pytest.fixture
def write_rules(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a dedented rule file under tmp_path and return its path."""

    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
        return path

    return _write
