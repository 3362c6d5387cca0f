"""In-memory relational model: one validated DataFrame per table.

Tables reference each other by string identifiers only (no embedded objects).
Identifier lookups are served from per-type frozensets built on first use and
dropped whenever a table is replaced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pandas as pd

from transit_enrichment.models.enums import ObjectType
from transit_enrichment.models.schemas import MODEL_TABLES
from transit_enrichment.models.validate import empty_table, validate_df

LOGGER = logging.getLogger(__name__)

# object type -> (model attribute, identifier column)
OBJECT_TABLES: dict[ObjectType, tuple[str, str]] = {
    ObjectType.NETWORK: ("networks", "network_id"),
    ObjectType.LINE: ("lines", "line_id"),
    ObjectType.ROUTE: ("routes", "route_id"),
    ObjectType.TRIP: ("trips", "trip_id"),
    ObjectType.STOP_AREA: ("stop_areas", "stop_area_id"),
    ObjectType.STOP_POINT: ("stop_points", "stop_point_id"),
}


@dataclass(frozen=True)
class StopPointArrays:
    """Column-oriented view of the stop points used by the spatial code."""

    ids: list[str]
    lat: list[float]
    lon: list[float]
    contributors: list[str | None]

    def __len__(self) -> int:
        return len(self.ids)


@dataclass
class Model:
    """Collections of a transit model. Missing tables default to empty frames."""

    stop_points: pd.DataFrame
    contributors: pd.DataFrame | None = None
    networks: pd.DataFrame | None = None
    lines: pd.DataFrame | None = None
    routes: pd.DataFrame | None = None
    trips: pd.DataFrame | None = None
    stop_areas: pd.DataFrame | None = None
    transfers: pd.DataFrame | None = None
    object_codes: pd.DataFrame | None = None
    _ids: dict[ObjectType, frozenset[str]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        for name, schema in MODEL_TABLES.items():
            df = getattr(self, name)
            df = empty_table(schema) if df is None else validate_df(df, schema)
            setattr(self, name, df.reset_index(drop=True))

    def replace_table(self, name: str, df: pd.DataFrame) -> None:
        """Validate `df` against the table contract and swap it in as a whole."""
        if name not in MODEL_TABLES:
            raise KeyError(f"Unknown model table {name!r}")
        validated = validate_df(df, MODEL_TABLES[name]).reset_index(drop=True)
        setattr(self, name, validated)
        for object_type, (attr, _) in OBJECT_TABLES.items():
            if attr == name:
                self._ids.pop(object_type, None)
        LOGGER.debug("Replaced table %s (%d rows)", name, len(validated))

    def ids(self, object_type: ObjectType | str) -> frozenset[str]:
        object_type = ObjectType(object_type)
        cached = self._ids.get(object_type)
        if cached is None:
            attr, id_col = OBJECT_TABLES[object_type]
            cached = frozenset(getattr(self, attr)[id_col].astype(str))
            self._ids[object_type] = cached
        return cached

    def has_object(self, object_type: ObjectType | str, object_id: str) -> bool:
        return str(object_id) in self.ids(object_type)

    def stop_point_arrays(self) -> StopPointArrays:
        sp = self.stop_points
        return StopPointArrays(
            ids=sp["stop_point_id"].astype(str).tolist(),
            lat=sp["lat"].astype(float).tolist(),
            lon=sp["lon"].astype(float).tolist(),
            contributors=[None if pd.isna(c) else str(c) for c in sp["contributor_id"]],
        )

    def summary(self) -> dict[str, int]:
        return {name: int(len(getattr(self, name))) for name in MODEL_TABLES}
