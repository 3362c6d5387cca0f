"""Schema definitions for the model table contracts.

This module contains only:
- `TableSchema` (schema metadata container)
- concrete table schemas (e.g., `STOP_POINTS`, `TRANSFERS`, ...)
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, Field


class TableSchema(BaseModel):
    """A simple schema for a pandas DataFrame (column-level contract)."""

    name: str
    required_columns: tuple[str, ...] = Field(default_factory=tuple)
    optional_columns: tuple[str, ...] = Field(default_factory=tuple)
    # pandas dtype strings, e.g. "string", "Float64", "Int64"
    dtypes: Mapping[str, str] = Field(default_factory=dict)
    non_null: tuple[str, ...] = Field(default_factory=tuple)
    # Columns whose combined values must be unique across rows.
    primary_key: tuple[str, ...] = Field(default_factory=tuple)

    def all_columns(self) -> list[str]:
        return list(self.required_columns) + list(self.optional_columns)


CONTRIBUTORS = TableSchema(
    name="contributors",
    required_columns=("contributor_id",),
    optional_columns=("contributor_name",),
    dtypes={"contributor_id": "string", "contributor_name": "string"},
    non_null=("contributor_id",),
    primary_key=("contributor_id",),
)

NETWORKS = TableSchema(
    name="networks",
    required_columns=("network_id",),
    optional_columns=("network_name",),
    dtypes={"network_id": "string", "network_name": "string"},
    non_null=("network_id",),
    primary_key=("network_id",),
)

LINES = TableSchema(
    name="lines",
    required_columns=("line_id",),
    optional_columns=("line_name", "line_code", "network_id"),
    dtypes={
        "line_id": "string",
        "line_name": "string",
        "line_code": "string",
        "network_id": "string",
    },
    non_null=("line_id",),
    primary_key=("line_id",),
)

ROUTES = TableSchema(
    name="routes",
    required_columns=("route_id",),
    optional_columns=("route_name", "line_id"),
    dtypes={"route_id": "string", "route_name": "string", "line_id": "string"},
    non_null=("route_id",),
    primary_key=("route_id",),
)

TRIPS = TableSchema(
    name="trips",
    required_columns=("trip_id",),
    optional_columns=("route_id", "contributor_id"),
    dtypes={"trip_id": "string", "route_id": "string", "contributor_id": "string"},
    non_null=("trip_id",),
    primary_key=("trip_id",),
)

STOP_AREAS = TableSchema(
    name="stop_areas",
    required_columns=("stop_area_id",),
    optional_columns=("name", "lat", "lon"),
    dtypes={"stop_area_id": "string", "name": "string", "lat": "Float64", "lon": "Float64"},
    non_null=("stop_area_id",),
    primary_key=("stop_area_id",),
)

STOP_POINTS = TableSchema(
    name="stop_points",
    required_columns=("stop_point_id", "lat", "lon"),
    optional_columns=("name", "stop_area_id", "contributor_id"),
    dtypes={
        "stop_point_id": "string",
        "name": "string",
        "lat": "Float64",
        "lon": "Float64",
        "stop_area_id": "string",
        "contributor_id": "string",
    },
    non_null=("stop_point_id", "lat", "lon"),
    primary_key=("stop_point_id",),
)

TRANSFERS = TableSchema(
    name="transfers",
    required_columns=("from_stop_id", "to_stop_id", "transfer_time"),
    optional_columns=("real_transfer_time", "distance_m"),
    dtypes={
        "from_stop_id": "string",
        "to_stop_id": "string",
        "transfer_time": "Int64",
        "real_transfer_time": "Int64",
        "distance_m": "Float64",
    },
    non_null=("from_stop_id", "to_stop_id", "transfer_time"),
    primary_key=("from_stop_id", "to_stop_id"),
)

OBJECT_CODES = TableSchema(
    name="object_codes",
    required_columns=("object_type", "object_id", "object_system", "object_code"),
    dtypes={
        "object_type": "string",
        "object_id": "string",
        "object_system": "string",
        "object_code": "string",
    },
    non_null=("object_type", "object_id", "object_system", "object_code"),
    primary_key=("object_type", "object_id", "object_system", "object_code"),
)

# Model attribute name -> schema, in the order tables are read and written.
MODEL_TABLES: dict[str, TableSchema] = {
    "contributors": CONTRIBUTORS,
    "networks": NETWORKS,
    "lines": LINES,
    "routes": ROUTES,
    "trips": TRIPS,
    "stop_areas": STOP_AREAS,
    "stop_points": STOP_POINTS,
    "transfers": TRANSFERS,
    "object_codes": OBJECT_CODES,
}
