"""Model container, table contracts and closed vocabularies.

These are contracts to keep the engines deterministic:
- Every table is validated against its `TableSchema` when it enters a `Model`.
- Engines replace whole tables at commit time, never individual rows.
"""

from __future__ import annotations

from transit_enrichment.models.enums import ObjectType, Outcome, RuleDirection, TransfersMode
from transit_enrichment.models.model import OBJECT_TABLES, Model, StopPointArrays
from transit_enrichment.models.schemas import (
    MODEL_TABLES,
    OBJECT_CODES,
    STOP_POINTS,
    TRANSFERS,
    TableSchema,
)
from transit_enrichment.models.validate import empty_table, validate_df

__all__ = [
    "MODEL_TABLES",
    "OBJECT_CODES",
    "OBJECT_TABLES",
    "STOP_POINTS",
    "TRANSFERS",
    "Model",
    "ObjectType",
    "Outcome",
    "RuleDirection",
    "StopPointArrays",
    "TableSchema",
    "TransfersMode",
    "empty_table",
    "validate_df",
]
