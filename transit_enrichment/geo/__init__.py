from __future__ import annotations

from transit_enrichment.geo.spatial import (
    build_stop_index,
    candidate_pairs,
    chord_radius,
    haversine_m,
    unit_vectors,
)

__all__ = [
    "build_stop_index",
    "candidate_pairs",
    "chord_radius",
    "haversine_m",
    "unit_vectors",
]
