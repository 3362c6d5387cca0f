"""Spatial helpers: great-circle distances and a k-d tree over stop coordinates.

Coordinates are indexed as 3-D unit vectors, so a radius query on the tree
(chord length) is an exact, projection-free proxy for a great-circle radius
anywhere on the globe.
"""

from __future__ import annotations

import numpy as np
from scipy.spatial import cKDTree

from transit_enrichment.core.config import EARTH_RADIUS_M, INDEX_RADIUS_SLACK


def haversine_m(
    lat1: np.ndarray | float,
    lon1: np.ndarray | float,
    lat2: np.ndarray | float,
    lon2: np.ndarray | float,
    *,
    radius_m: float = EARTH_RADIUS_M,
) -> np.ndarray:
    """Great-circle distance in meters between (lat1, lon1) and (lat2, lon2) in degrees."""
    phi1 = np.radians(np.asarray(lat1, dtype=float))
    phi2 = np.radians(np.asarray(lat2, dtype=float))
    dphi = phi2 - phi1
    dlmb = np.radians(np.asarray(lon2, dtype=float) - np.asarray(lon1, dtype=float))
    a = np.sin(dphi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlmb / 2.0) ** 2
    return 2.0 * radius_m * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def unit_vectors(lat: np.ndarray, lon: np.ndarray) -> np.ndarray:
    """Return an (n, 3) array of unit vectors for lat/lon arrays in degrees."""
    phi = np.radians(np.asarray(lat, dtype=float))
    lmb = np.radians(np.asarray(lon, dtype=float))
    cos_phi = np.cos(phi)
    return np.column_stack((cos_phi * np.cos(lmb), cos_phi * np.sin(lmb), np.sin(phi)))


def chord_radius(distance_m: float, *, radius_m: float = EARTH_RADIUS_M) -> float:
    """Unit-sphere chord length matching a great-circle distance, with a small safety slack."""
    theta = min(float(distance_m) / radius_m, np.pi)
    return 2.0 * np.sin(theta / 2.0) * (1.0 + INDEX_RADIUS_SLACK)


def build_stop_index(lat: np.ndarray, lon: np.ndarray) -> tuple[cKDTree, np.ndarray]:
    """Return (KDTree, xyz) for the given stop coordinates."""
    xyz = unit_vectors(lat, lon)
    return cKDTree(xyz), xyz


def candidate_pairs(
    tree: cKDTree,
    xyz: np.ndarray,
    rows: np.ndarray,
    max_distance_m: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Pairs (i, j), i < j, with i in `rows` and j possibly within `max_distance_m` of i.

    The result is a superset of the true pairs; callers filter on exact distances.
    """
    if len(rows) == 0:
        return np.empty(0, dtype=np.intp), np.empty(0, dtype=np.intp)
    r = chord_radius(max_distance_m)
    neighbours = tree.query_ball_point(xyz[rows], r=r, return_sorted=True)
    left: list[int] = []
    right: list[int] = []
    for i, hits in zip(rows.tolist(), neighbours, strict=True):
        for j in hits:
            if j > i:
                left.append(i)
                right.append(j)
    return np.asarray(left, dtype=np.intp), np.asarray(right, dtype=np.intp)
