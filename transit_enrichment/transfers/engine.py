"""Walking transfer generation between nearby stop points.

Steps:
1. Candidate pairs from a k-d tree, queried in spatial partitions on a thread pool.
2. Exact great-circle distance, `max_distance` filter, contributor `mode` filter.
3. Walking time from distance and `speed_factor`, plus `waiting_time`, `max_duration` filter.
4. Both directions emitted; pairs already present in the model are kept as they are.
5. Transfer rules applied in order (after every partition has been merged).
6. The deduplicated edge set replaces `model.transfers` in one assignment.

Rules referencing unknown stop points abort the run before any of this starts.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path

import numpy as np
import pandas as pd

from transit_enrichment.core.config import NOMINAL_WALKING_SPEED_MPS, TransferSettings
from transit_enrichment.errors import UnknownEntity
from transit_enrichment.geo.spatial import build_stop_index, candidate_pairs, haversine_m
from transit_enrichment.io.report import EnrichmentReport, write_report
from transit_enrichment.models.enums import ObjectType, Outcome, TransfersMode
from transit_enrichment.models.model import Model, StopPointArrays
from transit_enrichment.models.schemas import TRANSFERS
from transit_enrichment.rules.parser import read_transfer_rules
from transit_enrichment.rules.records import (
    DurationOverride,
    ForcedRemoval,
    ForcedTransfer,
    TransferRule,
)

LOGGER = logging.getLogger(__name__)

# Below this many stop points the pair search runs in the calling thread.
PARALLEL_MIN_STOPS = 2_000
PARTITIONS_PER_WORKER = 4

Pair = tuple[str, str]


@dataclass(frozen=True)
class TransferEdge:
    from_stop_id: str
    to_stop_id: str
    transfer_time: int
    real_transfer_time: int | None = None
    distance_m: float | None = None


@dataclass(frozen=True)
class TransferOutcome:
    model: Model
    report: EnrichmentReport
    n_existing: int
    n_geometric: int
    n_final: int


def walking_time_s(distance_m: np.ndarray, speed_factor: float) -> np.ndarray:
    """Walking time in whole seconds (half-up rounding) for straight-line distances."""
    seconds = np.asarray(distance_m, dtype=float) / (NOMINAL_WALKING_SPEED_MPS * speed_factor)
    return np.floor(seconds + 0.5).astype(np.int64)


def _mode_mask(mode: TransfersMode, ci: np.ndarray, cj: np.ndarray) -> np.ndarray:
    """Contributor filter on factorized contributor codes (-1 = unknown contributor)."""
    if mode is TransfersMode.ALL:
        return np.ones(len(ci), dtype=bool)
    known = (ci >= 0) & (cj >= 0)
    if mode is TransfersMode.INTRA_CONTRIBUTOR:
        return known & (ci == cj)
    return known & (ci != cj)


def _partitions(lat: np.ndarray, n_parts: int) -> list[np.ndarray]:
    """Split stop rows into latitude bands of roughly equal size."""
    order = np.argsort(lat, kind="mergesort")
    return [part for part in np.array_split(order, max(1, n_parts)) if len(part)]


def _resolve_workers(workers: int | None, n_stops: int) -> int:
    if n_stops < PARALLEL_MIN_STOPS:
        return 1
    if workers is not None:
        return max(1, int(workers))
    return min(32, os.cpu_count() or 1)


def geometric_transfers(
    stops: StopPointArrays,
    settings: TransferSettings,
) -> dict[Pair, TransferEdge]:
    """Compute distance/duration-qualified transfers in both directions."""
    if len(stops) < 2:
        return {}

    ids = np.asarray(stops.ids, dtype=object)
    lat = np.asarray(stops.lat, dtype=float)
    lon = np.asarray(stops.lon, dtype=float)
    codes, _ = pd.factorize(pd.Series(stops.contributors, dtype="object"), use_na_sentinel=True)
    tree, xyz = build_stop_index(lat, lon)
    waiting = int(settings.waiting_time)

    def _run(rows: np.ndarray) -> list[TransferEdge]:
        i, j = candidate_pairs(tree, xyz, rows, settings.max_distance)
        keep = _mode_mask(settings.mode, codes[i], codes[j])
        i, j = i[keep], j[keep]
        dist = haversine_m(lat[i], lon[i], lat[j], lon[j])
        keep = dist <= settings.max_distance
        i, j, dist = i[keep], j[keep], dist[keep]
        walk = walking_time_s(dist, settings.speed_factor)
        total = walk + waiting
        keep = total <= settings.max_duration
        out: list[TransferEdge] = []
        for a, b, d, w, t in zip(
            i[keep].tolist(),
            j[keep].tolist(),
            dist[keep].tolist(),
            walk[keep].tolist(),
            total[keep].tolist(),
            strict=True,
        ):
            d = round(float(d), 3)
            out.append(TransferEdge(ids[a], ids[b], int(t), int(w), d))
            out.append(TransferEdge(ids[b], ids[a], int(t), int(w), d))
        return out

    n_workers = _resolve_workers(settings.workers, len(stops))
    parts = _partitions(lat, n_workers * PARTITIONS_PER_WORKER if n_workers > 1 else 1)
    if n_workers == 1:
        chunks = [_run(rows) for rows in parts]
    else:
        LOGGER.info(
            "Searching transfer pairs over %d partitions with %d workers", len(parts), n_workers
        )
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            chunks = list(executor.map(_run, parts))

    # Merge barrier: rules only ever see the complete geometric set.
    edges: dict[Pair, TransferEdge] = {}
    for chunk in chunks:
        for edge in chunk:
            edges[(edge.from_stop_id, edge.to_stop_id)] = edge
    return edges


def _existing_edges(model: Model) -> dict[Pair, TransferEdge]:
    edges: dict[Pair, TransferEdge] = {}
    df = model.transfers
    real, dist = df["real_transfer_time"], df["distance_m"]
    for idx in range(len(df)):
        f = str(df["from_stop_id"].iat[idx])
        t = str(df["to_stop_id"].iat[idx])
        r = None if pd.isna(real.iat[idx]) else int(real.iat[idx])
        d = None if pd.isna(dist.iat[idx]) else float(dist.iat[idx])
        edges[(f, t)] = TransferEdge(f, t, int(df["transfer_time"].iat[idx]), r, d)
    return edges


def check_rule_targets(model: Model, rules: Iterable[TransferRule]) -> None:
    """Raise `UnknownEntity` for the first rule naming a stop point absent from the model."""
    for rule in rules:
        for stop_id in (rule.from_stop_id, rule.to_stop_id):
            if not model.has_object(ObjectType.STOP_POINT, stop_id):
                where = f"transfer rule at {rule.source}" if rule.source else "transfer rule"
                raise UnknownEntity(ObjectType.STOP_POINT.value, stop_id, where)


def _rule_fields(rule: TransferRule) -> dict[str, str]:
    out = {
        "rule_type": rule.rule_type,
        "from_stop_id": rule.from_stop_id,
        "to_stop_id": rule.to_stop_id,
        "direction": rule.direction.value,
    }
    if isinstance(rule, (ForcedTransfer, DurationOverride)):
        out["transfer_time"] = str(rule.transfer_time)
    return out


def apply_transfer_rules(
    edges: dict[Pair, TransferEdge],
    rules: Sequence[TransferRule],
    coords: dict[str, tuple[float, float]],
    report: EnrichmentReport,
) -> None:
    """Apply rules in order to `edges` (in place), one report entry per rule."""
    for rule in rules:
        pairs = rule.directed_pairs()
        fields = _rule_fields(rule)
        desc = rule.describe()

        if isinstance(rule, ForcedTransfer):
            (lat1, lon1), (lat2, lon2) = coords[rule.from_stop_id], coords[rule.to_stop_id]
            d = round(float(haversine_m(lat1, lon1, lat2, lon2)), 3)
            replaced = sum(1 for p in pairs if p in edges)
            for f, t in pairs:
                edges[(f, t)] = TransferEdge(f, t, rule.transfer_time, None, d)
            report.add(
                Outcome.APPLIED,
                f"forced transfer {desc} set to {rule.transfer_time}s"
                + (f" (replaced {replaced} edge(s))" if replaced else ""),
                source=rule.source,
                rule=fields,
            )

        elif isinstance(rule, ForcedRemoval):
            removed = [p for p in pairs if edges.pop(p, None) is not None]
            if removed:
                report.add(
                    Outcome.APPLIED,
                    f"removed {len(removed)} transfer edge(s) for {desc}",
                    source=rule.source,
                    rule=fields,
                )
            else:
                LOGGER.warning("Removal rule %s: no transfer %s to remove", rule.source, desc)
                report.add(
                    Outcome.NOT_FOUND,
                    f"no transfer {desc} to remove",
                    source=rule.source,
                    rule=fields,
                )

        elif isinstance(rule, DurationOverride):
            present = [p for p in pairs if p in edges]
            missing = [p for p in pairs if p not in edges]
            for p in present:
                edges[p] = replace(edges[p], transfer_time=rule.transfer_time)
            if not present:
                LOGGER.warning("Override rule %s: no transfer %s to override", rule.source, desc)
                report.add(
                    Outcome.NOT_FOUND,
                    f"no transfer {desc} to override (pair filtered out or absent)",
                    source=rule.source,
                    rule=fields,
                )
                continue
            reason = f"transfer {desc} duration overridden to {rule.transfer_time}s"
            if missing:
                LOGGER.warning(
                    "Override rule %s: direction(s) %s absent, left untouched", rule.source, missing
                )
                absent = ", ".join(f"{f}->{t}" for f, t in missing)
                reason += f" (absent direction(s): {absent})"
            report.add(Outcome.APPLIED, reason, source=rule.source, rule=fields)

        else:  # pragma: no cover - the rule union is closed
            raise TypeError(f"Unsupported transfer rule type: {type(rule).__name__}")


def edges_to_frame(edges: dict[Pair, TransferEdge]) -> pd.DataFrame:
    rows = [
        {
            "from_stop_id": e.from_stop_id,
            "to_stop_id": e.to_stop_id,
            "transfer_time": e.transfer_time,
            "real_transfer_time": e.real_transfer_time,
            "distance_m": e.distance_m,
        }
        for _, e in sorted(edges.items())
    ]
    df = pd.DataFrame(rows, columns=TRANSFERS.all_columns())
    return df.astype({c: TRANSFERS.dtypes[c] for c in TRANSFERS.all_columns()})


def generate(
    model: Model,
    max_distance: float,
    speed_factor: float,
    max_duration: int,
    transfer_rules: Sequence[TransferRule],
    mode: TransfersMode | str,
    waiting_time: int | None = None,
    *,
    workers: int | None = None,
) -> TransferOutcome:
    """Generate transfers into `model.transfers` and apply `transfer_rules`."""
    settings = TransferSettings(
        max_distance=max_distance,
        speed_factor=speed_factor,
        max_duration=max_duration,
        waiting_time=0 if waiting_time is None else waiting_time,
        mode=TransfersMode(mode),
        workers=workers,
    )
    rules = list(transfer_rules)
    check_rule_targets(model, rules)

    stops = model.stop_point_arrays()
    LOGGER.info(
        "Generating transfers for %d stop points (max_distance=%.1fm, speed_factor=%.3f, "
        "max_duration=%ds, waiting_time=%ds, mode=%s)",
        len(stops),
        settings.max_distance,
        settings.speed_factor,
        settings.max_duration,
        settings.waiting_time,
        settings.mode.value,
    )

    edges = _existing_edges(model)
    n_existing = len(edges)
    geometric = geometric_transfers(stops, settings)
    n_geometric = 0
    for pair, edge in geometric.items():
        if pair not in edges:
            edges[pair] = edge
            n_geometric += 1
    LOGGER.info(
        "Geometric transfers: %d qualified, %d added (%d pre-existing kept)",
        len(geometric),
        n_geometric,
        n_existing,
    )

    report = EnrichmentReport("transfer rules")
    coords = dict(zip(stops.ids, zip(stops.lat, stops.lon, strict=True), strict=True))
    apply_transfer_rules(edges, rules, coords, report)

    model.replace_table("transfers", edges_to_frame(edges))
    LOGGER.info("Transfers committed: %d (rule outcomes: %s)", len(edges), report.counts())
    return TransferOutcome(
        model=model,
        report=report,
        n_existing=n_existing,
        n_geometric=n_geometric,
        n_final=len(edges),
    )


def generate_transfers(
    model: Model,
    max_distance: float,
    speed_factor: float,
    max_duration: int,
    rule_files: Iterable[Path | str],
    mode: TransfersMode | str,
    waiting_time: int | None = None,
    *,
    report_path: Path | str | None = None,
    workers: int | None = None,
) -> Model:
    """Parse `rule_files` (strictly), generate transfers, optionally write the rule report."""
    rules = read_transfer_rules(rule_files)
    outcome = generate(
        model,
        max_distance,
        speed_factor,
        max_duration,
        rules,
        mode,
        waiting_time,
        workers=workers,
    )
    if report_path is not None:
        write_report(outcome.report, report_path)
    return outcome.model
