"""Walking transfer generation and transfer-graph QA."""

from __future__ import annotations

from transit_enrichment.transfers.engine import (
    TransferEdge,
    TransferOutcome,
    generate,
    generate_transfers,
    walking_time_s,
)
from transit_enrichment.transfers.metrics import build_transfer_graph, transfer_network_metrics

__all__ = [
    "TransferEdge",
    "TransferOutcome",
    "build_transfer_graph",
    "generate",
    "generate_transfers",
    "transfer_network_metrics",
    "walking_time_s",
]
