"""Sanity metrics over a transfer table (interchange clusters, asymmetry)."""

from __future__ import annotations

import networkx as nx
import pandas as pd


def build_transfer_graph(transfers: pd.DataFrame) -> nx.DiGraph:
    """Directed graph with one edge per transfer, weighted by `transfer_time`."""
    if not {"from_stop_id", "to_stop_id", "transfer_time"}.issubset(transfers.columns):
        raise ValueError("transfers must have 'from_stop_id', 'to_stop_id', 'transfer_time'")
    e = transfers[["from_stop_id", "to_stop_id", "transfer_time"]].copy()
    e["from_stop_id"] = e["from_stop_id"].astype(str)
    e["to_stop_id"] = e["to_stop_id"].astype(str)
    e["transfer_time"] = e["transfer_time"].astype(float)
    return nx.from_pandas_edgelist(
        e,
        source="from_stop_id",
        target="to_stop_id",
        edge_attr="transfer_time",
        create_using=nx.DiGraph(),
    )


def transfer_network_metrics(
    transfers: pd.DataFrame,
    *,
    n_stop_points: int | None = None,
) -> pd.DataFrame:
    """Compute basic connectivity metrics of the transfer graph."""
    G = build_transfer_graph(transfers)
    n = G.number_of_nodes()
    m = G.number_of_edges()
    clusters = list(nx.weakly_connected_components(G))
    largest = max((len(c) for c in clusters), default=0)
    self_loops = nx.number_of_selfloops(G)
    asymmetric = sum(
        1
        for u, v, data in G.edges(data=True)
        if u != v
        and (not G.has_edge(v, u) or G[v][u]["transfer_time"] != data["transfer_time"])
    )
    times = pd.Series([d for _, _, d in G.edges(data="transfer_time")], dtype=float)
    rows = [
        {"metric": "n_transfers", "value": m},
        {"metric": "n_connected_stop_points", "value": n},
        {"metric": "n_interchange_clusters", "value": len(clusters)},
        {"metric": "largest_cluster_size", "value": largest},
        {"metric": "n_self_transfers", "value": self_loops},
        {"metric": "n_asymmetric_edges", "value": asymmetric},
        {"metric": "mean_transfer_time", "value": float(times.mean()) if m else 0.0},
        {"metric": "max_transfer_time", "value": float(times.max()) if m else 0.0},
    ]
    if n_stop_points is not None:
        rows.append(
            {
                "metric": "connected_share",
                "value": (n / n_stop_points) if n_stop_points else 0.0,
            }
        )
    return pd.DataFrame(rows)
