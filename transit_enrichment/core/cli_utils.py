"""Common CLI utilities for the enrichment scripts."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

from transit_enrichment.io import sha256_file
from transit_enrichment.models.enums import TransfersMode

LOGGER = logging.getLogger(__name__)


def create_base_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "-i", "--input", type=Path, required=True, help="Directory holding the model tables."
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Directory to write the enriched model to (defaults to --input).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file (defaults to config/enrichment.yaml when present).",
    )
    parser.add_argument(
        "--checkpoint",
        action="store_true",
        help="Print checkpoint summary including output hashes.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def add_transfer_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-r",
        "--rules",
        type=Path,
        action="append",
        default=[],
        help="Transfer rule file; repeat to layer files, later ones win.",
    )
    parser.add_argument("-d", "--max-distance", type=float, help="Max walking distance (m).")
    parser.add_argument(
        "-s", "--speed-factor", type=float, help="Fraction of nominal walking speed, in (0, 1]."
    )
    parser.add_argument("-t", "--max-duration", type=int, help="Max transfer duration (s).")
    parser.add_argument(
        "-w", "--waiting-time", type=int, help="Fixed time added to each generated transfer (s)."
    )
    parser.add_argument(
        "-m",
        "--mode",
        choices=[m.value for m in TransfersMode],
        help="Which contributor pairs to connect.",
    )
    parser.add_argument("--workers", type=int, help="Worker threads for the pair search.")
    parser.add_argument("--report", type=Path, default=None, help="Write the rule report here.")


def add_code_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--rules",
        type=Path,
        action="append",
        default=[],
        help="Code rule file; repeat to layer files, later ones win.",
    )
    parser.add_argument("--report", type=Path, required=True, help="JSON report output path.")
    parser.add_argument(
        "--multi-valued-system",
        action="append",
        default=[],
        help="Code system allowed to hold several values per object.",
    )


class RunStats:
    """Simple container for collecting statistics across script steps."""

    def __init__(self) -> None:
        self.stats: dict[str, Any] = {}
        self.completed_steps: list[str] = []

    def update(self, step_stats: dict[str, Any]) -> None:
        self.stats.update(step_stats)

    def add_step(self, step_name: str) -> None:
        self.completed_steps.append(step_name)

    def get_summary(self) -> dict[str, Any]:
        return {
            "completed_steps": self.completed_steps,
            "step_count": len(self.completed_steps),
            **self.stats,
        }


def checkpoint_lines(summary: dict[str, Any], outputs: list[Path]) -> list[str]:
    lines = [f"{k}: {v}" for k, v in summary.items()]
    lines.extend(f"sha256 {p.name}: {sha256_file(p)}" for p in outputs if p.exists())
    return lines
