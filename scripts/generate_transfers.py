"""Generate walking transfers between nearby stop points of a model.

Run from repo root:
  uv run python scripts/generate_transfers.py -i data/model -o data/enriched \
      -r config/transfer_rules.txt -d 500 -s 0.785 -t 900 -m intra-contributor

Outputs:
- <output>/*.txt (every model table; transfers.txt replaced)
- <output>/transfers_sanity.csv
- rule report at --report (optional)

Nothing is written when a rule file is malformed or references an unknown stop point.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure repo root is on sys.path so `import transit_enrichment` works when executing this file directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pydantic import ValidationError

from transit_enrichment.core.cli_utils import (
    RunStats,
    add_transfer_flags,
    checkpoint_lines,
    create_base_parser,
)
from transit_enrichment.core.config import TransferSettings, configure_logging, load_settings
from transit_enrichment.errors import EnrichmentError
from transit_enrichment.io.model_io import read_model, write_model
from transit_enrichment.io.report import write_report
from transit_enrichment.rules import read_transfer_rules
from transit_enrichment.transfers import generate, transfer_network_metrics

LOGGER = logging.getLogger("generate_transfers")

SANITY_FILE = "transfers_sanity.csv"

# TransferSettings fields that can be overridden by a CLI flag of the same name
_OVERRIDABLE = ("max_distance", "speed_factor", "max_duration", "waiting_time", "mode", "workers")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = create_base_parser("Generate walking transfers between nearby stop points.")
    add_transfer_flags(parser)
    return parser.parse_args(argv)


def _transfer_settings(args: argparse.Namespace) -> TransferSettings:
    """File settings overridden by any flag given on the command line."""
    base = load_settings(args.config).transfers.model_dump()
    for field in _OVERRIDABLE:
        value = getattr(args, field)
        if value is not None:
            base[field] = value
    return TransferSettings.model_validate(base)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    stats = RunStats()
    output_dir = args.output or args.input

    try:
        settings = _transfer_settings(args)
        model = read_model(args.input)
        stats.add_step("read_model")
        n_before = len(model.transfers)

        rules = read_transfer_rules(args.rules)
        outcome = generate(
            model,
            settings.max_distance,
            settings.speed_factor,
            settings.max_duration,
            rules,
            settings.mode,
            settings.waiting_time,
            workers=settings.workers,
        )
        model = outcome.model
        stats.add_step("generate_transfers")
        written = write_model(model, output_dir)
        # report last, so it only exists for runs whose model was written
        if args.report is not None:
            write_report(outcome.report, args.report)
    except (EnrichmentError, ValidationError) as exc:
        LOGGER.error("Transfer generation failed, model left untouched: %s", exc)
        return 1

    sanity = transfer_network_metrics(model.transfers, n_stop_points=len(model.stop_points))
    sanity_path = output_dir / SANITY_FILE
    sanity.to_csv(sanity_path, index=False)
    stats.add_step("write_model")
    stats.update({"transfers_before": n_before, "transfers_after": len(model.transfers)})

    LOGGER.info("Wrote %s", sanity_path)
    LOGGER.info(
        "Transfers: %d -> %d (%d rule file(s))", n_before, len(model.transfers), len(args.rules)
    )
    if args.checkpoint:
        outputs = [*written, sanity_path]
        if args.report is not None:
            outputs.append(args.report)
        for line in checkpoint_lines(stats.get_summary(), outputs):
            print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
