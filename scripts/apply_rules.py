"""Apply object code rules to a model and write a per-rule report.

Run from repo root:
  uv run python scripts/apply_rules.py -i data/model -o data/enriched \
      -c config/code_rules.txt --report data/enriched/report.json

Outputs:
- <output>/*.txt (every model table; object_codes.txt extended)
- JSON report at --report, one entry per processed rule

Unknown targets, conflicts and malformed lines are reported, not fatal. An
unreadable rule file aborts the run before anything is written.
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

from transit_enrichment.codes import apply
from transit_enrichment.core.cli_utils import (
    RunStats,
    add_code_flags,
    checkpoint_lines,
    create_base_parser,
)
from transit_enrichment.core.config import configure_logging, load_settings
from transit_enrichment.errors import EnrichmentError
from transit_enrichment.io.model_io import read_model, write_model
from transit_enrichment.io.report import write_report
from transit_enrichment.rules import read_code_rules

LOGGER = logging.getLogger("apply_rules")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = create_base_parser("Apply object code rules to a transit model.")
    add_code_flags(parser)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    stats = RunStats()
    output_dir = args.output or args.input

    try:
        settings = load_settings(args.config)
        multi = sorted(set(settings.codes.multi_valued_systems) | set(args.multi_valued_system))
        model = read_model(args.input)
        stats.add_step("read_model")
        n_before = len(model.object_codes)
        rules = read_code_rules(args.rules)
        model, report = apply(model, rules, multi_valued_systems=multi)
        stats.add_step("apply_code_rules")
        written = write_model(model, output_dir)
        # report last, so it only exists for runs whose model was written
        write_report(report, args.report)
    except (EnrichmentError, ValidationError) as exc:
        LOGGER.error("Code rule application failed, model left untouched: %s", exc)
        return 1

    stats.add_step("write_model")
    stats.update({"object_codes_before": n_before, "object_codes_after": len(model.object_codes)})
    LOGGER.info("Object codes: %d -> %d", n_before, len(model.object_codes))

    if args.checkpoint:
        for line in checkpoint_lines(stats.get_summary(), [*written, args.report]):
            print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
