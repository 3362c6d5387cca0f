"""Rule processing reports and their JSON writer."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from transit_enrichment.errors import IOFailure
from transit_enrichment.io import write_json
from transit_enrichment.models.enums import Outcome
from transit_enrichment.rules.records import RuleSource

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportEntry:
    outcome: Outcome
    reason: str
    source: RuleSource | None = None
    rule: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"outcome": self.outcome.value, "reason": self.reason}
        if self.source is not None:
            out["source"] = self.source.path
            out["line"] = self.source.line
        out.update(self.rule)
        return out


class EnrichmentReport:
    """Ordered outcome records, one per processed rule.

    Entries can be added until the report is sealed; `write_report` seals it.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: list[ReportEntry] = []
        self._sealed = False

    def add(
        self,
        outcome: Outcome,
        reason: str,
        *,
        source: RuleSource | None = None,
        rule: Mapping[str, str] | None = None,
    ) -> ReportEntry:
        if self._sealed:
            raise RuntimeError(f"{self.name} report is sealed")
        entry = ReportEntry(
            outcome=Outcome(outcome), reason=reason, source=source, rule=dict(rule or {})
        )
        self._entries.append(entry)
        return entry

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def entries(self) -> tuple[ReportEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ReportEntry]:
        return iter(tuple(self._entries))

    def counts(self) -> dict[str, int]:
        out = {o.value: 0 for o in Outcome}
        for e in self._entries:
            out[e.outcome.value] += 1
        return out

    def to_dict(self, *, generated_at: datetime | None = None) -> dict[str, Any]:
        ts = datetime.now(timezone.utc) if generated_at is None else generated_at
        if ts.tzinfo is None:
            raise ValueError("generated_at must be timezone-aware")
        return {
            "report": self.name,
            "generated_at": ts.isoformat(timespec="seconds"),
            "summary": self.counts(),
            "entries": [e.to_dict() for e in self._entries],
        }


def write_report(report: EnrichmentReport, path: Path | str) -> Path:
    """Seal `report` and serialize it as JSON to `path`."""
    out_path = Path(path)
    report.seal()
    try:
        write_json(report.to_dict(), out_path)
    except OSError as exc:
        raise IOFailure(out_path, f"cannot write report: {exc}") from exc
    LOGGER.info("Wrote %s report (%d entries) to %s", report.name, len(report), out_path)
    return out_path
