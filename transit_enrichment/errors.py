"""Error taxonomy of the enrichment engines.

Conflicts between existing codes and rule-supplied codes are not errors: they
are report entries (see `transit_enrichment.codes.apply`).
"""

from __future__ import annotations

from pathlib import Path


class EnrichmentError(Exception):
    """Base class for all enrichment failures."""


class MalformedRule(EnrichmentError, ValueError):
    """A rule file line that cannot be parsed into the expected record shape."""

    def __init__(self, path: Path | str, line: int, reason: str) -> None:
        self.path = Path(path)
        self.line = int(line)
        self.reason = reason
        super().__init__(f"{self.path}:{self.line}: {reason}")


class UnknownEntity(EnrichmentError, LookupError):
    """A rule references an object that does not exist in the model."""

    def __init__(self, object_type: str, object_id: str, context: str = "") -> None:
        self.object_type = object_type
        self.object_id = object_id
        self.context = context
        msg = f"unknown {object_type} {object_id!r}"
        if context:
            msg = f"{msg} ({context})"
        super().__init__(msg)


class IOFailure(EnrichmentError, OSError):
    """A rule file, report file or model table could not be read or written."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"
