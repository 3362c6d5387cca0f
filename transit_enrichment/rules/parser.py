"""Line-oriented rule file parser.

Rule files are CSV, one rule per line, with an optional header. Blank lines
and lines starting with `#` are skipped. Files are read in the order given and
a later record replaces an earlier one with the same key, taking its position
at the end of the sequence.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from transit_enrichment.errors import IOFailure, MalformedRule
from transit_enrichment.rules.records import (
    TRANSFER_RULE_ADAPTER,
    CodeRule,
    MalformedLine,
    RuleSource,
    TransferRule,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleShape:
    """Field layout and record builder of one rule file kind."""

    name: str
    columns: tuple[str, ...]
    min_fields: int
    # Strict shapes abort on the first malformed line; lenient ones keep a `MalformedLine`.
    strict: bool
    build: Callable[[dict[str, str], RuleSource], Any]

    def is_header(self, row: Sequence[str]) -> bool:
        return bool(row) and row[0].strip().lower() == self.columns[0]


def _validation_reason(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(x) for x in err.get("loc", ())]
        field = loc[-1] if loc else "rule"
        parts.append(f"{field}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


def _build_transfer_rule(values: dict[str, str], source: RuleSource) -> TransferRule:
    data: dict[str, object] = {k: v for k, v in values.items() if v != ""}
    data["source"] = source
    if "rule_type" in data:
        data["rule_type"] = str(data["rule_type"]).lower()
    if "direction" in data:
        data["direction"] = str(data["direction"]).lower()
    if data.get("rule_type") == "remove":
        data.pop("transfer_time", None)
    return TRANSFER_RULE_ADAPTER.validate_python(data)


def _build_code_rule(values: dict[str, str], source: RuleSource) -> CodeRule:
    return CodeRule.model_validate({**values, "source": source})


TRANSFER_RULES = RuleShape(
    name="transfer rules",
    columns=("rule_type", "from_stop_id", "to_stop_id", "transfer_time", "direction"),
    min_fields=4,
    strict=True,
    build=_build_transfer_rule,
)

CODE_RULES = RuleShape(
    name="code rules",
    columns=("object_type", "object_id", "object_system", "object_code"),
    min_fields=4,
    strict=False,
    build=_build_code_rule,
)


def _iter_rows(path: Path, strict: bool) -> Iterator[tuple[int, list[str], str | None]]:
    """Yield (line number, stripped fields, unreadable reason) for every CSV row of `path`.

    Strict reads raise on the first undecodable or unparsable row. Lenient
    reads decode with replacement characters and keep going, handing such rows
    back with a reason so the caller can report them line by line.
    """
    errors = "strict" if strict else "replace"
    try:
        with path.open("r", encoding="utf-8-sig", errors=errors, newline="") as handle:
            reader = csv.reader(handle)
            while True:
                try:
                    row = next(reader)
                except StopIteration:
                    return
                except csv.Error as exc:
                    reason = f"unreadable CSV row: {exc}"
                    if strict:
                        raise MalformedRule(path, reader.line_num, reason) from exc
                    yield reader.line_num, [], reason
                    continue
                fields = [field.strip() for field in row]
                if not strict and any("\ufffd" in field for field in fields):
                    yield reader.line_num, fields, "not valid UTF-8 text"
                    continue
                yield reader.line_num, fields, None
    except UnicodeDecodeError as exc:
        raise IOFailure(path, f"not valid UTF-8 text: {exc}") from exc
    except OSError as exc:
        raise IOFailure(path, f"cannot read rule file: {exc.strerror or exc}") from exc


def _parse_file(path: Path, shape: RuleShape, strict: bool) -> Iterator[Any]:
    seen_content = False
    for line_no, row, unreadable in _iter_rows(path, strict):
        if unreadable is None:
            if not any(row) or row[0].startswith("#"):
                continue
            if not seen_content:
                seen_content = True
                if shape.is_header(row):
                    continue

        source = RuleSource(path=str(path), line=line_no)
        reason = unreadable
        record = None
        if reason is None and not (shape.min_fields <= len(row) <= len(shape.columns)):
            expected = (
                str(len(shape.columns))
                if shape.min_fields == len(shape.columns)
                else f"{shape.min_fields}-{len(shape.columns)}"
            )
            reason = f"expected {expected} fields, got {len(row)}"
        elif reason is None:
            values = dict(zip(shape.columns, row))
            try:
                record = shape.build(values, source)
            except ValidationError as exc:
                reason = _validation_reason(exc)

        if reason is None:
            yield record
        elif strict:
            raise MalformedRule(path, line_no, reason)
        else:
            LOGGER.warning("Malformed %s line %s: %s", shape.name, source, reason)
            yield MalformedLine(source=source, reason=reason, fields=tuple(row))


def _record_key(record: Any) -> tuple[str, ...]:
    if isinstance(record, MalformedLine):
        # Malformed lines never collide with anything.
        return ("#malformed", record.source.path, str(record.source.line))
    return record.key()


def read_rule_files(
    paths: Iterable[Path | str],
    shape: RuleShape,
    *,
    strict: bool | None = None,
) -> list[Any]:
    """Parse `paths` in order into records of `shape`, later files winning on key collision."""
    strict = shape.strict if strict is None else strict
    records: dict[tuple[str, ...], Any] = {}
    n_files = 0
    n_replaced = 0
    for raw_path in paths:
        path = Path(raw_path)
        n_files += 1
        for record in _parse_file(path, shape, strict):
            key = _record_key(record)
            if key in records:
                # Re-insert so the winning record takes the later position.
                del records[key]
                n_replaced += 1
            records[key] = record
    LOGGER.info(
        "Parsed %d %s from %d file(s) (%d replaced by later entries)",
        len(records),
        shape.name,
        n_files,
        n_replaced,
    )
    return list(records.values())


def read_transfer_rules(paths: Iterable[Path | str]) -> list[TransferRule]:
    return read_rule_files(paths, TRANSFER_RULES)


def read_code_rules(paths: Iterable[Path | str]) -> list[CodeRule | MalformedLine]:
    return read_rule_files(paths, CODE_RULES)
