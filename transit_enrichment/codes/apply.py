"""Apply object code rules to a model and report the outcome of every rule.

Code enrichment is best-effort: unknown targets, conflicting values and
malformed lines become report entries, and the whole batch always completes.
Existing codes always win over rule-supplied ones.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

import pandas as pd

from transit_enrichment.io.report import EnrichmentReport, write_report
from transit_enrichment.models.enums import Outcome
from transit_enrichment.models.model import Model
from transit_enrichment.models.schemas import OBJECT_CODES
from transit_enrichment.rules.parser import CODE_RULES, read_code_rules
from transit_enrichment.rules.records import CodeRule, MalformedLine

LOGGER = logging.getLogger(__name__)

CodeKey = tuple[str, str, str]


def _existing_codes(model: Model) -> dict[CodeKey, set[str]]:
    codes: dict[CodeKey, set[str]] = {}
    cols = ["object_type", "object_id", "object_system", "object_code"]
    for o_type, o_id, system, code in model.object_codes[cols].astype(str).itertuples(
        index=False, name=None
    ):
        codes.setdefault((o_type, o_id, system), set()).add(code)
    return codes


def _rule_fields(rule: CodeRule) -> dict[str, str]:
    return {
        "object_type": rule.object_type.value,
        "object_id": rule.object_id,
        "object_system": rule.object_system,
        "object_code": rule.object_code,
    }


def apply(
    model: Model,
    code_rules: Sequence[CodeRule | MalformedLine],
    *,
    multi_valued_systems: Iterable[str] = (),
) -> tuple[Model, EnrichmentReport]:
    """Add the codes of `code_rules` to `model.object_codes`; returns (model, report)."""
    multi = set(multi_valued_systems)
    report = EnrichmentReport("code rules")
    existing = _existing_codes(model)
    added: list[dict[str, str]] = []

    for item in code_rules:
        if isinstance(item, MalformedLine):
            report.add(
                Outcome.MALFORMED,
                item.reason,
                source=item.source,
                rule=dict(zip(CODE_RULES.columns, item.fields)),
            )
            continue

        rule = item
        fields = _rule_fields(rule)
        if not model.has_object(rule.object_type, rule.object_id):
            report.add(
                Outcome.NOT_FOUND,
                f"{rule.object_type.value} {rule.object_id!r} not found in model",
                source=rule.source,
                rule=fields,
            )
            continue

        key = rule.key()
        values = existing.setdefault(key, set())
        if rule.object_code in values:
            report.add(
                Outcome.APPLIED,
                f"code {rule.object_system}={rule.object_code!r} already present",
                source=rule.source,
                rule=fields,
            )
        elif values and rule.object_system not in multi:
            LOGGER.warning(
                "Code rule %s conflicts with existing %s code(s) %s on %s %s",
                rule.source,
                rule.object_system,
                sorted(values),
                rule.object_type.value,
                rule.object_id,
            )
            report.add(
                Outcome.CONFLICT,
                f"existing {rule.object_system} code {', '.join(sorted(values))} "
                f"differs from {rule.object_code!r}; existing value kept",
                source=rule.source,
                rule=fields,
            )
        else:
            values.add(rule.object_code)
            added.append(fields)
            report.add(
                Outcome.APPLIED,
                f"code {rule.object_system}={rule.object_code!r} added",
                source=rule.source,
                rule=fields,
            )

    if added:
        new_rows = pd.DataFrame(added, columns=OBJECT_CODES.all_columns())
        model.replace_table(
            "object_codes", pd.concat([model.object_codes, new_rows], ignore_index=True)
        )
    LOGGER.info(
        "Code rules processed: %d (%s); %d code(s) added", len(report), report.counts(), len(added)
    )
    return model, report


def apply_code_rules(
    model: Model,
    rule_files: Iterable[Path | str],
    report_path: Path | str,
    *,
    multi_valued_systems: Iterable[str] = (),
) -> Model:
    """Parse `rule_files`, apply them, and always write the report on success."""
    rules = read_code_rules(rule_files)
    model, report = apply(model, rules, multi_valued_systems=multi_valued_systems)
    write_report(report, report_path)
    return model
