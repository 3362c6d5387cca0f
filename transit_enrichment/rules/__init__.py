"""Rule file parsing and typed rule records."""

from __future__ import annotations

from transit_enrichment.rules.parser import (
    CODE_RULES,
    TRANSFER_RULES,
    RuleShape,
    read_code_rules,
    read_rule_files,
    read_transfer_rules,
)
from transit_enrichment.rules.records import (
    CodeRule,
    DurationOverride,
    ForcedRemoval,
    ForcedTransfer,
    MalformedLine,
    RuleSource,
    TransferRule,
)

__all__ = [
    "CODE_RULES",
    "TRANSFER_RULES",
    "CodeRule",
    "DurationOverride",
    "ForcedRemoval",
    "ForcedTransfer",
    "MalformedLine",
    "RuleShape",
    "RuleSource",
    "TransferRule",
    "read_code_rules",
    "read_rule_files",
    "read_transfer_rules",
]
