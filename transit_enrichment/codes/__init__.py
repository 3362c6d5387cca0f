"""Object code enrichment from rule files."""

from __future__ import annotations

from transit_enrichment.codes.apply import apply, apply_code_rules

__all__ = ["apply", "apply_code_rules"]
