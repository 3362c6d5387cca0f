"""Lightweight I/O helpers.

This module centralises:
- validated CSV reads (`read_csv_validated`) at model boundaries
- JSON helpers used by the report writer and tests
- output hashing for the `--checkpoint` script flag
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import pandas as pd

from transit_enrichment.models.schemas import TableSchema
from transit_enrichment.models.validate import validate_df


def ensure_parent_dir(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def write_json(obj: Any, path: Path) -> None:
    ensure_parent_dir(path)
    path.write_text(json.dumps(obj, ensure_ascii=False, indent=2), encoding="utf-8")


def read_csv_validated(path: Path, *, schema: TableSchema) -> pd.DataFrame:
    """Read a CSV and validate it against `schema`.

    Identifier-like (string) columns are read as strings so codes such as
    "0042" keep their leading zeros; numeric columns are inferred and then
    coerced by the schema.
    """
    dtype = {c: "string" for c, t in schema.dtypes.items() if t == "string"}
    df = pd.read_csv(path, dtype=dtype, keep_default_na=False, na_values=[""])
    return validate_df(df, schema)


def sha256_file(path: Path) -> str:
    """Return SHA256 hex digest for a file."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()
