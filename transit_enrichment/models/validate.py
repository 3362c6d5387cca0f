"""Validation utilities for model table contracts."""

from __future__ import annotations

import pandas as pd

from transit_enrichment.models.schemas import TableSchema


def empty_table(schema: TableSchema) -> pd.DataFrame:
    """Return a zero-row frame carrying every column of `schema` with its dtype."""
    return pd.DataFrame(
        {c: pd.Series(dtype=schema.dtypes.get(c, "object")) for c in schema.all_columns()}
    )


def _check_primary_key(df: pd.DataFrame, schema: TableSchema) -> None:
    key = list(schema.primary_key)
    dup = df.duplicated(subset=key, keep=False)
    if dup.any():
        sample = df.loc[dup, key].head(5).to_dict(orient="records")
        raise ValueError(f"{schema.name}: duplicate {key} in {int(dup.sum())} rows, e.g. {sample}")


def validate_df(df: pd.DataFrame, schema: TableSchema) -> pd.DataFrame:
    """Check `df` against a table contract and return a coerced copy.

    Absent optional columns are added as all-NA columns so every table of a
    model carries its full column set; unknown extra columns pass through.
    """
    missing = [c for c in schema.required_columns if c not in df.columns]
    if missing:
        raise ValueError(f"{schema.name}: missing required columns: {missing}")

    out = df.copy()
    for col in schema.optional_columns:
        if col not in out.columns:
            out[col] = pd.NA

    for col, dtype in schema.dtypes.items():
        try:
            # nullable dtypes ("string", "Float64", "Int64") keep NA distinct from 0 / ""
            out[col] = out[col].astype(dtype)
        except (TypeError, ValueError) as exc:
            raise TypeError(
                f"{schema.name}: column '{col}' cannot be read as '{dtype}': {exc}"
            ) from exc

    nulls = {c: int(out[c].isna().sum()) for c in schema.non_null}
    nulls = {c: n for c, n in nulls.items() if n}
    if nulls:
        raise ValueError(f"{schema.name}: NA values in non-null columns: {nulls}")

    if schema.primary_key:
        _check_primary_key(out, schema)
    return out
