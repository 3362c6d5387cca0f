"""Directory-of-CSV model serialization used by the command-line drivers.

One `<table>.txt` file per model table. Only `stop_points.txt` is required;
absent tables load as empty. Writes go through temporary files that replace
the targets only once every table has been written.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pandas as pd

from transit_enrichment.errors import IOFailure
from transit_enrichment.io import read_csv_validated
from transit_enrichment.models.model import Model
from transit_enrichment.models.schemas import MODEL_TABLES

LOGGER = logging.getLogger(__name__)

REQUIRED_TABLES: tuple[str, ...] = ("stop_points",)
TABLE_SUFFIX = ".txt"


def table_path(directory: Path, name: str) -> Path:
    return Path(directory) / f"{name}{TABLE_SUFFIX}"


def read_model(directory: Path | str) -> Model:
    """Load every known table found in `directory` into a validated `Model`."""
    directory = Path(directory)
    if not directory.is_dir():
        raise IOFailure(directory, "model directory does not exist")

    tables: dict[str, pd.DataFrame] = {}
    for name, schema in MODEL_TABLES.items():
        path = table_path(directory, name)
        if not path.exists():
            if name in REQUIRED_TABLES:
                raise IOFailure(path, "required model table is missing")
            continue
        try:
            tables[name] = read_csv_validated(path, schema=schema)
        except OSError as exc:
            raise IOFailure(path, f"cannot read model table: {exc}") from exc
        except (ValueError, TypeError) as exc:
            # pandas ParserError and table contract violations
            raise IOFailure(path, f"invalid model table: {exc}") from exc
        LOGGER.info("Loaded %s: %d rows", path.name, len(tables[name]))
    return Model(**tables)


def write_model(model: Model, directory: Path | str) -> list[Path]:
    """Write every table of `model` into `directory`; returns the written paths."""
    directory = Path(directory)
    staged: list[tuple[Path, Path]] = []
    try:
        directory.mkdir(parents=True, exist_ok=True)
        for name in MODEL_TABLES:
            target = table_path(directory, name)
            tmp = target.with_name(target.name + ".tmp")
            getattr(model, name).to_csv(tmp, index=False)
            staged.append((tmp, target))
        for tmp, target in staged:
            os.replace(tmp, target)
    except OSError as exc:
        for tmp, _ in staged:
            tmp.unlink(missing_ok=True)
        raise IOFailure(directory, f"cannot write model: {exc}") from exc

    written = [target for _, target in staged]
    LOGGER.info("Wrote %d model tables to %s", len(written), directory)
    return written
