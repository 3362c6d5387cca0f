from __future__ import annotations

import importlib.util
from pathlib import Path

import pandas as pd
import pytest

from transit_enrichment.errors import IOFailure
from transit_enrichment.io import read_json
from transit_enrichment.io.model_io import write_model

REPO_ROOT = Path(__file__).resolve().parents[1]


def _load_script(name: str):
    spec = importlib.util.spec_from_file_location(name, REPO_ROOT / "scripts" / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def model_dir(three_stop_model, tmp_path) -> Path:
    three_stop_model.replace_table(
        "lines", pd.DataFrame([{"line_id": "l1", "line_name": "Line 1"}])
    )
    directory = tmp_path / "model"
    write_model(three_stop_model, directory)
    return directory


@pytest.fixture
def settings_file(tmp_path) -> Path:
    path = tmp_path / "enrichment.yaml"
    path.write_text("transfers:\n  max_distance: 100\n  max_duration: 120\n", encoding="utf-8")
    return path


def test_generate_transfers_script(model_dir, settings_file, write_rules, tmp_path, capsys):
    rules = write_rules("rules.txt", "add,sp_1,sp_3,90\n")
    out_dir = tmp_path / "enriched"
    report = tmp_path / "transfer_report.json"

    status = _load_script("generate_transfers").main(
        [
            "-i", str(model_dir),
            "-o", str(out_dir),
            "--config", str(settings_file),
            "-s", "0.785",
            "-r", str(rules),
            "--report", str(report),
            "--checkpoint",
        ]
    )

    assert status == 0
    transfers = pd.read_csv(out_dir / "transfers.txt", dtype=str)
    assert len(transfers) == 4
    assert (out_dir / "transfers_sanity.csv").exists()
    assert read_json(report)["summary"]["applied"] == 1
    assert "sha256 transfers.txt:" in capsys.readouterr().out


def test_generate_transfers_flags_override_settings(model_dir, settings_file, tmp_path):
    out_dir = tmp_path / "enriched"
    status = _load_script("generate_transfers").main(
        [
            "-i", str(model_dir),
            "-o", str(out_dir),
            "--config", str(settings_file),
            "-d", "300",
            "-t", "200",
        ]
    )

    assert status == 0
    # 146 m (186 s) now qualifies, 206 m (262 s) is still over the cap
    transfers = pd.read_csv(out_dir / "transfers.txt")
    assert len(transfers) == 4


def test_generate_transfers_script_fails_cleanly(model_dir, settings_file, write_rules, tmp_path):
    rules = write_rules("rules.txt", "add,sp_1,sp_404,90\n")
    out_dir = tmp_path / "enriched"

    status = _load_script("generate_transfers").main(
        [
            "-i", str(model_dir),
            "-o", str(out_dir),
            "--config", str(settings_file),
            "-r", str(rules),
        ]
    )

    assert status == 1
    assert not (out_dir / "transfers.txt").exists()


def test_apply_rules_script(model_dir, write_rules, tmp_path):
    rules = write_rules("codes.txt", "line,l1,gtfs,L1\nstop_point,sp_404,gtfs,X\n")
    report = tmp_path / "report.json"

    status = _load_script("apply_rules").main(
        ["-i", str(model_dir), "-c", str(rules), "--report", str(report)]
    )

    assert status == 0
    codes = pd.read_csv(model_dir / "object_codes.txt", dtype=str)
    assert codes.to_dict(orient="records") == [
        {"object_type": "line", "object_id": "l1", "object_system": "gtfs", "object_code": "L1"}
    ]
    assert read_json(report)["summary"] == {
        "applied": 1,
        "not_found": 1,
        "conflict": 0,
        "malformed": 0,
    }


def test_apply_rules_script_missing_rule_file(model_dir, tmp_path):
    report = tmp_path / "report.json"
    status = _load_script("apply_rules").main(
        ["-i", str(model_dir), "-c", str(tmp_path / "missing.txt"), "--report", str(report)]
    )

    assert status == 1
    assert not report.exists()


def test_invalid_model_table_fails_cleanly(model_dir, settings_file, tmp_path):
    stops = model_dir / "stop_points.txt"
    lines = stops.read_text(encoding="utf-8").splitlines()
    stops.write_text("\n".join([*lines, lines[1]]) + "\n", encoding="utf-8")
    out_dir = tmp_path / "enriched"

    status = _load_script("generate_transfers").main(
        ["-i", str(model_dir), "-o", str(out_dir), "--config", str(settings_file)]
    )

    assert status == 1
    assert not out_dir.exists()


@pytest.mark.parametrize(
    "script, rule_flag, rule_line",
    [
        ("apply_rules", "-c", "line,l1,gtfs,L1\n"),
        ("generate_transfers", "-r", "add,sp_1,sp_3,90\n"),
    ],
)
def test_failed_model_write_leaves_no_report(
    model_dir, settings_file, write_rules, tmp_path, monkeypatch, script, rule_flag, rule_line
):
    module = _load_script(script)

    def _fail(model, directory):
        raise IOFailure(directory, "cannot write model: disk full")

    monkeypatch.setattr(module, "write_model", _fail)
    rules = write_rules("rules.txt", rule_line)
    report = tmp_path / "report.json"

    status = module.main(
        [
            "-i", str(model_dir),
            "--config", str(settings_file),
            rule_flag, str(rules),
            "--report", str(report),
        ]
    )

    assert status == 1
    assert not report.exists()
