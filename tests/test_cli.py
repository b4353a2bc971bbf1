"""CLI interface tests."""
from __future__ import annotations

import json
import os
import subprocess
import sys

import pytest

_CLI_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "cli.py")

STATIC_MODEL = """\
analysis: static
nodes: [[0.0], [1.0], [2.0]]
regions:
  - type: bar
    connectivity: [[0, 1], [1, 2]]
    area: 1.0
    youngs_modulus: 1.0
    density: 1.0
essential_bcs:
  - node_list: [0]
traction_bcs:
  - nodes: [2]
    traction_vector: [1.0]
"""

MODAL_MODEL = """\
analysis: modal
nodes: [[0.0], [1.0], [2.0]]
regions:
  - type: bar
    connectivity: [[0, 1], [1, 2]]
    area: 1.0
    youngs_modulus: 1.0
    density: 1.0
essential_bcs:
  - node_list: [0]
neigvs: 2
"""


def _run(*args, cwd=None):
    return subprocess.run(
        [sys.executable, _CLI_PATH, *args],
        capture_output=True, text=True, timeout=60, cwd=cwd,
    )


@pytest.fixture
def model_dir(tmp_path):
    (tmp_path / "static.yaml").write_text(STATIC_MODEL)
    (tmp_path / "modal.yaml").write_text(MODAL_MODEL)
    (tmp_path / "free.yaml").write_text(STATIC_MODEL.replace("essential_bcs:\n  - node_list: [0]\n", ""))
    (tmp_path / "bad.yaml").write_text(STATIC_MODEL + "mesh: cube\n")
    (tmp_path / "scalar_bc.yaml").write_text(STATIC_MODEL.replace("  - node_list: [0]\n", "  - 5\n"))
    return tmp_path


class TestCLI:
    def test_version(self):
        result = _run("--version")
        assert result.returncode == 0
        assert "0.1.0" in result.stdout

    def test_help(self):
        result = _run("--help")
        assert result.returncode == 0
        assert "run" in result.stdout

    def test_static_run(self, model_dir):
        out = model_dir / "out" / "static.json"
        result = _run("--log-dir", str(model_dir / "logs"), "run", str(model_dir / "static.yaml"),
                      "--output", str(out))
        assert result.returncode == 0, result.stderr
        assert "elastic work" in result.stdout.lower()
        summary = json.loads(out.read_text())
        assert summary["analysis"] == "static"
        assert summary["work"] == pytest.approx(1.0)

    def test_modal_run_with_overrides(self, model_dir):
        out = model_dir / "modal.json"
        result = _run("--log-dir", str(model_dir / "logs"), "run", str(model_dir / "modal.yaml"),
                      "--lumped", "--neigvs", "1", "--output", str(out))
        assert result.returncode == 0, result.stderr
        summary = json.loads(out.read_text())
        assert summary["neigvs"] == 1
        assert summary["omega"][0] == pytest.approx((2.0 - 2.0 ** 0.5) ** 0.5)

    def test_neigvs_cap_warns(self, model_dir):
        result = _run("--log-dir", str(model_dir / "logs"), "run", str(model_dir / "modal.yaml"),
                      "--neigvs", "9")
        assert result.returncode == 0, result.stderr
        assert "WARNING" in result.stderr

    def test_analysis_logged(self, model_dir):
        log_dir = model_dir / "logs"
        _run("--log-dir", str(log_dir), "run", str(model_dir / "static.yaml"))
        lines = (log_dir / "analyses.jsonl").read_text().splitlines()
        record = json.loads(lines[-1])
        assert record["analysis"] == "static"
        assert record["event_type"] == "analysis.completed"
        assert (log_dir / "app.log").exists()

    def test_run_start_recorded(self, model_dir):
        log_dir = model_dir / "logs"
        _run("--log-dir", str(log_dir), "run", str(model_dir / "bad.yaml"))
        ops = [json.loads(line) for line in (log_dir / "operations.jsonl").read_text().splitlines()]
        analyses = [json.loads(line) for line in (log_dir / "analyses.jsonl").read_text().splitlines()]
        assert ops[-1]["event_type"] == "run.started"
        assert ops[-1]["data"]["model"].endswith("bad.yaml")
        assert ops[-1]["session_id"] == analyses[-1]["session_id"]

    def test_model_error_exit_code(self, model_dir):
        result = _run("--log-dir", str(model_dir / "logs"), "run", str(model_dir / "bad.yaml"))
        assert result.returncode == 2
        assert "mesh" in result.stderr

    def test_non_mapping_record_exit_code(self, model_dir):
        result = _run("--log-dir", str(model_dir / "logs"), "run", str(model_dir / "scalar_bc.yaml"))
        assert result.returncode == 2
        assert "Traceback" not in result.stderr

    def test_missing_model_file(self, model_dir):
        result = _run("--log-dir", str(model_dir / "logs"), "run", str(model_dir / "absent.yaml"))
        assert result.returncode == 2

    def test_numerical_error_exit_code(self, model_dir):
        result = _run("--log-dir", str(model_dir / "logs"), "run", str(model_dir / "free.yaml"))
        assert result.returncode == 1
        record = json.loads((model_dir / "logs" / "analyses.jsonl").read_text().splitlines()[-1])
        assert record["event_type"] == "analysis.failed"
