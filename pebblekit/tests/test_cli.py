"""
Tests for the pebble CLI.
"""

import json

import pytest
from typer.testing import CliRunner

from cli.main import app
from pebblekit.manager import PebbleConfig, PebbleManager
from pebblekit.serializers import JsonSerializer
from pebblekit.storage import FileStorage, record_key
from pebblekit.workload import CounterApp, run_chain

runner = CliRunner()

QUIET = ["--log-level", "ERROR"]


@pytest.fixture
def populated(tmp_path):
    """FileStorage with blue checkpoints 0..12 under namespace 'pebble'."""
    app_state = CounterApp()
    manager = PebbleManager(
        app_state,
        JsonSerializer(),
        FileStorage(str(tmp_path)),
        config=PebbleConfig(mint_interval=1),
    )
    run_chain(manager, app_state, 16)
    return tmp_path


def test_version_json():
    result = runner.invoke(app, ["version", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["record_format"] == 1
    assert data["version"]


def test_records_list_json(populated):
    result = runner.invoke(app, QUIET + ["records", "list", "--dir", str(populated), "--json"])

    assert result.exit_code == 0, result.stdout
    entries = json.loads(result.stdout)
    assert [e["index"] for e in entries] == list(range(13))
    assert entries[1]["parents"] == [0]
    assert all(e["error"] is None for e in entries)


def test_records_list_table(populated):
    result = runner.invoke(app, QUIET + ["records", "list", "--dir", str(populated)])

    assert result.exit_code == 0
    assert "Records in pebble" in result.stdout


def test_records_list_requires_backend():
    result = runner.invoke(app, QUIET + ["records", "list"])

    assert result.exit_code != 0


def test_records_verify_detects_corruption(populated):
    ok = runner.invoke(app, QUIET + ["records", "verify", "--dir", str(populated), "--json"])
    assert ok.exit_code == 0
    assert json.loads(ok.stdout)["failed"] == 0

    path = populated / "pebble" / "0000000004.rec"
    path.write_bytes(path.read_bytes()[:-1] + b"X")

    bad = runner.invoke(app, QUIET + ["records", "verify", "--dir", str(populated), "--json"])
    assert bad.exit_code == 1
    data = json.loads(bad.stdout)
    assert data["failed"] == 1
    assert data["records"][4]["key"] == record_key("pebble", 4)
    assert not data["records"][4]["ok"]


def test_recover_json(populated):
    result = runner.invoke(app, QUIET + ["recover", "--dir", str(populated), "--json"])

    assert result.exit_code == 0, result.stdout
    data = json.loads(result.stdout)
    assert data["recovered"] == list(range(13))
    assert data["root"] == 0
    assert data["latest"] == 12
    assert data["covering_span"] == [0, 12]


def test_recover_partial_loss_exit_code(populated):
    (populated / "pebble" / "0000000003.rec").unlink()

    result = runner.invoke(
        app,
        QUIET + ["recover", "--dir", str(populated), "--orphan-policy", "drop_subtree", "--json"],
    )

    assert result.exit_code == 1
    data = json.loads(result.stdout)
    assert data["recovered"] == [0, 1, 2]


def test_simulate_json():
    result = runner.invoke(
        app, QUIET + ["simulate", "--events", "300", "--strategy", "dag", "--merge-every", "7", "--json"]
    )

    assert result.exit_code == 0, result.stdout
    data = json.loads(result.stdout)
    assert data["success"]
    assert data["game"]["legal"]
    assert data["stats"]["total_events"] == 300
    assert data["validation"]["red_within_budget"]


def test_simulate_table():
    result = runner.invoke(app, QUIET + ["simulate", "--events", "100"])

    assert result.exit_code == 0
    assert "legal pebbling" in result.stdout
