"""
CLI tests using Typer's test runner.
"""

import json
import logging

import pytest
from typer.testing import CliRunner

from cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger():
    # run configures the root logger against the runner's captured stderr
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "simkernel" in result.stdout
    assert "v0.1.0" in result.stdout


def test_run_json():
    result = runner.invoke(app, ["run", "simkernel.demo:seed", "--json"])
    assert result.exit_code == 0

    output = json.loads(result.stdout)
    assert output["success"] is True
    assert output["state"] == "drained"
    assert output["now"] == 7
    assert output["pending"] == 0
    assert output["statistics"]["total_events"] == 12
    assert output["statistics"]["continuations_resumed"] == 3


def test_run_until_leaves_pending():
    result = runner.invoke(app, ["run", "simkernel.demo:seed", "--until", "4", "--json"])
    assert result.exit_code == 0

    output = json.loads(result.stdout)
    assert output["state"] == "halted"
    assert output["pending"] > 0
    assert output["now"] <= 4


def test_run_table_with_spectrum():
    result = runner.invoke(app, ["run", "simkernel.demo:seed", "--show-spectrum", "--log-level", "ERROR"])
    assert result.exit_code == 0
    assert "Simulation drained at t=7" in result.stdout
    assert "Teller.withdraw(customer, amount)" in result.stdout


def test_run_abort_exits_nonzero():
    result = runner.invoke(app, ["run", "simkernel.demo:seed_overdraft", "--log-level", "CRITICAL"])
    assert result.exit_code == 1
    assert "aborted" in result.stdout


def test_run_continue_policy_succeeds():
    result = runner.invoke(
        app, ["run", "simkernel.demo:seed_overdraft", "--policy", "continue", "--log-level", "CRITICAL"]
    )
    assert result.exit_code == 0
    assert "Uncaught failures:" in result.stdout


def test_run_bad_scenario():
    result = runner.invoke(app, ["run", "simkernel.demo:nope", "--json"])
    assert result.exit_code == 2
    assert "error" in json.loads(result.stdout)

    result = runner.invoke(app, ["run", "no_colon_here"])
    assert result.exit_code == 2
    assert "module:function" in result.stdout


def test_inspect_json():
    result = runner.invoke(app, ["inspect", "simkernel.demo:seed", "--json"])
    assert result.exit_code == 0

    output = json.loads(result.stdout)
    assert output["count"] == 3
    assert [e["time"] for e in output["events"]] == [0, 2, 4]
    assert {e["signature"] for e in output["events"]} == {"Customer.visit(teller, amount)"}


def test_inspect_table():
    result = runner.invoke(app, ["inspect", "simkernel.demo:seed"])
    assert result.exit_code == 0
    assert "Total events:" in result.stdout
