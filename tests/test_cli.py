import json

import pytest
from eth_account import Account
from typer.testing import CliRunner

from numberwar import cli
from numberwar.config import SESSION_CONFIG

runner = CliRunner()


@pytest.fixture
def cli_node(node, transport, monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "_transport", lambda: transport)
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("NUMBERWAR_PRIVATE_KEY", raising=False)
    return node


@pytest.fixture
def private_key():
    return "0x" + bytes(Account.create().key).hex()


def test_address(cli_node):
    result = runner.invoke(cli.app, ["address"])

    assert result.exit_code == 0
    assert result.output.strip() == f"NumberWar contract: {cli_node.ledger.address}"


def test_join_submit_status(cli_node, private_key, fixed_system_number):
    fixed_system_number(4)

    result = runner.invoke(cli.app, ["join", "--private-key", private_key])
    assert result.exit_code == 0, result.output
    assert "System number: 4" in result.output

    result = runner.invoke(cli.app, ["status", "--private-key", private_key, "--no-reveal", "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["activeRound"] is True

    result = runner.invoke(cli.app, ["submit", "2", "--private-key", private_key])
    assert result.exit_code == 0, result.output
    assert "Outcome: WIN" in result.output

    result = runner.invoke(cli.app, ["status", "--private-key", private_key])
    assert "Active round:  no" in result.output
    assert "Last outcome:  WIN" in result.output


def test_submit_without_round(cli_node, private_key):
    result = runner.invoke(cli.app, ["submit", "5", "--private-key", private_key])

    assert result.exit_code == 1
    assert "No active round" in result.output


def test_submit_out_of_range(cli_node, private_key):
    runner.invoke(cli.app, ["join", "--private-key", private_key])

    result = runner.invoke(cli.app, ["submit", "42", "--private-key", private_key])

    assert result.exit_code == 1
    assert "between 1 and 10" in result.output


def test_no_wallet(cli_node, monkeypatch):
    monkeypatch.setitem(SESSION_CONFIG, "wallet_private_key", "")

    result = runner.invoke(cli.app, ["join"])

    assert result.exit_code == 1
    assert "no wallet configured" in result.output


def test_status_for_given_player(cli_node, private_key, fixed_system_number, monkeypatch):
    monkeypatch.setitem(SESSION_CONFIG, "wallet_private_key", "")
    fixed_system_number(6)
    player = Account.from_key(private_key).address
    runner.invoke(cli.app, ["join", "--private-key", private_key])

    result = runner.invoke(cli.app, ["status", "--player", player])
    assert result.exit_code == 0, result.output
    assert f"Account:       {player}" in result.output
    assert "Active round:  yes" in result.output
    assert "System number: encrypted (" in result.output

    other_key = "0x" + bytes(Account.create().key).hex()
    result = runner.invoke(cli.app, ["status", "--player", player, "--private-key", other_key, "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["systemNumber"] is None

    result = runner.invoke(cli.app, ["status", "--player", player.lower(), "--private-key", private_key])
    assert result.exit_code == 0, result.output
    assert "System number: 6" in result.output


def test_status_for_malformed_player(cli_node):
    result = runner.invoke(cli.app, ["status", "--player", "nobody"])

    assert result.exit_code == 1
    assert "Not an account address" in result.output
