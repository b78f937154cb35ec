"""
numberwar command line

    numberwar serve                 run a dev node with a freshly deployed ledger
    numberwar address               print the deployed contract address
    numberwar join                  join a round and print the decrypted system number
    numberwar submit 7              submit a number and print the decrypted outcome
    numberwar status [--player A]   print the round state for an account
    numberwar play                  open the TUI
"""
import asyncio
import json
from typing import Optional

import httpx
import typer
import uvicorn

from numberwar.config import NETWORK_CONFIG
from numberwar.errors import NumberWarError
from numberwar.model.account import normalize_address, same_address
from numberwar.service.crypto_ops.input_builder import ComputeClient
from numberwar.service.decryption.client import DecryptionClient
from numberwar.service.ledger.client import HttpLedgerClient
from numberwar.service.wallet import LocalWallet
from numberwar.session.controller import RoundSessionController
from numberwar.session.view import RoundView

app = typer.Typer(
    name="numberwar",
    add_completion=False,
    no_args_is_help=True,
    help="Encrypted number-parity game against a confidential ledger.",
)

NodeUrl = typer.Option(None, "--node-url", help="Node URL (default: NUMBERWAR_NODE_URL or http://localhost:8545)")
PrivateKey = typer.Option(None, "--private-key", envvar="NUMBERWAR_PRIVATE_KEY", help="Wallet private key (hex)")


def _transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for all node clients (None: real network)"""
    return None


def _wallet(private_key: Optional[str]) -> LocalWallet:
    if private_key:
        return LocalWallet(private_key)
    wallet = LocalWallet.from_config()
    if wallet is None:
        typer.secho("Error: no wallet configured (use --private-key or NUMBERWAR_PRIVATE_KEY)", err=True, fg="red")
        raise typer.Exit(code=1)
    return wallet


def build_controller(node_url: Optional[str] = None, wallet=None, log_dir: Optional[str] = None) -> RoundSessionController:
    node_url = node_url or NETWORK_CONFIG["node_url"]
    transport = _transport()
    return RoundSessionController(
        HttpLedgerClient(node_url, transport=transport),
        compute=ComputeClient(node_url, transport=transport),
        decryption=DecryptionClient(node_url, transport=transport),
        wallet=wallet,
        log_dir=log_dir,
    )


def _run(coro):
    try:
        return asyncio.run(coro)
    except NumberWarError as e:
        typer.secho(f"Error: {e.message}", err=True, fg="red")
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option(NETWORK_CONFIG["host"], help="Host to bind"),
    port: int = typer.Option(NETWORK_CONFIG["port"], help="Port to bind"),
    chain_id: Optional[int] = typer.Option(None, "--chain-id", help="Chain id"),
):
    """Run a dev node and deploy a fresh NumberWar ledger."""
    from numberwar.node.http_server import app as node_app, initialize_server

    initialize_server(chain_id=chain_id)
    uvicorn.run(node_app, host=host, port=port, log_level="warning")


@app.command()
def address(node_url: Optional[str] = NodeUrl):
    """Print the deployed NumberWar contract address."""
    async def _address():
        return await HttpLedgerClient(node_url, transport=_transport()).contract_address()

    typer.echo(f"NumberWar contract: {_run(_address())}")


@app.command()
def join(node_url: Optional[str] = NodeUrl, private_key: Optional[str] = PrivateKey):
    """Join a round and print the decrypted system number."""
    controller = build_controller(node_url, _wallet(private_key))

    async def _join():
        await controller.join()
        return controller.view

    view = _run(_join())
    if view.system_number is None:
        typer.echo(f"Joined, system number not revealed: {view.error or view.status}")
    else:
        typer.echo(f"System number: {view.system_number}")


@app.command()
def submit(
    value: str = typer.Argument(..., help="Your number (1-10)"),
    node_url: Optional[str] = NodeUrl,
    private_key: Optional[str] = PrivateKey,
):
    """Submit an encrypted number and print the decrypted outcome."""
    controller = build_controller(node_url, _wallet(private_key))

    async def _submit():
        await controller.sync(reveal=False)
        await controller.submit(value)
        return controller.view

    view = _run(_submit())
    if view.outcome is None:
        typer.echo(f"Submitted, outcome not revealed: {view.error or view.status}")
    else:
        typer.echo(f"Outcome: {'WIN' if view.outcome else 'LOSE'}")


@app.command()
def status(
    node_url: Optional[str] = NodeUrl,
    private_key: Optional[str] = PrivateKey,
    player: Optional[str] = typer.Option(None, "--player", help="Account to inspect (default: the wallet's own)"),
    reveal: bool = typer.Option(True, "--reveal/--no-reveal", help="Decrypt handles (own account only)"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
):
    """Print the round state for an account."""
    if player is not None:
        try:
            player = normalize_address(player)
        except ValueError as e:
            typer.secho(f"Error: {e}", err=True, fg="red")
            raise typer.Exit(code=1)

    wallet = LocalWallet(private_key) if private_key else LocalWallet.from_config()
    if player is not None and (wallet is None or not same_address(player, wallet.address)):
        # Someone else's round: handles only, nothing to decrypt
        view = _run(_read_round(node_url, player))
    else:
        if wallet is None:
            wallet = _wallet(private_key)
        controller = build_controller(node_url, wallet)

        async def _status():
            await controller.sync(reveal=reveal)
            return controller.view

        view = _run(_status())

    if as_json:
        typer.echo(json.dumps(view.to_dict(), indent=2))
        return

    typer.echo(f"Account:       {view.account}")
    typer.echo(f"Active round:  {'yes' if view.active_round else 'no'}")
    typer.echo(f"System number: {_shown(view.system_number, view.system_number_handle)}")
    outcome = None if view.outcome is None else ("WIN" if view.outcome else "LOSE")
    typer.echo(f"Last outcome:  {_shown(outcome, view.outcome_handle)}")


async def _read_round(node_url: Optional[str], account: str) -> RoundView:
    ledger = HttpLedgerClient(node_url, transport=_transport())
    view = RoundView()
    view.account = account
    view.active_round = await ledger.has_active_round(account)
    if view.active_round:
        view.system_number_handle = await ledger.get_system_number(account)
    view.outcome_handle = await ledger.get_last_outcome(account)
    return view


def _shown(value, handle) -> str:
    if value is not None:
        return str(value)
    if handle.is_sentinel:
        return "-"
    return f"encrypted ({handle.hex()[:10]}...)"


@app.command()
def play(
    node_url: Optional[str] = NodeUrl,
    private_key: Optional[str] = PrivateKey,
    local: bool = typer.Option(False, "--local", help="Start an in-process dev node first"),
):
    """Open the NumberWar TUI."""
    from app import NumberWarApp

    if local:
        from numberwar.node.http_server import initialize_server, start_node_in_background

        initialize_server()
        start_node_in_background()

    wallet = LocalWallet(private_key) if private_key else LocalWallet.from_config()
    NumberWarApp(build_controller(node_url, wallet)).run()


def main():
    app()


if __name__ == "__main__":
    main()
