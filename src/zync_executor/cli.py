"""CLI entry point for zync-executor."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from eth_account import Account
from pydantic import ValidationError

from zync_executor import __version__
from zync_executor.chain.client import ChainClient, build_chain_client
from zync_executor.config import (
    ConfigStore,
    ExecutorSettings,
    ZyncConfig,
    default_settings_path,
    load_settings,
)
from zync_executor.errors import ConfigurationError, WalletDecryptionError
from zync_executor.executor.loop import ExecutorLoop
from zync_executor.executor.strategy import ExecutorCaches, StrategyExecutor
from zync_executor.monitoring.logging import setup_logging, setup_structured_logging
from zync_executor.wallet import WalletStore

logger = logging.getLogger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"zync-executor {__version__}")
        raise typer.Exit()


app = typer.Typer(name="zync-executor", help="Zync strategy executor CLI", no_args_is_help=True)


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool, typer.Option("--version", "-V", help="Show version and exit", callback=_version_callback, is_eager=True)
    ] = False,
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug logging")] = False,
) -> None:
    """Zync strategy executor CLI."""
    ctx.obj = {"debug": debug}
    setup_logging(debug=debug)


SettingsOption = Annotated[Path | None, typer.Option("--settings", "-s", help="Path to executor.yaml")]


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _config_store() -> ConfigStore:
    return ConfigStore()


def _wallet_store() -> WalletStore:
    return WalletStore()


def _setup_run_logging(settings: ExecutorSettings, *, debug: bool) -> None:
    """Reconfigure logging from the monitoring section of the settings."""
    log_file = Path(settings.monitoring.log_file).expanduser() if settings.monitoring.log_file else None
    if settings.monitoring.structured_logging:
        setup_structured_logging(log_file=log_file, level=logging.DEBUG if debug else logging.INFO)
    elif log_file is not None:
        setup_logging(debug=debug, log_file=log_file)


async def _run_executor(loop: ExecutorLoop, chain: ChainClient) -> None:
    try:
        await loop.run()
    finally:
        await chain.close()


@app.command("config-rpc")
def config_rpc(url: Annotated[str, typer.Option("--url", help="RPC endpoint URL")]) -> None:
    """Set custom RPC URL for blockchain connection."""
    try:
        config = ZyncConfig(rpc_url=url)
    except ValidationError as exc:
        raise typer.BadParameter("RPC URL must not be empty", param_hint="--url") from exc
    try:
        _config_store().save(config)
    except OSError as exc:
        _fail(f"Failed to save RPC URL: {exc}")
    typer.secho("RPC URL saved successfully.", fg=typer.colors.GREEN)


@app.command("config-wallet")
def config_wallet(
    private_key: Annotated[str, typer.Option("--private-key", help="Private key of executor wallet")],
) -> None:
    """Configure executor wallet private key."""
    try:
        _wallet_store().save(private_key)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--private-key") from exc
    except OSError as exc:
        _fail(f"Failed to save wallet: {exc}")
    typer.secho("Wallet saved securely.", fg=typer.colors.GREEN)


@app.command()
def run(ctx: typer.Context, settings: SettingsOption = None) -> None:
    """Start the Zync executor keeper loop."""
    debug = bool(ctx.obj and ctx.obj.get("debug"))
    try:
        cfg = load_settings(settings if settings is not None else default_settings_path())
        _setup_run_logging(cfg, debug=debug)
        rpc_config = _config_store().load()
        private_key = _wallet_store().load()
    except (ConfigurationError, WalletDecryptionError) as exc:
        _fail(str(exc))

    chain = build_chain_client(rpc_config, cfg, private_key=private_key)
    caches = ExecutorCaches.from_settings(cfg.cache)
    loop = ExecutorLoop(
        chain,
        StrategyExecutor(chain, caches),
        caches,
        factory_address=cfg.factory_address,
        poll_interval=cfg.poll_interval,
        jitter=cfg.jitter,
    )
    asyncio.run(_run_executor(loop, chain))


@app.command("rpc-url")
def rpc_url() -> None:
    """Show configured RPC URL."""
    try:
        config = _config_store().load()
    except ConfigurationError as exc:
        _fail(str(exc))
    typer.echo(f"RPC URL: {config.rpc_url}")


@app.command()
def wallet() -> None:
    """Show wallet public address."""
    try:
        private_key = _wallet_store().load()
    except (ConfigurationError, WalletDecryptionError) as exc:
        _fail(str(exc))
    typer.echo(f"Wallet Address: {Account.from_key(private_key).address}")
