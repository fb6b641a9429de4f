"""
SealRelay CLI: `sealrelay` command.

Commands:
  sealrelay run         Fetch, decrypt, validate and forward one batch
  sealrelay clear       Ask the sink to discard its stored records
  sealrelay health      Probe the sink
  sealrelay get-data    Print the plain data webhook payload
  sealrelay stats       Show decryption and key-derivation parameters
  sealrelay store-key   Save a passphrase (and salt) in the OS keystore
  sealrelay forget-key  Remove them again

Settings come from SEALRELAY_* environment variables (see core/config.py).
"""

import asyncio
import json
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from sealrelay import __version__
from sealrelay.core.config import Settings
from sealrelay.core.exceptions import ConfigurationError, SealRelayError
from sealrelay.core.models import FlowSuccess
from sealrelay.frontend.cli.logging_config import configure_logging
from sealrelay.pipeline.orchestrator import FlowOrchestrator
from sealrelay.security.providers import KeyringKeyProvider

logger = logging.getLogger(__name__)
console = Console()


def _settings() -> Settings:
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise SystemExit(2)
    configure_logging(settings.log_level)
    return settings


def _with_orchestrator(call):
    """Build an orchestrator, await ``call(orchestrator)``, always close it."""
    settings = _settings()

    async def _go():
        orchestrator = FlowOrchestrator.from_settings(settings)
        try:
            return await call(orchestrator)
        finally:
            await orchestrator.close()

    return asyncio.run(_go())


def _print_json(data) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@click.group()
@click.version_option(__version__)
def cli():
    """SealRelay: decrypt, validate and relay user records."""


@cli.command("run")
@click.option("--json-output", "--json", is_flag=True, help="Print the raw response object.")
def run_cmd(json_output):
    """Run the full fetch -> decrypt -> validate -> forward flow once."""
    result = _with_orchestrator(lambda o: o.run())
    response = result.to_response()
    if json_output:
        _print_json(response)
    elif isinstance(result, FlowSuccess):
        table = Table(title=response["message"])
        table.add_column("Name", style="bold")
        table.add_column("Email")
        table.add_column("Phone")
        for record in result.records:
            table.add_row(record.name, record.email, record.phone)
        console.print(table)
    else:
        console.print(f"[red]{response['error']}[/red] ({result.kind})")
    if not isinstance(result, FlowSuccess):
        raise SystemExit(1)


@cli.command("clear")
def clear_cmd():
    """Ask the sink to discard its stored records."""
    try:
        result = _with_orchestrator(lambda o: o.clear())
    except SealRelayError as e:
        console.print(f"[red]Clear failed:[/red] {e}")
        raise SystemExit(1)
    console.print(f"[green]{result.to_response()['message']}[/green]")


@cli.command("health")
@click.option("--json-output", "--json", is_flag=True)
def health_cmd(json_output):
    """Check whether the sink is reachable."""
    report = _with_orchestrator(lambda o: o.health())
    if json_output:
        _print_json(report.to_response())
        return
    colour = "green" if report.sink_available else "yellow"
    state = "available" if report.sink_available else "unavailable"
    console.print(f"sink: [{colour}]{state}[/{colour}]  encryption: [green]available[/green]")


@cli.command("get-data")
def get_data_cmd():
    """Print the payload served by the plain data webhook."""
    try:
        data = _with_orchestrator(lambda o: o.fetch_raw())
    except SealRelayError as e:
        console.print(f"[red]Fetch failed:[/red] {e}")
        raise SystemExit(1)
    _print_json(data)


@cli.command("stats")
def stats_cmd():
    """Show the configured decryption strategy and KDF parameters."""
    settings = _settings()
    orchestrator = FlowOrchestrator.from_settings(settings)
    try:
        _print_json(orchestrator.stats())
    finally:
        asyncio.run(orchestrator.close())


@cli.command("store-key")
@click.option("--service", envvar="SEALRELAY_KEYRING_SERVICE", default="sealrelay", show_default=True)
@click.option("--account", envvar="SEALRELAY_KEYRING_ACCOUNT", default="default", show_default=True)
@click.option("--salt", default=None, help="Salt text; a random salt is generated when omitted.")
@click.option("--force", is_flag=True, help="Store even if the keyring backend looks insecure.")
@click.password_option("--passphrase", prompt="Passphrase")
def store_key_cmd(service, account, salt, force, passphrase):
    """Save key material for the keyring key provider."""
    provider = KeyringKeyProvider(service, account)
    try:
        provider.store(
            passphrase.encode("utf-8"),
            salt.encode("utf-8") if salt else None,
            force=force,
        )
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    console.print(f"[green]Key material stored for {service}/{account}[/green]")


@cli.command("forget-key")
@click.option("--service", envvar="SEALRELAY_KEYRING_SERVICE", default="sealrelay", show_default=True)
@click.option("--account", envvar="SEALRELAY_KEYRING_ACCOUNT", default="default", show_default=True)
@click.confirmation_option(prompt="Remove the stored passphrase and salt?")
def forget_key_cmd(service, account):
    """Remove key material saved by store-key."""
    try:
        KeyringKeyProvider(service, account).forget()
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    console.print(f"[green]Key material removed for {service}/{account}[/green]")


def main() -> None:
    """Console entry point; unexpected errors are logged once and exit non-zero."""
    try:
        cli()
    except Exception:
        logger.exception("unexpected error")
        sys.exit(70)


if __name__ == "__main__":
    main()
