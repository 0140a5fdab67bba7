# controllers/cli.py
"""
Admin commands, e.g.

    flask payments install liqpay
    flask payments create-profile liqpay --public-key i000 --private-key s3cr3t
    flask payments uninstall liqpay
"""
from __future__ import annotations
import click
from flask.cli import AppGroup

from models.payments_store import create_profile, list_provider_logs
from models.providers_store import install_provider, list_installed, uninstall_provider
from services.payments.errors import ConfigInvalid

payments_cli = AppGroup("payments", help="Manage payment providers and profiles.")


@payments_cli.command("install")
@click.argument("provider_id")
def install_cmd(provider_id: str):
    try:
        created = install_provider(provider_id)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"Installed {provider_id}" if created else f"{provider_id} is already installed")


@payments_cli.command("uninstall")
@click.argument("provider_id")
def uninstall_cmd(provider_id: str):
    removed = uninstall_provider(provider_id)
    click.echo(f"Uninstalled {provider_id} ({removed} profiles removed)")


@payments_cli.command("providers")
def providers_cmd():
    for p in list_installed():
        click.echo(f"{p['provider_id']}\t{p['provider_class']}")


@payments_cli.command("create-profile")
@click.argument("provider_id")
@click.option("--title", default="", help="Shown to purchasers; defaults to the provider title.")
@click.option("--public-key", default="")
@click.option("--private-key", default="")
def create_profile_cmd(provider_id: str, title: str, public_key: str, private_key: str):
    try:
        pid = create_profile(provider_id, title, {
            "public_key": public_key, "private_key": private_key})
    except ConfigInvalid as e:
        for err in e.errors:
            click.echo(f"Error: {err}", err=True)
        raise SystemExit(1)
    except (ValueError, RuntimeError) as e:
        raise click.ClickException(str(e))
    click.echo(f"Created payment profile {pid}")


@payments_cli.command("logs")
@click.option("--provider", "provider_id", default=None)
@click.option("--limit", default=20, show_default=True)
def logs_cmd(provider_id: str | None, limit: int):
    for row in list_provider_logs(provider_id, limit):
        click.echo(f"{row['id']}\t{row['log_type']}\t{row['purchase_request_key'] or '-'}\t"
                   f"{row['transaction_id'] or '-'}\t{row['log_message']}")
