"""Command line interface for Hubs Backup."""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from ..models import BackupCategory, BackupConfig, Credentials, ProgressEvent
from .api import HubsBackup, account_id_from_token


CATEGORY_NAMES = [category.label for category in BackupCategory.members()]


def _credentials(host: str, port: Optional[str], email: str, token: str,
                 account_id: Optional[str]) -> Credentials:
    if not account_id:
        try:
            account_id = account_id_from_token(token)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--account-id")
    return Credentials(host=host, port=port, email=email, token=token, account_id=account_id)


def _print_progress(event: ProgressEvent) -> None:
    click.echo(f"[{event.category.label:>8}] {event.percent:6.1f}%")


def _install_cancel_handler(backup: HubsBackup, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """First Ctrl-C cancels cooperatively, the next one interrupts as usual."""
    loop = loop or asyncio.get_running_loop()

    def _on_interrupt() -> None:
        loop.remove_signal_handler(signal.SIGINT)
        click.echo("Cancelling after the current items, press Ctrl-C again to abort", err=True)
        backup.cancel_backup()

    try:
        loop.add_signal_handler(signal.SIGINT, _on_interrupt)
    except (NotImplementedError, RuntimeError):
        # Windows event loops do not support signal handlers
        pass


def connection_options(func):
    func = click.option('--account-id', default=None,
                        help='Account id, read from the token when omitted')(func)
    func = click.option('--token', envvar='HUBS_BACKUP_TOKEN', required=True,
                        help='Bearer token from the login handshake')(func)
    func = click.option('--email', required=True, help='Account e-mail address')(func)
    func = click.option('--port', default=None, help='Port, when not the HTTPS default')(func)
    func = click.option('--host', required=True, help='Hubs instance host name')(func)
    return func


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.option('--insecure', is_flag=True, help='Do not verify TLS certificates')
@click.pass_context
def cli(ctx: click.Context, verbose: bool, insecure: bool):
    """Back up a Hubs account to a local directory."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['insecure'] = insecure


@cli.command()
@connection_options
@click.option('--output', '-o', type=click.Path(file_okay=False, path_type=Path), required=True,
              help='Directory receiving <host>/<email>/...')
@click.option('--category', '-c', 'categories', multiple=True,
              type=click.Choice(CATEGORY_NAMES, case_sensitive=False),
              help='Category to back up (repeatable, default: all)')
@click.option('--override', is_flag=True, help='Re-download files that already exist')
@click.option('--rewrite-references', is_flag=True,
              help='Point scene and room documents at the downloaded copies')
@click.option('--no-progress', is_flag=True, help='Do not print progress updates')
@click.pass_context
def backup(ctx: click.Context, host: str, port: Optional[str], email: str, token: str,
           account_id: Optional[str], output: Path, categories: Tuple[str, ...],
           override: bool, rewrite_references: bool, no_progress: bool):
    """Export scenes, avatars, rooms and media."""
    credentials = _credentials(host, port, email, token, account_id)
    config = BackupConfig(
        verify_ssl=not ctx.obj['insecure'],
        rewrite_local_references=rewrite_references,
        progress_callback=None if no_progress else _print_progress,
    )
    backup = HubsBackup(config=config, verbose=ctx.obj['verbose'])
    selected = BackupCategory.from_names(categories) if categories else BackupCategory.all()

    async def _run() -> bool:
        _install_cancel_handler(backup)
        return await backup.start_backup(output, credentials, selected, override)

    ok = asyncio.run(_run())
    click.echo(f"Log: {HubsBackup.get_log_path(output, credentials)}")
    if not ok:
        click.echo("Backup finished with errors", err=True)
        sys.exit(1)
    click.echo("Backup finished")


@cli.command()
@connection_options
@click.pass_context
def probe(ctx: click.Context, host: str, port: Optional[str], email: str, token: str,
          account_id: Optional[str]):
    """List the categories the instance supports for this account."""
    credentials = _credentials(host, port, email, token, account_id)
    backup = HubsBackup(
        config=BackupConfig(verify_ssl=not ctx.obj['insecure']),
        verbose=ctx.obj['verbose'],
    )
    supported = asyncio.run(backup.get_supported_categories(credentials))
    for category in BackupCategory.members():
        mark = "yes" if supported & category else "no"
        click.echo(f"{category.label:>8}: {mark}")


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
