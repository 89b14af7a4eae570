"""autopilotsync CLI - Autopilot device to Active Directory computer sync."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog
import typer

from autopilotsync import __version__
from autopilotsync.certificates import CertificateProvisioner, CredentialStore
from autopilotsync.core.config import CertificateConfig, SyncConfig
from autopilotsync.core.exceptions import OperationDeclined, SyncError
from autopilotsync.core.logging import configure_logging
from autopilotsync.core.prompts import auto_confirm, interactive_confirm
from autopilotsync.sync.runner import run_sync

logger = structlog.get_logger()

app = typer.Typer(
    name="autopilotsync",
    help="Provision AD computer objects for Autopilot devices",
    add_completion=False,
)

CONFIG_OPTION = typer.Option(
    ..., "--config", "-c", dir_okay=False, help="YAML configuration file"
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"autopilotsync {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Provision AD computer objects for Autopilot devices."""


@app.command("create-certificate")
def create_certificate(
    config: Path = CONFIG_OPTION,
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Replace existing certificate/export without asking"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Create the Graph authentication certificate and export its public part.

    An existing certificate with the same subject, and an existing file at the
    export path, are replaced only after confirmation.
    """
    configure_logging(verbose=verbose)
    try:
        settings = CertificateConfig.from_file(config)
        configure_logging(log_path=settings.log_path, verbose=verbose)
        provisioner = CertificateProvisioner(
            store=CredentialStore(settings.store_path),
            confirm=auto_confirm if yes else interactive_confirm,
        )
        credential = provisioner.ensure_credential(settings.subject, settings.validity_months)
        exported = provisioner.export_public(credential, settings.export_path)
    except OperationDeclined as e:
        logger.info("aborted", reason=e.message)
        raise typer.Exit(code=0)
    except SyncError as e:
        logger.error("create_certificate_failed", error=e.message, error_type=type(e).__name__)
        raise typer.Exit(code=1)

    typer.echo(f"Subject:    {credential.subject}")
    typer.echo(f"Thumbprint: {credential.thumbprint}")
    typer.echo(f"Expires:    {credential.not_valid_after.isoformat()}")
    typer.echo(f"Exported:   {exported}")


@app.command()
def sync(
    config: Path = CONFIG_OPTION,
    what_if: bool = typer.Option(
        False, "--what-if", help="Plan and log actions without changing the directory"
    ),
    report: Optional[Path] = typer.Option(
        None, "--report", help="Write the JSON run report to this file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Reconcile Autopilot devices with AD computer objects.

    Creates a computer object for every device that has none and deletes
    objects whose device is gone. Per-device failures are logged and skipped.
    """
    configure_logging(verbose=verbose)
    try:
        settings = SyncConfig.from_file(config)
        configure_logging(log_path=settings.log_path, verbose=verbose)
        result = run_sync(settings, dry_run=what_if)
    except SyncError as e:
        logger.error("sync_failed", error=e.message, error_type=type(e).__name__)
        raise typer.Exit(code=1)

    if report is not None:
        try:
            report.write_text(result.export_json(), encoding="utf-8")
        except OSError as e:
            logger.error("report_write_failed", path=str(report), error=str(e))
            raise typer.Exit(code=1)

    summary = result.summary()
    prefix = "[what-if] " if result.dry_run else ""
    typer.echo(
        f"{prefix}devices={summary['devices']} objects={summary['objects']} "
        f"created={summary['created']} skipped={summary['skipped']} "
        f"deleted={summary['deleted']} failed={summary['failed']}"
    )
