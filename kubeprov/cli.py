import logging
from typing import Optional

import typer

from kubeprov.commands import common, configure, join, reset, run, status
from kubeprov.config import ProvisionConfig, get_config, set_config
from kubeprov.exceptions import ConfigError
from kubeprov.logging import setup_logging
from kubeprov.modules.detector import detect_cluster

app = typer.Typer(help="kubeprov - kubeadm cluster provisioning.")

logger = logging.getLogger("kubeprov.cli")

# Add all command groups
app.add_typer(run.app, name="run")
app.add_typer(reset.app, name="reset")
app.add_typer(join.app, name="join")
app.add_typer(status.app, name="status")
app.add_typer(configure.app, name="config")


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to a config file"),
):
    """kubeprov - kubeadm cluster provisioning."""
    try:
        settings = ProvisionConfig.load(config)
    except ConfigError as e:
        typer.echo(f"[ERROR] {e}", err=True)
        raise typer.Exit(code=1)
    set_config(settings)
    setup_logging(
        debug=debug,
        log_file=settings.logging.file,
        level=settings.logging.level,
        max_size_mb=settings.logging.max_size_mb,
        backup_count=settings.logging.backup_count,
    )
    if debug:
        logger.debug("Debug mode enabled")


@app.command("detect")
def detect():
    """Report whether a control plane already exists on this host."""
    with common.cli_errors():
        result = detect_cluster(common.get_executor(), get_config().paths)
    if not result.existing:
        typer.echo("No existing cluster found")
        return
    typer.echo("Existing cluster found:")
    for signal in result.signals:
        typer.echo(f"  - {signal}")


if __name__ == "__main__":
    app()
