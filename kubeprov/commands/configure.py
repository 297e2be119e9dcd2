from pathlib import Path

import typer
import yaml

from kubeprov.config import DEFAULT_CONFIG_PATHS, ProvisionConfig, get_config
from kubeprov.exceptions import ConfigError

app = typer.Typer(help="Inspect and manage kubeprov configuration.")


@app.command("show")
def show_config():
    """Print the effective configuration as YAML."""
    data = get_config().model_dump(mode="json", exclude_none=True)
    typer.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), nl=False)


@app.command("init")
def init_config(
    path: Path = typer.Option(DEFAULT_CONFIG_PATHS[0], "--path", "-p", help="Where to write the config file"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing file"),
):
    """Write a config file populated with the defaults."""
    target = path.expanduser()
    if target.exists() and not overwrite:
        typer.echo(f"Config file already exists: {target} (use --overwrite to replace it)", err=True)
        raise typer.Exit(code=1)
    written = ProvisionConfig().save(target)
    typer.echo(f"Configuration written to {written}")


@app.command("validate")
def validate_config(path: Path = typer.Argument(..., help="Config file to check")):
    """Check a config file without running anything."""
    try:
        ProvisionConfig.load(path)
    except ConfigError as e:
        typer.echo(f"Invalid: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"{path}: OK")
