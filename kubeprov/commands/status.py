from typing import Optional

import typer

from kubeprov.config import get_config
from kubeprov.modules.status import cluster_summary, format_summary

app = typer.Typer(help="Cluster health.")


@app.command("cluster")
def status_cluster(
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", "-k", help="Kubeconfig to use (default: admin.conf)"),
):
    """Show node readiness and pods that are not running."""
    path = kubeconfig or str(get_config().paths.admin_conf)
    summary = cluster_summary(path)
    typer.echo(format_summary(summary))
    if "error" in summary:
        raise typer.Exit(code=1)
