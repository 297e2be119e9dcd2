import typer

from kubeprov.modules.models import ExistingClusterAction, NodeRole
from . import common

app = typer.Typer(help="Provision this host as a cluster node.")


def _run(role: NodeRole) -> None:
    with common.cli_errors():
        ctx = common.get_provisioner().run(role)
    if ctx.action == ExistingClusterAction.ABORT:
        raise typer.Exit(code=0)


@app.command("master")
def run_master():
    """Prepare this host and initialize (or reuse) a control plane."""
    _run(NodeRole.MASTER)


@app.command("worker")
def run_worker():
    """Prepare this host to join an existing cluster."""
    _run(NodeRole.WORKER)
