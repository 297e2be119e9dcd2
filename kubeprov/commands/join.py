import typer

from kubeprov.config import get_config
from kubeprov.modules.artifacts import JoinArtifactPublisher
from kubeprov.modules.host import ensure_root, primary_ip
from kubeprov.modules.models import NodeRole, WorkflowContext
from . import common

app = typer.Typer(help="Worker join artifacts.")


@app.command("command")
def join_command_cmd():
    """Create a fresh join token and rewrite the join command and cluster-info files."""
    config = get_config()
    with common.cli_errors():
        ensure_root()
        executor = common.get_executor()
        ctx = WorkflowContext(role=NodeRole.MASTER, ip_addr=primary_ip(executor))
        join_command = JoinArtifactPublisher(executor, config).publish(ctx)
    typer.echo(join_command)
