import os

import typer

from kubeprov.config import get_config
from kubeprov.modules.detector import detect_cluster
from kubeprov.modules.host import ensure_root
from kubeprov.modules.reset import ClusterReset
from . import common

app = typer.Typer(help="Tear down kubeadm state on this host.")


@app.command("node")
def reset_node_cmd(
    force: bool = typer.Option(False, "--force", "-f", help="Skip the confirmation prompt"),
):
    """
    Reset the control plane on this host.

    Stops the kubelet, runs kubeadm reset, removes PKI, etcd and CNI state
    and every admin kubeconfig copy, flushes NAT rules and restarts
    containerd.
    """
    config = get_config()
    with common.cli_errors():
        ensure_root()
        executor = common.get_executor()
        detection = detect_cluster(executor, config.paths)
        if not detection.existing and not force:
            typer.echo("No existing cluster found on this host, nothing to reset.")
            return
        for signal in detection.signals:
            typer.echo(f"  - {signal}")

        if not force:
            literal = config.prompt.reset_confirmation
            answer = typer.prompt(
                f"This will DELETE the cluster on this host. Type {literal} to confirm",
                default="",
                show_default=False,
            )
            if answer.strip() != literal:
                typer.echo("Reset cancelled.")
                raise typer.Exit(code=0)

        ClusterReset(executor, config.paths, os.environ).run()
