"""Operator-facing artifacts: the worker join command and the node info reports."""
import logging
from datetime import datetime
from typing import Optional

from kubeprov.config import PathsConfig, ProvisionConfig
from kubeprov.logging import step
from kubeprov.utils import write_file
from .executor import CommandExecutor
from .models import WorkflowContext

logger = logging.getLogger("kubeprov.artifacts")

DATE_FORMAT = "%a %b %d %H:%M:%S %Y"


def parse_server_version(output: str) -> Optional[str]:
    """Pick the ``Server Version`` line out of ``kubectl version`` output."""
    for line in output.splitlines():
        if line.strip().startswith("Server Version"):
            return line.strip()
    return None


def kubernetes_server_version(executor: CommandExecutor, paths: PathsConfig) -> str:
    result = executor.run(["kubectl", f"--kubeconfig={paths.admin_conf}", "version"], check=False)
    return parse_server_version(result.stdout) or "Unknown"


def render_cluster_info(ctx: WorkflowContext, paths: PathsConfig, now: datetime) -> str:
    return f"""Kubernetes Master Node Configuration
=====================================
Master Node IP: {ctx.ip_addr}
Installation Date: {now.strftime(DATE_FORMAT)}
Kubernetes Version: {ctx.kubernetes_version}

Join Command for Worker Nodes:
-------------------------------
{ctx.join_command or ''}

Configuration Files:
--------------------
- Kubeconfig: {paths.admin_conf}
- Join command: {paths.join_command}
- Init log: {paths.init_log}

Next Steps:
-----------
1. Wait for all pods to be in Running state:
   kubectl get pods -A

2. Verify node is Ready:
   kubectl get nodes

3. Use the join command above on worker nodes to add them to the cluster

4. Label worker nodes after they join:
   kubectl label node <worker-node-name> node-role.kubernetes.io/worker=worker
"""


def render_worker_info(ctx: WorkflowContext, paths: PathsConfig, now: datetime, api_port: int = 6443) -> str:
    return f"""Kubernetes Worker Node Configuration
=====================================
Worker Node IP: {ctx.ip_addr}
Worker Node Hostname: {ctx.hostname}
Installation Date: {now.strftime(DATE_FORMAT)}

Status:
-------
✓ System updated
✓ Swap disabled
✓ SELinux configured
✓ Firewall configured
✓ Kernel modules loaded
✓ Sysctl parameters set
✓ Containerd installed and running
✓ Kubernetes components installed (kubelet, kubeadm, kubectl)

Next Steps:
-----------
1. Get the join command from the master node:
   - SSH to the master node
   - Run: cat {paths.join_command}

2. Run the join command on this worker node:
   sudo kubeadm join <MASTER-IP>:{api_port} --token <TOKEN> \\
       --discovery-token-ca-cert-hash sha256:<HASH>

3. Verify on master node that this worker has joined:
   kubectl get nodes

4. Label this node (optional, run on master):
   kubectl label node {ctx.hostname} node-role.kubernetes.io/worker=worker

Troubleshooting:
----------------
- Check kubelet status: systemctl status kubelet
- Check kubelet logs: journalctl -u kubelet -f
- Check containerd status: systemctl status containerd
- Test connectivity to master: telnet <MASTER-IP> {api_port}
"""


class JoinArtifactPublisher:
    """Creates the worker join command and the master's cluster-info report.

    The join command is opaque text from ``kubeadm token create``; it is
    saved as-is.
    """

    def __init__(self, executor: CommandExecutor, config: ProvisionConfig):
        self.executor = executor
        self.paths = config.paths

    def create_join_command(self, ctx: WorkflowContext) -> str:
        step(logger, "Generating join command for worker nodes...")
        join_command = self.executor.output(["kubeadm", "token", "create", "--print-join-command"])
        write_file(self.paths.join_command, join_command + "\n", mode=0o755, backup=False)
        ctx.join_command = join_command
        ctx.add_artifact(self.paths.join_command)
        logger.info(f"Join command saved to: {self.paths.join_command}")
        return join_command

    def write_cluster_info(self, ctx: WorkflowContext, now: Optional[datetime] = None) -> None:
        ctx.kubernetes_version = kubernetes_server_version(self.executor, self.paths)
        report = render_cluster_info(ctx, self.paths, now or datetime.now())
        write_file(self.paths.cluster_info, report, backup=False)
        ctx.add_artifact(self.paths.cluster_info)
        logger.info(f"Cluster info saved to: {self.paths.cluster_info}")

    def publish(self, ctx: WorkflowContext, now: Optional[datetime] = None) -> str:
        join_command = self.create_join_command(ctx)
        self.write_cluster_info(ctx, now)
        return join_command


def write_worker_info(ctx: WorkflowContext, config: ProvisionConfig, now: Optional[datetime] = None) -> None:
    report = render_worker_info(ctx, config.paths, now or datetime.now(), api_port=config.kubernetes.api_port)
    write_file(config.paths.worker_info, report, backup=False)
    ctx.add_artifact(config.paths.worker_info)
    logger.info(f"Configuration details saved to: {config.paths.worker_info}")
