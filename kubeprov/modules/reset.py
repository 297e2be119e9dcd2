"""Destructive reset of a kubeadm control plane on the local host."""
import logging
from pathlib import Path
from typing import List, Mapping

from kubeprov.config import PathsConfig
from kubeprov.logging import step
from .executor import CommandExecutor
from .host import kubeconfig_targets
from .runtime import RUNTIME_SERVICE

logger = logging.getLogger("kubeprov.reset")


class ClusterReset:
    """Tears down kubeadm state so a fresh ``kubeadm init`` can run.

    The order is fixed: stop the kubelet, ``kubeadm reset``, delete PKI,
    etcd and CNI state plus every admin kubeconfig copy, flush the NAT
    table, restart the container runtime.
    """

    def __init__(self, executor: CommandExecutor, paths: PathsConfig, environ: Mapping[str, str]):
        self.executor = executor
        self.paths = paths
        self.environ = environ

    def state_paths(self) -> List[Path]:
        """Directories and files removed by the reset."""
        paths = [
            self.paths.pki_dir,
            self.paths.etcd_dir,
            self.paths.cni_conf_dir,
            self.paths.cni_state_dir,
        ]
        if self.paths.kubernetes_dir.exists():
            paths.extend(sorted(self.paths.kubernetes_dir.glob("*.conf")))
        else:
            paths.append(self.paths.admin_conf)
        for target in kubeconfig_targets(self.environ, self.paths.home_root):
            paths.append(target.config_path)
        return paths

    def run(self) -> None:
        step(logger, "Resetting existing Kubernetes cluster...")

        logger.info("Stopping kubelet...")
        result = self.executor.run(["systemctl", "stop", "kubelet"], check=False)
        if not result.ok:
            logger.warning(f"Could not stop kubelet (exit {result.returncode}), continuing")

        logger.info("Running kubeadm reset...")
        self.executor.run(["kubeadm", "reset", "-f"])

        logger.info("Removing cluster state...")
        for path in self.state_paths():
            self.executor.run(["rm", "-rf", str(path)])
            logger.debug(f"Removed {path}")

        logger.info("Flushing iptables NAT rules...")
        result = self.executor.run(["iptables", "-t", "nat", "-F"], check=False)
        if not result.ok:
            logger.warning(f"Failed to flush NAT rules (exit {result.returncode})")

        logger.info("Restarting container runtime...")
        self.executor.run(["systemctl", "restart", RUNTIME_SERVICE])

        logger.info("Cluster reset complete")
