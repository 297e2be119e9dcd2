"""OS preparation required before kubeadm can run.

Every step converges the host to a fixed target state and is safe to re-run:
swap entries already commented out stay as they are, firewall ports already
open are not added again, and config files are only rewritten when their
content differs.
"""

import logging
import re
from typing import List

from kubeprov.config import ProvisionConfig
from kubeprov.exceptions import PreflightError
from kubeprov.logging import step
from kubeprov.utils import write_file
from .executor import CommandExecutor
from .models import NodeRole, OsFamily
from .packages import PackageManager

logger = logging.getLogger("kubeprov.preflight")

MASTER_PORTS = [
    "6443/tcp",         # Kubernetes API server
    "2379-2380/tcp",    # etcd server client API
    "10250/tcp",        # Kubelet API
    "10251/tcp",        # kube-scheduler
    "10252/tcp",        # kube-controller-manager
    "10255/tcp",        # Read-only Kubelet API
    "8472/udp",         # VXLAN
    "179/tcp",          # Calico BGP
]

WORKER_PORTS = [
    "10250/tcp",        # Kubelet API
    "30000-32767/tcp",  # NodePort Services
    "8472/udp",         # VXLAN
    "179/tcp",          # Calico BGP
]

KERNEL_MODULES = ["overlay", "br_netfilter"]

SYSCTL_SETTINGS = {
    "net.bridge.bridge-nf-call-iptables": "1",
    "net.bridge.bridge-nf-call-ip6tables": "1",
    "net.ipv4.ip_forward": "1",
}

_SWAP_FIELD = re.compile(r"\sswap\s")
_SELINUX_ENFORCING = re.compile(r"^SELINUX=enforcing$", re.MULTILINE)


def comment_swap_entries(fstab: str) -> str:
    """Comment out active swap lines in an fstab; commented lines are left alone."""
    lines = []
    for line in fstab.splitlines(keepends=True):
        if not line.lstrip().startswith("#") and _SWAP_FIELD.search(line):
            line = "#" + line
        lines.append(line)
    return "".join(lines)


def set_selinux_permissive(config: str) -> str:
    return _SELINUX_ENFORCING.sub("SELINUX=permissive", config)


def render_modules_load() -> str:
    return "".join(f"{module}\n" for module in KERNEL_MODULES)


def render_sysctl() -> str:
    width = max(len(k) for k in SYSCTL_SETTINGS)
    return "".join(f"{key:<{width}} = {value}\n" for key, value in SYSCTL_SETTINGS.items())


def ports_for(role: NodeRole, api_port: int = 6443) -> List[str]:
    """Firewall ports for a role; the master list carries the configured API port."""
    if role != NodeRole.MASTER:
        return WORKER_PORTS
    return [f"{api_port}/tcp" if port == "6443/tcp" else port for port in MASTER_PORTS]


class Preflight:
    """Applies the OS preconditions for a node role."""

    def __init__(self, executor: CommandExecutor, config: ProvisionConfig,
                 packages: PackageManager, role: NodeRole):
        self.executor = executor
        self.config = config
        self.paths = config.paths
        self.packages = packages
        self.role = role

    def run(self) -> None:
        """Run all preflight steps in order; the first failure propagates."""
        step(logger, "Updating system packages...")
        self.packages.update_system()
        self.packages.install_base_packages()

        step(logger, "Disabling swap...")
        self.disable_swap()

        step(logger, "Configuring SELinux...")
        self.configure_selinux()

        step(logger, f"Configuring firewall for {self.role.value} node...")
        self.configure_firewall()

        step(logger, "Loading required kernel modules...")
        self.load_kernel_modules()

        step(logger, "Configuring sysctl parameters...")
        self.apply_sysctl()

    def disable_swap(self) -> None:
        self.executor.run(["swapoff", "-a"])

        fstab = self.paths.fstab
        if fstab.exists():
            original = fstab.read_text()
            updated = comment_swap_entries(original)
            if updated != original:
                write_file(fstab, updated)
                logger.info(f"Commented out swap entries in {fstab}")
        else:
            logger.warning(f"{fstab} not found, skipping swap entry cleanup")

        if self.packages.family == OsFamily.FEDORA:
            self.executor.run(["systemctl", "mask", "swap.target"])

    def configure_selinux(self) -> None:
        if not self.executor.which("getenforce"):
            logger.info("SELinux tools not installed, skipping")
            return

        mode = self.executor.run(["getenforce"], check=False).stdout.strip()
        if mode.lower() == "enforcing":
            self.executor.run(["setenforce", "0"])
        else:
            logger.info(f"SELinux mode is {mode or 'unknown'}, leaving runtime mode unchanged")

        selinux_config = self.paths.selinux_config
        if selinux_config.exists():
            original = selinux_config.read_text()
            updated = set_selinux_permissive(original)
            if updated != original:
                write_file(selinux_config, updated)
                logger.info(f"Set SELINUX=permissive in {selinux_config}")

    def configure_firewall(self) -> None:
        if not self.executor.which("firewall-cmd"):
            logger.info("firewalld not installed, skipping firewall configuration")
            return
        if not self.executor.succeeds(["firewall-cmd", "--state"]):
            logger.warning("firewalld is not running, skipping firewall configuration")
            return

        added = []
        for port in ports_for(self.role, self.config.kubernetes.api_port):
            if self.executor.succeeds(["firewall-cmd", "--permanent", f"--query-port={port}"]):
                logger.debug(f"Port {port} already open")
                continue
            self.executor.run(["firewall-cmd", "--permanent", f"--add-port={port}"])
            added.append(port)

        if added:
            self.executor.run(["firewall-cmd", "--reload"])
            logger.info(f"Opened ports: {', '.join(added)}")
        else:
            logger.info("All required ports already open")

    def load_kernel_modules(self) -> None:
        write_file(self.paths.modules_load, render_modules_load())
        for module in KERNEL_MODULES:
            self.executor.run(["modprobe", module])

    def apply_sysctl(self) -> None:
        write_file(self.paths.sysctl_conf, render_sysctl())
        self.executor.run(["sysctl", "--system"])
        for key, expected in SYSCTL_SETTINGS.items():
            result = self.executor.run(["sysctl", "-n", key], check=False)
            if result.ok and result.stdout.strip() and result.stdout.strip() != expected:
                raise PreflightError(f"sysctl {key} is {result.stdout.strip()}, expected {expected}")
