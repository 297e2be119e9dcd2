"""Container runtime and Kubernetes package installation."""

import logging
import re

from kubeprov.config import ProvisionConfig
from kubeprov.logging import step
from kubeprov.utils import write_file
from .executor import CommandExecutor
from .packages import PackageManager

logger = logging.getLogger("kubeprov.runtime")

RUNTIME_SERVICE = "containerd"
RUNTIME_PACKAGE = "containerd.io"

_CGROUP_DRIVER = re.compile(r"SystemdCgroup = false")


def patch_cgroup_driver(config_toml: str) -> str:
    """Switch the runc cgroup driver to systemd, matching the kubelet."""
    return _CGROUP_DRIVER.sub("SystemdCgroup = true", config_toml)


def install_container_runtime(executor: CommandExecutor, packages: PackageManager,
                              config: ProvisionConfig) -> None:
    """Install containerd and regenerate its configuration.

    The default configuration is written on every run, so manual edits to
    config.toml are replaced (a timestamped backup is kept).
    """
    step(logger, "Installing containerd...")
    packages.add_docker_repo()
    packages.install([RUNTIME_PACKAGE])

    logger.info("Configuring containerd...")
    default_config = executor.output(["containerd", "config", "default"])
    patched = patch_cgroup_driver(default_config + "\n")
    if "SystemdCgroup = true" not in patched:
        logger.warning("SystemdCgroup setting not found in the default containerd config")
    write_file(config.paths.containerd_config, patched)

    executor.run(["systemctl", "restart", RUNTIME_SERVICE])
    executor.run(["systemctl", "enable", RUNTIME_SERVICE])
    state = executor.run(["systemctl", "is-active", RUNTIME_SERVICE], check=False).stdout.strip()
    logger.info(f"containerd is {state or 'unknown'}")


def install_kubernetes_components(executor: CommandExecutor, packages: PackageManager,
                                  config: ProvisionConfig) -> None:
    """Install kubelet, kubeadm and kubectl from pkgs.k8s.io and enable the kubelet."""
    step(logger, f"Installing Kubernetes components (v{config.kubernetes.version})...")
    packages.add_kubernetes_repo(config.kubernetes)
    packages.install_kubernetes()
    executor.run(["systemctl", "enable", "kubelet"])
