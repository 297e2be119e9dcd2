"""CNI plugin installation."""
import logging
import time
from typing import Callable

from kubeprov.config import ProvisionConfig
from kubeprov.logging import step
from kubeprov.utils import retry_call
from .executor import CommandExecutor

logger = logging.getLogger("kubeprov.network")


def install_network_plugin(executor: CommandExecutor, config: ProvisionConfig,
                           sleep: Callable[[float], None] = time.sleep) -> bool:
    """Apply the Calico manifest with bounded, fixed-delay retries.

    Every non-zero exit is retried the same way; after the last attempt the
    failure is reported and the caller carries on.

    Returns:
        bool: True if the manifest was applied
    """
    network = config.network
    url = network.calico_manifest_url
    step(logger, f"Installing Calico network plugin ({network.calico_version})...")

    def apply() -> bool:
        result = executor.run(
            ["kubectl", f"--kubeconfig={config.paths.admin_conf}", "apply", "-f", url],
            check=False,
        )
        if not result.ok and result.stderr.strip():
            logger.debug(result.stderr.strip())
        return result.ok

    applied, attempts = retry_call(
        apply,
        attempts=network.apply_attempts,
        delay=network.retry_delay,
        sleep=sleep,
        description="kubectl apply",
    )
    if not applied:
        logger.error(f"Failed to install the network plugin after {attempts} attempts")
        logger.warning(f"Apply it manually later: kubectl apply -f {url}")
        return False

    logger.info(f"Network plugin applied (attempt {attempts}/{network.apply_attempts})")
    if network.settle_delay:
        logger.info("Waiting for Calico pods to start...")
        sleep(network.settle_delay)
    return True
