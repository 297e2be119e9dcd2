"""Control plane bootstrap: kubeadm init, kubeconfig distribution, API readiness."""
import logging
import time
from typing import Callable, List, Mapping

from kubeprov.config import ProvisionConfig
from kubeprov.logging import step
from kubeprov.utils import write_file
from .executor import CommandExecutor
from .host import kubeconfig_targets
from .models import WorkflowContext

logger = logging.getLogger("kubeprov.bootstrap")

DEFAULT_API_PORT = 6443
INIT_OUTPUT_TAIL = 15


def kubeadm_init_args(ip_addr: str, pod_network_cidr: str, api_port: int = DEFAULT_API_PORT) -> List[str]:
    """The host's primary IP is both the advertise address and the control plane endpoint.

    A non-default API port is passed as the bind port and added to the endpoint.
    """
    endpoint = ip_addr if api_port == DEFAULT_API_PORT else f"{ip_addr}:{api_port}"
    args = [
        "kubeadm", "init",
        f"--pod-network-cidr={pod_network_cidr}",
        f"--apiserver-advertise-address={ip_addr}",
        f"--control-plane-endpoint={endpoint}",
    ]
    if api_port != DEFAULT_API_PORT:
        args.append(f"--apiserver-bind-port={api_port}")
    return args


class BootstrapDriver:
    """Runs ``kubeadm init`` once and makes the result usable with kubectl."""

    def __init__(self, executor: CommandExecutor, config: ProvisionConfig,
                 environ: Mapping[str, str], sleep: Callable[[float], None] = time.sleep):
        self.executor = executor
        self.config = config
        self.paths = config.paths
        self.environ = environ
        self.sleep = sleep

    @property
    def kubectl(self) -> List[str]:
        return ["kubectl", f"--kubeconfig={self.paths.admin_conf}"]

    def init_control_plane(self, ctx: WorkflowContext) -> None:
        """Run kubeadm init; a non-zero exit propagates as CommandError."""
        step(logger, "Initializing Kubernetes control plane...")
        logger.info(f"Using IP address: {ctx.ip_addr}")
        logger.info("Initializing cluster... This may take a few minutes...")

        kubernetes = self.config.kubernetes
        args = kubeadm_init_args(ctx.ip_addr, kubernetes.pod_network_cidr, kubernetes.api_port)
        try:
            result = self.executor.run(args, log_file=self.paths.init_log)
        finally:
            if self.paths.init_log.exists():
                ctx.add_artifact(self.paths.init_log)
        for line in result.stdout.splitlines()[-INIT_OUTPUT_TAIL:]:
            logger.info(line)
        logger.info(f"kubeadm init output saved to {self.paths.init_log}")

    def setup_kubeconfig(self, ctx: WorkflowContext) -> None:
        """Copy admin.conf to the effective user and the sudo user, backing up older copies."""
        step(logger, "Setting up kubeconfig...")
        admin_conf = self.paths.admin_conf.read_text()

        for target in kubeconfig_targets(self.environ, self.paths.home_root):
            target.kube_dir.mkdir(parents=True, exist_ok=True)
            if write_file(target.config_path, admin_conf, mode=0o600):
                logger.info(f"Kubeconfig written to {target.config_path}")
            else:
                logger.info(f"Kubeconfig at {target.config_path} already current")
            if target.chown:
                self.executor.run(["chown", "-R", f"{target.user}:{target.user}", str(target.kube_dir)])
                logger.info(f"Kubeconfig also configured for user: {target.user}")
            ctx.add_artifact(target.config_path)

    def install_bash_completion(self) -> None:
        result = self.executor.run(["kubectl", "completion", "bash"], check=False)
        if not result.ok:
            logger.warning("Could not generate kubectl bash completion")
            return
        try:
            write_file(self.paths.bash_completion, result.stdout, backup=False)
        except OSError as e:
            logger.warning(f"Could not write {self.paths.bash_completion}: {e}")

    def wait_for_api(self) -> bool:
        """Poll the API server's readyz endpoint; never fails the run."""
        attempts = self.config.readiness.attempts
        interval = self.config.readiness.interval
        logger.info("Waiting for the API server to become reachable...")

        for attempt in range(1, attempts + 1):
            if self.executor.succeeds([*self.kubectl, "get", "--raw=/readyz"]):
                logger.info("API server is ready")
                return True
            logger.debug(f"API server not ready (attempt {attempt}/{attempts})")
            if attempt < attempts:
                self.sleep(interval)

        logger.warning(f"API server not ready after {attempts} attempts, continuing anyway")
        return False
