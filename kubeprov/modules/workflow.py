"""Provisioning workflow for master and worker nodes.

Steps run strictly in sequence. Preflight, package installation and
``kubeadm init`` failures raise and end the run; the CNI apply, readiness
poll and status summary only warn.
"""
import logging
import os
import time
from typing import Any, Callable, Dict, Mapping, Optional

from kubeprov.config import ProvisionConfig
from kubeprov.exceptions import ClusterStateError
from kubeprov.logging import step
from .artifacts import JoinArtifactPublisher, write_worker_info
from .bootstrap import BootstrapDriver
from .detector import detect_cluster, resolve_existing_cluster
from .executor import CommandExecutor
from .host import detect_os_family, ensure_root, hostname, parse_os_release, primary_ip
from .models import ExistingClusterAction, NodeRole, OsFamily, WorkflowContext
from .network import install_network_plugin
from .packages import PackageManager, get_package_manager
from .preflight import Preflight
from .prompt import Prompter
from .reset import ClusterReset
from .runtime import install_container_runtime, install_kubernetes_components
from .status import cluster_summary, format_summary
from .worker import interactive_join

logger = logging.getLogger("kubeprov.workflow")


class KubeadmProvisioner:
    """Drives one provisioning run on the local host.

    Args:
        config: Effective configuration
        executor: Runs host commands
        prompter: Operator console
        environ: Environment used for user identity (defaults to os.environ)
        sleep: Sleep function for delays and retries
        require_root: Refuse to run without an effective UID of 0
        summarize: Returns a cluster summary for a kubeconfig path
    """

    def __init__(
        self,
        config: ProvisionConfig,
        executor: CommandExecutor,
        prompter: Prompter,
        environ: Optional[Mapping[str, str]] = None,
        sleep: Callable[[float], None] = time.sleep,
        require_root: bool = True,
        summarize: Callable[[str], Dict[str, Any]] = cluster_summary,
    ):
        self.config = config
        self.paths = config.paths
        self.executor = executor
        self.prompter = prompter
        self.environ = os.environ if environ is None else environ
        self.sleep = sleep
        self.require_root = require_root
        self.summarize = summarize

    def _banner(self, title: str) -> None:
        self.prompter.say("=" * 40)
        self.prompter.say(title)
        self.prompter.say("=" * 40)

    def _package_manager(self, ctx: WorkflowContext) -> PackageManager:
        ctx.os_family = detect_os_family(self.paths.os_release, self.config.os_family)
        distro = "ubuntu"
        if ctx.os_family == OsFamily.DEBIAN and self.paths.os_release.exists():
            distro = parse_os_release(self.paths.os_release.read_text()).get("ID", "ubuntu")
        logger.info(f"Detected {ctx.os_family.value} host")
        return get_package_manager(ctx.os_family, self.executor, self.paths, distro=distro)

    def prepare_host(self, ctx: WorkflowContext) -> None:
        """Preflight, container runtime and Kubernetes packages."""
        if self.require_root:
            ensure_root()
        packages = self._package_manager(ctx)
        Preflight(self.executor, self.config, packages, ctx.role).run()
        install_container_runtime(self.executor, packages, self.config)
        install_kubernetes_components(self.executor, packages, self.config)
        ctx.ip_addr = primary_ip(self.executor)
        ctx.hostname = hostname(self.executor)

    def decide_bootstrap(self, ctx: WorkflowContext) -> None:
        """Inspect the host for an existing control plane and record the decision."""
        step(logger, "Checking for an existing cluster...")
        ctx.detection = detect_cluster(self.executor, self.paths)
        if not ctx.detection.existing:
            logger.info("No existing cluster found")
            return

        ctx.action = resolve_existing_cluster(self.prompter, self.config.prompt, ctx.detection)
        if ctx.action == ExistingClusterAction.RESET:
            ClusterReset(self.executor, self.paths, self.environ).run()
        elif ctx.action == ExistingClusterAction.USE_EXISTING:
            if not self.paths.admin_conf.exists():
                raise ClusterStateError(
                    f"Existing control plane has no {self.paths.admin_conf}; "
                    "run 'kubeprov reset node' or restore it"
                )
            logger.info("Using the existing cluster, skipping initialization")
            ctx.skip_bootstrap = True

    def run_master(self) -> WorkflowContext:
        self._banner("Kubernetes Master Node Installation")
        ctx = WorkflowContext(role=NodeRole.MASTER)
        self.prepare_host(ctx)

        self.decide_bootstrap(ctx)
        if ctx.action == ExistingClusterAction.ABORT:
            logger.info("Aborted by operator")
            return ctx

        bootstrap = BootstrapDriver(self.executor, self.config, self.environ, sleep=self.sleep)
        if not ctx.skip_bootstrap:
            bootstrap.init_control_plane(ctx)
        bootstrap.setup_kubeconfig(ctx)
        bootstrap.install_bash_completion()
        ctx.api_ready = bootstrap.wait_for_api()

        ctx.cni_installed = install_network_plugin(self.executor, self.config, sleep=self.sleep)

        JoinArtifactPublisher(self.executor, self.config).publish(ctx)

        step(logger, "Verifying installation...")
        self.prompter.say(format_summary(self.summarize(str(self.paths.admin_conf))))
        self._master_summary(ctx)
        return ctx

    def _master_summary(self, ctx: WorkflowContext) -> None:
        self.prompter.say()
        self._banner("Master Node Setup Complete!")
        self.prompter.say()
        self.prompter.say("IMPORTANT: Save this join command!")
        self.prompter.say()
        self.prompter.say(ctx.join_command or "")
        self.prompter.say()
        self.prompter.say(f"Join command saved to: {self.paths.join_command}")
        self.prompter.say(f"Cluster info saved to: {self.paths.cluster_info}")
        if not ctx.cni_installed:
            logger.warning("The network plugin is not installed; nodes stay NotReady until it is applied")
        self.prompter.say()
        self.prompter.say("Useful Commands:")
        self.prompter.say("  kubectl get nodes              # List all nodes")
        self.prompter.say("  kubectl get pods -A            # List all pods")
        self.prompter.say("  kubectl cluster-info           # Display cluster info")
        self.prompter.say(f"  cat {self.paths.join_command}      # View join command")
        self.prompter.say()
        logger.info("Installation completed successfully!")
        logger.info("It may take a few minutes for all pods to be in Running state.")

    def run_worker(self) -> WorkflowContext:
        self._banner("Kubernetes Worker Node Installation")
        ctx = WorkflowContext(role=NodeRole.WORKER)
        self.prepare_host(ctx)

        write_worker_info(ctx, self.config)

        self.prompter.say()
        self._banner("Worker Node Setup Complete!")
        self.prompter.say(f"  IP Address: {ctx.ip_addr}")
        self.prompter.say(f"  Hostname: {ctx.hostname}")
        self.prompter.say()
        self.prompter.say("Next Step: Join the Cluster")
        self.prompter.say(f"  1. On the master node run: cat {self.paths.join_command}")
        self.prompter.say("  2. Run that command on this node")
        self.prompter.say("  3. Verify on the master node: kubectl get nodes")
        self.prompter.say()

        interactive_join(self.executor, self.prompter)
        logger.info("Worker node setup completed!")
        return ctx

    def run(self, role: NodeRole) -> WorkflowContext:
        if role == NodeRole.MASTER:
            return self.run_master()
        return self.run_worker()
