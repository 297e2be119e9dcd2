"""Existing control plane detection and the operator decision that follows.

When a master run finds signs of an earlier ``kubeadm init`` the operator
picks between resetting the host, reusing the running control plane, or
aborting. The decision is an explicit state machine::

    AWAITING_CHOICE --"reset"--> AWAITING_RESET_CONFIRM --"YES"--> RESOLVED(RESET)
          |   ^                          |
          |   +------- anything else ----+
          +--"use"/"abort"--> RESOLVED(...)
          +--3 consecutive empty reads / 5 failed attempts--> RESOLVED(USE_EXISTING)

Without an interactive input stream the machine is never started and the
existing cluster is reused.
"""

import logging
from enum import Enum
from typing import Dict, Optional

from kubeprov.config import PathsConfig, PromptConfig
from .executor import CommandExecutor
from .models import ClusterState, DetectionResult, ExistingClusterAction
from .prompt import Prompter

logger = logging.getLogger("kubeprov.detector")

APISERVER_PROCESS = "kube-apiserver"

CHOICES: Dict[str, ExistingClusterAction] = {
    "1": ExistingClusterAction.RESET,
    "reset": ExistingClusterAction.RESET,
    "2": ExistingClusterAction.USE_EXISTING,
    "use": ExistingClusterAction.USE_EXISTING,
    "existing": ExistingClusterAction.USE_EXISTING,
    "use-existing": ExistingClusterAction.USE_EXISTING,
    "3": ExistingClusterAction.ABORT,
    "abort": ExistingClusterAction.ABORT,
    "exit": ExistingClusterAction.ABORT,
    "q": ExistingClusterAction.ABORT,
}

MENU = (
    "What would you like to do?\n"
    "  1) Reset the cluster and initialize a new one (DESTRUCTIVE)\n"
    "  2) Use the existing cluster (skip initialization)\n"
    "  3) Abort\n"
)
CHOICE_PROMPT = "Enter choice [1-3]: "


def detect_cluster(executor: CommandExecutor, paths: PathsConfig) -> DetectionResult:
    """Look for an admin kubeconfig, an API server manifest or a running API server."""
    signals = []
    if paths.admin_conf.exists():
        signals.append(f"admin kubeconfig found: {paths.admin_conf}")
    if paths.apiserver_manifest.exists():
        signals.append(f"API server manifest found: {paths.apiserver_manifest}")
    if executor.succeeds(["pgrep", "-f", APISERVER_PROCESS]):
        signals.append(f"{APISERVER_PROCESS} process is running")

    state = ClusterState.EXISTING_FOUND if signals else ClusterState.NO_CLUSTER
    logger.debug(f"Cluster detection: {state.value} {signals}")
    return DetectionResult(state=state, signals=signals)


class ResolverState(str, Enum):
    AWAITING_CHOICE = 'awaiting_choice'
    AWAITING_RESET_CONFIRM = 'awaiting_reset_confirm'
    RESOLVED = 'resolved'


class ExistingClusterResolver:
    """State machine turning operator input into an ExistingClusterAction.

    Feed each line read from the operator to ``handle``. Empty reads and
    invalid choices count as failed attempts; a cancelled reset
    confirmation counts too, so the prompt always terminates.
    """

    def __init__(self, max_attempts: int = 5, max_empty_reads: int = 3, confirmation: str = "YES"):
        self.max_attempts = max_attempts
        self.max_empty_reads = max_empty_reads
        self.confirmation = confirmation
        self.state = ResolverState.AWAITING_CHOICE
        self.action: Optional[ExistingClusterAction] = None
        self.failed_attempts = 0
        self.consecutive_empty = 0
        self.notice: Optional[str] = None
        self.reason: Optional[str] = None

    @classmethod
    def from_config(cls, prompt: PromptConfig) -> 'ExistingClusterResolver':
        return cls(
            max_attempts=prompt.max_attempts,
            max_empty_reads=prompt.max_empty_reads,
            confirmation=prompt.reset_confirmation,
        )

    @property
    def resolved(self) -> bool:
        return self.state == ResolverState.RESOLVED

    @property
    def prompt(self) -> str:
        if self.state == ResolverState.AWAITING_RESET_CONFIRM:
            return f"This will DELETE the existing cluster. Type {self.confirmation} to confirm: "
        return CHOICE_PROMPT

    def handle(self, line: Optional[str]) -> ResolverState:
        """Advance the machine with one read; None is treated as an empty read."""
        if self.resolved:
            raise RuntimeError("resolver already reached a decision")
        self.notice = None
        line = line or ""
        if self.state == ResolverState.AWAITING_CHOICE:
            self._on_choice(line)
        else:
            self._on_confirmation(line)
        return self.state

    def _on_choice(self, line: str) -> None:
        value = line.strip()
        if not value:
            self.failed_attempts += 1
            self.consecutive_empty += 1
            if self.consecutive_empty >= self.max_empty_reads:
                self._resolve(ExistingClusterAction.USE_EXISTING,
                              f"no input after {self.consecutive_empty} prompts")
            else:
                self._check_budget()
            return

        self.consecutive_empty = 0
        choice = CHOICES.get(value.lower())
        if choice is None:
            self.failed_attempts += 1
            self.notice = f"Invalid choice '{value}'. Please enter 1, 2 or 3."
            self._check_budget()
            return

        if choice == ExistingClusterAction.RESET:
            self.state = ResolverState.AWAITING_RESET_CONFIRM
            return
        self._resolve(choice, "operator choice")

    def _on_confirmation(self, line: str) -> None:
        if line.strip() == self.confirmation:
            self._resolve(ExistingClusterAction.RESET, "operator confirmed reset")
            return
        self.failed_attempts += 1
        self.state = ResolverState.AWAITING_CHOICE
        logger.warning("Reset cancelled.")
        self._check_budget()

    def _check_budget(self) -> None:
        if self.failed_attempts >= self.max_attempts:
            self._resolve(ExistingClusterAction.USE_EXISTING,
                          f"no valid choice after {self.failed_attempts} attempts")

    def _resolve(self, action: ExistingClusterAction, reason: str) -> None:
        self.state = ResolverState.RESOLVED
        self.action = action
        self.reason = reason


def resolve_existing_cluster(prompter: Prompter, prompt: PromptConfig,
                             detection: DetectionResult) -> ExistingClusterAction:
    """Ask the operator what to do with an existing control plane."""
    if not prompter.is_interactive():
        logger.warning("Existing cluster detected and no interactive terminal; using the existing cluster")
        return ExistingClusterAction.USE_EXISTING

    prompter.say("Existing Kubernetes cluster detected:")
    for signal in detection.signals:
        prompter.say(f"  - {signal}")
    prompter.say()
    prompter.say(MENU)

    resolver = ExistingClusterResolver.from_config(prompt)
    while not resolver.resolved:
        resolver.handle(prompter.read_line(resolver.prompt))
        if resolver.notice:
            logger.error(resolver.notice)

    if resolver.reason != "operator choice" and resolver.action == ExistingClusterAction.USE_EXISTING:
        logger.warning(f"Defaulting to the existing cluster ({resolver.reason})")
    logger.info(f"Selected action: {resolver.action.value}")
    return resolver.action
