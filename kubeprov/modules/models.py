"""Data models for the provisioning workflow."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class NodeRole(str, Enum):
    """Node roles in the cluster."""
    MASTER = 'master'
    WORKER = 'worker'


class OsFamily(str, Enum):
    """Supported host distributions, keyed by package manager."""
    FEDORA = 'fedora'
    DEBIAN = 'debian'


class ClusterState(str, Enum):
    """What the detector found on the host."""
    NO_CLUSTER = 'no_cluster'
    EXISTING_FOUND = 'existing_found'


class ExistingClusterAction(str, Enum):
    """Operator decision for a host that already runs a control plane."""
    RESET = 'reset'
    USE_EXISTING = 'use_existing'
    ABORT = 'abort'


@dataclass
class DetectionResult:
    """Result of inspecting the host for an existing control plane."""
    state: ClusterState
    signals: List[str] = field(default_factory=list)

    @property
    def existing(self) -> bool:
        return self.state == ClusterState.EXISTING_FOUND


@dataclass
class WorkflowContext:
    """State threaded through the steps of one provisioning run."""
    role: NodeRole
    ip_addr: str = ''
    hostname: str = ''
    os_family: Optional[OsFamily] = None
    detection: Optional[DetectionResult] = None
    action: Optional[ExistingClusterAction] = None
    skip_bootstrap: bool = False
    cni_installed: bool = False
    api_ready: bool = False
    kubernetes_version: str = 'Unknown'
    join_command: Optional[str] = None
    artifacts: List[Path] = field(default_factory=list)

    def add_artifact(self, path: Path) -> None:
        """Remember a file written during the run."""
        if path not in self.artifacts:
            self.artifacts.append(path)
