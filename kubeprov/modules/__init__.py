"""
Provisioning steps for kubeadm nodes.
"""
from .executor import CommandExecutor, CommandResult, SubprocessExecutor
from .models import (
    ClusterState,
    DetectionResult,
    ExistingClusterAction,
    NodeRole,
    OsFamily,
    WorkflowContext,
)
from .workflow import KubeadmProvisioner

__all__ = [
    'CommandExecutor',
    'CommandResult',
    'SubprocessExecutor',
    'ClusterState',
    'DetectionResult',
    'ExistingClusterAction',
    'NodeRole',
    'OsFamily',
    'WorkflowContext',
    'KubeadmProvisioner',
]
