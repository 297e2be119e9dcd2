"""Configuration management for kubeprov.

Configuration is loaded from multiple sources with the following precedence:
1. Environment variables (``KUBEPROV_*``, a ``.env`` file is honoured)
2. Configuration file (``--config`` or the first existing default path)
3. Default values
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigError

logger = logging.getLogger("kubeprov.config")

# Load environment variables from .env file if it exists
load_dotenv()

DEFAULT_CONFIG_PATHS = [
    Path("/etc/kubeprov/config.yaml"),
    Path("~/.config/kubeprov/config.yaml"),
    Path("kubeprov.yaml"),
]


class KubernetesConfig(BaseModel):
    """Kubernetes packages and kubeadm settings."""
    version: str = Field(default="1.28", description="Kubernetes minor version for the package repository")
    pod_network_cidr: str = Field(default="10.244.0.0/16", description="Pod network CIDR passed to kubeadm init")
    api_port: int = Field(default=6443, description="Kubernetes API server port")

    @field_validator("version")
    @classmethod
    def strip_leading_v(cls, v: str) -> str:
        """Accept both '1.28' and 'v1.28'."""
        v = v.strip().lstrip("v")
        parts = v.split(".")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"expected a minor version like '1.28', got '{v}'")
        return v

    @property
    def rpm_repo_url(self) -> str:
        return f"https://pkgs.k8s.io/core:/stable:/v{self.version}/rpm/"

    @property
    def deb_repo_url(self) -> str:
        return f"https://pkgs.k8s.io/core:/stable:/v{self.version}/deb/"


class NetworkConfig(BaseModel):
    """CNI plugin installation settings."""
    calico_version: str = Field(default="v3.26.1", description="Calico release to apply")
    manifest_url: Optional[str] = Field(default=None, description="Override for the CNI manifest URL")
    apply_attempts: int = Field(default=3, ge=1, description="Attempts for kubectl apply of the manifest")
    retry_delay: float = Field(default=15.0, ge=0, description="Fixed delay between apply attempts in seconds")
    settle_delay: float = Field(default=10.0, ge=0, description="Wait after applying for the CNI pods to start")

    @property
    def calico_manifest_url(self) -> str:
        if self.manifest_url:
            return self.manifest_url
        return f"https://raw.githubusercontent.com/projectcalico/calico/{self.calico_version}/manifests/calico.yaml"


class ReadinessConfig(BaseModel):
    """API server readiness polling."""
    attempts: int = Field(default=10, ge=1, description="Number of readiness probes")
    interval: float = Field(default=10.0, ge=0, description="Seconds between probes")


class PromptConfig(BaseModel):
    """Existing-cluster prompt policy."""
    max_attempts: int = Field(default=5, ge=1, description="Failed attempts before falling back to the existing cluster")
    max_empty_reads: int = Field(default=3, ge=1, description="Consecutive empty reads before falling back")
    read_timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for operator input")
    reset_confirmation: str = Field(default="YES", min_length=1, description="Literal required to confirm a reset")


class PathsConfig(BaseModel):
    """Host paths read and written by the workflow."""
    admin_conf: Path = Path("/etc/kubernetes/admin.conf")
    kubernetes_dir: Path = Path("/etc/kubernetes")
    apiserver_manifest: Path = Path("/etc/kubernetes/manifests/kube-apiserver.yaml")
    pki_dir: Path = Path("/etc/kubernetes/pki")
    etcd_dir: Path = Path("/var/lib/etcd")
    cni_conf_dir: Path = Path("/etc/cni/net.d")
    cni_state_dir: Path = Path("/var/lib/cni")
    fstab: Path = Path("/etc/fstab")
    selinux_config: Path = Path("/etc/selinux/config")
    modules_load: Path = Path("/etc/modules-load.d/k8s.conf")
    sysctl_conf: Path = Path("/etc/sysctl.d/k8s.conf")
    containerd_config: Path = Path("/etc/containerd/config.toml")
    yum_repo: Path = Path("/etc/yum.repos.d/kubernetes.repo")
    apt_keyrings: Path = Path("/etc/apt/keyrings")
    apt_sources_dir: Path = Path("/etc/apt/sources.list.d")
    os_release: Path = Path("/etc/os-release")
    bash_completion: Path = Path("/etc/bash_completion.d/kubectl")
    init_log: Path = Path("/root/kubeadm-init.log")
    join_command: Path = Path("/root/join-command.sh")
    cluster_info: Path = Path("/root/cluster-info.txt")
    worker_info: Path = Path("/root/worker-node-info.txt")
    home_root: Path = Path("/home")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    file: Optional[str] = Field(default=None, description="Path to an audit log file")
    max_size_mb: int = Field(default=10, ge=1, description="Maximum log file size in MB before rotation")
    backup_count: int = Field(default=3, ge=0, description="Number of rotated log files to keep")

    @field_validator("level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{v}'")
        return v


class ProvisionConfig(BaseModel):
    """Top-level kubeprov configuration."""
    os_family: Optional[str] = Field(default=None, description="Force 'fedora' or 'debian' instead of reading os-release")
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    readiness: ReadinessConfig = Field(default_factory=ReadinessConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"extra": "ignore"}

    @field_validator("os_family")
    @classmethod
    def check_os_family(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ("fedora", "debian"):
            raise ValueError("os_family must be 'fedora' or 'debian'")
        return v

    @classmethod
    def load(cls, config_path: Optional[Union[str, Path]] = None) -> "ProvisionConfig":
        """Load configuration from file and environment variables."""
        config_data: Dict[str, Any] = {}

        if config_path:
            path = Path(config_path).expanduser().absolute()
            if not path.exists():
                raise ConfigError(f"Configuration file not found: {path}")
            config_data = cls._load_config_file(path)
        else:
            path = find_config_file()
            if path is not None:
                config_data = cls._load_config_file(path)

        apply_env_overrides(config_data, os.environ)
        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @classmethod
    def _load_config_file(cls, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file."""
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config format in {path}: expected a mapping, got {type(data).__name__}")
        logger.debug(f"Loaded configuration from {path}")
        return data

    def save(self, path: Union[str, Path]) -> Path:
        """Save configuration to a YAML file."""
        path = Path(path).expanduser().absolute()
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json", exclude_none=True)
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        path.chmod(0o600)
        return path


# (environment variable, section, key); section None means top level
ENV_OVERRIDES: List[Tuple[str, Optional[str], str]] = [
    ("KUBEPROV_OS_FAMILY", None, "os_family"),
    ("KUBEPROV_K8S_VERSION", "kubernetes", "version"),
    ("KUBEPROV_POD_CIDR", "kubernetes", "pod_network_cidr"),
    ("KUBEPROV_CALICO_VERSION", "network", "calico_version"),
    ("KUBEPROV_CNI_MANIFEST_URL", "network", "manifest_url"),
    ("KUBEPROV_CNI_ATTEMPTS", "network", "apply_attempts"),
    ("KUBEPROV_CNI_RETRY_DELAY", "network", "retry_delay"),
    ("KUBEPROV_READY_ATTEMPTS", "readiness", "attempts"),
    ("KUBEPROV_READY_INTERVAL", "readiness", "interval"),
    ("KUBEPROV_PROMPT_TIMEOUT", "prompt", "read_timeout"),
    ("KUBEPROV_LOG_LEVEL", "logging", "level"),
    ("KUBEPROV_LOG_FILE", "logging", "file"),
]


def apply_env_overrides(config_data: Dict[str, Any], environ) -> Dict[str, Any]:
    """Merge ``KUBEPROV_*`` variables into raw config data in place."""
    for env_name, section, key in ENV_OVERRIDES:
        value = environ.get(env_name)
        if value is None or value == "":
            continue
        if section is None:
            config_data[key] = value
        else:
            target = config_data.setdefault(section, {})
            if not isinstance(target, dict):
                raise ConfigError(f"Config section '{section}' must be a mapping")
            target[key] = value
    return config_data


def find_config_file() -> Optional[Path]:
    """Return the first default config path that exists."""
    for path in DEFAULT_CONFIG_PATHS:
        path = path.expanduser().absolute()
        if path.exists():
            return path
    return None


_config: Optional[ProvisionConfig] = None


def get_config(config_path: Optional[Union[str, Path]] = None) -> ProvisionConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = ProvisionConfig.load(config_path)
    return _config


def set_config(config: Optional[ProvisionConfig]) -> None:
    """Set (or clear, with None) the global configuration instance."""
    global _config
    _config = config
