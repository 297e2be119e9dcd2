"""Package manager abstraction for dnf (Fedora) and apt (Ubuntu/Debian) hosts."""

import logging
from pathlib import Path
from typing import List

from kubeprov.config import KubernetesConfig, PathsConfig
from kubeprov.utils import write_file
from .executor import CommandExecutor
from .models import OsFamily

logger = logging.getLogger("kubeprov.packages")

KUBERNETES_PACKAGES = ["kubelet", "kubeadm", "kubectl"]


class PackageManager:
    """Common interface for the distribution package managers."""

    family: OsFamily
    base_packages: List[str] = []

    def __init__(self, executor: CommandExecutor, paths: PathsConfig):
        self.executor = executor
        self.paths = paths

    def update_system(self) -> None:
        raise NotImplementedError

    def install(self, packages: List[str], extra_args: List[str] = None) -> None:
        raise NotImplementedError

    def add_docker_repo(self) -> None:
        raise NotImplementedError

    def add_kubernetes_repo(self, kubernetes: KubernetesConfig) -> None:
        raise NotImplementedError

    def install_kubernetes(self) -> None:
        raise NotImplementedError

    def install_base_packages(self) -> None:
        self.install(self.base_packages)


class DnfPackageManager(PackageManager):
    """dnf on Fedora Server."""

    family = OsFamily.FEDORA
    base_packages = ["curl", "wget", "vim", "net-tools"]
    docker_repo_url = "https://download.docker.com/linux/fedora/docker-ce.repo"

    def update_system(self) -> None:
        self.executor.run(["dnf", "update", "-y"])

    def install(self, packages: List[str], extra_args: List[str] = None) -> None:
        self.executor.run(["dnf", "install", "-y", *packages, *(extra_args or [])])

    def add_docker_repo(self) -> None:
        self.executor.run(["dnf", "config-manager", "--add-repo", self.docker_repo_url])

    def add_kubernetes_repo(self, kubernetes: KubernetesConfig) -> None:
        url = kubernetes.rpm_repo_url
        content = (
            "[kubernetes]\n"
            "name=Kubernetes\n"
            f"baseurl={url}\n"
            "enabled=1\n"
            "gpgcheck=1\n"
            f"gpgkey={url}repodata/repomd.xml.key\n"
            "exclude=kubelet kubeadm kubectl cri-tools kubernetes-cni\n"
        )
        write_file(self.paths.yum_repo, content)

    def install_kubernetes(self) -> None:
        # The repo excludes these packages so routine updates leave them alone
        self.install(KUBERNETES_PACKAGES, extra_args=["--disableexcludes=kubernetes"])


class AptPackageManager(PackageManager):
    """apt on Ubuntu and Debian."""

    family = OsFamily.DEBIAN
    base_packages = ["apt-transport-https", "ca-certificates", "curl", "gnupg", "lsb-release"]
    env = {"DEBIAN_FRONTEND": "noninteractive"}

    def __init__(self, executor: CommandExecutor, paths: PathsConfig, distro: str = "ubuntu"):
        super().__init__(executor, paths)
        self.distro = distro if distro in ("ubuntu", "debian") else "ubuntu"

    def update_system(self) -> None:
        self.executor.run(["apt-get", "update", "-y"], env=self.env)
        self.executor.run(["apt-get", "upgrade", "-y"], env=self.env)

    def install(self, packages: List[str], extra_args: List[str] = None) -> None:
        self.executor.run(["apt-get", "install", "-y", *packages, *(extra_args or [])], env=self.env)

    def _refresh(self) -> None:
        self.executor.run(["apt-get", "update", "-y"], env=self.env)

    def _install_keyring(self, url: str, name: str) -> Path:
        """Fetch an armored key and store it dearmored under the keyrings dir."""
        keyrings = self.paths.apt_keyrings
        self.executor.run(["install", "-m", "0755", "-d", str(keyrings)])
        key = self.executor.output(["curl", "-fsSL", url])
        keyring = keyrings / name
        self.executor.run(["gpg", "--batch", "--yes", "--dearmor", "-o", str(keyring)], input=key + "\n")
        if keyring.exists():
            keyring.chmod(0o644)
        return keyring

    def add_docker_repo(self) -> None:
        base = f"https://download.docker.com/linux/{self.distro}"
        keyring = self._install_keyring(f"{base}/gpg", "docker.gpg")
        arch = self.executor.output(["dpkg", "--print-architecture"])
        codename = self.executor.output(["lsb_release", "-cs"])
        line = f"deb [arch={arch} signed-by={keyring}] {base} {codename} stable\n"
        write_file(self.paths.apt_sources_dir / "docker.list", line)
        self._refresh()

    def add_kubernetes_repo(self, kubernetes: KubernetesConfig) -> None:
        url = kubernetes.deb_repo_url
        keyring = self._install_keyring(f"{url}Release.key", "kubernetes-apt-keyring.gpg")
        line = f"deb [signed-by={keyring}] {url} /\n"
        write_file(self.paths.apt_sources_dir / "kubernetes.list", line)
        self._refresh()

    def install_kubernetes(self) -> None:
        self.install(KUBERNETES_PACKAGES)
        self.executor.run(["apt-mark", "hold", *KUBERNETES_PACKAGES])


def get_package_manager(family: OsFamily, executor: CommandExecutor, paths: PathsConfig,
                        distro: str = "ubuntu") -> PackageManager:
    """Return the package manager for a host family."""
    if family == OsFamily.FEDORA:
        return DnfPackageManager(executor, paths)
    return AptPackageManager(executor, paths, distro=distro)
