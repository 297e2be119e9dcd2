"""Facts about the local host: identity, addresses, distribution."""
import logging
import os
import pwd
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional

from kubeprov.exceptions import NotRootError, PreflightError
from .executor import CommandExecutor
from .models import OsFamily

logger = logging.getLogger("kubeprov.host")


@dataclass
class KubeconfigTarget:
    """A user that should receive a copy of the admin kubeconfig."""
    user: str
    home: Path
    chown: bool = False

    @property
    def kube_dir(self) -> Path:
        return self.home / ".kube"

    @property
    def config_path(self) -> Path:
        return self.kube_dir / "config"


def ensure_root() -> None:
    """Raise NotRootError unless running with an effective UID of 0."""
    if os.geteuid() != 0:
        raise NotRootError()


def primary_ip(executor: CommandExecutor) -> str:
    """Return the first address reported by ``hostname -I``."""
    output = executor.output(["hostname", "-I"])
    addresses = output.split()
    if not addresses:
        raise PreflightError("Could not determine the host's primary IP address")
    return addresses[0]


def hostname(executor: CommandExecutor) -> str:
    result = executor.run(["hostname"], check=False)
    name = result.stdout.strip()
    return name or socket.gethostname()


def parse_os_release(text: str) -> dict:
    """Parse ``/etc/os-release`` KEY=value lines."""
    info = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        info[key] = value.strip().strip('"').strip("'")
    return info


def detect_os_family(os_release: Path, override: Optional[str] = None) -> OsFamily:
    """Map the host distribution to the package manager family we support.

    Raises:
        PreflightError: If the distribution is neither Fedora-like nor Debian-like
    """
    if override:
        return OsFamily(override)

    try:
        info = parse_os_release(os_release.read_text())
    except OSError as e:
        raise PreflightError(f"Failed to read {os_release}: {e}") from e

    ids = [info.get("ID", "").lower()] + info.get("ID_LIKE", "").lower().split()
    if any(i in ("fedora", "rhel", "centos") for i in ids):
        return OsFamily.FEDORA
    if any(i in ("debian", "ubuntu") for i in ids):
        return OsFamily.DEBIAN
    raise PreflightError(f"Unsupported OS: {info.get('PRETTY_NAME') or info.get('ID') or 'unknown'}")


def _home_for(user: str, home_root: Path) -> Path:
    try:
        return Path(pwd.getpwnam(user).pw_dir)
    except KeyError:
        return home_root / user


def kubeconfig_targets(environ: Mapping[str, str], home_root: Path) -> List[KubeconfigTarget]:
    """Users whose ``~/.kube/config`` receives the admin kubeconfig.

    The effective user always gets a copy; the invoking user behind ``sudo``
    gets one too, owned by them.
    """
    home = Path(environ.get("HOME") or os.path.expanduser("~"))
    targets = [KubeconfigTarget(user=environ.get("USER", "root"), home=home)]

    sudo_user = environ.get("SUDO_USER")
    if sudo_user and sudo_user != "root":
        sudo_home = _home_for(sudo_user, home_root)
        if sudo_home != home:
            targets.append(KubeconfigTarget(user=sudo_user, home=sudo_home, chown=True))
    return targets
