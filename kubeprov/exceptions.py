"""Exception hierarchy for kubeprov."""
from typing import List, Optional


class KubeprovError(Exception):
    """Base class for all kubeprov errors."""

    exit_code: int = 1


class ConfigError(KubeprovError):
    """Invalid or unreadable configuration."""
    pass


class NotRootError(KubeprovError):
    """The workflow needs an effective UID of 0."""

    def __init__(self, message: str = "Please run as root or with sudo"):
        super().__init__(message)


class PreflightError(KubeprovError):
    """An OS preparation step could not be applied."""
    pass


class ClusterStateError(KubeprovError):
    """The host is in a state the workflow cannot continue from."""
    pass


class CommandError(KubeprovError):
    """An external command exited with a non-zero status."""

    def __init__(self, args: List[str], returncode: int, stderr: Optional[str] = None):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        message = f"Command '{' '.join(self.args_list)}' failed with exit code {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)

    @property
    def exit_code(self) -> int:
        return self.returncode if self.returncode > 0 else 1
