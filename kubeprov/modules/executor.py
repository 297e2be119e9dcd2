"""External command execution.

Every call to a host tool (package managers, systemctl, kubeadm, kubectl,
firewall-cmd ...) goes through a ``CommandExecutor`` so the workflow can be
driven by a fake in tests.
"""
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from kubeprov.exceptions import CommandError

logger = logging.getLogger("kubeprov.executor")


@dataclass
class CommandResult:
    """Outcome of a finished command."""
    args: List[str]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandExecutor:
    """Base executor; subclasses implement ``_execute`` and ``which``."""

    def run(
        self,
        args: Sequence[str],
        check: bool = True,
        input: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        log_file: Optional[Union[str, Path]] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run a command.

        Args:
            args: Command and arguments
            check: Raise CommandError on a non-zero exit status
            input: Text passed on stdin
            env: Extra environment variables
            log_file: Write the combined output to this file
            timeout: Seconds before the command is killed

        Returns:
            CommandResult: The finished command

        Raises:
            CommandError: If the command fails and check is True
        """
        args = [str(a) for a in args]
        logger.debug(f"$ {' '.join(args)}")
        result = self._execute(args, input=input, env=env, timeout=timeout)

        if log_file is not None:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                f.write(result.stdout)
                if result.stderr:
                    f.write(result.stderr)

        if not result.ok:
            if check:
                logger.error(f"Command exited {result.returncode}: {' '.join(args)}")
                raise CommandError(args, result.returncode, result.stderr)
            logger.debug(f"Command exited {result.returncode}: {' '.join(args)}")
        return result

    def succeeds(self, args: Sequence[str]) -> bool:
        """Return True when the command exits 0."""
        return self.run(args, check=False).ok

    def output(self, args: Sequence[str]) -> str:
        """Run a command that must succeed and return its stripped stdout."""
        return self.run(args).stdout.strip()

    def which(self, name: str) -> bool:
        raise NotImplementedError

    def _execute(self, args: List[str], input: Optional[str] = None,
                 env: Optional[Dict[str, str]] = None, timeout: Optional[float] = None) -> CommandResult:
        raise NotImplementedError


class SubprocessExecutor(CommandExecutor):
    """Runs commands on the local host with ``subprocess``."""

    def which(self, name: str) -> bool:
        return shutil.which(name) is not None

    def _execute(self, args: List[str], input: Optional[str] = None,
                 env: Optional[Dict[str, str]] = None, timeout: Optional[float] = None) -> CommandResult:
        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        try:
            completed = subprocess.run(
                args,
                input=input,
                capture_output=True,
                text=True,
                env=full_env,
                timeout=timeout,
            )
        except FileNotFoundError:
            logger.error(f"Command not found: {args[0]}")
            return CommandResult(args=args, returncode=127, stderr=f"{args[0]}: command not found")
        except subprocess.TimeoutExpired as e:
            logger.error(f"Command timed out after {timeout}s: {' '.join(args)}")
            stdout = e.stdout.decode() if isinstance(e.stdout, bytes) else (e.stdout or "")
            return CommandResult(args=args, returncode=124, stdout=stdout, stderr="timed out")

        return CommandResult(
            args=args,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
