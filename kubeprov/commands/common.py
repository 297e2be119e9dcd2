"""Shared plumbing for the command groups."""
import logging
from contextlib import contextmanager

import typer

from kubeprov.config import ProvisionConfig, get_config
from kubeprov.exceptions import KubeprovError
from kubeprov.modules.executor import CommandExecutor, SubprocessExecutor
from kubeprov.modules.prompt import ConsolePrompter, Prompter
from kubeprov.modules.workflow import KubeadmProvisioner

logger = logging.getLogger("kubeprov.cli")


def get_executor() -> CommandExecutor:
    return SubprocessExecutor()


def get_prompter(config: ProvisionConfig) -> Prompter:
    return ConsolePrompter(timeout=config.prompt.read_timeout)


def get_provisioner(config: ProvisionConfig = None) -> KubeadmProvisioner:
    config = config or get_config()
    return KubeadmProvisioner(config, get_executor(), get_prompter(config))


@contextmanager
def cli_errors():
    """Turn kubeprov errors into status lines and exit codes."""
    try:
        yield
    except KubeprovError as e:
        logger.debug("Command failed", exc_info=True)
        logger.error(str(e))
        raise typer.Exit(code=e.exit_code)
    except OSError as e:
        logger.debug("Command failed", exc_info=True)
        logger.error(str(e))
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        raise typer.Exit(code=130)
