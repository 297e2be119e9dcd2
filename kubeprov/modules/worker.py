"""Joining a worker to an existing cluster."""
import logging
import shlex
from typing import List, Optional

from .executor import CommandExecutor
from .prompt import Prompter

logger = logging.getLogger("kubeprov.worker")


def parse_join_command(text: str) -> Optional[List[str]]:
    """Split a pasted join command; only ``kubeadm join`` is accepted.

    A leading ``sudo`` is dropped since the workflow already runs as root.
    """
    try:
        args = shlex.split(text.replace("\\\n", " "))
    except ValueError:
        return None
    if args and args[0] == "sudo":
        args = args[1:]
    if len(args) < 3 or args[0] != "kubeadm" or args[1] != "join":
        return None
    return args


def interactive_join(executor: CommandExecutor, prompter: Prompter) -> bool:
    """Offer to run the master's join command now.

    Returns:
        bool: True if the node joined the cluster
    """
    if not prompter.is_interactive():
        logger.info("You can join the cluster later by running the join command from the master node.")
        return False

    prompter.say()
    answer = prompter.read_line("Do you have the join command ready? (y/n): ").strip().lower()
    if answer not in ("y", "yes"):
        logger.info("You can join the cluster later by running the join command from the master node.")
        logger.warning("Don't forget to run the join command to complete the setup!")
        return False

    prompter.say("Please paste the join command and press Enter:")
    prompter.say("(Example: kubeadm join <MASTER-IP>:6443 --token <TOKEN> --discovery-token-ca-cert-hash sha256:<HASH>)")
    text = prompter.read_line("> ").strip()
    if not text:
        logger.error("No join command provided. You can join manually later.")
        return False

    args = parse_join_command(text)
    if args is None:
        logger.error("That does not look like a 'kubeadm join' command. You can join manually later.")
        return False

    logger.info("Joining the cluster...")
    executor.run(args)
    logger.info("Successfully joined the cluster!")
    return True
