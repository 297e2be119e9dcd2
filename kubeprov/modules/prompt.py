"""Operator input.

Reads go through a ``Prompter`` so the existing-cluster menu can be tested
with scripted input. A read that times out or hits end-of-file returns an
empty string.
"""

import select
import sys
from typing import Optional, TextIO

import typer


class Prompter:
    """Interface for operator interaction."""

    def is_interactive(self) -> bool:
        raise NotImplementedError

    def read_line(self, prompt: str) -> str:
        raise NotImplementedError

    def say(self, message: str = "", err: bool = False) -> None:
        raise NotImplementedError


class ConsolePrompter(Prompter):
    """Prompts on the controlling terminal with a per-read timeout."""

    def __init__(self, timeout: Optional[float] = 30.0, stream: Optional[TextIO] = None):
        self.timeout = timeout
        self.stream = stream or sys.stdin

    def is_interactive(self) -> bool:
        try:
            return self.stream.isatty()
        except (AttributeError, ValueError):
            return False

    def read_line(self, prompt: str) -> str:
        typer.echo(prompt, nl=False)
        if self.timeout is not None:
            ready, _, _ = select.select([self.stream], [], [], self.timeout)
            if not ready:
                typer.echo()
                return ""
        line = self.stream.readline()
        if not line:
            typer.echo()
            return ""
        return line.rstrip("\r\n")

    def say(self, message: str = "", err: bool = False) -> None:
        typer.echo(message, err=err)
