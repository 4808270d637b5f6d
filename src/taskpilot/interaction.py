"""User input for controllers that need a decision or a value.

Every method returns None when the user aborts (Ctrl-C or end of input);
controllers turn that into ``on_aborted``.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

import click
from rich.console import Console


class Prompter(ABC):

    @abstractmethod
    async def confirm(self, message: str) -> Optional[bool]:
        pass

    @abstractmethod
    async def select(self, message: str, options: Sequence[str]) -> Optional[int]:
        """Index of the chosen option."""
        pass

    @abstractmethod
    async def ask(self, label: str, default: Optional[str] = None) -> Optional[str]:
        pass


class ConsolePrompter(Prompter):
    """Prompts on the terminal with click, printing choices with rich.

    Prompts block the loop thread; Ctrl-C only reaches click as ``Abort``
    when input is read on the main thread.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    async def confirm(self, message: str) -> Optional[bool]:
        try:
            return click.confirm(message, default=True)
        except click.Abort:
            return None

    async def select(self, message: str, options: Sequence[str]) -> Optional[int]:
        self.console.print(f"\n[bold]{message}[/]")
        for i, option in enumerate(options, 1):
            self.console.print(f"  {i}. [cyan]{option}[/]")
        try:
            choice = click.prompt("Select", type=click.IntRange(1, len(options)))
        except click.Abort:
            return None
        return choice - 1

    async def ask(self, label: str, default: Optional[str] = None) -> Optional[str]:
        try:
            return click.prompt(label, default=default, show_default=default is not None)
        except click.Abort:
            return None


class ScriptedPrompter(Prompter):
    """Answers prompts from a fixed list, in order. None in the list aborts.

    Used for non-interactive runs (``--yes``) and tests.
    """

    def __init__(self, answers: Iterable[object] = (), default_confirm: Optional[bool] = None):
        self._answers: List[object] = list(answers)
        self.default_confirm = default_confirm
        self.asked: List[str] = []

    def _next(self, prompt: str) -> object:
        self.asked.append(prompt)
        if not self._answers:
            raise LookupError(f"No scripted answer left for prompt: {prompt}")
        return self._answers.pop(0)

    async def confirm(self, message: str) -> Optional[bool]:
        if not self._answers and self.default_confirm is not None:
            self.asked.append(message)
            return self.default_confirm
        answer = self._next(message)
        return None if answer is None else bool(answer)

    async def select(self, message: str, options: Sequence[str]) -> Optional[int]:
        answer = self._next(message)
        if answer is None:
            return None
        if isinstance(answer, str):
            return list(options).index(answer)
        return int(answer)

    async def ask(self, label: str, default: Optional[str] = None) -> Optional[str]:
        answer = self._next(label)
        return None if answer is None else str(answer)
