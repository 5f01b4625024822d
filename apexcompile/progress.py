"""Progress reporting for compile runs.

ContainerCompiler reports to a Reporter while it stages members and polls
the async request. The base class ignores everything; ConsoleReporter
writes in-place progress lines to the shared rich console.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape

from apexcompile.utils import console as default_console


class Reporter:
    """No-op reporter."""

    def namespace(self, namespace: str) -> None:
        pass

    def inventory(self, classes: int, triggers: int) -> None:
        pass

    def staging(self, done: int, total: int) -> None:
        pass

    def staged(self, total: int) -> None:
        pass

    def compiling(self) -> None:
        pass

    def polling(self, state: Optional[str], tick: int) -> None:
        pass


class ConsoleReporter(Reporter):
    """Writes progress to a rich console, overwriting the current line."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or default_console

    def namespace(self, namespace: str) -> None:
        self.console.print(f"Using namespace: [bold]{escape(namespace)}[/bold]")

    def inventory(self, classes: int, triggers: int) -> None:
        self.console.print(f"Found {classes} classes and {triggers} triggers")

    def staging(self, done: int, total: int) -> None:
        self.console.print(f"  [{done}/{total}] Adding members...", end="\r", markup=False, highlight=False)

    def staged(self, total: int) -> None:
        self.console.print(f"  [{total}/{total}] Added all members [green]✓[/green]   ")

    def compiling(self) -> None:
        self.console.print("\nCompiling...")

    def polling(self, state: Optional[str], tick: int) -> None:
        dots = tick % 4
        label = state or "Pending"
        self.console.print(f"  {label}{'.' * dots}{' ' * (3 - dots)}   ", end="\r", markup=False, highlight=False)
