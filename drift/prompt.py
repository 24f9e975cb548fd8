"""Interactive prompts (selection, yes/no, free text)."""
from __future__ import annotations

# ======================= STANDARDS =======================
from typing import Callable, Protocol, Sequence, TypeVar

# ==================== THIRD-PARTIES ======================
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.console import Console
from rich.table import Table

# ======================== LOCALS =========================
from .error_model import InteractiveCancelled
from .models import CancelToken
from . import utils


T = TypeVar("T")


class Prompter(Protocol):
    """Blocking prompt surface; raises InteractiveCancelled on abort."""
    def select_one(self, label: str, options: Sequence[str]) -> int: ...
    def confirm(self, question: str, default: bool = False) -> bool: ...
    def ask(self, label: str) -> str: ...


class ConsolePrompter:
    """Prompter drawing on stderr with rich."""

    def __init__(self, console: Console | None = None,
                 cancel: CancelToken | None = None) -> None:
        self.console = console or Console(stderr=True)
        self.cancel  = cancel or CancelToken()

    def _guard(self, read: Callable[[], T]) -> T:
        if self.cancel.cancelled:
            raise InteractiveCancelled(interrupted=True)
        utils.suspend_console()
        try: return read()
        except KeyboardInterrupt:
            self.cancel.cancel()
            self.console.print()
            raise InteractiveCancelled(interrupted=True) from None
        except EOFError:
            self.console.print()
            raise InteractiveCancelled() from None
        finally: utils.resume_console()

    def select_one(self, label: str, options: Sequence[str]) -> int:
        if not options: raise InteractiveCancelled()
        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column(justify="right", style="magenta")
        table.add_column(justify="left")
        for i, option in enumerate(options, start=1):
            table.add_row(f"{i}.", option)

        choices = [str(i) for i in range(1, len(options) + 1)]

        def read() -> int:
            self.console.print(f"[yellow]{utils.const.APP}[/] {label}")
            self.console.print(table)
            return IntPrompt.ask("Select", console=self.console,
                   choices=choices, show_choices=False, default=1)

        return int(self._guard(read)) - 1

    def confirm(self, question: str, default: bool = False) -> bool:
        return bool(self._guard(lambda: Confirm.ask(
            question, console=self.console, default=default,
        )))

    def ask(self, label: str) -> str:
        return str(self._guard(lambda: Prompt.ask(
            label, console=self.console, default="",
            show_default=False,
        )))
