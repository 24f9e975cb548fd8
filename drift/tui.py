from __future__ import annotations

# ======================= STANDARDS =======================
from contextlib import contextmanager
from collections.abc import Iterator
from types import TracebackType
from enum import Enum

# ==================== THIRD-PARTIES ======================
from rich.console import Console, RenderableType, Group
from rich.spinner import Spinner
from rich.panel import Panel
from rich.box import MINIMAL
from rich.live import Live
from rich.text import Text

# ======================== LOCALS =========================
from . import _constants as const
from . import utils


class LookupState(str, Enum):
    RUNNING = "running"
    DONE    = "done"
    FAIL    = "fail"


MARKS: dict[LookupState, tuple[str, str]] = {
    LookupState.DONE: ("✔", "green"),
    LookupState.FAIL: ("✖", "red"),
}


class LookupStatus:
    """
    Spinner on stderr while a blocking directory call runs.

    While active it is the bound console: messages emitted
    through `utils.transmit` are collected under the spinner
    instead of tearing the live region. Prompts pause it via
    `suspend`/`resume`.
    """

    def __init__(self, label: str, enabled: bool,
                 console: Console | None = None) -> None:
        self.label    = label
        self.enabled  = enabled
        self.state    = LookupState.RUNNING
        self.console  = console or Console(stderr=True)
        self.messages: list[tuple[str, str, bool]] = []
        self._live: Live | None = None

    def add_message(self, msg: str, fg: str = const.PROMPT,
                    prfx: bool = True) -> None:
        self.messages.append((msg, fg, prfx))
        if self._live: self._live.update(self._render())

    def _start(self) -> None:
        self._live = Live(self._render(), console=self.console,
                     refresh_per_second=10)
        self._live.start()
        utils.bind_console(self)

    def _stop(self, keep: bool = True) -> None:
        utils.bind_console(None)
        if self._live is None: return
        # a suspended region is erased; resume redraws it
        if keep: self._live.update(self._render())
        else: self._live.transient = True
        self._live.stop()
        self._live = None

    def __enter__(self) -> LookupStatus:
        if self.enabled: self._start()
        return self

    def __exit__(self, exc_type: type[BaseException] | None,
                 exc: BaseException | None,
                 tb: TracebackType | None) -> None:
        self.state = LookupState.FAIL if exc_type else LookupState.DONE
        if self.enabled: self._stop()

    def suspend(self) -> None:
        if self._live is not None: self._stop(keep=False)

    def resume(self) -> None:
        if self.enabled and self._live is None: self._start()

    def _render(self) -> RenderableType:
        if self.state in MARKS:
            mark, style = MARKS[self.state]
            head: RenderableType = Text(f"{mark} {self.label}", style=style)
        else: head = Spinner("dots", text=self.label)
        if not self.messages: return head

        body = Text()
        for j, (msg, fg, prfx) in enumerate(self.messages):
            if j: body.append("\n")
            if prfx: body.append(f"{const.APP} ", style="magenta")
            body.append(msg, style=fg)
        return Group(head, Panel(body, box=MINIMAL, padding=(0, 2)))


@contextmanager
def lookup_status(label: str, enabled: bool) -> Iterator[LookupStatus]:
    with LookupStatus(label, enabled) as status: yield status
