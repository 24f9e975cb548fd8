"""Terminal output helpers shared by drift commands."""
# ======================= STANDARDS ========================
from typing import Protocol
from dataclasses import dataclass
from pathlib import Path
import logging as log
import os

# ===================== THIRD-PARTIES ======================
from tuikit.textools import wrap_text, style_text as color
from tuikit.textools import transmit as _transmit, pathit

# ======================== LOCALS ==========================
from . import _constants as const
from ._constants import APP, DRIFT, GOOD, BAD, INFO, PROMPT
from ._constants import SPEED, HOLD, I


class MessageSink(Protocol):
    """Live region that buffers messages while it owns the terminal."""
    def add_message(self, msg: str, fg: str = PROMPT,
                    prfx: bool = True) -> None: ...
    def suspend(self) -> None: ...
    def resume(self) -> None: ...


_active_console: MessageSink | None = None
_console_stack: list[MessageSink | None] = []


def bind_console(console: MessageSink | None) -> None:
    global _active_console
    _active_console = console


def suspend_console() -> None:
    """Hand the terminal to a prompt; pair with resume_console."""
    _console_stack.append(_active_console)
    if _active_console is not None: _active_console.suspend()


def resume_console() -> None:
    if not _console_stack: return
    sink = _console_stack.pop()
    if sink is not None: sink.resume()


def wrap(text: str) -> str:
    return wrap_text(text, I, inline=True, order=APP)


def transmit(*text: object, fg: str = PROMPT,
             quiet: bool = False, prfx: bool = True) -> None:
    if quiet: return

    msg = " ".join(map(str, text))
    # Live status owns the terminal while a lookup is running.
    if _active_console is not None:
        _active_console.add_message(msg, fg=fg, prfx=prfx)
        return

    if const.PLAIN:
        print(f"{APP} {msg}" if prfx else msg)
        return

    if prfx: print(DRIFT, end="")
    _transmit(msg, speed=SPEED, hold=HOLD, hue=fg)


def get_log_dir(path: str) -> Path:
    target = os.path.abspath(path)
    if os.path.isfile(target): target = os.path.dirname(target)
    log_dir = Path(target) / const.LOG_DIR
    os.makedirs(log_dir, exist_ok=True)
    return log_dir


def configure_logging(log_dir: Path) -> None:
    """Attach the debug.log file handler to the drift logger once."""
    logger = log.getLogger("drift")
    logger.setLevel(log.DEBUG)
    if logger.handlers: return
    os.makedirs(log_dir, exist_ok=True)
    handler = log.FileHandler(str(Path(log_dir) / "debug.log"))
    fmt     = log.Formatter("drift: %(asctime)s - %(name)s - "
            + "%(levelname)s - %(message)s")
    handler.setFormatter(fmt)
    logger.addHandler(handler)


@dataclass
class Output:
    quiet: bool = False

    def success(self, msg: str) -> None:
        msg = msg if _active_console is not None else wrap(msg)
        transmit(msg, fg=GOOD, quiet=self.quiet)

    def info(self, msg: str, prefix: bool = True) -> None:
        msg = wrap(msg) if const.PLAIN else msg
        transmit(msg, fg=INFO, quiet=self.quiet, prfx=prefix)

    def warn(self, msg: str, fit: bool = True) -> None:
        if fit and _active_console is None: msg = wrap(msg)
        transmit(msg, fg=BAD)

    def key_value(self, key: str, value: object) -> None:
        label = f"{key}:".ljust(18)
        shown = "-" if value in (None, "") else str(value)
        if const.PLAIN:
            self.raw(f"  {label}{shown}")
            return
        self.raw(f"  {color(label, INFO)}{shown}")

    def raw(self, *args: object, **kwargs: object) -> None:
        if not self.quiet: print(*args, **kwargs)  # type: ignore[call-overload]


__all__ = [
    "Output",
    "bind_console",
    "resume_console",
    "suspend_console",
    "color",
    "configure_logging",
    "get_log_dir",
    "pathit",
    "transmit",
    "wrap",
]
