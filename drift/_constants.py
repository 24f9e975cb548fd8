"""Constants across drift."""


from argparse import Namespace

from tuikit.textools import style_text as color


CONFIG_FILE       = ".drift.yaml"
LOCAL_CONFIG_FILE = ".drift.local.yaml"
LOG_DIR           = "driftlog"
GOOD              = "green"
BAD               = "red"
PROMPT            = "yellow"
INFO              = "cyan"
SPEED             = 0.0075
HOLD              = 0.01
APP               = "[drift]"
DRIFT             = color(f"{APP} ", "magenta")
I                 = 8

# Output flags: initialized once per invocation by CLI. Behavioral
# switches (skip confirmations, interactivity) live on Session.
PLAIN   = False
DEBUG   = False
QUIET   = False
VERBOSE = False


def sync_runtime_flags(args: Namespace) -> None:
    """Synchronize output flags from parsed CLI args."""
    global PLAIN, DEBUG, QUIET, VERBOSE

    PLAIN   = bool(getattr(args, "plain", False))
    DEBUG   = bool(getattr(args, "debug", False))
    QUIET   = bool(getattr(args, "quiet", False))
    VERBOSE = bool(getattr(args, "verbose", False)
            or getattr(args, "debug", False))
