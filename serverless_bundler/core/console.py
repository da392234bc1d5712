import sys


# ANSI Escape Codes for Colors
class Color:
    BLUE = "\033[94m"
    GREEN = "\033[92m"
    RED = "\033[91m"
    BOLD = "\033[1m"
    END = "\033[0m"


def _colorize(color: str, msg: str, stream) -> str:
    if not getattr(stream, "isatty", lambda: False)():
        return msg
    return f"{color}{msg}{Color.END}"


def success(msg: str):
    print(_colorize(Color.GREEN, msg, sys.stdout))


def error(msg: str):
    print(_colorize(Color.RED, msg, sys.stderr), file=sys.stderr)


def step(msg: str):
    print(_colorize(Color.BLUE + Color.BOLD, f"-> {msg}", sys.stdout))
