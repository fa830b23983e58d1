from datetime import datetime

# ---------------------------------------------------------
# Colors
# ---------------------------------------------------------

class Color:
    RESET = "\033[0m"
    GREEN = "\033[92m"
    CYAN = "\033[96m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    MAGENTA = "\033[95m"
    GREY = "\033[90m"


LEVELS = ("debug", "info", "warning", "error")

_settings = {"debug": False, "timestamps": False}


def configure(debug=None, timestamps=None):
    if debug is not None:
        _settings["debug"] = bool(debug)
    if timestamps is not None:
        _settings["timestamps"] = bool(timestamps)


def log(msg, color=Color.RESET, level="info"):
    if level == "debug" and not _settings["debug"]:
        return

    if level == "debug" and color == Color.RESET:
        color = Color.GREY

    if _settings["timestamps"]:
        now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"{color}[{now}] {msg}{Color.RESET}"
    else:
        line = f"{color}{msg}{Color.RESET}"

    try:
        print(line, flush=True)
    except (OSError, ValueError):
        # stdout gone (closed pipe, detached console)
        pass
