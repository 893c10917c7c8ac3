from __future__ import annotations

import logging
import os
import sys
import threading
import weakref

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

if not hasattr(logging.Logger, "trace"):

    def _trace(self, msg, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, msg, args, **kwargs)

    logging.Logger.trace = _trace  # type: ignore[attr-defined]

DATE_FORMAT = "%H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(message)s"
PAGE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

# Library loggers that would flood the page log with per-request lines
PAGE_MUTED_LOGGERS = ("httpx", "httpcore", "uvicorn", "watchfiles", "asyncio")

_LEVEL_COLORS = {
    "TRACE": "\033[32m",
    "DEBUG": "\033[36m",
    "INFO": "\033[37m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[41m",
}
_RESET = "\033[0m"
_DIM = "\033[2m"

_trace_enabled = os.getenv("FLEETVIEW_TRACE", "0").strip().lower() in ("1", "true", "yes", "on")


def trace_enabled() -> bool:
    """Whether per-poll and per-request TRACE lines should be produced."""
    return _trace_enabled


def set_trace_enabled(enabled: bool) -> None:
    global _trace_enabled
    _trace_enabled = bool(enabled)


class AnsiColorFormatter(logging.Formatter):
    """`HH:MM:SS LEVEL message` lines; the level is colored when stderr is a tty."""

    def __init__(self, colored: bool = True) -> None:
        super().__init__(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT)
        self.colored = colored and sys.stderr.isatty()

    def formatMessage(self, record: logging.LogRecord) -> str:
        if not self.colored:
            return super().formatMessage(record)
        color = _LEVEL_COLORS.get(record.levelname, "")
        return (
            f"{_DIM}{record.asctime}{_RESET} "
            f"{color}{record.levelname}{_RESET} {record.message}"
        )


class PageLogFilter(logging.Filter):
    """Keep third-party chatter out of the page log."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not any(
            record.name == name or record.name.startswith(name + ".")
            for name in PAGE_MUTED_LOGGERS
        )


_page_logs: set[weakref.ref] = set()
_page_logs_lock = threading.Lock()


class NiceGuiLogHandler(logging.Handler):
    """Fan records out to the ui.log widget of every open fleet page."""

    def __init__(self, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.setFormatter(logging.Formatter(PAGE_FORMAT, DATE_FORMAT))
        self.addFilter(PageLogFilter())

    def emit(self, record: logging.LogRecord) -> None:
        with _page_logs_lock:
            refs = list(_page_logs)
        if not refs:
            return
        line = self.format(record)
        for ref in refs:
            widget = ref()
            try:
                if widget is None:
                    raise ReferenceError
                widget.push(line)
            except Exception:
                # Widget was collected or its client went away
                with _page_logs_lock:
                    _page_logs.discard(ref)


def attach_ui_log(log_widget) -> None:
    with _page_logs_lock:
        _page_logs.add(weakref.ref(log_widget))


def detach_ui_log(log_widget) -> None:
    with _page_logs_lock:
        _page_logs.discard(weakref.ref(log_widget))


def configure_logging(
    level: int = logging.INFO,
    use_color: bool = True,
    add_ui_handler: bool = True,
    trace: bool | None = None,
) -> logging.Logger:
    """
    Route log records to stderr and, optionally, to the page log widgets.

    Calling it again only adjusts levels. A TRACE level also turns per-poll
    trace lines on; `trace` forces them on or off.
    """
    if trace is not None:
        set_trace_enabled(trace)
    elif level <= TRACE:
        set_trace_enabled(True)

    root = logging.getLogger()
    root.setLevel(level)
    console = next((h for h in root.handlers if type(h) is logging.StreamHandler), None)
    if console is None:
        console = logging.StreamHandler(stream=sys.stderr)
        console.setFormatter(AnsiColorFormatter(colored=use_color))
        root.addHandler(console)
    console.setLevel(level)

    if add_ui_handler and not any(isinstance(h, NiceGuiLogHandler) for h in root.handlers):
        root.addHandler(NiceGuiLogHandler(level=max(level, logging.INFO)))
    return root
