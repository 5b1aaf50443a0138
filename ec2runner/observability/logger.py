"""Drop-in replacement for loguru backed by stdlib logging + rich.

Usage (identical to loguru)::

    from ec2runner.observability.logger import logger

    log = logger.bind(component="aws-lifecycle")
    log.info("EC2 instance {id} is started", id=instance_id)
"""

from __future__ import annotations

import inspect
import logging
import os
import sys
from types import FrameType
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_root = logging.getLogger("ec2runner")


def _caller_frame() -> FrameType | None:
    """First frame outside this module; None where the interpreter has no frames."""
    frame = inspect.currentframe()
    while frame is not None and frame.f_globals.get("__name__") == __name__:
        frame = frame.f_back
    return frame


def _format_message(msg: str, args: tuple[object, ...], kwargs: dict[str, object]) -> str:
    if kwargs:
        return msg.format(**kwargs)
    if args:
        return msg.format(*args)
    return msg


class BoundLogger:
    __slots__ = ("_extras",)

    def __init__(self, extras: dict[str, object] | None = None) -> None:
        self._extras = extras or {}

    def bind(self, **kwargs: object) -> BoundLogger:
        return BoundLogger({**self._extras, **kwargs})

    def _log(self, level: int, message: str, /, *args: object, **kwargs: object) -> None:
        exc_info = kwargs.pop("exc_info", False)
        text = _format_message(message, args, kwargs)
        frame = _caller_frame()
        name = frame.f_globals.get("__name__", "ec2runner") if frame is not None else "ec2runner"
        lib_logger = logging.getLogger(name)
        if not lib_logger.isEnabledFor(level):
            return
        record = lib_logger.makeRecord(
            name=lib_logger.name,
            level=level,
            fn="",
            lno=0,
            msg=text,
            args=(),
            exc_info=None,
        )
        if frame is not None:
            record.pathname = frame.f_code.co_filename
            record.filename = os.path.basename(frame.f_code.co_filename)
            record.lineno = frame.f_lineno
            record.funcName = frame.f_code.co_name
        for k, v in self._extras.items():
            setattr(record, k, v)
        record.extras = self._extras  # type: ignore[attr-defined]
        if exc_info:
            record.exc_info = sys.exc_info()
        lib_logger.handle(record)

    def trace(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(TRACE, message, *args, **kwargs)

    def debug(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.ERROR, message, *args, **kwargs)

    def exception(self, message: str, /, *args: object, **kwargs: object) -> None:
        kwargs["exc_info"] = True
        self._log(logging.ERROR, message, *args, **kwargs)


# ─── Sinks ───────────────────────────────────────────────────────────


class GitHubActionsHandler(logging.StreamHandler):
    """Writes records as GitHub Actions workflow commands.

    Debug lines only show up in the job log when step debugging is enabled,
    error and warning lines are annotated in the run summary.
    """

    _COMMANDS = {
        TRACE: "debug",
        logging.DEBUG: "debug",
        logging.WARNING: "warning",
        logging.ERROR: "error",
        logging.CRITICAL: "error",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        command = self._COMMANDS.get(record.levelno)
        if command is None:
            return message
        # Workflow commands are single line; escape per the runner's rules.
        escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        return f"::{command}::{escaped}"


_handler_counter = 0
_handlers: dict[int, logging.Handler] = {}


def _make_file_handler(path: str, *, level: int) -> logging.Handler:
    handler = logging.FileHandler(path)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(levelname)-8s | "
        "%(name)s:%(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    return handler


def _make_console_handler(stream: TextIO, level: int) -> logging.Handler:
    handler = RichHandler(
        level=level,
        console=Console(file=stream),
        show_time=True,
        show_level=True,
        show_path=True,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    return handler


def _make_actions_handler(stream: TextIO, level: int) -> logging.Handler:
    handler = GitHubActionsHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


class LoguruCompat:
    def __init__(self) -> None:
        self._bound = BoundLogger()

    def bind(self, **kwargs: object) -> BoundLogger:
        return self._bound.bind(**kwargs)

    def trace(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.trace(message, *args, **kwargs)

    def debug(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.debug(message, *args, **kwargs)

    def info(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.info(message, *args, **kwargs)

    def warning(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.warning(message, *args, **kwargs)

    def error(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.error(message, *args, **kwargs)

    def exception(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.exception(message, *args, **kwargs)

    def remove(self, handler_id: int | None = None) -> None:
        if handler_id is None:
            for h in list(_handlers.values()):
                _root.removeHandler(h)
                h.close()
            _handlers.clear()
            return
        if h := _handlers.pop(handler_id, None):
            _root.removeHandler(h)
            h.close()

    def add(
        self,
        sink: str | TextIO,
        *,
        level: str = "DEBUG",
        github_actions: bool = False,
    ) -> int:
        global _handler_counter
        numeric_level = getattr(logging, level.upper(), logging.DEBUG)

        match sink:
            case str() as path:
                handler = _make_file_handler(path, level=numeric_level)
            case _ if github_actions:
                handler = _make_actions_handler(sink, numeric_level)
            case _:
                handler = _make_console_handler(sink, numeric_level)

        _root.addHandler(handler)
        _handler_counter += 1
        _handlers[_handler_counter] = handler
        return _handler_counter


logger = LoguruCompat()

_root.setLevel(TRACE)
_root.propagate = False
