import inspect
import json
import logging
import string
import textwrap
import typing as t

import pygments
from pygments.formatters import Terminal256Formatter
from pygments.lexers.data import JsonLexer  # pyright: ignore [reportMissingTypeStubs]
from pygments.style import Style

import scoresync.lib.json as sjson

from .style import LogStyle

ReservedKeys = {
    "exception",
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "id",
    "levelname",
    "levelno",
    "lineno",
    "log_color",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
}


class ExtraFormatter(logging.Formatter):
    """
    Wraps a `base` formatter and appends the record's `extra=` fields as JSON,
    highlighted when the handler writes to a terminal:

        2026-10-18 09:12:44 INFO scoresync.grading.override all override grades match {
            "checked": 31,
            "course_id": "1207"
        }
    """

    def __init__(
        self,
        base: type[logging.Formatter],
        format: str | None,
        datefmt: str | None = None,
        indent: bool = True,
        pyg_style: t.Type[Style] = LogStyle,
        style: t.Literal["%", "{", "$"] = "%",
        validate: bool = True,
        *,
        defaults: t.Any = None,
        **kwargs: t.Any,
    ):
        self.base = base(format, datefmt=datefmt, style=style, validate=validate, defaults=defaults, **kwargs)
        self.pyg_style = pyg_style
        self.handler: logging.Handler | None = None
        self.indent = indent

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if "\n" in msg:
            formatted = self.base.format(record)
            idx = formatted.find(msg)
            indent = " " * len([c for c in formatted[:idx] if c in string.printable])
            line, *lines = msg.splitlines()
            body = textwrap.indent("\n".join(lines), prefix=indent)
            record.msg = record.message = f"{line}\n{body}"
            record.args = None
        message = self.base.format(record)

        d = record.__dict__
        extra = {k: d[k] for k in set(d.keys()) - ReservedKeys}

        if not extra:
            return message

        def encode(obj: t.Any) -> sjson.JSONValue:
            try:
                return sjson.encode(obj)
            except TypeError:
                return repr(obj)

        if self.handler is None:
            # the handler is not known at construction; it is the caller of format()
            frame = inspect.currentframe()
            caller = frame.f_back.f_locals.get("self") if frame is not None and frame.f_back is not None else None
            if isinstance(caller, logging.Handler):
                self.handler = caller

        js = json.dumps(extra, sort_keys=True, indent=(4 if self.indent else None), default=encode)
        if self._colorize():
            hl = pygments.highlight  # pyright: ignore [reportUnknownMemberType, reportUnknownVariableType]
            ps = hl(js, JsonLexer(), Terminal256Formatter[str](style=self.pyg_style), None)
        else:
            ps = js
        return message + " " + ps.strip()

    def _colorize(self) -> bool:
        if getattr(self.base, "no_color", False):
            return False
        stream = getattr(self.handler, "stream", None)
        return stream is not None and hasattr(stream, "isatty") and stream.isatty()

    def __getattr__(self, name: str) -> t.Any:
        return getattr(self.base, name)
