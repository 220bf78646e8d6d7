# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Structured logging for stream lifecycle events.

Records emitted by handlestream carry two attributes besides the message:
``event``, a dotted name such as ``stream.opened``, and ``context``, a dict
holding the component plus whatever the call site adds (paths, byte
counts, the error behind a failed close). :func:`configure_logging` installs
a root handler that renders both, as text or as one JSON object per line.

Example::

    configure_logging(level="DEBUG", json_mode=True)
    Stream.open("notes.txt", "r").close()
    # {"time": ..., "level": "DEBUG", "event": "stream.opened", ...}
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from collections.abc import Mapping, MutableMapping
from datetime import UTC, datetime
from typing import Any, cast, override

__all__ = [
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]

_LEVEL_ENV = "HANDLESTREAM_LOG_LEVEL"
_FORMAT_ENV = "HANDLESTREAM_LOG_FORMAT"
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(event)s] %(message)s %(context)s"


class StructuredLogger(logging.LoggerAdapter[logging.Logger]):
    """Adapter turning ``event=`` and ``context=`` keywords into record fields.

    The adapter's own context (usually ``{"component": ...}``) sits under the
    per-call context, so call sites only pass what is specific to the event.
    """

    def __init__(
        self,
        logger: logging.Logger,
        *,
        context: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(logger, dict(context) if context is not None else {})

    @override
    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        event = kwargs.pop("event", None)
        if not isinstance(event, str):
            raise TypeError("Structured logs require an 'event' field.")
        context = kwargs.pop("context", None)
        if context is not None and not isinstance(context, Mapping):
            raise TypeError("context must be a mapping when provided.")

        payload = dict(cast(Mapping[str, object], self.extra))
        if context is not None:
            payload.update(cast(Mapping[str, object], context))
        kwargs["extra"] = {"event": event, "context": payload}
        return msg, kwargs


def get_logger(
    name: str,
    *,
    context: Mapping[str, object] | None = None,
) -> StructuredLogger:
    """Return a :class:`StructuredLogger` for ``name`` carrying ``context``."""
    return StructuredLogger(logging.getLogger(name), context=context)


def configure_logging(
    *,
    level: int | str | None = None,
    json_mode: bool | None = None,
    env: Mapping[str, str] | None = None,
    force: bool = False,
) -> None:
    """Route handlestream events to standard error.

    ``level`` falls back to ``HANDLESTREAM_LOG_LEVEL`` and then ``INFO``.
    ``json_mode`` falls back to ``HANDLESTREAM_LOG_FORMAT`` (``json`` or
    ``text``). When the root logger already has handlers they are kept and
    only the level changes, unless ``force`` is set.

    Raises:
        ValueError: If the level name is not a known logging level.
    """
    env = env if env is not None else os.environ
    resolved = _resolve_level(level if level is not None else env.get(_LEVEL_ENV))
    if json_mode is None:
        json_mode = env.get(_FORMAT_ENV, "text").strip().lower() == "json"

    root = logging.getLogger()
    if root.handlers and not force:
        root.setLevel(resolved)
        return

    formatter = _EventJsonFormatter if json_mode else _EventTextFormatter
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "events": {"()": f"{__name__}.{formatter.__name__}"},
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "events",
                },
            },
            "root": {"handlers": ["stderr"], "level": resolved},
        }
    )


class _EventTextFormatter(logging.Formatter):
    """Plain text lines; records from other libraries get placeholder fields."""

    def __init__(self) -> None:
        super().__init__(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    @override
    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "event"):
            record.event = "-"
        if not hasattr(record, "context"):
            record.context = {}
        return super().format(record)


class _EventJsonFormatter(logging.Formatter):
    """One compact JSON object per record."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "time": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", None),
            "message": record.getMessage(),
            "context": getattr(record, "context", {}),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=repr, separators=(",", ":"))


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    try:
        return logging.getLevelNamesMapping()[level.strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level!r}") from None
