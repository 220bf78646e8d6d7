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

"""Base exception hierarchy for :mod:`handlestream`."""

from __future__ import annotations

from typing import Literal

StreamOperation = Literal[
    "open",
    "temp_file",
    "get",
    "read",
    "write",
    "copy",
    "rewind",
    "put_contents",
]


class StreamError(Exception):
    """Base class for all handlestream exceptions.

    Callers can catch every library-specific failure with a single handler
    while standard Python exceptions keep propagating normally.

    Example:
        Catch any handlestream error::

            try:
                Stream.open("report.csv", "r").contents()
            except StreamError as e:
                logger.error("Stream failure: %s", e)

    Note:
        Subclasses also inherit from ``ValueError`` or ``RuntimeError`` so
        existing handlers for those types keep working.
    """


class InvalidArgumentError(StreamError, ValueError):
    """Raised when a caller passes a value of the wrong kind.

    Covers unsupported inputs to ``Stream.wrap`` and ``Stream.write`` and
    lookups of metadata keys the handle does not report. Detected before
    any I/O is attempted, so the handle is never touched.

    Example::

        try:
            stream.write([1, 2, 3])
        except InvalidArgumentError:
            ...
    """


class StreamRuntimeError(StreamError, RuntimeError):
    """Raised when an underlying I/O call fails.

    The exception records which operation failed and, where one applies,
    the path and mode involved. The originating ``OSError`` (or
    ``ValueError`` for closed Python file objects) is chained as
    ``__cause__``.

    Example::

        try:
            Stream.open("missing.txt", "r")
        except StreamRuntimeError as e:
            assert e.operation == "open"
            assert e.path == "missing.txt"

    Note:
        Failures are never retried internally. The handle may be left in a
        partially written state; no rollback is attempted.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: StreamOperation | None = None,
        path: str | None = None,
        mode: str | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.path = path
        self.mode = mode


class ResourceClosedError(StreamRuntimeError):
    """Raised when a closed handle is accessed through a Stream.

    A handle can be closed through the Stream itself or through any other
    reference the caller holds to it; both cases surface as this error.
    """

    def __init__(self, message: str = "Resource is closed.") -> None:
        super().__init__(message, operation="get")


__all__ = [
    "InvalidArgumentError",
    "ResourceClosedError",
    "StreamError",
    "StreamOperation",
    "StreamRuntimeError",
]
