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

"""Uniform facade over byte-stream handles.

A :class:`Stream` wraps one handle (an in-memory buffer, the process
output, a self-deleting temporary file, an opened path or a file object the
caller supplies) and exposes the same read, write, copy, metadata and close
operations for all of them.

Example::

    with Stream.temp_file().auto_close() as stream:
        stream.write("header\\n").write(Stream.open("body.txt", "r"))
        stream.rewind().put_contents("report.txt")

Ownership:
    Streams created by a factory own their handle only once
    :meth:`Stream.auto_close` is set. Several Streams may alias the same
    handle (``Stream.wrap`` of a file object the caller also holds); closing
    through any of them closes it for all. No reference counting is done,
    keeping aliases consistent is the caller's job.

Streams are not thread-safe: every operation moves the handle position.
"""

from __future__ import annotations

import os
import weakref
from collections.abc import Buffer
from dataclasses import dataclass, field
from enum import IntFlag
from pathlib import Path
from typing import Final, Self, assert_never, overload

from ._handles import (
    Handle,
    Opener,
    copy_between,
    describe,
    flush,
    handle_closed,
    is_handle,
    lock_exclusive,
    open_memory,
    open_output,
    open_path,
    open_temp,
    read_from,
    release,
    write_to,
)
from ._source import HandleSource, StreamSource, TextPayload, classify
from .config import get_config
from .errors import InvalidArgumentError, ResourceClosedError, StreamRuntimeError
from .logging import StructuredLogger, get_logger

__all__ = ["STREAM_TYPE", "UNKNOWN_TYPE", "PutFlags", "Stream"]

#: Type label reported by :meth:`Stream.type` while the handle is open.
STREAM_TYPE: Final[str] = "stream"

#: Type label reported by :meth:`Stream.type` once the handle is closed.
UNKNOWN_TYPE: Final[str] = "Unknown"

logger: StructuredLogger = get_logger(__name__, context={"component": "stream"})


class PutFlags(IntFlag):
    """Flags accepted by :meth:`Stream.put_contents`."""

    USE_INCLUDE_PATH = 1
    """Resolve a relative target against the first include directory."""

    LOCK = 2
    """Hold an exclusive advisory lock on the target while writing."""

    APPEND = 8
    """Append to the target instead of truncating it."""


@dataclass(slots=True, weakref_slot=True, eq=False)
class Stream:
    """A byte-stream handle behind one uniform contract.

    Build instances with the factory classmethods (:meth:`wrap`,
    :meth:`in_memory`, :meth:`in_output`, :meth:`temp_file`, :meth:`open`).
    A Stream is either open or closed; every operation other than the
    lifecycle queries raises :class:`ResourceClosedError` once closed.
    """

    _handle: Handle
    _auto_close: bool = field(default=False, init=False)
    _finalizer: weakref.finalize[[Handle], None] | None = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if not is_handle(self._handle):
            msg = f'"{type(self._handle).__name__}" is not a resource.'
            raise InvalidArgumentError(msg)
        if handle_closed(self._handle):
            msg = f'"{type(self._handle).__name__} (closed)" is not a resource.'
            raise InvalidArgumentError(msg)

    # -- Construction ---------------------------------------------------------

    @classmethod
    def wrap(cls, value: str | Buffer | Handle | Stream) -> Stream:
        """Return a Stream for ``value``.

        An existing Stream is returned unchanged. Text is copied into a
        fresh in-memory buffer positioned at its start. A file object is
        wrapped without taking ownership: the caller still closes it.

        Raises:
            InvalidArgumentError: For a closed file object or any other kind
                of value.
        """
        match classify(value):
            case StreamSource(stream=stream):
                return stream
            case TextPayload(data=data):
                return cls.in_memory().write(data).rewind()
            case HandleSource(handle=handle):
                return cls(_handle=handle)
            case _ as unreachable:  # pragma: no cover - exhaustiveness sentinel
                assert_never(unreachable)  # pyright: ignore[reportUnreachable]

    @classmethod
    def in_memory(cls) -> Stream:
        """Open a seekable read/write in-memory buffer."""
        return cls(_handle=open_memory())

    @classmethod
    def in_output(cls) -> Stream:
        """Open a write-only, non-seekable handle on the process output."""
        return cls(_handle=open_output())

    @classmethod
    def temp_file(cls) -> Stream:
        """Create a uniquely named temporary file, deleted once closed.

        Raises:
            StreamRuntimeError: If the platform cannot allocate the file.
        """
        try:
            handle = open_temp()
        except OSError as error:
            msg = "Unable to create temporary handle."
            raise StreamRuntimeError(msg, operation="temp_file") from error
        logger.debug(
            "Temporary file created.",
            event="stream.temp_file_created",
            context={"path": handle.name},
        )
        return cls(_handle=handle)

    @classmethod
    def open(
        cls,
        path: str | os.PathLike[str],
        mode: str,
        use_include_path: bool = False,  # noqa: FBT001, FBT002
        opener: Opener | None = None,
    ) -> Stream:
        """Open ``path`` with a standard ``open()`` mode.

        Modes without ``b`` or ``t`` are opened in binary. With
        ``use_include_path``, a relative path missing from the working
        directory is looked up in the configured include path. ``opener``
        is forwarded to ``open()``.

        Raises:
            StreamRuntimeError: If the path cannot be opened with ``mode``.
        """
        target = get_config().resolve(path) if use_include_path else Path(path)
        try:
            handle = open_path(target, mode, opener)
        except (OSError, ValueError) as error:
            msg = f'Unable to open "{os.fspath(path)}" with mode "{mode}".'
            raise StreamRuntimeError(
                msg, operation="open", path=os.fspath(path), mode=mode
            ) from error
        logger.debug(
            "Stream opened.",
            event="stream.opened",
            context={"path": str(target), "mode": mode},
        )
        return cls(_handle=handle)

    # -- Handle access and lifecycle ------------------------------------------

    def get(self) -> Handle:
        """Return the underlying handle.

        Raises:
            ResourceClosedError: If the handle has been closed.
        """
        if handle_closed(self._handle):
            raise ResourceClosedError
        return self._handle

    def id(self) -> int:
        """Return an identity for the handle, stable while it stays open."""
        return id(self.get())

    def type(self) -> str:
        """Return ``"stream"`` while open and ``"Unknown"`` once closed."""
        return STREAM_TYPE if self.is_open() else UNKNOWN_TYPE

    def is_open(self) -> bool:
        return not handle_closed(self._handle)

    def is_closed(self) -> bool:
        return not self.is_open()

    def is_auto_close(self) -> bool:
        return self._auto_close

    def close(self) -> None:
        """Release the handle. Safe to call any number of times.

        Temporary files are removed by the platform at this point. A failure
        reported by the platform while closing is logged, not raised.
        """
        if self._finalizer is not None:
            _ = self._finalizer.detach()
            self._finalizer = None
        if handle_closed(self._handle):
            return
        _release_quietly(self._handle)

    def auto_close(self, enabled: bool = True) -> Self:  # noqa: FBT001, FBT002
        """Make this Stream responsible for closing its handle.

        With the flag set, leaving a ``with`` block closes the handle, and
        so does discarding the last reference to the Stream. Passing
        ``enabled=False`` hands the responsibility back to the caller.
        """
        self._auto_close = enabled
        if enabled and self._finalizer is None:
            self._finalizer = weakref.finalize(self, _release_quietly, self._handle)
        elif not enabled and self._finalizer is not None:
            _ = self._finalizer.detach()
            self._finalizer = None
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Close the handle when auto-close is set."""
        if self._auto_close:
            self.close()

    # -- Reading --------------------------------------------------------------

    def contents(self, length: int | None = None, offset: int = -1) -> bytes:
        """Return the stream's bytes.

        Seekable streams are rewound first, so the default call always
        yields everything from the start. A non-negative ``offset`` is then
        applied from the start, and at most ``length`` bytes are read
        (``None`` reads to the end).

        Raises:
            StreamRuntimeError: If the handle cannot be read.
        """
        if self.is_seekable():
            _ = self.rewind()
        handle = self.get()
        try:
            if offset >= 0:
                _ = handle.seek(offset)
            return read_from(handle, length)
        except (OSError, ValueError) as error:
            msg = "Unable to get contents of stream."
            raise StreamRuntimeError(msg, operation="read") from error

    def text(self, encoding: str = "utf-8", errors: str = "strict") -> str:
        """Return :meth:`contents` decoded with ``encoding``."""
        return self.contents().decode(encoding, errors)

    def __str__(self) -> str:
        return self.text()

    def __bytes__(self) -> bytes:
        return self.contents()

    @overload
    def metadata(self, key: None = None) -> dict[str, object]: ...

    @overload
    def metadata(self, key: str) -> object: ...

    def metadata(self, key: str | None = None) -> dict[str, object] | object:
        """Return the handle's metadata mapping, or one entry of it.

        The mapping always holds ``uri``, ``mode``, ``seekable``,
        ``readable``, ``writable``, ``stream_type`` and ``wrapper_type``.

        Raises:
            InvalidArgumentError: If ``key`` is not in the mapping.
        """
        metadata = describe(self.get())
        if not key:
            return metadata
        try:
            return metadata[key]
        except KeyError:
            msg = f'Key "{key}" not available.'
            raise InvalidArgumentError(msg) from None

    def uri(self) -> str:
        return str(self.metadata("uri"))

    def is_seekable(self) -> bool:
        return bool(self.metadata("seekable"))

    # -- Writing --------------------------------------------------------------

    def write(
        self,
        data: str | Buffer | Handle | Stream,
        length: int | None = None,
        offset: int = 0,
    ) -> Self:
        """Write text, or copy from another Stream or handle.

        Text is written at the current position, truncated to ``length``
        bytes when given. Streams and handles are copied chunk by chunk
        from their current position (or from ``offset`` when positive),
        at most ``length`` bytes.

        Raises:
            InvalidArgumentError: If ``data`` is not text, a Stream or a
                handle. Nothing is written in that case.
            StreamRuntimeError: If the write or copy fails.
        """
        match classify(data):
            case TextPayload(data=payload):
                return self._write_payload(payload, length)
            case StreamSource(stream=stream):
                return self._copy_from(stream.get(), length, offset)
            case HandleSource(handle=handle):
                return self._copy_from(handle, length, offset)
            case _ as unreachable:  # pragma: no cover - exhaustiveness sentinel
                assert_never(unreachable)  # pyright: ignore[reportUnreachable]

    def put_contents(
        self,
        path: str | os.PathLike[str],
        flags: PutFlags = PutFlags(0),  # noqa: B008
        opener: Opener | None = None,
    ) -> Self:
        """Dump the stream into ``path``, from the current position to the end.

        The stream is not rewound first; call :meth:`rewind` beforehand to
        dump everything. With :attr:`PutFlags.LOCK` the target is locked
        before it is truncated, so concurrent writers never interleave.

        Raises:
            StreamRuntimeError: If the target cannot be written or locked.
        """
        handle = self.get()
        config = get_config()
        if PutFlags.USE_INCLUDE_PATH in flags:
            target = config.resolve_target(path)
        else:
            target = Path(path)
        append = PutFlags.APPEND in flags
        locked = PutFlags.LOCK in flags
        # Locked overwrites open without truncating and truncate once locked.
        mode = "ab" if append or locked else "wb"
        try:
            with open_path(target, mode, opener) as destination:
                if locked:
                    lock_exclusive(destination)
                    if not append:
                        _ = destination.truncate(0)
                copied = copy_between(handle, destination, None, config.chunk_size)
        except (OSError, ValueError) as error:
            msg = f'Unable to dump contents of stream to "{os.fspath(path)}".'
            raise StreamRuntimeError(
                msg, operation="put_contents", path=os.fspath(path), mode=mode
            ) from error
        logger.debug(
            "Stream dumped.",
            event="stream.dumped",
            context={"target": str(target), "bytes": copied},
        )
        return self

    def rewind(self) -> Self:
        """Move the handle back to position zero.

        Raises:
            StreamRuntimeError: If the stream is not seekable or the seek
                fails.
        """
        if not self.is_seekable():
            msg = "Stream does not support seeking."
            raise StreamRuntimeError(msg, operation="rewind")
        try:
            _ = self.get().seek(0)
        except (OSError, ValueError) as error:
            msg = "Unable to rewind stream."
            raise StreamRuntimeError(msg, operation="rewind") from error
        return self

    def _write_payload(self, payload: bytes, length: int | None) -> Self:
        handle = self.get()
        if length is not None and length >= 0:
            payload = payload[:length]
        try:
            _ = write_to(handle, payload)
            flush(handle)
        except (OSError, ValueError) as error:
            msg = "Unable to write to stream."
            raise StreamRuntimeError(msg, operation="write") from error
        return self

    def _copy_from(self, source: Handle, length: int | None, offset: int) -> Self:
        target = self.get()
        try:
            if offset > 0:
                _ = source.seek(offset)
            copied = copy_between(source, target, length, get_config().chunk_size)
        except (OSError, ValueError) as error:
            msg = "Unable to copy stream."
            raise StreamRuntimeError(msg, operation="copy") from error
        logger.debug(
            "Stream copied.",
            event="stream.copied",
            context={"bytes": copied},
        )
        return self


def _release_quietly(handle: Handle) -> None:
    """Close ``handle``, logging instead of raising on failure."""
    try:
        release(handle)
    except (OSError, ValueError) as error:
        logger.warning(
            "Failed to close stream handle.",
            event="stream.close_failed",
            context={"error": repr(error)},
        )
        return
    logger.debug("Stream closed.", event="stream.closed")
