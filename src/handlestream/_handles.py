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

"""Platform handle primitives the Stream facade delegates to.

Everything here works on plain Python file objects and owns no policy: it
opens handles, describes them, moves bytes between them and closes them.
Text-mode handles are normalised at this layer so callers only ever see
``bytes``.

Handle kinds:
    In-memory: ``io.BytesIO``, reported as ``<memory>``.
    Output: :class:`OutputSink`, a write-only handle bound to ``sys.stdout``.
    Temporary: ``tempfile.NamedTemporaryFile``, removed when closed.
    Path: anything ``open()`` returns.
    External: any object with ``read``, ``write``, ``seek`` and ``close``.
"""

from __future__ import annotations

import codecs
import io
import os
import sys
import tempfile
import weakref
from collections.abc import Buffer, Callable
from typing import IO, Any, Final, override

if sys.platform == "win32":  # pragma: no cover
    import msvcrt as _msvcrt
else:
    import fcntl as _fcntl

__all__ = [
    "MEMORY_URI",
    "OUTPUT_URI",
    "Handle",
    "Opener",
    "OutputSink",
    "copy_between",
    "describe",
    "flush",
    "handle_closed",
    "is_handle",
    "lock_exclusive",
    "open_memory",
    "open_output",
    "open_path",
    "open_temp",
    "read_from",
    "release",
    "write_to",
]

#: URI reported for in-memory buffers.
MEMORY_URI: Final[str] = "<memory>"

#: URI reported for the process output handle.
OUTPUT_URI: Final[str] = "<stdout>"

_TEMP_PREFIX: Final[str] = "handlestream-"
_HANDLE_METHODS: Final[tuple[str, ...]] = ("read", "write", "seek", "close")
_MAX_CHAR_BYTES: Final[int] = 4

type Handle = IO[Any]
type Opener = Callable[[str, int], int]

# Partial multi-byte sequences waiting for the rest of their bytes.
_text_decoders: weakref.WeakKeyDictionary[io.TextIOBase, codecs.IncrementalDecoder] = (
    weakref.WeakKeyDictionary()
)


class OutputSink(io.RawIOBase):
    """Write-only raw handle forwarding bytes to the current ``sys.stdout``.

    ``sys.stdout`` is looked up on every write, so redirections installed
    after the sink was opened (``contextlib.redirect_stdout``, pytest's
    ``capsys``) still receive the output. Closing the sink never closes the
    interpreter's standard output.
    """

    name = OUTPUT_URI
    mode = "wb"

    @override
    def writable(self) -> bool:
        return True

    @override
    def readinto(self, buffer: Buffer, /) -> int | None:
        raise io.UnsupportedOperation("read")

    @override
    def write(self, data: Buffer, /) -> int:
        if self.closed:
            msg = "I/O operation on closed file"
            raise ValueError(msg)
        payload = bytes(data)
        target = sys.stdout
        if target is None:
            msg = "Standard output is not available."
            raise OSError(msg)
        binary = getattr(target, "buffer", None)
        if binary is not None:
            # Pending text must reach the buffer before the raw bytes.
            target.flush()
            binary.write(payload)
            binary.flush()
        else:
            encoding = getattr(target, "encoding", None) or "utf-8"
            target.write(payload.decode(encoding, errors="replace"))
            target.flush()
        return len(payload)


def is_handle(value: object) -> bool:
    """Return True when ``value`` quacks like a file object."""
    if isinstance(value, (str, bytes, bytearray, memoryview)):
        return False
    return all(callable(getattr(value, name, None)) for name in _HANDLE_METHODS)


def handle_closed(handle: Handle) -> bool:
    """Return True when the handle reports itself closed."""
    return bool(getattr(handle, "closed", False))


def open_memory() -> Handle:
    return io.BytesIO()


def open_output() -> Handle:
    return OutputSink()


def open_temp() -> Handle:
    """Create a named temporary file that the platform deletes on close."""
    return tempfile.NamedTemporaryFile(mode="w+b", prefix=_TEMP_PREFIX, delete=True)


def open_path(
    path: str | os.PathLike[str], mode: str, opener: Opener | None = None
) -> Handle:
    """Open ``path``, defaulting to binary unless text mode is requested."""
    return open(os.fspath(path), _binary_mode(mode), opener=opener)  # noqa: SIM115


def describe(handle: Handle) -> dict[str, object]:
    """Return the metadata mapping for an open handle."""
    return {
        "uri": _uri_of(handle),
        "mode": _mode_of(handle),
        "seekable": _probe(handle, "seekable"),
        "readable": _probe(handle, "readable"),
        "writable": _probe(handle, "writable"),
        "stream_type": type(handle).__name__,
        "wrapper_type": _wrapper_type(handle),
    }


def read_from(handle: Handle, length: int | None = None) -> bytes:
    """Read up to ``length`` bytes (``None`` or negative: to EOF).

    On text handles ``length`` counts encoded bytes, not characters. A
    character that would overrun the budget stays unread when the handle
    can seek back; otherwise its encoding is cut at the budget.
    """
    if length is None or length < 0:
        data = handle.read()
    elif isinstance(handle, io.TextIOBase):
        return _read_text(handle, length)
    else:
        data = handle.read(length)
    if data is None:
        return b""
    return _as_bytes(data, handle)


def write_to(handle: Handle, data: bytes) -> int:
    """Write all of ``data``, retrying short writes from raw handles.

    Text handles decode incrementally: an incomplete multi-byte sequence at
    the end of ``data`` is held back until the next write to that handle.
    """
    if isinstance(handle, io.TextIOBase):
        _ = handle.write(_decoder_for(handle).decode(data))
        return len(data)
    remaining = data
    while remaining:
        written = handle.write(remaining)
        if written is None or written >= len(remaining):
            break
        remaining = remaining[written:]
    return len(data)


def flush(handle: Handle) -> None:
    flusher = getattr(handle, "flush", None)
    if callable(flusher):
        flusher()


def copy_between(
    source: Handle, target: Handle, length: int | None, chunk_size: int
) -> int:
    """Copy up to ``length`` bytes from ``source`` to ``target`` in chunks.

    Returns the number of bytes copied.
    """
    if isinstance(source, io.TextIOBase):
        # A chunk must hold at least one encoded character.
        chunk_size = max(chunk_size, _MAX_CHAR_BYTES)
    copied = 0
    while length is None or copied < length:
        size = chunk_size if length is None else min(chunk_size, length - copied)
        chunk = read_from(source, size)
        if not chunk:
            break
        _ = write_to(target, chunk)
        copied += len(chunk)
    flush(target)
    return copied


def lock_exclusive(handle: Handle) -> None:
    """Block until ``handle`` holds an exclusive lock.

    The lock is released when the handle is closed.
    """
    if sys.platform == "win32":  # pragma: no cover
        _msvcrt.locking(handle.fileno(), _msvcrt.LK_LOCK, 1)
    else:
        _fcntl.flock(handle.fileno(), _fcntl.LOCK_EX)


def release(handle: Handle) -> None:
    """Close ``handle`` if it is still open."""
    if not handle_closed(handle):
        handle.close()


def _binary_mode(mode: str) -> str:
    if "b" in mode or "t" in mode:
        return mode
    return f"{mode}b"


def _encoding_of(handle: object) -> str:
    return getattr(handle, "encoding", None) or "utf-8"


def _as_bytes(data: object, handle: Handle) -> bytes:
    if isinstance(data, str):
        return data.encode(_encoding_of(handle))
    return bytes(data)  # pyright: ignore[reportArgumentType]


def _read_text(handle: io.TextIOBase, length: int) -> bytes:
    encoding = _encoding_of(handle)
    seekable = _probe(handle, "seekable")  # pyright: ignore[reportArgumentType]
    data = bytearray()
    while len(data) < length:
        budget = length - len(data)
        mark = handle.tell() if seekable else None
        # Every character encodes to at least one byte.
        text = handle.read(budget if seekable else 1)
        if not text:
            break
        encoded = text.encode(encoding)
        if len(encoded) <= budget:
            data += encoded
            continue
        if mark is None:
            data += encoded[:budget]
            break
        fitting = _fitting_prefix(text, encoding, budget)
        _ = handle.seek(mark)
        _ = handle.read(len(fitting))
        data += fitting.encode(encoding)
        break
    return bytes(data)


def _fitting_prefix(text: str, encoding: str, budget: int) -> str:
    used = 0
    for index, char in enumerate(text):
        used += len(char.encode(encoding))
        if used > budget:
            return text[:index]
    return text


def _decoder_for(handle: io.TextIOBase) -> codecs.IncrementalDecoder:
    decoder = _text_decoders.get(handle)
    if decoder is None:
        decoder = codecs.getincrementaldecoder(_encoding_of(handle))()
        _text_decoders[handle] = decoder
    return decoder


def _probe(handle: Handle, capability: str) -> bool:
    check = getattr(handle, capability, None)
    if not callable(check):
        return False
    try:
        return bool(check())
    except (OSError, ValueError):
        return False


def _uri_of(handle: Handle) -> str:
    name = getattr(handle, "name", None)
    if isinstance(name, str) and name:
        return name
    if isinstance(name, bytes):
        return os.fsdecode(name)
    if isinstance(name, int):
        return f"<fd:{name}>"
    if isinstance(handle, io.BytesIO):
        return MEMORY_URI
    return f"<{type(handle).__name__}>"


def _mode_of(handle: Handle) -> str:
    mode = getattr(handle, "mode", None)
    if isinstance(mode, str):
        return mode
    readable = _probe(handle, "readable")
    writable = _probe(handle, "writable")
    if readable and writable:
        return "w+b"
    if writable:
        return "wb"
    return "rb"


def _wrapper_type(handle: Handle) -> str:
    if isinstance(handle, io.BytesIO):
        return "memory"
    if isinstance(handle, OutputSink):
        return "output"
    name = getattr(handle, "name", None)
    if isinstance(name, (str, bytes)) and not _uri_of(handle).startswith("<"):
        return "plainfile"
    return "unknown"
