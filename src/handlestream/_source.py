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

"""Closed union of the inputs accepted by ``Stream.wrap`` and ``Stream.write``.

Values are classified once into exactly one of three cases, and callers
dispatch on the case with ``match``:

``TextPayload``
    Owned bytes, from ``str`` (UTF-8) or any bytes-like object.
``HandleSource``
    A reference to an external file object the caller keeps owning.
``StreamSource``
    An existing Stream.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ._handles import Handle, handle_closed, is_handle
from .errors import InvalidArgumentError

if TYPE_CHECKING:
    from ._stream import Stream

__all__ = [
    "HandleSource",
    "StreamInput",
    "StreamSource",
    "TextPayload",
    "classify",
]


@dataclass(frozen=True, slots=True)
class TextPayload:
    data: bytes


@dataclass(frozen=True, slots=True)
class HandleSource:
    handle: Handle


@dataclass(frozen=True, slots=True)
class StreamSource:
    stream: Stream


type StreamInput = TextPayload | HandleSource | StreamSource


def classify(value: object) -> StreamInput:
    """Return the union case for ``value``.

    Raises:
        InvalidArgumentError: If ``value`` is neither text, an open handle
            nor a Stream.
    """
    from ._stream import Stream

    if isinstance(value, Stream):
        return StreamSource(value)
    if isinstance(value, str):
        return TextPayload(value.encode("utf-8"))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return TextPayload(bytes(value))
    if is_handle(value):
        if handle_closed(value):  # pyright: ignore[reportArgumentType]
            msg = f'"{_debug_type(value)} (closed)" is not a resource.'
            raise InvalidArgumentError(msg)
        return HandleSource(value)  # pyright: ignore[reportArgumentType]
    msg = f'"{_debug_type(value)}" is not a string or a resource.'
    raise InvalidArgumentError(msg)


def _debug_type(value: object) -> str:
    if value is None:
        return "None"
    return type(value).__name__
