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

"""One contract for every byte-stream handle.

Example usage::

    from handlestream import Stream

    assert Stream.wrap("some data").contents() == b"some data"

    with Stream.open("notes.txt", "r").auto_close() as stream:
        stream.put_contents("notes.bak")
"""

from __future__ import annotations

from ._handles import MEMORY_URI, OUTPUT_URI, OutputSink
from ._source import HandleSource, StreamInput, StreamSource, TextPayload, classify
from ._stream import STREAM_TYPE, UNKNOWN_TYPE, PutFlags, Stream
from .config import DEFAULT_CHUNK_SIZE, StreamConfig, get_config, reset_config, set_config
from .errors import (
    InvalidArgumentError,
    ResourceClosedError,
    StreamError,
    StreamRuntimeError,
)
from .logging import configure_logging

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "MEMORY_URI",
    "OUTPUT_URI",
    "STREAM_TYPE",
    "UNKNOWN_TYPE",
    "HandleSource",
    "InvalidArgumentError",
    "OutputSink",
    "PutFlags",
    "ResourceClosedError",
    "Stream",
    "StreamConfig",
    "StreamError",
    "StreamInput",
    "StreamRuntimeError",
    "StreamSource",
    "TextPayload",
    "classify",
    "configure_logging",
    "get_config",
    "reset_config",
    "set_config",
]
