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

"""Tests for input classification."""

from __future__ import annotations

import io

import pytest

from handlestream import (
    HandleSource,
    InvalidArgumentError,
    Stream,
    StreamSource,
    TextPayload,
    classify,
)


class TestClassify:
    """Tests for classify()."""

    def test_str_becomes_utf8_payload(self) -> None:
        assert classify("né") == TextPayload("né".encode())

    @pytest.mark.parametrize(
        "value", [b"abc", bytearray(b"abc"), memoryview(b"abc")]
    )
    def test_bytes_like_become_owned_payload(self, value: object) -> None:
        """Bytes-like values should be copied into immutable bytes."""
        case = classify(value)

        assert isinstance(case, TextPayload)
        assert case.data == b"abc"
        assert type(case.data) is bytes

    def test_payload_is_a_copy(self) -> None:
        """Mutating the source after classification should not leak in."""
        buffer = bytearray(b"abc")
        case = classify(buffer)
        buffer[0] = ord("z")

        assert case == TextPayload(b"abc")

    def test_file_object_becomes_handle_source(self) -> None:
        handle = io.BytesIO()
        case = classify(handle)

        assert isinstance(case, HandleSource)
        assert case.handle is handle

    def test_stream_becomes_stream_source(self) -> None:
        stream = Stream.in_memory()
        case = classify(stream)

        assert isinstance(case, StreamSource)
        assert case.stream is stream

    def test_closed_handle_is_rejected(self) -> None:
        """A closed file object is no longer a usable resource."""
        handle = io.BytesIO()
        handle.close()

        with pytest.raises(InvalidArgumentError) as excinfo:
            classify(handle)

        assert str(excinfo.value) == '"BytesIO (closed)" is not a resource.'

    @pytest.mark.parametrize(
        ("value", "label"),
        [([], "list"), (42, "int"), (None, "None"), (object(), "object")],
    )
    def test_other_values_are_rejected(self, value: object, label: str) -> None:
        """Anything else should name its type in the error."""
        with pytest.raises(InvalidArgumentError) as excinfo:
            classify(value)

        assert str(excinfo.value) == f'"{label}" is not a string or a resource.'

    def test_partial_file_protocol_is_rejected(self) -> None:
        """Objects missing one of the file methods are not handles."""

        class ReadOnly:
            def read(self) -> bytes:
                return b""

        with pytest.raises(InvalidArgumentError, match='"ReadOnly"'):
            classify(ReadOnly())
