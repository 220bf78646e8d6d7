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

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from handlestream.config import reset_config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Start every test from an environment-free configuration."""
    monkeypatch.delenv("HANDLESTREAM_INCLUDE_PATH", raising=False)
    monkeypatch.delenv("HANDLESTREAM_CHUNK_SIZE", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    """Return a small file with known content."""
    path = tmp_path / "sample.txt"
    path.write_bytes(b"hello world")
    return path
