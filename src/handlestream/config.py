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

"""Process-wide configuration for :mod:`handlestream`."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "StreamConfig",
    "get_config",
    "reset_config",
    "set_config",
]

#: Default chunk size for handle-to-handle copies (64KB).
DEFAULT_CHUNK_SIZE: Final[int] = 65_536

_INCLUDE_PATH_ENV = "HANDLESTREAM_INCLUDE_PATH"
_CHUNK_SIZE_ENV = "HANDLESTREAM_CHUNK_SIZE"


@dataclass(frozen=True, slots=True)
class StreamConfig:
    """Settings shared by every Stream in the process.

    Values can be provided directly or fall back to environment variables
    through :meth:`from_env`:

    - ``include_path``: ``HANDLESTREAM_INCLUDE_PATH`` (``os.pathsep`` separated)
    - ``chunk_size``: ``HANDLESTREAM_CHUNK_SIZE``

    Example::

        set_config(StreamConfig(include_path=(Path("/etc/myapp"),)))
        Stream.open("settings.ini", "r", use_include_path=True)
    """

    include_path: tuple[Path, ...] = ()
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            msg = f"chunk_size must be positive, got: {self.chunk_size}"
            raise ValueError(msg)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> StreamConfig:
        """Build a config from environment variables, using defaults when unset."""
        env = env if env is not None else os.environ

        raw_path = env.get(_INCLUDE_PATH_ENV, "")
        include_path = tuple(Path(part) for part in raw_path.split(os.pathsep) if part)

        raw_chunk = env.get(_CHUNK_SIZE_ENV)
        if raw_chunk is None or not raw_chunk.strip():
            return cls(include_path=include_path)
        try:
            chunk_size = int(raw_chunk)
        except ValueError:
            msg = f"{_CHUNK_SIZE_ENV} must be an integer, got: {raw_chunk!r}"
            raise ValueError(msg) from None
        return cls(include_path=include_path, chunk_size=chunk_size)

    def resolve(self, path: str | os.PathLike[str]) -> Path:
        """Return ``path`` itself or its first match in the include path.

        Absolute paths and relative paths that exist in the working
        directory are returned unchanged. Otherwise each include directory
        is tried in order; when nothing matches, ``path`` is returned as is
        so the caller's open reports the original name.
        """
        candidate = Path(path)
        if candidate.is_absolute() or candidate.exists():
            return candidate
        for directory in self.include_path:
            located = directory / candidate
            if located.exists():
                return located
        return candidate

    def resolve_target(self, path: str | os.PathLike[str]) -> Path:
        """Return the location a relative write target should land in.

        Uses the first include directory, mirroring where a later
        ``resolve`` lookup will find the file.
        """
        candidate = Path(path)
        if candidate.is_absolute() or not self.include_path:
            return candidate
        return self.include_path[0] / candidate


_config: StreamConfig | None = None


def get_config() -> StreamConfig:
    """Return the active config, reading the environment on first use."""
    global _config
    if _config is None:
        _config = StreamConfig.from_env()
    return _config


def set_config(config: StreamConfig) -> None:
    """Replace the active config."""
    global _config
    _config = config


def reset_config() -> None:
    """Forget the active config so the next lookup re-reads the environment."""
    global _config
    _config = None
