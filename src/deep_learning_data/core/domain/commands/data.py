from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DATA_DIR_ENV = "DEEP_LEARNING_DATA_DIR"
DEFAULT_DATA_DIR = Path("~/.cache/deep_learning_data")


@dataclass(frozen=True)
class DataConfig:
    """Where data files live and how they are fetched."""

    data_dir: Path = DEFAULT_DATA_DIR.expanduser()
    download_timeout: float = 60.0
    chunk_size: int = 1 << 20

    @classmethod
    def from_env(cls) -> "DataConfig":
        data_dir = os.environ.get(DATA_DIR_ENV)
        if not data_dir:
            return cls()
        return cls(data_dir=Path(data_dir).expanduser())


@dataclass(frozen=True)
class GetDataPathCommand:
    """Intent to locate (and fetch if needed) one data file.

    The file ends up in data_dir/name/. When `decompress_file` is set, the
    download is decompressed there unless that file already exists.
    """

    name: str
    url: str
    data_dir: Path | str
    decompress_file: str | None = None
