from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from urllib.parse import urlparse

from deep_learning_data.core.domain.commands.data import DataConfig, GetDataPathCommand
from deep_learning_data.core.domain.errors.data import InvalidArgumentError
from deep_learning_data.core.ports.asset_store import AssetStorePort

LOGGER = logging.getLogger(__name__)


def url_basename(url: str) -> str:
    """Last path segment of a URL (query and fragment ignored)."""

    path = urlparse(url).path or url
    return posixpath.basename(path.rstrip("/"))


class GetDataPathUseCase:
    """Check locally for a data file and download/decompress it if missing.

    Running the same command twice downloads and decompresses at most once.
    """

    def __init__(self, *, asset_store: AssetStorePort, config: DataConfig | None = None) -> None:
        self._store = asset_store
        self._config = config or DataConfig()

    def run(self, command: GetDataPathCommand) -> Path:
        if not command.name or not command.name.strip():
            raise InvalidArgumentError("name is required (e.g. 'mnist')")
        if not command.url or not command.url.strip():
            raise InvalidArgumentError("url is required")

        data_file = url_basename(command.url)
        if not data_file:
            raise InvalidArgumentError(f"cannot derive a file name from url '{command.url}'")

        data_dir = Path(command.data_dir if command.data_dir else self._config.data_dir).expanduser()
        source_dir = (data_dir / command.name).resolve()
        source_dir.mkdir(parents=True, exist_ok=True)

        data_path = source_dir / data_file
        if not data_path.is_file():
            LOGGER.info("downloading %s to %s", command.url, data_path)
            self._store.download(url=command.url, dest=data_path)

        if not command.decompress_file:
            return data_path

        decompress_path = source_dir / command.decompress_file
        if not decompress_path.exists():
            LOGGER.info("decompressing file: %s", data_path)
            self._store.decompress(path=data_path, workdir=source_dir)
            if not decompress_path.exists():
                raise InvalidArgumentError(
                    f"decompressing {data_file} did not produce {command.decompress_file}"
                )
        return decompress_path
