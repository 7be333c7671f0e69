from __future__ import annotations

import bz2
import gzip
import logging
import lzma
import os
import shutil
import tarfile
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests

from deep_learning_data.core.domain.commands.data import DataConfig
from deep_learning_data.core.domain.errors.data import DownloadError, InvalidArgumentError
from deep_learning_data.core.ports.asset_store import AssetStorePort

LOGGER = logging.getLogger(__name__)

_TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz")
_STREAM_OPENERS = {".gz": gzip.open, ".bz2": bz2.open, ".xz": lzma.open}


def _part_path(dest: Path) -> Path:
    return dest.with_name(dest.name + ".part")


class HttpAssetStore(AssetStorePort):
    """Downloads over HTTP(S) with `requests`; `file://` URLs and local paths are copied.

    Downloads land in `<dest>.part` and are renamed into place once complete,
    so an interrupted download never leaves a truncated file at `dest`.
    """

    def __init__(self, *, config: DataConfig | None = None, session: requests.Session | None = None) -> None:
        self._config = config or DataConfig()
        self._session = session or requests.Session()

    def download(self, *, url: str, dest: Path) -> None:
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = _part_path(dest)

        parsed = urlparse(url)
        try:
            if parsed.scheme in ("", "file"):
                source = Path(url2pathname(parsed.path)) if parsed.scheme == "file" else Path(url)
                if not source.is_file():
                    raise DownloadError(f"no such file: {source}")
                shutil.copyfile(source, tmp)
            elif parsed.scheme in ("http", "https"):
                self._fetch(url, tmp)
            else:
                raise InvalidArgumentError(f"unsupported url scheme '{parsed.scheme}': {url}")
            os.replace(tmp, dest)
        finally:
            if tmp.exists():
                tmp.unlink()

    def _fetch(self, url: str, tmp: Path) -> None:
        try:
            with self._session.get(url, stream=True, timeout=self._config.download_timeout) as response:
                response.raise_for_status()
                with open(tmp, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self._config.chunk_size):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise DownloadError(f"failed to download {url}: {e}") from e
        LOGGER.debug("fetched %s (%d bytes)", url, tmp.stat().st_size)

    def decompress(self, *, path: Path, workdir: Path) -> None:
        """Extract an archive, or stream-decompress a single compressed file, into `workdir`."""

        path = Path(path)
        workdir = Path(workdir)
        name = path.name.lower()

        if name.endswith(".zip"):
            # shutil skips zip members with absolute paths or ".." components.
            shutil.unpack_archive(str(path), str(workdir))
            return
        if name.endswith(_TAR_SUFFIXES):
            try:
                shutil.unpack_archive(str(path), str(workdir), filter="data")
            except tarfile.FilterError as e:
                raise InvalidArgumentError(f"refusing to extract {path.name}: {e}") from e
            return

        suffix = path.suffix.lower()
        opener = _STREAM_OPENERS.get(suffix)
        if opener is None:
            raise InvalidArgumentError(f"don't know how to decompress '{path.name}'")

        out = workdir / path.name[: -len(suffix)]
        tmp = _part_path(out)
        try:
            with opener(path, "rb") as src, open(tmp, "wb") as dst:
                shutil.copyfileobj(src, dst, length=self._config.chunk_size)
            os.replace(tmp, out)
        finally:
            if tmp.exists():
                tmp.unlink()
