from __future__ import annotations

from pathlib import Path
from typing import Protocol


class AssetStorePort(Protocol):
    """Port for fetching and unpacking data files.

    Keep network and archive I/O out of core; adapters implement this.
    """

    def download(self, *, url: str, dest: Path) -> None: ...

    def decompress(self, *, path: Path, workdir: Path) -> None: ...
