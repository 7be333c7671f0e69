from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol

from deep_learning_data.core.domain.entities.base import Batch, DatasetSplit

if TYPE_CHECKING:
    from deep_learning_data.core.domain.entities.dataset import DatasetInfo


class DatasetProviderPort(Protocol):
    """Port for providing mini-batches to downstream consumers."""

    @property
    def info(self) -> DatasetInfo: ...

    def iter_batches(
        self,
        *,
        split: DatasetSplit,
        batch_size: int,
        shuffle: bool,
        seed: int,
    ) -> Iterable[Batch]: ...
