from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from deep_learning_data.core.domain.entities.base import Batch, DatasetSplit
from deep_learning_data.core.domain.entities.dataset import DatasetInfo
from deep_learning_data.core.domain.entities.datasource import DataSource
from deep_learning_data.core.domain.errors.data import InvalidArgumentError
from deep_learning_data.core.ports.dataset_provider import DatasetProviderPort


class DataSourceBatchProvider(DatasetProviderPort):
    """Serves mini-batches from the (already preprocessed) sets of a DataSource."""

    def __init__(self, *, data_source: DataSource) -> None:
        self._source = data_source
        self._info = data_source.info()

    @property
    def info(self) -> DatasetInfo:
        return self._info

    def iter_batches(
        self,
        *,
        split: DatasetSplit,
        batch_size: int,
        shuffle: bool,
        seed: int,
    ) -> Iterable[Batch]:
        if batch_size < 1:
            raise InvalidArgumentError(f"batch_size must be >= 1, got {batch_size}")
        dataset = self._source.sets().get(split)
        if dataset is None:
            raise InvalidArgumentError(f"{self._source!r} has no {split} set")

        template = dataset.empty_batch()
        inputs, targets = dataset.inputs(), dataset.targets()

        n = dataset.sample_count()
        idx = np.arange(n)
        if shuffle:
            rng = np.random.default_rng(seed)
            rng.shuffle(idx)

        for start in range(0, n, batch_size):
            sel = idx[start : start + batch_size]
            yield Batch(
                inputs=inputs.sub(sel),
                targets=targets.sub(sel) if targets is not None else None,
                which_set=template.which_set,
                epoch_size=template.epoch_size,
            )
