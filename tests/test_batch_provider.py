from __future__ import annotations

import numpy as np
import pytest

from deep_learning_data.adapters.right.batch_provider import DataSourceBatchProvider
from deep_learning_data.core.domain.entities.dataset import DataSet
from deep_learning_data.core.domain.entities.datasource import DataSource
from deep_learning_data.core.domain.entities.tensor import ArrayTensor, CompositeTensor
from deep_learning_data.core.domain.errors.data import InvalidArgumentError


def _source() -> DataSource:
    x = np.arange(10, dtype=np.float32).reshape(10, 1)
    y = np.arange(10)
    return DataSource(
        train_set=DataSet(inputs=x, targets=y, which_set="train"),
        test_set=DataSet(inputs=np.zeros((3, 1)), which_set="test"),
    )


def test_batches_cover_the_set_once() -> None:
    provider = DataSourceBatchProvider(data_source=_source())
    batches = list(provider.iter_batches(split="train", batch_size=4, shuffle=False, seed=0))

    assert [b.sample_count() for b in batches] == [4, 4, 2]
    assert all(b.which_set == "train" and b.epoch_size == 10 for b in batches)
    labels = np.concatenate([b.targets.data() for b in batches])
    assert np.array_equal(labels, np.arange(10))
    assert provider.info.train_size == 10


def test_shuffle_is_seeded_and_keeps_pairs_aligned() -> None:
    provider = DataSourceBatchProvider(data_source=_source())

    def run(seed: int) -> np.ndarray:
        batches = provider.iter_batches(split="train", batch_size=3, shuffle=True, seed=seed)
        return np.concatenate([b.targets.data() for b in batches])

    assert np.array_equal(run(1), run(1))
    assert sorted(run(1).tolist()) == list(range(10))
    for batch in provider.iter_batches(split="train", batch_size=3, shuffle=True, seed=2):
        assert np.array_equal(batch.inputs.data()[:, 0], batch.targets.data().astype(np.float32))


def test_unsupervised_and_missing_splits() -> None:
    provider = DataSourceBatchProvider(data_source=_source())
    (batch,) = provider.iter_batches(split="test", batch_size=8, shuffle=False, seed=0)
    assert batch.targets is None

    with pytest.raises(InvalidArgumentError):
        list(provider.iter_batches(split="valid", batch_size=8, shuffle=False, seed=0))


def test_composite_inputs_are_sliced_per_member() -> None:
    inputs = CompositeTensor(
        {"image": ArrayTensor(np.zeros((5, 1, 2, 2))), "tags": ArrayTensor(np.arange(5).reshape(5, 1))}
    )
    source = DataSource(train_set=DataSet(inputs=inputs, which_set="train"))
    provider = DataSourceBatchProvider(data_source=source)

    first = next(iter(provider.iter_batches(split="train", batch_size=2, shuffle=False, seed=0)))
    assert isinstance(first.inputs, CompositeTensor)
    assert first.inputs["image"].shape == (2, 1, 2, 2)
    assert first.inputs["tags"].data().ravel().tolist() == [0, 1]
