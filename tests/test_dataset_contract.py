from __future__ import annotations

import copy
import pickle

import numpy as np
import pytest

from deep_learning_data.core.domain.entities.dataset import DataSet, PreprocessConfig
from deep_learning_data.core.domain.entities.preprocess import Standardize, make_pipeline
from deep_learning_data.core.domain.entities.tensor import ArrayTensor, CompositeTensor
from deep_learning_data.core.domain.errors.data import (
    InvalidArgumentError,
    InvalidOperationError,
    NotSerializableError,
)


def _images(n: int, seed: int = 0) -> DataSet:
    rng = np.random.default_rng(seed)
    return DataSet(
        inputs=ArrayTensor(rng.normal(size=(n, 3, 4, 4)).astype(np.float32), axes="bchw"),
        targets=ArrayTensor(rng.integers(0, 5, size=(n,))),
        which_set="train",
    )


def test_sample_count_and_empty_batch() -> None:
    ds = _images(10)
    assert ds.sample_count() == 10
    assert len(ds) == 10

    batch = ds.empty_batch()
    assert batch.epoch_size == 10
    assert batch.sample_count() == 0
    assert batch.which_set == "train"
    assert batch.inputs.shape == (0, 3, 4, 4)
    assert batch.inputs.axes == "bchw"
    assert batch.targets is not None and batch.targets.shape == (0,)

    # The set itself is untouched.
    assert ds.inputs().shape == (10, 3, 4, 4)


def test_unsupervised_set_has_no_targets() -> None:
    ds = DataSet(inputs=np.zeros((7, 2), dtype=np.float32), which_set="valid")
    assert not ds.is_supervised
    assert ds.targets() is None
    assert ds.which_set() == "valid"
    assert ds.inputs().axes == "bf"

    batch = ds.empty_batch()
    assert batch.targets is None
    assert batch.epoch_size == 7


def test_composite_inputs_keep_their_structure() -> None:
    inputs = CompositeTensor(
        {
            "image": ArrayTensor(np.zeros((5, 1, 2, 2)), axes="bchw"),
            "tags": ArrayTensor(np.ones((5, 3))),
        }
    )
    ds = DataSet(inputs=inputs, targets=np.arange(5), which_set="test")
    assert ds.sample_count() == 5

    batch = ds.empty_batch()
    assert isinstance(batch.inputs, CompositeTensor)
    assert batch.inputs.names() == ("image", "tags")
    assert batch.inputs["image"].shape == (0, 1, 2, 2)
    assert batch.inputs["tags"].shape == (0, 3)


def test_sample_count_mismatches_are_rejected() -> None:
    with pytest.raises(InvalidArgumentError):
        DataSet(inputs=np.zeros((4, 2)), targets=np.zeros((3,)), which_set="train")

    with pytest.raises(InvalidArgumentError):
        CompositeTensor({"a": ArrayTensor(np.zeros((4, 2))), "b": ArrayTensor(np.zeros((5, 2)))})


def test_which_set_must_be_a_known_role() -> None:
    with pytest.raises(InvalidArgumentError):
        DataSet(inputs=np.zeros((4, 2)), which_set="holdout")  # type: ignore[arg-type]


def test_probabilities_is_unsupported_by_default() -> None:
    with pytest.raises(NotImplementedError):
        _images(3).probabilities()


def test_probabilities_can_be_overridden() -> None:
    class WeightedSet(DataSet):
        def probabilities(self) -> np.ndarray:
            return np.full(self.sample_count(), 1.0 / self.sample_count())

    ds = WeightedSet(inputs=np.zeros((4, 2)), which_set="train")
    assert np.isclose(ds.probabilities().sum(), 1.0)


def test_dataset_refuses_serialization(tmp_path) -> None:
    ds = _images(3)
    with pytest.raises(NotSerializableError):
        pickle.dumps(ds)
    with pytest.raises(NotSerializableError):
        copy.deepcopy(ds)
    with pytest.raises(NotSerializableError):
        with open(tmp_path / "ds.pkl", "wb") as f:
            pickle.dump(ds, f)


def test_preprocess_with_fit_standardizes_own_data() -> None:
    rng = np.random.default_rng(1)
    ds = DataSet(inputs=rng.normal(5.0, 2.0, size=(200, 3)), which_set="train")
    pipeline = make_pipeline(Standardize())

    ds.preprocess(PreprocessConfig(input_preprocess=pipeline, can_fit=True))

    x = ds.inputs().data()
    assert pipeline.is_fitted
    assert np.allclose(x.mean(axis=0), 0.0, atol=1e-6)
    assert np.allclose(x.std(axis=0), 1.0, atol=1e-6)


def test_preprocess_without_fit_fails_before_touching_data() -> None:
    ds = DataSet(inputs=np.arange(12, dtype=np.float64).reshape(6, 2), which_set="valid")
    before = ds.inputs().data()

    with pytest.raises(InvalidOperationError):
        ds.preprocess(PreprocessConfig(input_preprocess=Standardize(), can_fit=False))

    assert ds.inputs().data() is before
    assert np.array_equal(before, np.arange(12, dtype=np.float64).reshape(6, 2))


def test_composite_inputs_take_per_member_pipelines() -> None:
    rng = np.random.default_rng(2)
    tags = np.ones((50, 3))
    inputs = CompositeTensor(
        {
            "image": ArrayTensor(rng.normal(3.0, 1.5, size=(50, 1, 2, 2)), axes="bchw"),
            "tags": ArrayTensor(tags),
        }
    )
    ds = DataSet(inputs=inputs, which_set="train")

    with pytest.raises(InvalidArgumentError):
        ds.preprocess(PreprocessConfig(input_preprocess=Standardize(), can_fit=True))
    with pytest.raises(InvalidArgumentError):
        ds.preprocess(PreprocessConfig(input_preprocess={"label": Standardize()}, can_fit=True))

    ds.preprocess(PreprocessConfig(input_preprocess={"image": Standardize()}, can_fit=True))

    assert np.isclose(inputs["image"].data().mean(), 0.0, atol=1e-6)
    assert inputs["tags"].data() is tags


class _Flatten:
    is_fitted = True

    def fit(self, data: np.ndarray) -> None:
        return None

    def apply(self, data: np.ndarray) -> np.ndarray:
        return np.asarray(data).reshape(len(data), -1)


def test_failed_member_pipeline_leaves_every_member_untouched() -> None:
    a = np.array([[1.0, 2.0], [3.0, 4.0]])
    b = np.zeros((2, 1, 2, 2))
    inputs = CompositeTensor({"a": ArrayTensor(a), "b": ArrayTensor(b, axes="bchw")})
    ds = DataSet(inputs=inputs, which_set="train")

    with pytest.raises(InvalidArgumentError):
        ds.preprocess(
            PreprocessConfig(input_preprocess={"a": Standardize(), "b": _Flatten()}, can_fit=True)
        )

    assert inputs["a"].data() is a
    assert np.array_equal(a, [[1.0, 2.0], [3.0, 4.0]])
    assert inputs["b"].data() is b


def test_single_tensor_rejects_per_member_pipelines() -> None:
    ds = DataSet(inputs=np.zeros((4, 2)), which_set="train")
    with pytest.raises(InvalidArgumentError):
        ds.preprocess(PreprocessConfig(input_preprocess={"image": Standardize()}, can_fit=True))


def test_target_preprocess_is_skipped_without_targets() -> None:
    ds = DataSet(inputs=np.ones((4, 2)), which_set="train")
    ds.preprocess(PreprocessConfig(target_preprocess=Standardize(), can_fit=False))
    assert np.array_equal(ds.inputs().data(), np.ones((4, 2)))
