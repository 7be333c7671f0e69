from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

import numpy as np

from deep_learning_data.core.domain.entities.base import DATASET_SPLITS, Batch, DatasetSplit
from deep_learning_data.core.domain.entities.preprocess import Pipeline, PreprocessSpec, make_pipeline
from deep_learning_data.core.domain.entities.tensor import ArrayTensor, CompositeTensor, TensorLike
from deep_learning_data.core.domain.errors.data import (
    InvalidArgumentError,
    InvalidOperationError,
    NotSerializableError,
)

__all__ = [
    "DataSet",
    "DatasetInfo",
    "NotSerializableMixin",
    "PreprocessConfig",
    "PreprocessOption",
]

LOGGER = logging.getLogger(__name__)

# A pipeline (or what make_pipeline accepts) for a single tensor, or one per
# composite member keyed by member name.
PreprocessOption = Union[PreprocessSpec, Mapping[str, PreprocessSpec], None]


@dataclass(frozen=True)
class DatasetInfo:
    """Metadata required by downstream consumers (training loops, reports)."""

    num_classes: int
    input_shape: tuple[int, ...]
    train_size: int | None = None
    valid_size: int | None = None
    test_size: int | None = None
    class_names: tuple[str, ...] | None = None


@dataclass(frozen=True)
class PreprocessConfig:
    """What `DataSet.preprocess` should run.

    With `can_fit=True` each pipeline is first fit on the set's own data.
    With `can_fit=False` the already-fitted statistics are reused untouched.
    """

    input_preprocess: PreprocessOption = None
    target_preprocess: PreprocessOption = None
    can_fit: bool = False


class NotSerializableMixin:
    """Refuse pickling, deep copies and anything else going through __reduce_ex__."""

    def __reduce_ex__(self, protocol: Any):
        raise NotSerializableError(f"{type(self).__name__} must not be serialized")

    def __reduce__(self):
        raise NotSerializableError(f"{type(self).__name__} must not be serialized")

    def __getstate__(self):
        raise NotSerializableError(f"{type(self).__name__} must not be serialized")


def _check_tensor(value: Any, what: str) -> TensorLike:
    if isinstance(value, (ArrayTensor, CompositeTensor)):
        return value
    if isinstance(value, np.ndarray):
        return ArrayTensor(value)
    raise InvalidArgumentError(
        f"{what} must be an ArrayTensor, a CompositeTensor or a numpy array, got {type(value).__name__}"
    )


def _plan(tensor: TensorLike, option: PreprocessOption, what: str) -> list[tuple[str, ArrayTensor, Pipeline]]:
    """Pair each tensor to preprocess with its pipeline."""

    if option is None:
        return []

    if isinstance(option, Mapping):
        if not isinstance(tensor, CompositeTensor):
            raise InvalidArgumentError(
                f"{what} preprocess given per member, but {what} is a single tensor"
            )
        unknown = sorted(set(option) - set(tensor.names()))
        if unknown:
            raise InvalidArgumentError(f"{what} has no members named {unknown}")
        return [
            (f"{what}[{name}]", member, make_pipeline(option[name]))
            for name, member in tensor
            if name in option and option[name] is not None
        ]

    if isinstance(tensor, CompositeTensor):
        raise InvalidArgumentError(
            f"{what} is composite ({', '.join(tensor.names())}): "
            "pass a mapping of member name to pipeline"
        )
    return [(what, tensor, make_pipeline(option))]


class DataSet(NotSerializableMixin):
    """Inputs and optional targets for one role: train, valid or test.

    Without targets the set is used for unsupervised learning. Inputs and
    targets may be CompositeTensors for multiple inputs (image + tags) or
    multiple targets (multi-task learning, hints).
    """

    def __init__(
        self,
        *,
        inputs: TensorLike | np.ndarray,
        targets: TensorLike | np.ndarray | None = None,
        which_set: DatasetSplit,
    ) -> None:
        if which_set not in DATASET_SPLITS:
            raise InvalidArgumentError(f"which_set must be one of {DATASET_SPLITS}, got {which_set!r}")
        self._which_set = which_set
        self._inputs = _check_tensor(inputs, "inputs")
        self._targets = None if targets is None else _check_tensor(targets, "targets")

        if self._targets is not None and self._targets.sample_count() != self._inputs.sample_count():
            raise InvalidArgumentError(
                f"{which_set} set: {self._inputs.sample_count()} inputs "
                f"but {self._targets.sample_count()} targets"
            )

    def which_set(self) -> DatasetSplit:
        return self._which_set

    def inputs(self) -> TensorLike:
        return self._inputs

    def targets(self) -> TensorLike | None:
        return self._targets

    @property
    def is_supervised(self) -> bool:
        return self._targets is not None

    def sample_count(self) -> int:
        return self._inputs.sample_count()

    def __len__(self) -> int:
        return self.sample_count()

    def probabilities(self) -> np.ndarray:
        """Per-sample sampling weights. Subclasses supporting weighted sampling override this."""

        raise NotImplementedError(f"{type(self).__name__} does not support weighted sampling")

    def empty_batch(self) -> Batch:
        """Build an empty Batch shaped like this set (factory for batch assembly)."""

        return Batch(
            inputs=self._inputs.empty_clone(),
            targets=self._targets.empty_clone() if self._targets is not None else None,
            which_set=self._which_set,
            epoch_size=self.sample_count(),
        )

    def preprocess(self, config: PreprocessConfig) -> None:
        plan = _plan(self._inputs, config.input_preprocess, "inputs")
        if self._targets is not None:
            plan += _plan(self._targets, config.target_preprocess, "targets")
        if not plan:
            return

        if not config.can_fit:
            for what, _, pipeline in plan:
                if not pipeline.is_fitted:
                    raise InvalidOperationError(
                        f"{self._which_set} set: {what} pipeline was never fit "
                        "(it can only be fit on a train set)"
                    )

        # Replace payloads only once every pipeline succeeded.
        results = []
        for what, tensor, pipeline in plan:
            data = tensor.data()
            if config.can_fit:
                LOGGER.debug("fitting %s pipeline on %s set", what, self._which_set)
                pipeline.fit(data)
            out = np.asarray(pipeline.apply(data))
            if out.shape != tensor.shape:
                raise InvalidArgumentError(
                    f"{self._which_set} set: {what} pipeline changed shape {tensor.shape} -> {out.shape}"
                )
            results.append((tensor, out))
        for tensor, data in results:
            tensor.replace(data)
        LOGGER.debug("preprocessed %s set (%d tensors, can_fit=%s)", self._which_set, len(plan), config.can_fit)

    def __repr__(self) -> str:
        return (
            f"DataSet(which_set='{self._which_set}', n={self.sample_count()}, "
            f"inputs={self._inputs!r}, targets={self._targets!r})"
        )
