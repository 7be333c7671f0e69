from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Union

import numpy as np

from deep_learning_data.core.domain.errors.data import InvalidArgumentError

__all__ = ["ArrayTensor", "CompositeTensor", "TensorLike"]

# b: batch, f: feature, t: time/sequence, c: channel, h: height, w: width
_DEFAULT_AXES = {1: "b", 2: "bf", 3: "btf", 4: "bchw", 5: "btchw"}


class ArrayTensor:
    """A numpy array tagged with its axis layout.

    `axes` has one character per dimension, the first one being the batch
    axis (e.g. "bchw" for images, "bf" for feature vectors, "b" for labels).
    The array is held by reference; preprocessing swaps it through `replace`.
    """

    def __init__(self, data: np.ndarray, axes: str | None = None) -> None:
        data = np.asarray(data)
        if data.ndim < 1:
            raise InvalidArgumentError("tensor data needs at least a batch axis")
        if axes is None:
            axes = _DEFAULT_AXES.get(data.ndim)
            if axes is None:
                raise InvalidArgumentError(
                    f"no default axes for {data.ndim}-D data, pass axes explicitly"
                )
        if len(axes) != data.ndim:
            raise InvalidArgumentError(
                f"axes '{axes}' do not match data with {data.ndim} dimensions"
            )
        self._data = data
        self._axes = axes

    @property
    def axes(self) -> str:
        return self._axes

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self._data.shape)

    def data(self) -> np.ndarray:
        return self._data

    def replace(self, data: np.ndarray) -> None:
        """Swap the payload for a preprocessed one with the same shape."""

        data = np.asarray(data)
        if data.shape != self._data.shape:
            raise InvalidArgumentError(
                f"replacement shape {data.shape} differs from {self._data.shape}"
            )
        self._data = data

    def sample_count(self) -> int:
        return int(self._data.shape[0])

    def empty_clone(self) -> "ArrayTensor":
        empty = np.empty((0, *self._data.shape[1:]), dtype=self._data.dtype)
        return ArrayTensor(empty, axes=self._axes)

    def sub(self, index: np.ndarray | slice) -> "ArrayTensor":
        return ArrayTensor(self._data[index], axes=self._axes)

    def __repr__(self) -> str:
        return f"ArrayTensor(shape={self.shape}, axes='{self._axes}', dtype={self._data.dtype})"


class CompositeTensor:
    """Ordered, named group of tensors sharing one sample count.

    Used for multiple inputs (e.g. image + tags) or multiple targets
    (multi-task learning).
    """

    def __init__(self, tensors: Mapping[str, ArrayTensor]) -> None:
        if not tensors:
            raise InvalidArgumentError("CompositeTensor needs at least one member")
        members: dict[str, ArrayTensor] = {}
        for name, tensor in tensors.items():
            if not isinstance(tensor, ArrayTensor):
                raise InvalidArgumentError(
                    f"member '{name}' must be an ArrayTensor, got {type(tensor).__name__}"
                )
            members[str(name)] = tensor

        counts = {name: t.sample_count() for name, t in members.items()}
        if len(set(counts.values())) != 1:
            raise InvalidArgumentError(f"composite members disagree on sample count: {counts}")
        self._tensors = members

    def names(self) -> tuple[str, ...]:
        return tuple(self._tensors)

    def __getitem__(self, name: str) -> ArrayTensor:
        return self._tensors[name]

    def __iter__(self) -> Iterator[tuple[str, ArrayTensor]]:
        return iter(self._tensors.items())

    def __len__(self) -> int:
        return len(self._tensors)

    def sample_count(self) -> int:
        return next(iter(self._tensors.values())).sample_count()

    def empty_clone(self) -> "CompositeTensor":
        return CompositeTensor({name: t.empty_clone() for name, t in self._tensors.items()})

    def sub(self, index: np.ndarray | slice) -> "CompositeTensor":
        return CompositeTensor({name: t.sub(index) for name, t in self._tensors.items()})

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}={t!r}" for name, t in self._tensors.items())
        return f"CompositeTensor({inner})"


TensorLike = Union[ArrayTensor, CompositeTensor]
