from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Union

import numpy as np

from deep_learning_data.core.domain.errors.data import InvalidArgumentError, InvalidOperationError
from deep_learning_data.core.domain.utils.numeric import binarize, rescale
from deep_learning_data.core.ports.preprocess import PreprocessPort

__all__ = [
    "Binarize",
    "MinMaxScale",
    "Pipeline",
    "PreprocessSpec",
    "Standardize",
    "make_pipeline",
]


class Pipeline:
    """Ordered sequence of transforms fit and applied together.

    Fitting step i sees the data already transformed by steps 0..i-1, so the
    statistics of every step match what `apply` will feed it later.
    """

    def __init__(self, steps: Sequence[PreprocessPort]) -> None:
        steps = tuple(steps)
        if not steps:
            raise InvalidArgumentError("Pipeline needs at least one transform")
        for i, step in enumerate(steps):
            if not isinstance(step, PreprocessPort):
                raise InvalidArgumentError(
                    f"pipeline step {i} is not a transform (fit/apply/is_fitted): {step!r}"
                )
        self._steps = steps

    @property
    def steps(self) -> tuple[PreprocessPort, ...]:
        return self._steps

    @property
    def is_fitted(self) -> bool:
        return all(step.is_fitted for step in self._steps)

    def fit(self, data: np.ndarray) -> None:
        x = np.array(data, copy=True)
        for step in self._steps:
            step.fit(x)
            x = step.apply(x)

    def apply(self, data: np.ndarray) -> np.ndarray:
        if not self.is_fitted:
            raise InvalidOperationError("Pipeline applied before being fit")
        for step in self._steps:
            data = step.apply(data)
        return data

    def statistics(self) -> list[dict[str, Any]]:
        return [getattr(step, "statistics", dict)() for step in self._steps]

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"Pipeline({list(self._steps)!r})"


PreprocessSpec = Union[PreprocessPort, Sequence[PreprocessPort]]


def make_pipeline(preprocess: PreprocessSpec) -> Pipeline:
    """Return a Pipeline for a single transform or an ordered sequence of them."""

    if isinstance(preprocess, Pipeline):
        return preprocess
    if isinstance(preprocess, PreprocessPort):
        return Pipeline([preprocess])
    if isinstance(preprocess, Sequence) and not isinstance(preprocess, (str, bytes)):
        return Pipeline(preprocess)
    raise InvalidArgumentError(
        f"expected a transform, a sequence of transforms or a Pipeline, got {type(preprocess).__name__}"
    )


class Standardize:
    """Per-feature zero mean / unit variance, statistics taken over the batch axis."""

    def __init__(self, *, std_eps: float = 0.0) -> None:
        self._std_eps = float(std_eps)
        self._mean: np.ndarray | None = None
        self._std: np.ndarray | None = None

    @property
    def is_fitted(self) -> bool:
        return self._mean is not None

    def fit(self, data: np.ndarray) -> None:
        arr = np.asarray(data, dtype=np.float64)
        if arr.shape[:1] == (0,):
            raise InvalidArgumentError("cannot fit Standardize on zero samples")
        mean = np.nanmean(arr, axis=0)
        std = np.nanstd(arr, axis=0) + self._std_eps
        # Constant features would otherwise divide by zero.
        std = np.where(np.isnan(std) | (std == 0.0), 1.0, std)
        self._mean = mean
        self._std = std

    def apply(self, data: np.ndarray) -> np.ndarray:
        if self._mean is None or self._std is None:
            raise InvalidOperationError("Standardize applied before being fit")
        data = np.asarray(data)
        out = (data - self._mean) / self._std
        dtype = data.dtype if np.issubdtype(data.dtype, np.floating) else np.float32
        return out.astype(dtype, copy=False)

    def statistics(self) -> dict[str, Any]:
        return {"mean": self._mean, "std": self._std}

    def __repr__(self) -> str:
        return f"Standardize(fitted={self.is_fitted})"


class MinMaxScale:
    """Rescale into [min, max] using the extrema seen at fit time."""

    def __init__(self, min: float = 0.0, max: float = 1.0) -> None:
        if max <= min:
            raise InvalidArgumentError(f"MinMaxScale needs min < max, got [{min}, {max}]")
        self._min = float(min)
        self._max = float(max)
        self._data_min: float | None = None
        self._data_max: float | None = None

    @property
    def is_fitted(self) -> bool:
        return self._data_min is not None

    def fit(self, data: np.ndarray) -> None:
        if np.size(data) == 0:
            raise InvalidArgumentError("cannot fit MinMaxScale on zero samples")
        data_min = float(np.nanmin(data))
        data_max = float(np.nanmax(data))
        if data_max == data_min:
            raise InvalidArgumentError(f"cannot fit MinMaxScale on constant data ({data_min})")
        self._data_min = data_min
        self._data_max = data_max

    def apply(self, data: np.ndarray) -> np.ndarray:
        if self._data_min is None or self._data_max is None:
            raise InvalidOperationError("MinMaxScale applied before being fit")
        data = np.asarray(data)
        dtype = data.dtype if np.issubdtype(data.dtype, np.floating) else np.float32
        out = np.array(data, dtype=dtype, copy=True)
        return rescale(out, self._min, self._max, self._data_min, self._data_max)

    def statistics(self) -> dict[str, Any]:
        return {"data_min": self._data_min, "data_max": self._data_max}

    def __repr__(self) -> str:
        return f"MinMaxScale(min={self._min}, max={self._max}, fitted={self.is_fitted})"


class Binarize:
    """Threshold to {0, 1}. Stateless, so always fitted."""

    def __init__(self, threshold: float = 0.5) -> None:
        self._threshold = float(threshold)

    @property
    def is_fitted(self) -> bool:
        return True

    def fit(self, data: np.ndarray) -> None:
        return None

    def apply(self, data: np.ndarray) -> np.ndarray:
        data = np.asarray(data)
        dtype = data.dtype if np.issubdtype(data.dtype, np.floating) else np.float32
        return binarize(np.array(data, dtype=dtype, copy=True), self._threshold)

    def statistics(self) -> dict[str, Any]:
        return {"threshold": self._threshold}

    def __repr__(self) -> str:
        return f"Binarize(threshold={self._threshold})"
