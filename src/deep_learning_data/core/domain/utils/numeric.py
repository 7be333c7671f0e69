from __future__ import annotations

from typing import Any, TypeVar

import numpy as np

from deep_learning_data.core.domain.errors.data import InvalidArgumentError

ArrayOrTensor = TypeVar("ArrayOrTensor")


def _as_array(x: Any) -> np.ndarray:
    if isinstance(x, np.ndarray):
        return x
    # ArrayTensor
    if callable(getattr(x, "data", None)):
        return _as_array(x.data())
    raise InvalidArgumentError(f"expected a numpy array or ArrayTensor, got {type(x).__name__}")


def rescale(
    data: ArrayOrTensor,
    min: float,
    max: float,
    data_min: float | None = None,
    data_max: float | None = None,
) -> ArrayOrTensor:
    """Linearly map `data` from [data_min, data_max] onto [min, max], in place.

    `data_min`/`data_max` default to the extrema of `data` itself.

    Raises:
        InvalidArgumentError: the source range is empty (data_max == data_min),
            or `data` is not floating point and cannot be rescaled in place.
            Also raised when `data` is empty and no source range is given.
    """

    arr = _as_array(data)
    if not np.issubdtype(arr.dtype, np.floating):
        raise InvalidArgumentError(f"rescale needs floating point data, got {arr.dtype}")
    if arr.size == 0 and (data_min is None or data_max is None):
        raise InvalidArgumentError("cannot take the range of empty data")

    dmin = float(arr.min()) if data_min is None else float(data_min)
    dmax = float(arr.max()) if data_max is None else float(data_max)
    drange = dmax - dmin
    if drange == 0.0:
        raise InvalidArgumentError(f"cannot rescale from an empty range [{dmin}, {dmax}]")

    arr -= dmin
    arr *= (max - min) / drange
    arr += min
    return data


def binarize(x: ArrayOrTensor, threshold: float) -> ArrayOrTensor:
    """In place: values below `threshold` become 0, the rest become 1."""

    arr = _as_array(x)
    below = arr < threshold
    arr[below] = 0
    arr[~below] = 1
    return x
