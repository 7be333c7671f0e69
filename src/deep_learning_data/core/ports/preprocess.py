from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class PreprocessPort(Protocol):
    """A stateful transform: `fit` measures statistics, `apply` reuses them.

    `apply` must not modify the statistics. Transforms that need no
    statistics report `is_fitted` as True from the start.
    """

    @property
    def is_fitted(self) -> bool: ...

    def fit(self, data: np.ndarray) -> None: ...

    def apply(self, data: np.ndarray) -> np.ndarray: ...
