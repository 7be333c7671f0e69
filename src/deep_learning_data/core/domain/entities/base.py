from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, get_args

from deep_learning_data.core.domain.entities.tensor import TensorLike

__all__ = ["DatasetSplit", "DATASET_SPLITS", "Batch"]

DatasetSplit = Literal["train", "valid", "test"]

DATASET_SPLITS: tuple[str, ...] = get_args(DatasetSplit)


@dataclass(frozen=True)
class Batch:
    """A batch of samples drawn from one DataSet.

    `epoch_size` is the sample count of the set the batch comes from, so a
    consumer can tell how many batches make up one epoch.
    `targets` is None for unsupervised data.
    """

    inputs: TensorLike
    targets: TensorLike | None
    which_set: DatasetSplit
    epoch_size: int

    def sample_count(self) -> int:
        return self.inputs.sample_count()
