from __future__ import annotations

from pathlib import Path

import numpy as np
import tensorflow_datasets as tfds

from deep_learning_data.core.domain.commands.data import DataConfig
from deep_learning_data.core.domain.entities.dataset import DataSet, PreprocessOption
from deep_learning_data.core.domain.entities.datasource import DataSource, DataSourceConfig
from deep_learning_data.core.domain.entities.tensor import ArrayTensor
from deep_learning_data.core.domain.errors.data import InvalidArgumentError

# TFDS split name per role, first match wins.
_SPLITS = {
    "train": ("train",),
    "valid": ("validation", "valid"),
    "test": ("test",),
}


class TfdsDataSource(DataSource):
    """TFDS-backed image classification DataSource.

    Loads whole splits as NumPy arrays (`batch_size=-1`), so only use it for
    datasets that fit in memory (MNIST, CIFAR-10, ...).
    """

    _image_axes = "bhwc"

    def __init__(
        self,
        *,
        name: str,
        data_dir: str | Path | None = None,
        input_preprocess: PreprocessOption = None,
        target_preprocess: PreprocessOption = None,
        image_normalize_0_1: bool = True,
    ) -> None:
        data_dir = Path(data_dir) if data_dir is not None else DataConfig.from_env().data_dir / "tfds"
        builder = tfds.builder(name, data_dir=str(data_dir))
        builder.download_and_prepare()
        info = builder.info

        available = set(info.splits.keys())
        sets: dict[str, DataSet] = {}
        for role, candidates in _SPLITS.items():
            split = next((s for s in candidates if s in available), None)
            if split is None:
                continue
            x, y = tfds.as_numpy(builder.as_dataset(split=split, batch_size=-1, as_supervised=True))
            x = np.asarray(x)
            if image_normalize_0_1:
                x = x.astype(np.float32) / 255.0
            sets[role] = DataSet(
                inputs=ArrayTensor(x, axes=self._image_axes),
                targets=ArrayTensor(np.asarray(y)),
                which_set=role,
            )
        if "train" not in sets:
            raise InvalidArgumentError(f"TFDS dataset '{name}' has no train split")

        self._name = name
        self._classes = tuple(info.features["label"].names)
        self._image_size = tuple(int(d) for d in info.features["image"].shape)

        super().__init__(
            DataSourceConfig(
                train_set=sets.get("train"),
                valid_set=sets.get("valid"),
                test_set=sets.get("test"),
                input_preprocess=input_preprocess,
                target_preprocess=target_preprocess,
            )
        )
