from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import numpy as np

from deep_learning_data.core.domain.entities.dataset import DataSet, PreprocessOption
from deep_learning_data.core.domain.entities.datasource import DataSource, DataSourceConfig
from deep_learning_data.core.domain.entities.tensor import ArrayTensor
from deep_learning_data.core.domain.errors.data import InvalidArgumentError
from deep_learning_data.core.ports.asset_store import AssetStorePort


class NpzDataSource(DataSource):
    """DataSource backed by a single .npz file.

    Expected keys, each pair optional:
      - x_train, y_train
      - x_valid, y_valid
      - x_test, y_test

    `y_*` may be missing for unsupervised data. Convert raw competition data
    to NPZ once, then reload it fast.
    """

    def __init__(
        self,
        *,
        path: str | Path,
        input_preprocess: PreprocessOption = None,
        target_preprocess: PreprocessOption = None,
        image_axes: str | None = None,
        classes: Sequence[Any] | None = None,
        name: str | None = None,
    ) -> None:
        self._path = Path(path)
        with np.load(self._path) as data:
            arrays = {key: data[key] for key in data.files}

        sets: dict[str, DataSet] = {}
        for role in ("train", "valid", "test"):
            x = arrays.get(f"x_{role}")
            y = arrays.get(f"y_{role}")
            if x is None:
                if y is not None:
                    raise InvalidArgumentError(f"{self._path.name}: y_{role} without x_{role}")
                continue
            sets[role] = DataSet(
                inputs=ArrayTensor(x, axes=image_axes),
                targets=ArrayTensor(y) if y is not None else None,
                which_set=role,
            )
        if not sets:
            raise InvalidArgumentError(f"{self._path.name} has no x_train, x_valid or x_test array")

        train_y = arrays.get("y_train")
        if classes is None and train_y is not None and train_y.ndim == 1:
            classes = tuple(np.unique(train_y).tolist())

        sample_shape = next(iter(sets.values())).inputs().shape[1:]
        self._name = name or self._path.stem
        self._classes = tuple(classes) if classes is not None else None
        self._feature_size = int(np.prod(sample_shape))
        if image_axes is not None:
            self._image_axes = image_axes
            self._image_size = tuple(int(d) for d in sample_shape)

        super().__init__(
            DataSourceConfig(
                train_set=sets.get("train"),
                valid_set=sets.get("valid"),
                test_set=sets.get("test"),
                input_preprocess=input_preprocess,
                target_preprocess=target_preprocess,
            )
        )

    @property
    def path(self) -> Path:
        return self._path

    @classmethod
    def from_url(
        cls,
        *,
        name: str,
        url: str,
        data_dir: str | Path | None = None,
        decompress_file: str | None = None,
        asset_store: AssetStorePort | None = None,
        **kwargs: Any,
    ) -> "NpzDataSource":
        """Fetch the .npz (or an archive holding it) into data_dir/name, then load it."""

        path = cls.get_data_path(
            name,
            url,
            data_dir=data_dir,
            decompress_file=decompress_file,
            asset_store=asset_store,
        )
        return cls(path=path, name=name, **kwargs)
