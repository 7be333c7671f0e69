from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from deep_learning_data.core.domain.commands.data import DataConfig, GetDataPathCommand
from deep_learning_data.core.domain.entities.base import DatasetSplit
from deep_learning_data.core.domain.entities.dataset import (
    DataSet,
    DatasetInfo,
    NotSerializableMixin,
    PreprocessConfig,
    PreprocessOption,
)
from deep_learning_data.core.domain.entities.preprocess import Pipeline, make_pipeline
from deep_learning_data.core.domain.entities.tensor import ArrayTensor
from deep_learning_data.core.domain.errors.data import InvalidArgumentError, UnknownAxisError
from deep_learning_data.core.domain.utils import numeric
from deep_learning_data.core.ports.preprocess import PreprocessPort

if TYPE_CHECKING:
    from deep_learning_data.core.ports.asset_store import AssetStorePort

__all__ = ["DataSource", "DataSourceConfig"]

LOGGER = logging.getLogger(__name__)


def _normalize_preprocess(option: Any, field: str) -> PreprocessOption:
    """Wrap transforms and sequences into Pipelines, per member for mappings."""

    if option is None:
        return None
    if isinstance(option, Mapping):
        normalized: dict[str, Pipeline] = {}
        for name, member_option in option.items():
            if not isinstance(name, str):
                raise InvalidArgumentError(f"{field} keys must be member names, got {name!r}")
            if isinstance(member_option, Mapping):
                raise InvalidArgumentError(f"{field}[{name}]: composite members cannot be nested")
            if member_option is not None:
                normalized[name] = _normalize_preprocess(member_option, f"{field}[{name}]")
        return normalized or None
    if isinstance(option, (Pipeline, PreprocessPort)) or (
        isinstance(option, Sequence) and not isinstance(option, (str, bytes))
    ):
        try:
            return make_pipeline(option)
        except InvalidArgumentError as e:
            raise InvalidArgumentError(f"{field}: {e}") from e
    raise InvalidArgumentError(
        f"{field} must be a transform, a sequence of transforms, a Pipeline "
        f"or a mapping of member name to one of those, got {type(option).__name__}"
    )


@dataclass(frozen=True)
class DataSourceConfig:
    """Datasets and preprocessing handed to a DataSource.

    Preprocessing is measured (fit) on `train_set` only and the same
    statistics are reused on `valid_set` and `test_set`. Preprocess options
    are normalized to Pipelines on construction.
    """

    train_set: DataSet | None = None
    valid_set: DataSet | None = None
    test_set: DataSet | None = None
    input_preprocess: PreprocessOption = None
    target_preprocess: PreprocessOption = None

    def __post_init__(self) -> None:
        for role in ("train", "valid", "test"):
            dataset = getattr(self, f"{role}_set")
            if dataset is None:
                continue
            if not isinstance(dataset, DataSet):
                raise InvalidArgumentError(
                    f"{role}_set must be a DataSet, got {type(dataset).__name__}"
                )
            if dataset.which_set() != role:
                raise InvalidArgumentError(
                    f"{role}_set is tagged as a '{dataset.which_set()}' set"
                )

        # frozen: bypass __setattr__ to store the normalized values
        for field in ("input_preprocess", "target_preprocess"):
            object.__setattr__(self, field, _normalize_preprocess(getattr(self, field), field))

        # A transform holds the statistics of a single tensor.
        seen: dict[int, str] = {}
        for where, pipeline in self._pipelines():
            for step in pipeline.steps:
                if id(step) in seen:
                    raise InvalidArgumentError(
                        f"{where} reuses the transform already given for {seen[id(step)]}: {step!r}"
                    )
                seen[id(step)] = where

    def _pipelines(self) -> list[tuple[str, Pipeline]]:
        found = []
        for field in ("input_preprocess", "target_preprocess"):
            option = getattr(self, field)
            if isinstance(option, Mapping):
                found += [(f"{field}[{name}]", p) for name, p in option.items()]
            elif option is not None:
                found.append((field, option))
        return found


class DataSource(NotSerializableMixin):
    """Up to three DataSets (train, valid, test) sharing one preprocessing.

    Concrete data sources set the class-level metadata below (`_name`,
    `_classes`, `_feature_size`, `_image_size`, `_image_axes`).
    """

    _name: str | None = None
    _classes: Sequence[Any] | None = None
    _feature_size: int | None = None
    _image_size: Sequence[int] | None = None
    _image_axes: str | None = None

    def __init__(self, config: DataSourceConfig | None = None, **kwargs: Any) -> None:
        if config is None:
            unknown = sorted(set(kwargs) - {f.name for f in fields(DataSourceConfig)})
            if unknown:
                raise InvalidArgumentError(f"unknown DataSource arguments: {unknown}")
            config = DataSourceConfig(**kwargs)
        elif kwargs:
            raise InvalidArgumentError("pass either a DataSourceConfig or keyword arguments, not both")
        elif not isinstance(config, DataSourceConfig):
            raise InvalidArgumentError(
                f"config must be a DataSourceConfig, got {type(config).__name__}"
            )

        self._train_set = config.train_set
        self._valid_set = config.valid_set
        self._test_set = config.test_set
        self._input_preprocess = config.input_preprocess
        self._target_preprocess = config.target_preprocess
        self.preprocess()

    def train_set(self) -> DataSet | None:
        return self._train_set

    def valid_set(self) -> DataSet | None:
        return self._valid_set

    def test_set(self) -> DataSet | None:
        return self._test_set

    def sets(self) -> dict[DatasetSplit, DataSet]:
        found = {"train": self._train_set, "valid": self._valid_set, "test": self._test_set}
        return {role: ds for role, ds in found.items() if ds is not None}

    def input_preprocess(self) -> PreprocessOption:
        return self._input_preprocess

    def target_preprocess(self) -> PreprocessOption:
        return self._target_preprocess

    def preprocess(self) -> None:
        """Fit on the train set, then apply the same statistics to valid and test.

        Called once by __init__. Without a train set, valid/test preprocessing
        fails on any pipeline that needs fitting.
        """

        if self._input_preprocess is None and self._target_preprocess is None:
            return

        for role, dataset in self.sets().items():
            can_fit = role == "train"
            LOGGER.debug("%s: preprocessing %s set (can_fit=%s)", type(self).__name__, role, can_fit)
            dataset.preprocess(
                PreprocessConfig(
                    input_preprocess=self._input_preprocess,
                    target_preprocess=self._target_preprocess,
                    can_fit=can_fit,
                )
            )

    # Static attributes, defined by concrete data sources.

    def name(self) -> str | None:
        return self._name

    def classes(self) -> Sequence[Any] | None:
        return self._classes

    def feature_size(self) -> int | None:
        return self._feature_size

    def image_size(self, idx: int | str | None = None) -> Any:
        """Image size, or one of its dimensions.

        `idx` is either a position in `image_size` or an axis character such
        as 'c', looked up in `image_axes` without the batch axis 'b'.
        """

        if isinstance(idx, str):
            view = (self._image_axes or "").replace("b", "")
            pos = view.find(idx) if len(idx) == 1 else -1
            if pos < 0:
                raise UnknownAxisError(f"{type(self).__name__} has no axis '{idx}' (axes: '{view}')")
            idx = pos
        if self._image_size is None or idx is None:
            return self._image_size
        return self._image_size[idx]

    def image_axes(self, idx: int | None = None) -> str | None:
        if self._image_axes is None or idx is None:
            return self._image_axes
        return self._image_axes[idx]

    def info(self) -> DatasetInfo:
        train = self._train_set
        first = train if train is not None else next(iter(self.sets().values()), None)
        input_shape: tuple[int, ...] = ()
        if first is not None and isinstance(first.inputs(), ArrayTensor):
            input_shape = first.inputs().shape[1:]
        classes = self._classes
        return DatasetInfo(
            num_classes=len(classes) if classes is not None else 0,
            input_shape=tuple(input_shape),
            train_size=train.sample_count() if train is not None else None,
            valid_size=self._valid_set.sample_count() if self._valid_set is not None else None,
            test_size=self._test_set.sample_count() if self._test_set is not None else None,
            class_names=tuple(str(c) for c in classes) if classes is not None else None,
        )

    # Data files and numeric helpers.

    @staticmethod
    def get_data_path(
        name: str,
        url: str,
        data_dir: str | Path | None = None,
        decompress_file: str | None = None,
        *,
        asset_store: AssetStorePort | None = None,
    ) -> Path:
        """Check locally and download the data file if not found.

        Returns data_dir/name/basename(url), or data_dir/name/decompress_file
        when `decompress_file` is given (decompressing if that file is missing).
        """

        from deep_learning_data.core.use_cases.get_data_path import GetDataPathUseCase

        config = DataConfig.from_env()
        if asset_store is None:
            from deep_learning_data.adapters.right.asset_store_http import HttpAssetStore

            asset_store = HttpAssetStore(config=config)

        use_case = GetDataPathUseCase(asset_store=asset_store, config=config)
        return use_case.run(
            GetDataPathCommand(
                name=name,
                url=url,
                data_dir=data_dir if data_dir is not None else config.data_dir,
                decompress_file=decompress_file,
            )
        )

    @staticmethod
    def rescale(
        data: np.ndarray,
        min: float,
        max: float,
        data_min: float | None = None,
        data_max: float | None = None,
    ) -> np.ndarray:
        return numeric.rescale(data, min, max, data_min, data_max)

    @staticmethod
    def binarize(x: np.ndarray, threshold: float) -> np.ndarray:
        return numeric.binarize(x, threshold)

    def __repr__(self) -> str:
        sizes = ", ".join(f"{role}={ds.sample_count()}" for role, ds in self.sets().items())
        return f"{type(self).__name__}({sizes})"
