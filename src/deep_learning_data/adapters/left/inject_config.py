from __future__ import annotations

from typing import Optional

import inject

from deep_learning_data.core.domain.commands.data import DataConfig
from deep_learning_data.core.ports.asset_store import AssetStorePort
from deep_learning_data.core.use_cases.get_data_path import GetDataPathUseCase


# pylint: disable=invalid-name
def get_dependencies_injection_config(
    *,
    data_config: DataConfig,
    asset_store: Optional[AssetStorePort] = None,
):
    """Return an inject binder function.

    No imports occur inside the returned function.
    """

    if asset_store is None:
        from deep_learning_data.adapters.right.asset_store_http import HttpAssetStore

        asset_store = HttpAssetStore(config=data_config)

    def configure_dependencies_injection(binder: inject.Binder) -> None:
        binder.bind(DataConfig, data_config)
        binder.bind(AssetStorePort, asset_store)

        # Bind the use case as a fully-wired object.
        binder.bind(
            GetDataPathUseCase,
            GetDataPathUseCase(asset_store=asset_store, config=data_config),
        )

    return configure_dependencies_injection


def configure_injections(
    *,
    data_config: Optional[DataConfig] = None,
    asset_store: Optional[AssetStorePort] = None,
) -> None:
    """Configure inject with this app's runtime bindings.

    Safe to call multiple times (clears previous bindings).
    """

    config = get_dependencies_injection_config(
        data_config=data_config or DataConfig.from_env(),
        asset_store=asset_store,
    )

    if inject.is_configured():
        inject.clear_and_configure(config)
    else:
        inject.configure(config)
