
from .asset_store import AssetStorePort
from .dataset_provider import DatasetProviderPort
from .preprocess import PreprocessPort

__all__ = [
	"AssetStorePort",
	"DatasetProviderPort",
	"PreprocessPort",
]
