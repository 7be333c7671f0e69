
from .npz import NpzDataSource

# TfdsDataSource lives in .tfds and needs the `tfds` extra.

__all__ = [
	"NpzDataSource",
]
