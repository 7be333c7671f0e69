
from .data import (
	DataError,
	DownloadError,
	InvalidArgumentError,
	InvalidOperationError,
	NotSerializableError,
	UnknownAxisError,
)

__all__ = [
	"DataError",
	"DownloadError",
	"InvalidArgumentError",
	"InvalidOperationError",
	"NotSerializableError",
	"UnknownAxisError",
]
