from __future__ import annotations


class DataError(Exception):
    """Base class for data-layer errors."""


class InvalidArgumentError(DataError, ValueError):
    """Malformed configuration, degenerate range or missing required field."""


class NotSerializableError(DataError, TypeError):
    """Raised when something tries to persist a DataSet or DataSource.

    Datasets are session-local views over external data: rebuild them from
    their source instead of snapshotting them.
    """


class UnknownAxisError(DataError, LookupError):
    pass


class InvalidOperationError(DataError, RuntimeError):
    """Raised when a pipeline is applied before it was ever fit."""


class DownloadError(DataError, OSError):
    pass
