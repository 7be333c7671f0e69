"""Domain entities.

These are pure-ish structures used by the core. Keep filesystem/network I/O in adapters.
"""

from .tensor import *
from .base import *
from .preprocess import *
from .dataset import *
from .datasource import *
