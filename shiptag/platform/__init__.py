"""Platform abstraction layer."""

from .files import atomic_write_bytes, exclusive_lock
from .process import ProcessError, run

__all__ = [
    # files
    "atomic_write_bytes",
    "exclusive_lock",
    # process
    "ProcessError",
    "run",
]
