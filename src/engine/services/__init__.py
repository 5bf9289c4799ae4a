from .batching import batched
from .cron import validate_cron
from .descriptors import Descriptor, resolve

__all__ = [
    "batched",
    "validate_cron",
    "Descriptor",
    "resolve",
]
