from . import drop

__all__ = [
    "drop",
]
