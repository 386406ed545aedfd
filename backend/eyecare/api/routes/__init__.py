from . import backup, health, records

__all__ = [
    "backup",
    "health",
    "records",
]
