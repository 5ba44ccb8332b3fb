# Re-export core modules
from .cache import TTLCache
from .database import ConnectionPool, ProductNotFoundError, ProductStore
from .queue import QueueSubmitError, TaskQueue

__all__ = [
    "ConnectionPool",
    "ProductNotFoundError",
    "ProductStore",
    "QueueSubmitError",
    "TaskQueue",
    "TTLCache",
]
