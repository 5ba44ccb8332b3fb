"""
Storefront - product catalog with converted prices and price change emails
"""

# Expose core functionality at the top level
from .core.cache import TTLCache
from .core.database import ProductStore
from .core.queue import TaskQueue

# Expose common utilities
from .utils.logging_config import get_logger

__all__ = [
    "ProductStore",
    "TaskQueue",
    "TTLCache",
    "get_logger",
]
