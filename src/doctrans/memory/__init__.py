"""Translation memory: SQLAlchemy models and the store that reads and appends to them."""

from .models import Base, Original, Translation  # noqa: F401
from .store import TranslationStore  # noqa: F401

__all__ = [
    "Base",
    "Original",
    "Translation",
    "TranslationStore",
]
