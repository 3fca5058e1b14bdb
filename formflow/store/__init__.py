"""Form and submission storage."""

from formflow.store.memory import InMemoryStore

__all__ = ["InMemoryStore"]
