# Storage adapters
from .json_store import JsonFileStore
from .memory import InMemoryStore

__all__ = ["InMemoryStore", "JsonFileStore"]
