from windowkeeper.store.registry import STORAGE_KEYS, RegistryState, RegistryStore
from windowkeeper.store.storage import JsonFileStorage, MemoryStorage, StateStorage

__all__ = [
    "JsonFileStorage",
    "MemoryStorage",
    "RegistryState",
    "RegistryStore",
    "STORAGE_KEYS",
    "StateStorage",
]
