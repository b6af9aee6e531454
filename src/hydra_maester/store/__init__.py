"""Resource and secret stores."""

from hydra_maester.store.base import (
    AlreadyExistsError,
    ConflictError,
    ResourceNotFoundError,
    ResourceStore,
    SecretStore,
    StoreError,
)
from hydra_maester.store.manifest import ManifestStore
from hydra_maester.store.memory import InMemoryStore

__all__ = [
    "AlreadyExistsError",
    "ConflictError",
    "InMemoryStore",
    "ManifestStore",
    "ResourceNotFoundError",
    "ResourceStore",
    "SecretStore",
    "StoreError",
]
