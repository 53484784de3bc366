"""Selection configuration stores."""

from surveyor.selection.stores.config_store import SelectionConfigStore
from surveyor.selection.stores.inmemory import InMemorySelectionConfigStore

__all__ = ["InMemorySelectionConfigStore", "SelectionConfigStore"]
