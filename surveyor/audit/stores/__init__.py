"""Selection audit store implementations."""

from surveyor.audit.stores.inmemory import InMemorySelectionAuditStore

__all__ = ["InMemorySelectionAuditStore"]
