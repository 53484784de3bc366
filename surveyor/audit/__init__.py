"""Audit domain: immutable records of selection runs."""

from surveyor.audit.models import SelectionRecord
from surveyor.audit.store import SelectionAuditStore
from surveyor.audit.stores import InMemorySelectionAuditStore

__all__ = ["InMemorySelectionAuditStore", "SelectionAuditStore", "SelectionRecord"]
