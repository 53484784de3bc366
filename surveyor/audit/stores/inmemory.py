"""In-memory implementation of SelectionAuditStore."""

from datetime import datetime
from uuid import UUID

from surveyor.audit.models import SelectionRecord
from surveyor.audit.store import SelectionAuditStore


class InMemorySelectionAuditStore(SelectionAuditStore):
    """In-memory implementation of SelectionAuditStore for testing and development.

    Uses simple dict storage with linear scan for queries.
    Not suitable for production use.
    """

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._records: dict[UUID, SelectionRecord] = {}

    async def save_selection(self, record: SelectionRecord) -> UUID:
        """Save a selection record."""
        self._records[record.record_id] = record
        return record.record_id

    async def get_selection(self, record_id: UUID) -> SelectionRecord | None:
        """Get a selection record by ID."""
        return self._records.get(record_id)

    async def list_selections_by_business(
        self,
        business_id: UUID,
        *,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        limit: int = 100,
    ) -> list[SelectionRecord]:
        """List selection records for a business, newest first."""
        results = []
        for record in self._records.values():
            if record.business_id != business_id:
                continue
            if start_time and record.timestamp < start_time:
                continue
            if end_time and record.timestamp > end_time:
                continue
            results.append(record)
        results.sort(key=lambda x: x.timestamp, reverse=True)
        return results[:limit]
