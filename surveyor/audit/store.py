"""SelectionAuditStore abstract interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from uuid import UUID

from surveyor.audit.models import SelectionRecord


class SelectionAuditStore(ABC):
    """Abstract interface for selection audit storage."""

    @abstractmethod
    async def save_selection(self, record: SelectionRecord) -> UUID:
        """Save a selection record."""
        pass

    @abstractmethod
    async def get_selection(self, record_id: UUID) -> SelectionRecord | None:
        """Get a selection record by ID."""
        pass

    @abstractmethod
    async def list_selections_by_business(
        self,
        business_id: UUID,
        *,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        limit: int = 100,
    ) -> list[SelectionRecord]:
        """List selection records for a business, newest first."""
        pass
