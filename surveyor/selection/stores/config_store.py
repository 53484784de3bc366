"""SelectionConfigStore abstract interface."""

from abc import ABC, abstractmethod
from uuid import UUID

from surveyor.selection.models import CombinationRule, TopicGroup, TriggerDefinition


class SelectionConfigStore(ABC):
    """Abstract interface for per-business selection configuration.

    Manages triggers, combination rules, topic groups and category
    weights. Selection runs only read from the store.
    """

    # Trigger operations
    @abstractmethod
    async def get_trigger(self, business_id: UUID, trigger_id: UUID) -> TriggerDefinition | None:
        """Get a trigger by ID."""
        pass

    @abstractmethod
    async def get_triggers(
        self,
        business_id: UUID,
        *,
        active_only: bool = True,
    ) -> list[TriggerDefinition]:
        """Get triggers for a business."""
        pass

    @abstractmethod
    async def save_trigger(self, trigger: TriggerDefinition) -> UUID:
        """Save a trigger, returning its ID."""
        pass

    @abstractmethod
    async def delete_trigger(self, business_id: UUID, trigger_id: UUID) -> bool:
        """Delete a trigger."""
        pass

    # Combination rule operations
    @abstractmethod
    async def get_combination_rules(
        self,
        business_id: UUID,
        *,
        active_only: bool = True,
    ) -> list[CombinationRule]:
        """Get combination rules for a business."""
        pass

    @abstractmethod
    async def save_combination_rule(self, rule: CombinationRule) -> UUID:
        """Save a combination rule, returning its ID."""
        pass

    # Topic group operations
    @abstractmethod
    async def get_topic_groups(
        self,
        business_id: UUID,
        *,
        active_only: bool = True,
    ) -> list[TopicGroup]:
        """Get topic groups for a business."""
        pass

    @abstractmethod
    async def save_topic_group(self, group: TopicGroup) -> UUID:
        """Save a topic group, returning its ID."""
        pass

    # Priority weight operations
    @abstractmethod
    async def get_priority_weights(self, business_id: UUID) -> dict[str, float]:
        """Get question category weight factors for a business."""
        pass

    @abstractmethod
    async def save_priority_weight(
        self,
        business_id: UUID,
        category: str,
        weight_factor: float,
    ) -> None:
        """Set the weight factor of a question category."""
        pass
