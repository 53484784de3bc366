"""In-memory implementation of SelectionConfigStore."""

from uuid import UUID

from surveyor.selection.models import CombinationRule, TopicGroup, TriggerDefinition
from surveyor.selection.stores.config_store import SelectionConfigStore


class InMemorySelectionConfigStore(SelectionConfigStore):
    """In-memory implementation of SelectionConfigStore for testing and development.

    Uses simple dict storage with linear scan for queries.
    Not suitable for production use.
    """

    def __init__(self) -> None:
        """Initialize empty storage."""
        self._triggers: dict[UUID, TriggerDefinition] = {}
        self._rules: dict[UUID, CombinationRule] = {}
        self._topic_groups: dict[UUID, TopicGroup] = {}
        self._weights: dict[UUID, dict[str, float]] = {}

    # Trigger operations
    async def get_trigger(self, business_id: UUID, trigger_id: UUID) -> TriggerDefinition | None:
        """Get a trigger by ID."""
        trigger = self._triggers.get(trigger_id)
        if trigger and trigger.business_id == business_id:
            return trigger
        return None

    async def get_triggers(
        self,
        business_id: UUID,
        *,
        active_only: bool = True,
    ) -> list[TriggerDefinition]:
        """Get triggers for a business."""
        return [
            t
            for t in self._triggers.values()
            if t.business_id == business_id and (t.is_active or not active_only)
        ]

    async def save_trigger(self, trigger: TriggerDefinition) -> UUID:
        """Save a trigger, returning its ID."""
        self._triggers[trigger.id] = trigger
        return trigger.id

    async def delete_trigger(self, business_id: UUID, trigger_id: UUID) -> bool:
        """Delete a trigger."""
        trigger = self._triggers.get(trigger_id)
        if trigger is None or trigger.business_id != business_id:
            return False
        del self._triggers[trigger_id]
        return True

    # Combination rule operations
    async def get_combination_rules(
        self,
        business_id: UUID,
        *,
        active_only: bool = True,
    ) -> list[CombinationRule]:
        """Get combination rules for a business."""
        return [
            r
            for r in self._rules.values()
            if r.business_id == business_id and (r.is_active or not active_only)
        ]

    async def save_combination_rule(self, rule: CombinationRule) -> UUID:
        """Save a combination rule, returning its ID."""
        self._rules[rule.id] = rule
        return rule.id

    # Topic group operations
    async def get_topic_groups(
        self,
        business_id: UUID,
        *,
        active_only: bool = True,
    ) -> list[TopicGroup]:
        """Get topic groups for a business."""
        return [
            g
            for g in self._topic_groups.values()
            if g.business_id == business_id and (g.is_active or not active_only)
        ]

    async def save_topic_group(self, group: TopicGroup) -> UUID:
        """Save a topic group, returning its ID."""
        self._topic_groups[group.id] = group
        return group.id

    # Priority weight operations
    async def get_priority_weights(self, business_id: UUID) -> dict[str, float]:
        """Get question category weight factors for a business."""
        return dict(self._weights.get(business_id, {}))

    async def save_priority_weight(
        self,
        business_id: UUID,
        category: str,
        weight_factor: float,
    ) -> None:
        """Set the weight factor of a question category."""
        if weight_factor <= 0:
            raise ValueError("weight_factor must be positive")
        self._weights.setdefault(business_id, {})[category] = weight_factor
