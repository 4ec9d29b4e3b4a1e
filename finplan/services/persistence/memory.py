"""
In-Memory Persistence

Dictionary-backed FinancialStorageInterface for tests and local-only mode.
Records are deep-copied on the way in and out so callers can never share
references with the stored copy.
"""

from typing import Callable, Optional

from finplan.models.intent import IntentEntity
from finplan.models.plan import Plan, PlanEntity
from finplan.services.persistence.interface import (
    FinancialStorageInterface,
    NotFoundError,
    ResourceStorageInterface,
)


class InMemoryResourceStorage(ResourceStorageInterface):
    """One resource collection held in insertion order."""

    def __init__(
        self,
        entity: IntentEntity,
        id_factory: Optional[Callable[[PlanEntity], str]] = None,
    ):
        self.entity = entity
        self._records: dict[str, PlanEntity] = {}
        self._id_factory = id_factory

    def _not_found(self, entity_id: str) -> NotFoundError:
        return NotFoundError(f"{self.entity.value} not found: {entity_id}")

    async def get(self, entity_id: str) -> PlanEntity:
        if entity_id not in self._records:
            raise self._not_found(entity_id)
        return self._records[entity_id].model_copy(deep=True)

    async def create(self, record: PlanEntity) -> PlanEntity:
        stored = record.model_copy(deep=True)
        if self._id_factory is not None:
            stored.id = self._id_factory(record)
        self._records[stored.id] = stored
        return stored.model_copy(deep=True)

    async def update(self, record: PlanEntity) -> PlanEntity:
        if record.id not in self._records:
            raise self._not_found(record.id)
        self._records[record.id] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    async def delete(self, entity_id: str) -> None:
        if self._records.pop(entity_id, None) is None:
            raise self._not_found(entity_id)

    def seed(self, records) -> None:
        for record in records:
            self._records[record.id] = record.model_copy(deep=True)

    async def list(self):
        return [record.model_copy(deep=True) for record in self._records.values()]


class InMemoryFinancialStorage(FinancialStorageInterface):
    """
    Local stand-in for the REST service.

    Args:
        plan: Optional plan to seed the four resources with
        id_factory: Optional callable assigning server-side ids on create,
                    used to simulate a backend that ignores the local id
    """

    def __init__(
        self,
        plan: Optional[Plan] = None,
        id_factory: Optional[Callable[[PlanEntity], str]] = None,
    ):
        self._resources = {
            entity: InMemoryResourceStorage(entity, id_factory)
            for entity in IntentEntity
        }
        if plan is not None:
            for entity, resource in self._resources.items():
                resource.seed(getattr(plan, entity.collection))

    def resource(self, entity: IntentEntity) -> InMemoryResourceStorage:
        return self._resources[IntentEntity(entity)]
