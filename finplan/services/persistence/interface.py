"""
Abstract Persistence Interface

DESIGN DECISION: We define an abstract interface for the remote copy of the plan.
This allows us to:
1. Talk to the REST financial data service in production
2. Use in-memory storage for tests and local-only mode
3. Keep the dispatcher decoupled from transport details

The remote service exposes the same CRUD operations for every resource,
so one resource interface covers assets, liabilities, incomes and expenses.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional

from finplan.models.intent import IntentEntity
from finplan.models.plan import (
    Asset,
    Expense,
    Income,
    Liability,
    Plan,
    PlanEntity,
)
from finplan.projection.summary import recompute_cashflow, recompute_summary

RESOURCE_PATHS = {
    IntentEntity.ASSET: "assets",
    IntentEntity.LIABILITY: "liabilities",
    IntentEntity.INCOME: "cashflow/incomes",
    IntentEntity.EXPENSE: "cashflow/expenses",
}

RESOURCE_MODELS = {
    IntentEntity.ASSET: Asset,
    IntentEntity.LIABILITY: Liability,
    IntentEntity.INCOME: Income,
    IntentEntity.EXPENSE: Expense,
}

# Fields the service accepts in create and update bodies; anything else is a 400
WRITE_FIELDS = {
    IntentEntity.ASSET: frozenset({
        "id", "name", "category", "current_value", "annual_growth_rate", "notes",
    }),
    IntentEntity.LIABILITY: frozenset({
        "id", "name", "category", "current_balance", "interest_rate_apr",
        "minimum_payment", "notes",
    }),
    IntentEntity.INCOME: frozenset({
        "id", "source", "amount", "frequency", "start_date", "category", "notes",
    }),
    IntentEntity.EXPENSE: frozenset({
        "id", "payee", "amount", "frequency", "category", "notes",
    }),
}


def write_payload(entity: IntentEntity, record: PlanEntity) -> dict:
    """camelCase request body limited to the resource's writable fields."""
    return record.model_dump(
        by_alias=True,
        mode="json",
        include=set(WRITE_FIELDS[IntentEntity(entity)]),
    )


class ResourceStorageInterface(ABC):
    """
    CRUD operations on one remote resource collection.

    Any implementation (REST, in-memory, database) must implement these methods.
    """

    entity: IntentEntity

    @abstractmethod
    async def list(self) -> list[PlanEntity]:
        """
        Fetch every record of this resource.

        Raises:
            StorageError: If the fetch fails
        """
        pass

    @abstractmethod
    async def get(self, entity_id: str) -> PlanEntity:
        """
        Retrieve a record by its ID.

        Raises:
            NotFoundError: If no record has this ID
        """
        pass

    @abstractmethod
    async def create(self, record: PlanEntity) -> PlanEntity:
        """
        Create a record.

        The payload carries the locally generated id; the stored record
        returned by the backend may carry a different one.

        Returns:
            The record as stored by the backend
        """
        pass

    @abstractmethod
    async def update(self, record: PlanEntity) -> PlanEntity:
        """
        Update the record with the same ID.

        Raises:
            NotFoundError: If no record has this ID
        """
        pass

    @abstractmethod
    async def delete(self, entity_id: str) -> None:
        """
        Delete a record by its ID.

        Raises:
            NotFoundError: If no record has this ID
        """
        pass


class FinancialStorageInterface(ABC):
    """
    The remote copy of a whole plan, split into four resources.
    """

    @abstractmethod
    def resource(self, entity: IntentEntity) -> ResourceStorageInterface:
        """Return the resource storage for one entity type."""
        pass

    async def fetch_plan(self) -> Plan:
        """
        Assemble a Plan from the four resource listings.

        Derived aggregates are recomputed locally, never trusted from the wire.
        """
        assets, liabilities, incomes, expenses = await asyncio.gather(
            self.resource(IntentEntity.ASSET).list(),
            self.resource(IntentEntity.LIABILITY).list(),
            self.resource(IntentEntity.INCOME).list(),
            self.resource(IntentEntity.EXPENSE).list(),
        )
        plan = Plan(
            assets=assets,
            liabilities=liabilities,
            incomes=incomes,
            expenses=expenses,
        )
        recompute_cashflow(plan)
        return recompute_summary(plan)

    async def aclose(self) -> None:
        """Release any network resources."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class RequestFailedError(StorageError):
    """The backend answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        details: Optional[Any] = None,
        url: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details
        self.url = url


class NotFoundError(RequestFailedError):
    """Entity not found in storage."""

    def __init__(
        self,
        message: str,
        status_code: int = 404,
        details: Optional[Any] = None,
        url: Optional[str] = None,
    ):
        super().__init__(message, status_code, details, url)


class StorageConnectionError(StorageError):
    """Could not reach the storage backend (network failure or timeout)."""
    pass
