"""
Shared fixtures.

The sample plan mirrors a typical household:
- assets: Stocks 10,000 and Savings Account 5,000
- liability: Mortgage 200,000 at 3.5% with 1,800/month minimum
- monthly income: Salary 8,000
- monthly expenses: Rent 2,500 and Groceries 500
"""

import json

import httpx
import pytest

from finplan.config import PersistenceSettings
from finplan.models import (
    Asset,
    Expense,
    Frequency,
    Income,
    Liability,
    Plan,
    ProjectionAssumptions,
    ProjectionSettings,
)
from finplan.projection import recompute_cashflow, recompute_summary
from finplan.services.persistence import HttpFinancialStorage
from finplan.state import PlanStore


def build_plan(assets=(), liabilities=(), incomes=(), expenses=()) -> Plan:
    plan = Plan(
        assets=list(assets),
        liabilities=list(liabilities),
        incomes=list(incomes),
        expenses=list(expenses),
    )
    recompute_cashflow(plan)
    return recompute_summary(plan)


@pytest.fixture
def sample_plan() -> Plan:
    return build_plan(
        assets=[
            Asset(id="asset-stocks", name="Stocks", category="investment",
                  current_value=10000, annual_growth_rate=0.07),
            Asset(id="asset-savings", name="Savings Account", category="cash",
                  current_value=5000, annual_growth_rate=0.02),
        ],
        liabilities=[
            Liability(id="liability-mortgage", name="Mortgage", category="housing",
                      current_balance=200000, interest_rate_apr=0.035,
                      minimum_payment=1800),
        ],
        incomes=[
            Income(id="income-salary", source="Salary", amount=8000,
                   frequency=Frequency.MONTHLY, category="employment"),
        ],
        expenses=[
            Expense(id="expense-rent", payee="Rent", amount=2500,
                    frequency=Frequency.MONTHLY, category="housing"),
            Expense(id="expense-groceries", payee="Groceries", amount=500,
                    frequency=Frequency.MONTHLY, category="food"),
        ],
    )


@pytest.fixture
def projection_settings() -> ProjectionSettings:
    return ProjectionSettings(
        current_age=30,
        retirement_age=65,
        projection_years=35,
        inflation_rate=0.03,
        average_return_rate=0.07,
    )


@pytest.fixture
def store(projection_settings) -> PlanStore:
    return PlanStore(
        settings=projection_settings,
        assumptions=ProjectionAssumptions(),
    )


@pytest.fixture
def loaded_store(store, sample_plan) -> PlanStore:
    store.set_plan(sample_plan)
    return store


# Keys the finance service decodes for each resource; any other key is a 400
SERVICE_WRITABLE_KEYS = {
    "assets": {"id", "name", "category", "currentValue", "annualGrowthRate", "notes"},
    "liabilities": {
        "id", "name", "category", "currentBalance", "interestRateApr",
        "minimumPayment", "notes",
    },
    "cashflow/incomes": {
        "id", "source", "amount", "frequency", "startDate", "category", "notes",
    },
    "cashflow/expenses": {"id", "payee", "amount", "frequency", "category", "notes"},
}


class FakeFinanceService:
    """
    Stateful httpx.MockTransport handler standing in for the REST service.

    Unknown body keys are rejected with 400 like the real decoder does.
    fail_writes maps a 1-based write number to the status returned for it.
    """

    def __init__(self, plan: Plan = None, fail_writes=None):
        self.records = {path: {} for path in SERVICE_WRITABLE_KEYS}
        self.writes: list[tuple] = []
        self.fail_writes = fail_writes or {}
        if plan is not None:
            for path, items in (
                ("assets", plan.assets),
                ("liabilities", plan.liabilities),
                ("cashflow/incomes", plan.incomes),
                ("cashflow/expenses", plan.expenses),
            ):
                for item in items:
                    self.records[path][item.id] = item.to_wire()

    def _split(self, request: httpx.Request):
        path = request.url.path.strip("/")
        for resource in SERVICE_WRITABLE_KEYS:
            if path == resource:
                return resource, None
            if path.startswith(resource + "/"):
                return resource, path[len(resource) + 1:]
        return None, None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        resource, entity_id = self._split(request)
        if resource is None:
            return httpx.Response(404, json={"error": "not found"})

        if request.method == "GET":
            if entity_id is None:
                return httpx.Response(200, json=list(self.records[resource].values()))
            if entity_id not in self.records[resource]:
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(200, json=self.records[resource][entity_id])

        self.writes.append((request.method, resource, entity_id))
        status = self.fail_writes.get(len(self.writes))
        if status:
            return httpx.Response(status, json={"error": "write failed"})

        if request.method == "DELETE":
            if self.records[resource].pop(entity_id, None) is None:
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(204)

        body = json.loads(request.content)
        unknown = sorted(set(body) - SERVICE_WRITABLE_KEYS[resource])
        if unknown:
            return httpx.Response(
                400, json={"error": f"json: unknown field '{unknown[0]}'"}
            )

        if request.method == "POST":
            self.records[resource][body["id"]] = body
            return httpx.Response(201, json=body)
        if entity_id not in self.records[resource]:
            return httpx.Response(404, json={"error": "not found"})
        self.records[resource][entity_id] = body
        return httpx.Response(200, json=body)


def http_storage(handler) -> HttpFinancialStorage:
    settings = PersistenceSettings(
        base_url="http://test",
        retry_attempts=1,
        retry_wait_min_seconds=0,
        retry_wait_max_seconds=0,
    )
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="http://test",
    )
    return HttpFinancialStorage(settings=settings, client=client)
