"""
Plan Store

The single owner of the authoritative plan and everything derived from it.

DESIGN DECISION: One owner, explicit entry points.
Nothing outside the store assigns to the authoritative plan. Callers read it,
take deep-copied snapshots to work on, and hand a finished plan back through
commit(). Every commit recomputes the aggregates and regenerates the timeline,
so the visible plan and the visible timeline always agree.

The store is not locked. Dispatches must be serialized by the caller.
"""

from datetime import datetime
from typing import Any, Optional

import structlog
from pydantic import Field, ValidationError

from finplan.config import ProjectionConfig, get_settings
from finplan.models.plan import Plan, WireModel, utc_now
from finplan.models.projection import (
    ProjectionAssumptions,
    ProjectionSettings,
    TimelinePoint,
)
from finplan.projection.engine import project_plan
from finplan.projection.summary import recompute_cashflow, recompute_summary
from finplan.services.persistence.interface import FinancialStorageInterface
from finplan.validation.validator import PlanValidator

logger = structlog.get_logger(__name__)

SNAPSHOT_VERSION = 1


class ProjectionSettingsError(ValueError):
    """Projection settings were rejected. The store is left unchanged."""

    def __init__(self, issues: list[str]):
        super().__init__("; ".join(issues))
        self.issues = issues


class PlanSnapshot(WireModel):
    """Versioned export of the store's user-owned state."""

    version: int = Field(default=SNAPSHOT_VERSION)
    exported_at: datetime = Field(default_factory=utc_now)
    plan: Optional[Plan] = None
    projection_settings: ProjectionSettings


def default_projection_settings(config: Optional[ProjectionConfig] = None) -> ProjectionSettings:
    config = config or get_settings().projection
    return ProjectionSettings(
        current_age=config.current_age,
        retirement_age=config.retirement_age,
        projection_years=config.projection_years,
        inflation_rate=config.inflation_rate,
        average_return_rate=config.average_return_rate,
    )


def default_assumptions(config: Optional[ProjectionConfig] = None) -> ProjectionAssumptions:
    config = config or get_settings().projection
    return ProjectionAssumptions(
        default_retirement_age=config.retirement_age,
        max_projection_years=config.max_projection_years,
        inflation_rate=config.inflation_rate,
        default_asset_growth_rate=config.default_asset_growth_rate,
        liability_interest_floor=config.liability_interest_floor,
    )


class PlanStore:
    """
    Holds the plan, projection settings, timeline, last update and last error.

    Usage:
        store = PlanStore()
        store.set_plan(plan)
        scratch = store.snapshot()
        ...mutate scratch...
        store.commit(scratch)
    """

    def __init__(
        self,
        settings: Optional[ProjectionSettings] = None,
        assumptions: Optional[ProjectionAssumptions] = None,
        validator: Optional[PlanValidator] = None,
    ):
        self._settings = settings or default_projection_settings()
        self._assumptions = assumptions or default_assumptions()
        self._validator = validator or PlanValidator()
        self._plan: Optional[Plan] = None
        self._timeline: list[TimelinePoint] = []
        self._last_updated: Optional[datetime] = None
        self._last_error: Optional[str] = None

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def plan(self) -> Optional[Plan]:
        """The authoritative plan. Read it; never mutate it."""
        return self._plan

    @property
    def has_plan(self) -> bool:
        return self._plan is not None

    @property
    def timeline(self) -> list[TimelinePoint]:
        return list(self._timeline)

    @property
    def projection_settings(self) -> ProjectionSettings:
        return self._settings

    @property
    def assumptions(self) -> ProjectionAssumptions:
        return self._assumptions

    @property
    def last_updated(self) -> Optional[datetime]:
        return self._last_updated

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def snapshot(self) -> Optional[Plan]:
        """Deep copy of the authoritative plan, safe to mutate."""
        if self._plan is None:
            return None
        return self._plan.model_copy(deep=True)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def set_plan(self, plan: Plan) -> Plan:
        """Replace the plan with a copy of the given one."""
        return self.commit(plan.model_copy(deep=True))

    def commit(self, plan: Plan) -> Plan:
        """
        Make the given plan authoritative.

        The store takes ownership; the caller must not keep mutating it.
        """
        recompute_cashflow(plan)
        recompute_summary(plan)
        plan.last_updated = utc_now()

        self._plan = plan
        self._last_updated = plan.last_updated
        self._last_error = None
        self.generate_timeline()

        logger.info(
            "plan_committed",
            assets=len(plan.assets),
            liabilities=len(plan.liabilities),
            incomes=len(plan.incomes),
            expenses=len(plan.expenses),
            net_worth=plan.summary.net_worth,
        )
        return plan

    def update_projection_settings(self, **changes: Any) -> ProjectionSettings:
        """
        Apply changes to the projection settings and regenerate the timeline.

        Raises:
            ProjectionSettingsError: the resulting settings are invalid;
                the store is left unchanged
        """
        try:
            candidate = ProjectionSettings.model_validate(
                {**self._settings.model_dump(), **changes}
            )
        except ValidationError as e:
            raise ProjectionSettingsError(
                [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]
            ) from e

        result = self._validator.validate_projection_settings(candidate)
        if result.has_errors:
            logger.warning("projection_settings_rejected", issues=result.error_messages())
            raise ProjectionSettingsError(result.error_messages())

        self._settings = candidate
        self.generate_timeline()
        return candidate

    def generate_timeline(self) -> list[TimelinePoint]:
        """Recompute the timeline wholesale from the current plan and settings."""
        if self._plan is None:
            self._timeline = []
        else:
            self._timeline = project_plan(self._plan, self._settings, self._assumptions)
        return self.timeline

    def clear(self) -> None:
        self._plan = None
        self._timeline = []
        self._last_updated = None
        self._last_error = None

    def record_error(self, message: str) -> None:
        self._last_error = message

    async def refresh(self, storage: FinancialStorageInterface) -> Plan:
        """
        Reload the plan from remote storage.

        Raises whatever the storage raises; the current plan is kept on failure.
        """
        try:
            plan = await storage.fetch_plan()
        except Exception as e:
            self._last_error = str(e)
            raise
        return self.commit(plan)

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def export_snapshot(self) -> str:
        """Serialize the plan and projection settings as versioned JSON."""
        snapshot = PlanSnapshot(
            plan=self._plan,
            projection_settings=self._settings,
        )
        return snapshot.model_dump_json(by_alias=True)

    def import_snapshot(self, data: str) -> Optional[Plan]:
        """
        Restore a snapshot produced by export_snapshot.

        Raises:
            ValueError: unknown version or malformed JSON
            ProjectionSettingsError: the snapshot's settings are invalid
        """
        snapshot = PlanSnapshot.model_validate_json(data)
        if snapshot.version != SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported snapshot version: {snapshot.version}")

        result = self._validator.validate_projection_settings(snapshot.projection_settings)
        if result.has_errors:
            raise ProjectionSettingsError(result.error_messages())

        self._settings = snapshot.projection_settings
        if snapshot.plan is None:
            self.clear()
            return None
        return self.commit(snapshot.plan)
