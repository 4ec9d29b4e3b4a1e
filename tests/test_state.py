"""
Tests for the plan store.
"""

import json

import pytest

from finplan.models import Asset, Plan
from finplan.services.persistence import (
    InMemoryFinancialStorage,
    StorageConnectionError,
)
from finplan.state import PlanStore, ProjectionSettingsError


class FailingStorage(InMemoryFinancialStorage):
    """Storage whose fetch always fails."""

    async def fetch_plan(self) -> Plan:
        raise StorageConnectionError("service unreachable")


class TestPlanStore:
    """Tests for commits and snapshots."""

    def test_empty_store(self, store):
        """Test the initial state."""
        assert not store.has_plan
        assert store.plan is None
        assert store.snapshot() is None
        assert store.timeline == []
        assert store.last_updated is None

    def test_set_plan_generates_timeline(self, store, sample_plan):
        """Test that loading a plan produces a 36-point timeline."""
        store.set_plan(sample_plan)

        assert store.has_plan
        assert len(store.timeline) == 36
        assert store.timeline[0].age == 30
        assert store.timeline[-1].age == 65
        assert store.timeline[0].net_worth == -185000
        assert store.last_updated is not None

    def test_set_plan_copies_input(self, store, sample_plan):
        """Test that the caller's plan is not shared with the store."""
        store.set_plan(sample_plan)
        sample_plan.assets[0].current_value = 1
        assert store.plan.assets[0].current_value == 10000

    def test_snapshot_is_independent(self, loaded_store):
        """Test that mutating a snapshot leaves the store untouched."""
        scratch = loaded_store.snapshot()
        scratch.assets.append(Asset(name="Boat", current_value=1))
        scratch.liabilities[0].current_balance = 0

        assert len(loaded_store.plan.assets) == 2
        assert loaded_store.plan.liabilities[0].current_balance == 200000

    def test_commit_recomputes_summary(self, loaded_store):
        """Test that commit derives the summary from the collections."""
        scratch = loaded_store.snapshot()
        scratch.assets[0].current_value = 20000
        loaded_store.commit(scratch)

        assert loaded_store.plan.summary.total_assets == 25000
        assert loaded_store.timeline[0].total_assets == 25000

    def test_commit_clears_last_error(self, loaded_store):
        """Test that a successful commit resets the error."""
        loaded_store.record_error("boom")
        loaded_store.commit(loaded_store.snapshot())
        assert loaded_store.last_error is None

    def test_timeline_property_returns_copy(self, loaded_store):
        """Test that callers cannot truncate the stored timeline."""
        loaded_store.timeline.clear()
        assert len(loaded_store.timeline) == 36

    def test_clear(self, loaded_store):
        """Test that clear drops the plan and the timeline."""
        loaded_store.clear()
        assert not loaded_store.has_plan
        assert loaded_store.timeline == []


class TestProjectionSettingsUpdates:
    """Tests for validated settings changes."""

    def test_retirement_age_regenerates_timeline(self, loaded_store):
        """Test that retiring at 40 shortens the timeline to 11 points."""
        loaded_store.update_projection_settings(retirement_age=40)

        assert loaded_store.projection_settings.retirement_age == 40
        assert len(loaded_store.timeline) == 11
        assert loaded_store.timeline[-1].age == 40

    def test_invalid_settings_leave_state_unchanged(self, loaded_store):
        """Test that a rejected change keeps settings and timeline."""
        before_settings = loaded_store.projection_settings
        before_timeline = loaded_store.timeline

        with pytest.raises(ProjectionSettingsError) as exc_info:
            loaded_store.update_projection_settings(retirement_age=25)

        assert "Retirement age must be greater than current age" in exc_info.value.issues
        assert loaded_store.projection_settings == before_settings
        assert loaded_store.timeline == before_timeline

    def test_type_errors_are_reported_as_settings_errors(self, loaded_store):
        """Test that non-numeric values are rejected the same way."""
        with pytest.raises(ProjectionSettingsError):
            loaded_store.update_projection_settings(current_age="thirty")

    def test_settings_without_plan(self, store):
        """Test that settings can change before any plan is loaded."""
        store.update_projection_settings(current_age=40)
        assert store.projection_settings.current_age == 40
        assert store.timeline == []


class TestRefresh:
    """Tests for reloading from remote storage."""

    @pytest.mark.asyncio
    async def test_refresh_loads_remote_plan(self, store, sample_plan):
        """Test that refresh commits the fetched plan."""
        storage = InMemoryFinancialStorage(sample_plan)

        plan = await store.refresh(storage)

        assert store.plan is plan
        assert plan.summary.net_worth == -185000
        assert len(store.timeline) == 36

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_plan(self, loaded_store):
        """Test that a failed fetch records the error and re-raises."""
        before = loaded_store.plan

        with pytest.raises(StorageConnectionError):
            await loaded_store.refresh(FailingStorage())

        assert loaded_store.plan is before
        assert loaded_store.last_error == "service unreachable"


class TestSnapshots:
    """Tests for export and import."""

    def test_export_is_camel_case_json(self, loaded_store):
        """Test the exported document shape."""
        data = json.loads(loaded_store.export_snapshot())

        assert data["version"] == 1
        assert data["projectionSettings"]["retirementAge"] == 65
        assert data["plan"]["assets"][0]["currentValue"] == 10000

    def test_round_trip_into_new_store(self, loaded_store, projection_settings):
        """Test that a fresh store restores plan and settings."""
        loaded_store.update_projection_settings(retirement_age=60)
        exported = loaded_store.export_snapshot()

        restored = PlanStore(settings=projection_settings)
        restored.import_snapshot(exported)

        assert restored.projection_settings.retirement_age == 60
        assert restored.plan.summary == loaded_store.plan.summary
        assert len(restored.timeline) == 31

    def test_unknown_version_is_rejected(self, loaded_store):
        """Test that future snapshot versions are refused."""
        data = json.loads(loaded_store.export_snapshot())
        data["version"] = 99

        with pytest.raises(ValueError, match="Unsupported snapshot version"):
            loaded_store.import_snapshot(json.dumps(data))

    def test_invalid_settings_are_rejected(self, store):
        """Test that imported settings go through validation."""
        snapshot = {
            "version": 1,
            "plan": None,
            "projectionSettings": {"currentAge": 70, "retirementAge": 60},
        }
        with pytest.raises(ProjectionSettingsError):
            store.import_snapshot(json.dumps(snapshot))

    def test_malformed_json_is_rejected(self, store):
        """Test that garbage input raises ValueError."""
        with pytest.raises(ValueError):
            store.import_snapshot("{not json")

    def test_import_without_plan_clears(self, loaded_store):
        """Test that a snapshot with no plan empties the store."""
        snapshot = {
            "version": 1,
            "plan": None,
            "projectionSettings": {"currentAge": 35, "retirementAge": 67},
        }
        assert loaded_store.import_snapshot(json.dumps(snapshot)) is None
        assert not loaded_store.has_plan
        assert loaded_store.projection_settings.current_age == 35


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
