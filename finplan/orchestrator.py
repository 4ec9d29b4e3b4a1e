"""
Main Orchestrator for FinPlan

This module ties together all the components and defines the
end-to-end flows for:
1. Intent dispatch (actions -> scratch plan -> remote sync -> commit -> audit -> refresh)
2. Plan and projection management (load, refresh, settings, summaries)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No dispatch starts without a loaded plan
- A batch is committed completely or not at all
- Every step is audited, but auditing never undoes a commit

Dispatch is a two-phase commit over a cloned plan:
  phase 1: apply every action to a deep copy and mirror it remotely
  phase 2: swap the copy in only if every action and remote call succeeded
Any exception in phase 1 leaves the store's plan and timeline untouched.
"""

import asyncio
from typing import Any, Iterable, Optional, Union

import structlog

from finplan.audit import AuditLogger, HttpAuditSink, configure_logging
from finplan.config import get_settings, validate_all_settings
from finplan.intents import (
    NO_PLAN_MESSAGE,
    ActionApplier,
    ChangeKind,
    IntentDispatchError,
    PlanChange,
    parse_intent_actions,
)
from finplan.models.intent import DispatchResult, IntentAction
from finplan.models.plan import Plan, utc_now
from finplan.models.projection import ProjectionSettings
from finplan.projection.summary import recompute_cashflow, recompute_summary
from finplan.reporting import confirmation_summary, projection_summary, summary_text
from finplan.services.persistence import (
    FinancialStorageInterface,
    HttpFinancialStorage,
)
from finplan.state import PlanStore, ProjectionSettingsError
from finplan.validation import PlanValidator

logger = structlog.get_logger(__name__)


class IntentDispatcher:
    """
    Orchestrates the intent dispatch flow.

    Flow:
    1. Check that a plan is loaded (fail before any work otherwise)
    2. Normalize the candidate actions
    3. For each action, in order:
       a. apply it to the scratch plan (resolution sees earlier actions)
       b. issue the matching remote create/update/delete
    4. Recompute aggregates, validate, commit, regenerate the timeline
    5. Audit every applied action (best effort)
    6. Refresh the plan from remote storage (best effort)

    Dispatches are not mutually exclusive. Callers run one at a time.
    """

    def __init__(
        self,
        store: PlanStore,
        storage: Optional[FinancialStorageInterface] = None,
        applier: Optional[ActionApplier] = None,
        validator: Optional[PlanValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._storage = storage
        self._applier = applier or ActionApplier()
        self._validator = validator or PlanValidator()
        self._audit_logger = audit_logger

    @property
    def store(self) -> PlanStore:
        return self._store

    async def dispatch(
        self,
        intent_id: str,
        actions: Iterable[Union[IntentAction, dict[str, Any]]],
        chat_id: Optional[str] = None,
    ) -> DispatchResult:
        """
        Apply a batch of intent actions atomically.

        Raises:
            IntentDispatchError: no plan, unresolved target, bad amount,
                unsupported entity or verb, or an invalid resulting plan
            StorageError: a remote call failed (propagated unchanged)
        """
        log = logger.bind(intent_id=intent_id, chat_id=chat_id)

        if not self._store.has_plan:
            log.warning("intent_dispatch_without_plan")
            raise IntentDispatchError(NO_PLAN_MESSAGE)

        parsed = parse_intent_actions(actions)
        before = self._store.plan.summary.model_copy()

        if not parsed:
            log.info("intent_dispatch_empty")
            return DispatchResult(
                intent_id=intent_id,
                applied=0,
                summary=before,
                message="No changes to apply.",
            )

        log.info("intent_dispatch_started", actions=len(parsed))

        scratch = self._store.snapshot()
        changes: list[PlanChange] = []
        failed_index: Optional[int] = None

        try:
            for index, action in enumerate(parsed):
                failed_index = index
                change = self._applier.apply(scratch, action)
                await self._sync_remote(intent_id, scratch, change)
                changes.append(change)
            failed_index = None

            self._finalize(scratch)
        except Exception as e:
            log.warning(
                "intent_dispatch_rolled_back",
                failed_index=failed_index,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._store.record_error(str(e))
            if self._audit_logger:
                await self._audit_logger.log_dispatch_rolled_back(
                    intent_id=intent_id,
                    error=e,
                    failed_index=failed_index,
                    chat_id=chat_id,
                )
            raise

        committed = self._store.commit(scratch)
        log.info(
            "intent_dispatch_committed",
            applied=len(changes),
            net_worth=committed.summary.net_worth,
        )

        await self._audit(intent_id, parsed, changes, chat_id, committed)
        await self._refresh(intent_id)

        after = self._store.plan.summary
        return DispatchResult(
            intent_id=intent_id,
            applied=len(changes),
            summary=after,
            message=confirmation_summary(before, after),
        )

    def _finalize(self, scratch: Plan) -> None:
        """Recompute, stamp and validate the scratch plan before commit."""
        recompute_cashflow(scratch)
        recompute_summary(scratch)
        scratch.last_updated = utc_now()

        result = self._validator.validate_plan(scratch)
        if result.has_errors:
            raise IntentDispatchError(
                "The resulting plan is invalid: " + "; ".join(result.error_messages())
            )
        for warning in result.warnings:
            logger.info("plan_validation_warning", warning=warning)

    async def _sync_remote(
        self,
        intent_id: str,
        scratch: Plan,
        change: PlanChange,
    ) -> None:
        """
        Mirror one applied change on the remote copy.

        A created record adopts the id the backend assigned, so later
        actions of the same batch address the remote record.
        """
        if self._storage is None:
            return

        resource = self._storage.resource(change.entity)
        record = change.record
        operation = {
            ChangeKind.CREATED: "create",
            ChangeKind.UPDATED: "update",
            ChangeKind.DELETED: "delete",
        }[change.kind]

        try:
            if change.kind == ChangeKind.CREATED:
                stored = await resource.create(record)
                if stored.id and stored.id != record.id:
                    logger.debug(
                        "remote_id_adopted",
                        local_id=record.id,
                        remote_id=stored.id,
                    )
                    for item in getattr(scratch, change.entity.collection):
                        if item.id == record.id:
                            item.id = stored.id
                    record.id = stored.id
            elif change.kind == ChangeKind.UPDATED:
                await resource.update(record)
            else:
                await resource.delete(record.id)
        except Exception as e:
            logger.error(
                "remote_sync_failed",
                intent_id=intent_id,
                resource=change.entity.value,
                operation=operation,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_remote_sync_failed(
                    intent_id=intent_id,
                    resource=change.entity.value,
                    operation=operation,
                    error_message=str(e),
                )
            raise

    async def _audit(
        self,
        intent_id: str,
        actions: list[IntentAction],
        changes: list[PlanChange],
        chat_id: Optional[str],
        committed: Plan,
    ) -> None:
        if not self._audit_logger:
            return

        results = await asyncio.gather(*[
            self._audit_logger.log_action_applied(
                intent_id=intent_id,
                index=index,
                action=action,
                chat_id=chat_id,
                entity_id=change.record.id,
            )
            for index, (action, change) in enumerate(zip(actions, changes))
        ])
        if not all(results):
            logger.warning(
                "intent_audit_incomplete",
                intent_id=intent_id,
                failed=results.count(False),
            )

        await self._audit_logger.log_dispatch_completed(
            intent_id=intent_id,
            applied=len(changes),
            net_worth=committed.summary.net_worth,
            chat_id=chat_id,
        )

    async def _refresh(self, intent_id: str) -> None:
        if self._storage is None:
            return
        try:
            await self._store.refresh(self._storage)
        except Exception as e:
            logger.warning("plan_refresh_failed", intent_id=intent_id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_plan_refresh_failed(
                    error_message=str(e),
                    intent_id=intent_id,
                )


class PlanFlow:
    """
    Orchestrates plan loading and projection settings.

    Settings edits are validated by the store; rejected edits are audited
    and re-raised so the caller can show the issues.
    """

    def __init__(
        self,
        store: PlanStore,
        storage: Optional[FinancialStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._storage = storage
        self._audit_logger = audit_logger

    async def load(self) -> Optional[Plan]:
        """
        Load the plan from remote storage.

        Without storage the current plan is returned unchanged.
        """
        if self._storage is None:
            return self._store.plan
        return await self._store.refresh(self._storage)

    async def update_settings(self, **changes: Any) -> ProjectionSettings:
        try:
            return self._store.update_projection_settings(**changes)
        except ProjectionSettingsError as e:
            if self._audit_logger:
                await self._audit_logger.log_projection_settings_rejected(e.issues)
            raise

    def describe_plan(self) -> str:
        if not self._store.has_plan:
            return NO_PLAN_MESSAGE
        return summary_text(self._store.plan)

    def describe_projection(self) -> str:
        return projection_summary(
            self._store.timeline,
            self._store.projection_settings,
        )


def create_app_components(
    use_storage: bool = True,
) -> tuple[IntentDispatcher, PlanFlow, Optional[FinancialStorageInterface]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect to the REST service and audit endpoint.
                    Set to False for local-only use and testing.

    Returns:
        (intent_dispatcher, plan_flow, storage)
    """
    settings = get_settings()
    checks = validate_all_settings()
    invalid = [name for name, ok in checks.items() if ok is False]
    if invalid:
        logger.warning(
            "settings_invalid",
            sections=invalid,
            errors={name: checks[f"{name}_error"] for name in invalid},
        )

    configure_logging(settings.app.log_level if checks["app"] else "INFO")

    store = PlanStore()
    storage = None
    audit_logger = AuditLogger()

    if use_storage:
        if checks["persistence"]:
            storage = HttpFinancialStorage(settings.persistence)
        else:
            # Persistence not configured - continue locally
            logger.warning("storage_not_configured")

        if checks["audit"] and settings.audit.enabled and settings.audit.endpoint_url:
            audit_logger = AuditLogger(HttpAuditSink(settings.audit))

    dispatcher = IntentDispatcher(
        store=store,
        storage=storage,
        audit_logger=audit_logger,
    )

    plan_flow = PlanFlow(
        store=store,
        storage=storage,
        audit_logger=audit_logger,
    )

    return dispatcher, plan_flow, storage
