"""
Main Orchestrator for FinanceFlow Planned Transactions

This module ties together the store, the ledger, the recurrence rule and
the audit trail, and defines the end-to-end flows for:
1. Executing one planned transaction (load -> post -> advance -> persist)
2. Sweeping every due planned transaction of a user
3. Managing planned transactions (create, update, toggle, query)

DESIGN DECISION: The orchestrator enforces the ordering guarantees:
- The ledger write completes BEFORE the next date is persisted, so a
  schedule never moves without money being recorded
- A failed ledger write leaves the schedule untouched
- A lost schedule update after a successful post is reported loudly, never
  deduplicated behind the caller's back (at-least-once)
- One failing item never stops a sweep
"""

from datetime import date, timedelta
from typing import Optional, Union
from uuid import UUID

import structlog

from financeflow.audit import AuditLogger, configure_logging, create_correlation_id
from financeflow.config import AppSettings, get_settings
from financeflow.errors import (
    ExecutionError,
    InactiveRecordError,
    InvalidPlannedTransactionError,
    LedgerWriteFailedError,
    NoUpdatesError,
    PlannedTransactionNotFoundError,
    ScheduleUpdateFailedError,
)
from financeflow.models.execution import (
    BatchResult,
    ExecutedItem,
    ExecutionErrorKind,
    ExecutionResult,
    FailedItem,
    UpcomingOccurrence,
)
from financeflow.models.ledger import LedgerEntry
from financeflow.models.planned import (
    OperationType,
    PlannedTransaction,
    PlannedTransactionCreate,
    PlannedTransactionUpdate,
)
from financeflow.queries import StatsAggregator
from financeflow.scheduling import Clock, ProjectionCalculator, SystemClock, advance, occurrences
from financeflow.services.storage import (
    InMemoryLedger,
    InMemoryPlannedTransactionStore,
    LedgerInterface,
    PlannedTransactionStoreInterface,
    SQLiteDatabase,
    SQLiteLedger,
    SQLitePlannedTransactionStore,
)
from financeflow.validation import PlannedTransactionValidator

logger = structlog.get_logger(__name__)


class ExecutionCoordinator:
    """
    Materializes planned transactions into the ledger.

    Flow for one item:
    1. Load the record scoped to the user (not found -> error)
    2. Refuse inactive records, even when asked explicitly
    3. Post the signed amount to the ledger, dated TODAY
    4. Advance next_date from its current value and persist it

    The posting date is the day the execution actually happens, not the
    day it was scheduled for.
    """

    def __init__(
        self,
        store: PlannedTransactionStoreInterface,
        ledger: LedgerInterface,
        clock: Optional[Clock] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._ledger = ledger
        self._clock = clock or SystemClock()
        self._audit_logger = audit_logger or AuditLogger()
        self._strict_frequency = (settings or get_settings().app).reject_unknown_frequency

    def _load_executable(
        self,
        planned_id: int,
        user_id: int,
        correlation_id: Optional[UUID],
    ) -> PlannedTransaction:
        planned = self._store.find_by_id(planned_id, user_id)
        if planned is None:
            error = PlannedTransactionNotFoundError(planned_id)
        elif not planned.active:
            error = InactiveRecordError(planned_id)
        else:
            return planned

        self._audit_logger.log_execution_rejected(
            planned_id=planned_id,
            user_id=user_id,
            reason=str(error),
            error_code=error.kind.value,
            correlation_id=correlation_id,
        )
        raise error

    def _build_entry(self, planned: PlannedTransaction, today: date) -> LedgerEntry:
        return LedgerEntry(
            title=planned.title,
            description=planned.description,
            amount=planned.signed_amount(),
            posting_date=today,
            user_id=planned.user_id,
            category_id=planned.category_id,
            sub_category_id=planned.sub_category_id,
            account_id=planned.account_id,
            planned_transaction_id=planned.id,
        )

    def _execute(
        self,
        planned_id: int,
        user_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> ExecutionResult:
        planned = self._load_executable(planned_id, user_id, correlation_id)
        self._audit_logger.log_execution_started(planned_id, user_id, correlation_id)

        # Step 1: post to the ledger. Nothing else happens if this fails.
        entry = self._build_entry(planned, self._clock.today())
        try:
            transaction = self._ledger.create_transaction(entry)
        except Exception as e:
            self._audit_logger.log_ledger_write_failed(
                planned_id=planned_id,
                user_id=user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise LedgerWriteFailedError(
                f"Ledger rejected the posting for planned transaction {planned_id}: {e}",
                planned_id,
            ) from e

        # Step 2: advance the schedule from the scheduled date, not from today
        next_date = advance(planned.next_date, planned.frequency, strict=self._strict_frequency)
        failure: Optional[Exception] = None
        try:
            saved = self._store.persist_next_date(planned_id, user_id, next_date)
        except Exception as e:
            saved = False
            failure = e

        if not saved:
            reason = str(failure) if failure else "store reported no row updated"
            self._audit_logger.log_schedule_update_failed(
                planned_id=planned_id,
                user_id=user_id,
                transaction_id=transaction.id,
                error_message=reason,
                correlation_id=correlation_id,
            )
            raise ScheduleUpdateFailedError(
                f"Posted ledger transaction {transaction.id} but could not move planned "
                f"transaction {planned_id} to {next_date.isoformat()}: {reason}",
                planned_id,
                transaction,
            ) from failure

        self._audit_logger.log_execution_completed(
            planned_id=planned_id,
            user_id=user_id,
            transaction_id=transaction.id,
            amount=str(transaction.amount),
            next_date=next_date.isoformat(),
            correlation_id=correlation_id,
        )

        return ExecutionResult(
            transaction=transaction,
            planned_transaction=self._reload(planned, next_date),
            next_execution_date=next_date,
        )

    def _reload(self, planned: PlannedTransaction, next_date: date) -> PlannedTransaction:
        """
        Re-read a planned transaction after its execution completed.

        The work is already done at this point, so a failed read must not
        turn it into a failure; the locally advanced copy is returned instead.
        """
        try:
            updated = self._store.find_by_id(planned.id, planned.user_id)
        except Exception as e:
            logger.warning(
                "reload_after_execution_failed",
                planned_id=planned.id,
                user_id=planned.user_id,
                error=str(e),
            )
            updated = None
        if updated is None:
            updated = planned.model_copy(update={"next_date": next_date})
        return updated

    def execute_one(self, planned_id: int, user_id: int) -> ExecutionResult:
        """
        Execute a single planned transaction (fail fast).

        Raises:
            PlannedTransactionNotFoundError: absent or owned by another user
            InactiveRecordError: the planned transaction is deactivated
            LedgerWriteFailedError: the posting failed, schedule untouched
            ScheduleUpdateFailedError: posted, but next date not saved
        """
        return self._execute(planned_id, user_id)

    def execute_all_due(self, user_id: int) -> BatchResult:
        """
        Execute every planned transaction of user_id that is due today or earlier.

        Each item is an independent unit of work: failures are recorded in
        the result and the sweep moves on. Items already executed are never
        rolled back. Items are processed earliest next_date first and the
        result lists keep that order.
        """
        correlation_id = create_correlation_id()
        candidates = self._store.find_all_due(user_id, self._clock.today())
        self._audit_logger.log_batch_started(user_id, len(candidates), correlation_id)

        result = BatchResult()
        for planned in candidates:
            try:
                executed = self._execute(planned.id, user_id, correlation_id)
            except ExecutionError as e:
                transaction = getattr(e, "transaction", None)
                result.record(FailedItem(
                    planned_id=planned.id,
                    title=planned.title,
                    error_kind=e.kind,
                    error_message=str(e),
                    transaction_id=transaction.id if transaction else None,
                ))
                continue
            except Exception as e:
                logger.exception("batch_item_failed", planned_id=planned.id, user_id=user_id)
                self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"planned_id": planned.id, "user_id": user_id},
                    correlation_id=correlation_id,
                )
                result.record(FailedItem(
                    planned_id=planned.id,
                    title=planned.title,
                    error_kind=ExecutionErrorKind.UNEXPECTED,
                    error_message=str(e),
                ))
                continue

            result.record(ExecutedItem(
                planned_id=planned.id,
                title=planned.title,
                transaction_id=executed.transaction.id,
                next_execution_date=executed.next_execution_date,
            ))

        self._audit_logger.log_batch_completed(
            user_id=user_id,
            total_executed=result.total_executed,
            total_failed=result.total_failed,
            correlation_id=correlation_id,
        )
        return result


class PlannedTransactionService:
    """
    Management operations on planned transactions.

    Everything except execution: create, read, update, delete, toggle, and
    the due / upcoming views. Every call is scoped by user_id.
    """

    def __init__(
        self,
        store: PlannedTransactionStoreInterface,
        clock: Optional[Clock] = None,
        validator: Optional[PlannedTransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._settings = settings or get_settings().app
        self._validator = validator or PlannedTransactionValidator(self._settings)
        self._audit_logger = audit_logger or AuditLogger()

    def create(
        self,
        request: Union[dict, PlannedTransactionCreate],
        user_id: int,
    ) -> PlannedTransaction:
        """
        Validate and store a new planned transaction.

        Raises:
            InvalidPlannedTransactionError: validation found errors
        """
        today = self._clock.today()
        result, parsed = self._validator.validate_create(request, today)
        if not result.is_valid:
            raise InvalidPlannedTransactionError(result.issues)
        for warning in result.warnings:
            logger.info("planned_create_warning", user_id=user_id, warning=warning)

        record = parsed.to_record(user_id=user_id, next_date=parsed.next_date or today)
        created = self._store.create(record)
        self._audit_logger.log_planned_created(created.id, user_id, created.title)
        return created

    def get_all(self, user_id: int, active_only: bool = False) -> list[PlannedTransaction]:
        return self._store.find_all(user_id, active_only=active_only)

    def get_by_id(self, planned_id: int, user_id: int) -> PlannedTransaction:
        planned = self._store.find_by_id(planned_id, user_id)
        if planned is None:
            raise PlannedTransactionNotFoundError(planned_id)
        return planned

    def get_due(self, user_id: int) -> list[PlannedTransaction]:
        return self._store.find_all_due(user_id, self._clock.today())

    def get_upcoming(self, user_id: int, days: Optional[int] = None) -> list[PlannedTransaction]:
        horizon = days if days is not None else self._settings.upcoming_horizon_days
        return self._store.find_upcoming(user_id, self._clock.today(), horizon)

    def get_by_type(
        self,
        user_id: int,
        operation_type: Union[OperationType, str],
        active_only: bool = True,
    ) -> list[PlannedTransaction]:
        try:
            op = OperationType(operation_type)
        except ValueError:
            accepted = ", ".join(t.value for t in OperationType)
            raise ValueError(f"Invalid operation type {operation_type!r}. Accepted: {accepted}")
        return self._store.find_by_operation_type(user_id, op, active_only=active_only)

    def get_by_category(
        self,
        user_id: int,
        category_id: int,
        active_only: bool = True,
    ) -> list[PlannedTransaction]:
        return self._store.find_by_category(user_id, category_id, active_only=active_only)

    def update(
        self,
        planned_id: int,
        request: Union[dict, PlannedTransactionUpdate],
        user_id: int,
    ) -> PlannedTransaction:
        """
        Apply a partial update.

        Raises:
            PlannedTransactionNotFoundError: absent or owned by another user
            InvalidPlannedTransactionError: validation found errors
            NoUpdatesError: the request does not change anything
        """
        existing = self.get_by_id(planned_id, user_id)

        result, parsed = self._validator.validate_update(request, existing, self._clock.today())
        if not result.is_valid:
            raise InvalidPlannedTransactionError(result.issues)

        changes = parsed.changes()
        if not changes:
            raise NoUpdatesError("Nothing to update")

        self._store.update(planned_id, user_id, changes)
        self._audit_logger.log_planned_updated(planned_id, user_id, list(changes))
        return self.get_by_id(planned_id, user_id)

    def delete(self, planned_id: int, user_id: int) -> bool:
        self.get_by_id(planned_id, user_id)
        deleted = self._store.delete(planned_id, user_id)
        if deleted:
            self._audit_logger.log_planned_deleted(planned_id, user_id)
        return deleted

    def toggle_active(self, planned_id: int, user_id: int) -> PlannedTransaction:
        existing = self.get_by_id(planned_id, user_id)
        new_status = not existing.active
        self._store.set_active(planned_id, user_id, new_status)
        self._audit_logger.log_planned_active_changed(planned_id, user_id, new_status)
        return self.get_by_id(planned_id, user_id)

    def upcoming_calendar(self, user_id: int, days: Optional[int] = None) -> list[UpcomingOccurrence]:
        """
        Every occurrence of every active planned transaction in the next days.

        Unlike get_upcoming, a weekly rule shows up once per week of the
        window rather than once.
        """
        horizon = days if days is not None else self._settings.upcoming_horizon_days
        today = self._clock.today()
        end = today + timedelta(days=horizon)

        calendar = []
        for planned in self._store.find_all(user_id, active_only=True):
            for occurs_on in occurrences(
                planned.next_date,
                planned.frequency,
                end,
                strict=self._settings.reject_unknown_frequency,
            ):
                if occurs_on < today:
                    continue
                calendar.append(UpcomingOccurrence(
                    planned_id=planned.id,
                    title=planned.title,
                    occurs_on=occurs_on,
                    signed_amount=planned.signed_amount(),
                    operation_type=planned.operation_type,
                ))

        calendar.sort(key=lambda o: (o.occurs_on, o.planned_id))
        return calendar


def create_app_components(
    use_sqlite: bool = True,
    db_path: Optional[str] = None,
    clock: Optional[Clock] = None,
) -> tuple[ExecutionCoordinator, PlannedTransactionService, StatsAggregator]:
    """
    Factory function to create all application components.

    Args:
        use_sqlite: Whether to back the engine with SQLite.
                    Set to False for an in-memory store and ledger.
        db_path: SQLite file; defaults to the configured path
        clock: Clock to use everywhere; defaults to the system clock

    Returns:
        (execution_coordinator, planned_transaction_service, stats_aggregator)
    """
    settings = get_settings().app
    configure_logging(settings.log_level)
    clock = clock or SystemClock()
    audit_logger = AuditLogger()

    if use_sqlite:
        db = SQLiteDatabase(path=db_path).initialize()
        store = SQLitePlannedTransactionStore(db)
        ledger = SQLiteLedger(db)
    else:
        store = InMemoryPlannedTransactionStore()
        ledger = InMemoryLedger()

    coordinator = ExecutionCoordinator(
        store=store,
        ledger=ledger,
        clock=clock,
        audit_logger=audit_logger,
        settings=settings,
    )
    service = PlannedTransactionService(
        store=store,
        clock=clock,
        audit_logger=audit_logger,
        settings=settings,
    )
    stats = StatsAggregator(
        store=store,
        clock=clock,
        calculator=ProjectionCalculator(strict=settings.reject_unknown_frequency),
    )

    return coordinator, service, stats
