"""
Execution coordinator.

Runs every workflow operation as one store transaction: load the entities it
touches by key, let the lifecycle state machine and the progress aggregator
decide, write, commit. A commit that loses a write conflict restarts the
whole operation on fresh reads; domain errors roll back and propagate.
"""

from collections.abc import Callable
from datetime import datetime
from typing import TypeVar
from uuid import uuid4

from ...core.config import Settings, get_settings
from ...core.observability import (
    NOTIFICATION_FAILURES,
    TRANSACTION_CONFLICTS,
    WORKFLOW_OPERATIONS,
    get_logger,
    log_error_with_context,
    set_correlation_id,
    set_user_id,
)
from ...core.retry_mechanisms import RetryAttempt, RetryConfig, RetryDelayCalculator
from ...domain.execution.entities import (
    Activity,
    ExecutionOperation,
    ExecutionSheet,
    ParcelAssignment,
)
from ...domain.execution.events import (
    ActivityInfoRecorded,
    ActivityStarted,
    ActivityStopped,
    OperationObservationAdded,
    ParcelAssigned,
)
from ...domain.execution.repositories.collaborators import (
    GeometryProvider,
    IdentityProvider,
    NotificationSink,
    WorksheetProvider,
)
from ...domain.execution.repositories.store import TransactionalStore
from ...domain.execution.services.geodesic_area import GeodesicAreaCalculator
from ...domain.execution.services.progress_aggregator import ProgressAggregator
from ...domain.execution.services.state_machine import ParcelLifecycle
from ...domain.execution.value_objects.enums import ParcelStatus
from ...domain.execution.value_objects.identity import Identity
from ...domain.execution.value_objects.keys import (
    ActivityKey,
    OperationKey,
    ParcelKey,
    SheetKey,
)
from ...domain.shared.base import DomainEvent, utcnow
from ...domain.shared.exceptions import (
    ConcurrentModificationError,
    DomainError,
    DuplicateSheetError,
    InvalidStateError,
    PermissionDeniedError,
    RetriesExhaustedError,
    ValidationError,
)
from ...infrastructure.database.unit_of_work import ExecutionUnitOfWork
from ..dtos.execution_dtos import (
    ActivityView,
    OperationStatus,
    OperationView,
    ParcelView,
    PolygonBlock,
    PolygonOperationEntry,
    SheetExport,
    SheetStatus,
    SheetSummary,
    StopActivityResult,
)
from ..mappers.execution_mappers import ExecutionDTOMapper

logger = get_logger(__name__)

ResultT = TypeVar("ResultT")
Work = Callable[[ExecutionUnitOfWork, Identity], ResultT]


def _new_activity_id() -> str:
    return uuid4().hex


def _non_blank(text: str | None) -> str | None:
    if text is None or not text.strip():
        return None
    return text


class ExecutionCoordinator:
    """
    Transactional update coordinator for execution sheets.

    Stateless between calls: nothing read in one operation is reused by the
    next, and every read of an attempt happens inside the transaction that
    writes.
    """

    def __init__(
        self,
        store: TransactionalStore,
        identity_provider: IdentityProvider,
        worksheet_provider: WorksheetProvider,
        geometry_provider: GeometryProvider,
        notification_sink: NotificationSink | None = None,
        area_calculator: GeodesicAreaCalculator | None = None,
        retry_config: RetryConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
        activity_id_factory: Callable[[], str] = _new_activity_id,
        settings: Settings | None = None,
    ):
        """
        Initialize the coordinator.

        Args:
            store: Transactional entity store
            identity_provider: Resolves credentials and looks up operators
            worksheet_provider: Source of worksheet plans for ``create``
            geometry_provider: Source of parcel polygons for area computation
            notification_sink: Receives committed events, best effort
            area_calculator: Defaults to a calculator honoring STRICT_GEOMETRY
            retry_config: Defaults to the TRANSACTION_* settings
            clock: Source of timestamps
            activity_id_factory: Generator of activity ids
        """
        settings = settings or get_settings()
        self._store = store
        self._identity = identity_provider
        self._worksheets = worksheet_provider
        self._geometry = geometry_provider
        self._sink = notification_sink
        self._area = area_calculator or GeodesicAreaCalculator(
            strict=settings.STRICT_GEOMETRY
        )
        self._retry_config = retry_config or RetryConfig.from_settings(settings)
        self._clock = clock
        self._new_activity_id = activity_id_factory
        self._lifecycle = ParcelLifecycle()
        self._aggregator = ProgressAggregator()
        self._mapper = ExecutionDTOMapper()

    # Workflow operations

    def create(self, credential: str, worksheet_id: int) -> SheetSummary:
        """
        Open the execution sheet of a worksheet.

        Creates the sheet, one operation per declared operation and one
        unassigned parcel per (operation, polygon).

        Raises:
            NotFoundError: If the worksheet is unknown
            DuplicateSheetError: If the worksheet already has a sheet
        """

        def work(uow: ExecutionUnitOfWork, caller: Identity) -> SheetSummary:
            plan = self._worksheets.get_worksheet(worksheet_id)
            sheet_key = SheetKey(worksheet_id=worksheet_id)
            if uow.sheets.exists(sheet_key):
                raise DuplicateSheetError(worksheet_id)

            now = self._clock()
            parcel_count = 0
            for planned in plan.operations:
                operation = ExecutionOperation(
                    sheet=sheet_key,
                    operation_code=planned.operation_code,
                    total_area_ha=planned.area_ha,
                    description=planned.description,
                    polygon_ids=list(plan.polygon_ids),
                    created_at=now,
                )
                uow.operations.add(operation)
                for polygon_id in plan.polygon_ids:
                    uow.parcels.add(
                        ParcelAssignment(
                            operation=operation.key,
                            polygon_id=polygon_id,
                            created_at=now,
                        )
                    )
                    parcel_count += 1

            sheet = ExecutionSheet.open(
                worksheet_id=worksheet_id,
                operation_codes=list(plan.operation_codes),
                created_by=caller.username,
                parcel_count=parcel_count,
                at=now,
            )
            uow.sheets.add(sheet)
            return self._mapper.sheet_to_summary(sheet, parcel_count)

        return self._execute("create", credential, work)

    def assign(
        self, credential: str, parcel_key: ParcelKey, operator_username: str
    ) -> ParcelView:
        """
        Add an operator to a parcel.

        Assigning an operator twice leaves the parcel unchanged.

        Raises:
            NotFoundError: If the parcel or the operator account is unknown
            PermissionDeniedError: If the operator is not a field operator of
                the caller's organization
        """

        def work(uow: ExecutionUnitOfWork, caller: Identity) -> ParcelView:
            operator = self._identity.get_user(operator_username)
            parcel = uow.parcels.get(parcel_key)

            if self._lifecycle.assign(parcel, caller, operator):
                parcel.add_domain_event(
                    ParcelAssigned(
                        aggregate_key=parcel_key.storage_id,
                        worksheet_id=parcel_key.sheet.worksheet_id,
                        operation_code=parcel_key.operation.operation_code,
                        polygon_id=parcel_key.polygon_id,
                        operator=operator.username,
                        assigned_by=caller.username,
                        status=parcel.status.value,
                    )
                )
                uow.parcels.save(parcel)
            return self._mapper.parcel_to_view(parcel)

        return self._execute("assign", credential, work)

    def start(self, credential: str, parcel_key: ParcelKey) -> ActivityView:
        """
        Open a work session of the caller on a parcel.

        Raises:
            NotFoundError: If the parcel is unknown
            InvalidStateError: If the parcel is unassigned
            PermissionDeniedError: If the caller is not assigned to the parcel
        """

        def work(uow: ExecutionUnitOfWork, caller: Identity) -> ActivityView:
            parcel = uow.parcels.get(parcel_key)
            self._lifecycle.start(parcel, caller)
            operation = uow.operations.get(parcel_key.operation)
            sheet = uow.sheets.get(parcel_key.sheet)

            now = self._clock()
            activity = Activity(
                parcel=parcel_key,
                activity_id=self._new_activity_id(),
                operator=caller.username,
                start_time=now,
                created_at=now,
            )
            activity.add_domain_event(
                ActivityStarted(
                    aggregate_key=activity.key.storage_id,
                    activity_id=activity.activity_id,
                    operator=caller.username,
                    polygon_id=parcel_key.polygon_id,
                    started_at=now,
                )
            )
            parcel.record_activity(activity.activity_id, now)
            operation.record_activity(now)
            sheet.record_activity(now)

            uow.activities.add(activity)
            uow.parcels.save(parcel)
            uow.operations.save(operation)
            uow.sheets.save(sheet)
            return self._mapper.activity_to_view(activity)

        return self._execute("start", credential, work)

    def stop(
        self, credential: str, activity_key: ActivityKey, finished: bool
    ) -> StopActivityResult:
        """
        Close a work session; with ``finished`` also complete its parcel.

        Completing a parcel credits its geodesic area to the operation and,
        when the operation reaches 100 percent, checks every sibling
        operation to close the sheet. All of it commits together.

        Raises:
            NotFoundError: If the activity, parcel or polygon is unknown
            InvalidStateError: If the parcel is not in progress or the
                activity already ended
            PermissionDeniedError: If the caller is not assigned to the parcel
            GeometryError: If the parcel polygon cannot be measured
        """

        def work(uow: ExecutionUnitOfWork, caller: Identity) -> StopActivityResult:
            activity = uow.activities.get(activity_key)
            parcel = uow.parcels.get(activity_key.parcel)
            target = self._lifecycle.stop(parcel, caller, finished)
            operation = uow.operations.get(activity_key.operation)
            sheet = uow.sheets.get(activity_key.sheet)

            now = self._clock()
            activity.finish(now)
            activity.add_domain_event(
                ActivityStopped(
                    aggregate_key=activity_key.storage_id,
                    activity_id=activity.activity_id,
                    operator=caller.username,
                    polygon_id=parcel.polygon_id,
                    ended_at=now,
                    finished=finished,
                )
            )

            area_ha = None
            operation_completed = False
            sheet_completed = False
            if target == ParcelStatus.COMPLETED:
                geometry = self._geometry.get_polygon(parcel.polygon_id)
                area_ha = self._area.area(geometry)
                parcel.complete(area_ha, now)

                update = self._aggregator.apply_parcel_completion(operation, area_ha, now)
                operation_completed = update.operation_completed
                if operation_completed:
                    siblings = [
                        operation if key == operation.key else uow.operations.get(key)
                        for key in sheet.operation_keys()
                    ]
                    sheet_completed = self._aggregator.complete_sheet_if_done(
                        sheet, siblings, now
                    )
                logger.info(
                    "Parcel completed",
                    parcel=str(parcel.key),
                    area_ha=area_ha,
                    contribution=update.contribution,
                    percent=update.new_percent,
                    operation_completed=operation_completed,
                    sheet_completed=sheet_completed,
                )
            else:
                parcel.touch(now)

            # Touching the sheet makes every stop under it conflict on one key
            operation.record_activity(now)
            sheet.record_activity(now)

            uow.activities.save(activity)
            uow.parcels.save(parcel)
            uow.operations.save(operation)
            uow.sheets.save(sheet)

            return StopActivityResult(
                activity=self._mapper.activity_to_view(activity),
                parcel_status=parcel.status,
                area_ha=area_ha,
                operation_percent=operation.percent_complete,
                operation_completed=operation_completed,
                sheet_completed=sheet_completed,
            )

        return self._execute("stop", credential, work)

    def record_info(
        self,
        credential: str,
        activity_key: ActivityKey,
        observations: str | None = None,
        gps_path: str | None = None,
        photo_refs: list[str] | None = None,
    ) -> ActivityView:
        """
        Attach field notes to an ended activity.

        Non-blank observations are appended to the activity, its parcel, its
        operation and its sheet. A non-blank GPS path is appended to the
        activity and parcel paths. Photo references go to the activity.

        Raises:
            NotFoundError: If the activity is unknown
            PermissionDeniedError: If the caller did not perform the activity
            InvalidStateError: If the activity has not ended
        """
        observation = _non_blank(observations)
        path = _non_blank(gps_path)
        photos = [ref for ref in photo_refs or [] if ref and ref.strip()]

        def work(uow: ExecutionUnitOfWork, caller: Identity) -> ActivityView:
            activity = uow.activities.get(activity_key)
            if activity.operator != caller.username:
                raise PermissionDeniedError(
                    caller.username, f"activity {activity_key} belongs to another operator"
                )
            if activity.is_in_progress:
                raise InvalidStateError(
                    "activity", str(activity_key), "in progress", "record info on"
                )

            activity.record_info(observation, path, photos)
            activity.add_domain_event(
                ActivityInfoRecorded(
                    aggregate_key=activity_key.storage_id,
                    activity_id=activity.activity_id,
                    operator=caller.username,
                    has_observation=observation is not None,
                    has_gps_path=path is not None,
                    photo_count=len(photos),
                )
            )
            uow.activities.save(activity)

            if observation is None and path is None:
                return self._mapper.activity_to_view(activity)

            parcel = uow.parcels.get(activity_key.parcel)
            if path is not None:
                parcel.append_gps_path(path)
            if observation is not None:
                parcel.add_observation(observation)
                operation = uow.operations.get(activity_key.operation)
                operation.add_observation(observation)
                uow.operations.save(operation)
                sheet = uow.sheets.get(activity_key.sheet)
                sheet.add_observation(observation)
                uow.sheets.save(sheet)
            uow.parcels.save(parcel)
            return self._mapper.activity_to_view(activity)

        return self._execute("record_info", credential, work)

    def add_operation_observation(
        self, credential: str, operation_key: OperationKey, observation: str
    ) -> OperationView:
        """
        Append a free-text observation to an operation.

        Raises:
            ValidationError: If the observation is blank
            NotFoundError: If the operation is unknown
        """
        def work(uow: ExecutionUnitOfWork, caller: Identity) -> OperationView:
            text = _non_blank(observation)
            if text is None:
                raise ValidationError("observation", observation, "cannot be blank")
            operation = uow.operations.get(operation_key)
            operation.add_observation(text, self._clock())
            operation.add_domain_event(
                OperationObservationAdded(
                    aggregate_key=operation_key.storage_id,
                    worksheet_id=operation_key.sheet.worksheet_id,
                    operation_code=operation_key.operation_code,
                    author=caller.username,
                )
            )
            uow.operations.save(operation)
            return self._mapper.operation_to_view(operation)

        return self._execute("add_operation_observation", credential, work)

    # Read operations

    def view_parcel(self, credential: str, parcel_key: ParcelKey) -> ParcelView:
        """Parcel with its activities."""

        def work(uow: ExecutionUnitOfWork, caller: Identity) -> ParcelView:
            parcel = uow.parcels.get(parcel_key)
            activities = uow.activities.get_many(parcel.activity_keys())
            return self._mapper.parcel_to_view(parcel, activities)

        return self._execute("view_parcel", credential, work)

    def operation_status(
        self, credential: str, operation_key: OperationKey
    ) -> OperationStatus:
        """Progress, timestamps and parcels (with activities) of one operation."""

        def work(uow: ExecutionUnitOfWork, caller: Identity) -> OperationStatus:
            operation = uow.operations.get(operation_key)
            parcels = [
                self._mapper.parcel_to_view(
                    parcel, uow.activities.get_many(parcel.activity_keys())
                )
                for parcel in uow.parcels.get_many(operation.parcel_keys())
            ]
            return OperationStatus(
                operation=self._mapper.operation_to_view(operation), parcels=parcels
            )

        return self._execute("operation_status", credential, work)

    def sheet_status(self, credential: str, sheet_key: SheetKey) -> SheetStatus:
        """Sheet timestamps, summed total area and mean percent of its operations."""

        def work(uow: ExecutionUnitOfWork, caller: Identity) -> SheetStatus:
            sheet = uow.sheets.get(sheet_key)
            operations = uow.operations.get_many(sheet.operation_keys())
            return self._mapper.sheet_to_status(sheet, operations)

        return self._execute("sheet_status", credential, work)

    def export_sheet(self, credential: str, sheet_key: SheetKey) -> SheetExport:
        """
        Executed area per operation and execution detail per polygon.

        Polygon blocks list, for every operation covering the polygon, the
        parcel state and the GPS track of each of its activities.
        """

        def work(uow: ExecutionUnitOfWork, caller: Identity) -> SheetExport:
            sheet = uow.sheets.get(sheet_key)
            operations = uow.operations.get_many(sheet.operation_keys())

            rows = []
            blocks: dict[int, list[PolygonOperationEntry]] = {}
            for index, operation in enumerate(operations, start=1):
                rows.append(self._mapper.operation_to_export_row(index, operation))
                for parcel in uow.parcels.get_many(operation.parcel_keys()):
                    activities = uow.activities.get_many(parcel.activity_keys())
                    blocks.setdefault(parcel.polygon_id, []).append(
                        self._mapper.parcel_to_export_entry(index, parcel, activities)
                    )

            return SheetExport(
                worksheet_id=sheet.worksheet_id,
                start_time=sheet.start_time,
                last_activity_time=sheet.last_activity_time,
                end_time=sheet.end_time,
                observations=list(sheet.observations),
                operations=rows,
                polygons=[
                    PolygonBlock(polygon_id=polygon_id, operations=entries)
                    for polygon_id, entries in blocks.items()
                ],
            )

        return self._execute("export_sheet", credential, work)

    # Transaction runner

    def _execute(self, operation: str, credential: str, work: Work) -> ResultT:
        set_correlation_id()
        try:
            caller = self._identity.authenticate(credential)
            set_user_id(caller.username)
            result, events = self._run_with_retries(operation, caller, work)
        except DomainError as e:
            WORKFLOW_OPERATIONS.labels(operation=operation, status=e.error_type.value).inc()
            raise

        WORKFLOW_OPERATIONS.labels(operation=operation, status="success").inc()
        self._publish(events)
        return result

    def _run_with_retries(
        self, operation: str, caller: Identity, work: Work
    ) -> tuple[ResultT, list[DomainEvent]]:
        delays = RetryDelayCalculator(self._retry_config)
        max_attempts = self._retry_config.max_attempts

        for attempt_number in range(1, max_attempts + 1):
            attempt = RetryAttempt(attempt_number=attempt_number)
            uow = ExecutionUnitOfWork(self._store)
            try:
                with uow:
                    result = work(uow, caller)
            except ConcurrentModificationError as e:
                attempt.complete(success=False, error=e)
                TRANSACTION_CONFLICTS.labels(operation=operation).inc()
                if attempt_number == max_attempts:
                    log_error_with_context(
                        e,
                        operation,
                        {"attempts": attempt_number},
                        severity="warning",
                    )
                    raise RetriesExhaustedError(operation, attempt_number) from e

                delay = delays.sleep(attempt_number)
                logger.info(
                    "Transaction conflict, retrying",
                    operation=operation,
                    attempt=attempt_number,
                    conflicting_key=e.key,
                    delay_seconds=round(delay, 4),
                    attempt_duration_seconds=round(attempt.duration_seconds, 4),
                )
                continue
            except DomainError as e:
                attempt.complete(success=False, error=e)
                logger.info(
                    "Workflow operation rejected",
                    operation=operation,
                    error_type=e.error_type.value,
                    error=e.message,
                )
                raise

            attempt.complete(success=True)
            logger.info(
                "Workflow operation committed",
                operation=operation,
                attempts=attempt_number,
                events=len(uow.events),
            )
            return result, uow.events

        # max_attempts >= 1, the loop always returns or raises
        raise RetriesExhaustedError(operation, max_attempts)

    def _publish(self, events: list[DomainEvent]) -> None:
        if self._sink is None:
            return
        for event in events:
            try:
                self._sink.publish(event)
            except Exception as e:
                NOTIFICATION_FAILURES.labels(event_type=event.event_type).inc()
                log_error_with_context(
                    e,
                    "publish_event",
                    {"event_type": event.event_type, "aggregate_key": event.aggregate_key},
                )
