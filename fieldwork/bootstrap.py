"""
Wiring of the execution engine.

Builds an ``ExecutionCoordinator`` from settings and the collaborators the
host application supplies.
"""

from .application.services.execution_coordinator import ExecutionCoordinator
from .core.config import Settings, get_settings
from .core.observability import get_logger, setup_structured_logging
from .core.retry_mechanisms import RetryConfig
from .domain.execution.repositories.collaborators import (
    GeometryProvider,
    IdentityProvider,
    NotificationSink,
    WorksheetProvider,
)
from .domain.execution.repositories.store import TransactionalStore
from .domain.execution.services.geodesic_area import GeodesicAreaCalculator
from .infrastructure.database.sqlmodel_store import (
    SqlModelTransactionalStore,
    build_engine,
)
from .infrastructure.events.event_bus import InMemoryEventBus

logger = get_logger(__name__)


def create_store(settings: Settings | None = None) -> SqlModelTransactionalStore:
    """Open the SQL store named by DATABASE_URL and make sure its table exists."""
    settings = settings or get_settings()
    store = SqlModelTransactionalStore(build_engine(settings))
    store.create_tables()
    return store


def create_coordinator(
    identity_provider: IdentityProvider,
    worksheet_provider: WorksheetProvider,
    geometry_provider: GeometryProvider,
    store: TransactionalStore | None = None,
    notification_sink: NotificationSink | None = None,
    settings: Settings | None = None,
    configure_logging: bool = True,
) -> ExecutionCoordinator:
    """
    Build a coordinator.

    Args:
        identity_provider: Resolves credentials and accounts
        worksheet_provider: Source of worksheet plans
        geometry_provider: Source of parcel polygons
        store: Defaults to the SQL store named by DATABASE_URL
        notification_sink: Defaults to a fresh in-memory event bus
        settings: Defaults to the cached environment settings
        configure_logging: Configure structlog from the settings first
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_structured_logging(settings)

    store = store or create_store(settings)
    coordinator = ExecutionCoordinator(
        store=store,
        identity_provider=identity_provider,
        worksheet_provider=worksheet_provider,
        geometry_provider=geometry_provider,
        notification_sink=notification_sink or InMemoryEventBus(),
        area_calculator=GeodesicAreaCalculator(strict=settings.STRICT_GEOMETRY),
        retry_config=RetryConfig.from_settings(settings),
        settings=settings,
    )
    logger.info(
        "Execution coordinator ready",
        store=type(store).__name__,
        environment=settings.ENVIRONMENT,
        max_attempts=settings.TRANSACTION_MAX_ATTEMPTS,
        strict_geometry=settings.STRICT_GEOMETRY,
    )
    return coordinator
