"""Factory functions wiring the clinical safety components together."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from common.channels.broadcaster import ALL_STAFF_ROOM, Broadcaster, RoomRegistry
from common.channels.teams import TeamsConnection
from common.clinical_safety.redaction import set_salt
from common.clinical_safety.reference import (
    BaseReferenceStore,
    SQLiteReferenceStore,
    StaticReferenceStore,
)
from common.clinical_safety.store import AlertStore

from .alert_manager import AlertManager
from .config import Config, config as default_config
from .events import EventPublisher, HttpEventPublisher, InMemoryEventPublisher
from .gate import PrescriptionGate
from .safety_check import MedicationSafetyChecker

logger = logging.getLogger(__name__)


def get_reference_store(cfg: Config | None = None) -> BaseReferenceStore:
    """Get the configured reference store.

    Uses the SQLite reference database when CLINICAL_REFERENCE_DB_PATH is set,
    otherwise the bundled seed dataset.
    """
    cfg = cfg or default_config
    if cfg.is_reference_db_configured():
        logger.info("Using SQLite reference store")
        return SQLiteReferenceStore(cfg.REFERENCE_DB_PATH)
    logger.info("CLINICAL_REFERENCE_DB_PATH not set, using seed reference data")
    return StaticReferenceStore()


def get_event_publisher(cfg: Config | None = None) -> EventPublisher:
    cfg = cfg or default_config
    if cfg.is_event_publisher_configured():
        return HttpEventPublisher(cfg.EVENT_PUBLISHER_URL, timeout=cfg.WEBHOOK_TIMEOUT_SECONDS)
    return InMemoryEventPublisher()


@dataclass
class SafetyServices:
    reference_store: BaseReferenceStore
    safety_checker: MedicationSafetyChecker
    broadcaster: Broadcaster
    alert_manager: AlertManager
    event_publisher: EventPublisher
    gate: PrescriptionGate
    broadcast_executor: ThreadPoolExecutor | None = None

    def shutdown(self) -> None:
        self.safety_checker.shutdown()
        if self.broadcast_executor:
            self.broadcast_executor.shutdown(wait=True)


def build_services(
    cfg: Config | None = None,
    reference_store: BaseReferenceStore | None = None,
    alert_store: AlertStore | None = None,
    event_publisher: EventPublisher | None = None,
    broadcaster: Broadcaster | None = None,
    on_approved=None,
) -> SafetyServices:
    """Build the full service graph. Explicit arguments override configuration."""
    cfg = cfg or default_config
    errors = cfg.validate()
    if errors:
        raise ValueError("Invalid configuration: " + "; ".join(errors))

    set_salt(cfg.LOG_SALT)

    reference_store = reference_store or get_reference_store(cfg)
    event_publisher = event_publisher or get_event_publisher(cfg)
    broadcaster = broadcaster or Broadcaster(RoomRegistry())

    if cfg.TEAMS_WEBHOOK_URL:
        broadcaster.registry.join(
            ALL_STAFF_ROOM,
            TeamsConnection(
                cfg.TEAMS_WEBHOOK_URL,
                connection_id="teams-all-staff",
                timeout=cfg.WEBHOOK_TIMEOUT_SECONDS,
            ),
        )

    broadcast_executor = (
        ThreadPoolExecutor(max_workers=2, thread_name_prefix="alert-broadcast")
        if cfg.BROADCAST_ASYNC
        else None
    )

    safety_checker = MedicationSafetyChecker.from_reference_store(
        reference_store,
        timeout_seconds=cfg.SAFETY_CHECK_TIMEOUT_SECONDS,
        degraded_policy=cfg.DEGRADED_SAFETY_POLICY,
    )
    alert_manager = AlertManager(
        alert_store or AlertStore(cfg.ALERT_DB_PATH),
        broadcaster=broadcaster,
        event_publisher=event_publisher,
        executor=broadcast_executor,
    )
    gate = PrescriptionGate(
        safety_checker,
        alert_manager=alert_manager,
        event_publisher=event_publisher,
        on_approved=on_approved,
        executor=broadcast_executor,
    )

    return SafetyServices(
        reference_store=reference_store,
        safety_checker=safety_checker,
        broadcaster=broadcaster,
        alert_manager=alert_manager,
        event_publisher=event_publisher,
        gate=gate,
        broadcast_executor=broadcast_executor,
    )
