"""Shared fixtures for clinical safety tests."""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).parent.parent
for path in (ROOT, ROOT / "clinical-safety"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from common.channels.broadcaster import Broadcaster, RoomRegistry
from common.clinical_safety.reference import StaticReferenceStore
from common.clinical_safety.store import AlertStore
from safety_src.alert_manager import AlertManager
from safety_src.cache import TTLCache
from safety_src.checkers import (
    AllergyChecker,
    ContraindicationChecker,
    DoseValidator,
    InteractionChecker,
)
from safety_src.config import Config
from safety_src.events import InMemoryEventPublisher
from safety_src.gate import PrescriptionGate
from safety_src.safety_check import MedicationSafetyChecker


@pytest.fixture
def reference_store():
    return StaticReferenceStore()


@pytest.fixture
def unconfigured_store():
    """Reference store with no tables loaded."""
    return StaticReferenceStore(tables={}, version="empty")


@pytest.fixture
def interaction_checker(reference_store):
    return InteractionChecker(reference_store, cache=TTLCache(ttl_seconds=60, max_entries=16))


@pytest.fixture
def allergy_checker(reference_store):
    return AllergyChecker(reference_store)


@pytest.fixture
def contraindication_checker(reference_store):
    return ContraindicationChecker(reference_store)


@pytest.fixture
def dose_validator(reference_store):
    return DoseValidator(reference_store)


@pytest.fixture
def safety_checker(reference_store):
    checker = MedicationSafetyChecker.from_reference_store(
        reference_store, timeout_seconds=5, degraded_policy="override"
    )
    yield checker
    checker.shutdown()


@pytest.fixture
def alert_store(tmp_path):
    return AlertStore(str(tmp_path / "clinical_alerts.db"))


@pytest.fixture
def broadcaster():
    return Broadcaster(RoomRegistry())


@pytest.fixture
def event_publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def alert_manager(alert_store, broadcaster, event_publisher):
    # No executor: broadcasts run inline so tests can assert on delivery
    return AlertManager(alert_store, broadcaster=broadcaster, event_publisher=event_publisher)


@pytest.fixture
def approved_prescriptions():
    return []


@pytest.fixture
def gate(safety_checker, alert_manager, event_publisher, approved_prescriptions):
    return PrescriptionGate(
        safety_checker,
        alert_manager=alert_manager,
        event_publisher=event_publisher,
        on_approved=approved_prescriptions.append,
    )


@pytest.fixture
def test_config():
    cfg = Config()
    cfg.BROADCAST_ASYNC = False
    cfg.TEAMS_WEBHOOK_URL = None
    cfg.EVENT_PUBLISHER_URL = None
    cfg.DEGRADED_SAFETY_POLICY = "override"
    return cfg
