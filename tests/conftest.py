import pytest

from tests.helpers import PACKAGE_DATA, SMALL_CATALOG, SMALL_TREE, FakeClock, FakeSink
from triage_study.services.decision_tree import DecisionTree
from triage_study.services.session import MemoryStorage, SessionStore
from triage_study.services.tickets import TicketCatalog
from triage_study.services.tracking import EventTracker, SamplingPolicy, TraceSyncer


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tree() -> DecisionTree:
    return DecisionTree.from_dict(SMALL_TREE)


@pytest.fixture
def catalog(tree) -> TicketCatalog:
    catalog = TicketCatalog.from_dict(SMALL_CATALOG)
    catalog.check_against(tree)
    return catalog


@pytest.fixture
def store(clock) -> SessionStore:
    return SessionStore(MemoryStorage(), clock=clock)


@pytest.fixture
def tracker(store, clock) -> EventTracker:
    return EventTracker(store, SamplingPolicy.record_all(), clock=clock)


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def syncer(store, tracker, sink) -> TraceSyncer:
    return TraceSyncer(store, tracker, sink, final_timeout=1.0)


@pytest.fixture
def bundled_tree() -> DecisionTree:
    return DecisionTree.load(PACKAGE_DATA / "tree.json")


@pytest.fixture
def bundled_catalog(bundled_tree) -> TicketCatalog:
    catalog = TicketCatalog.load(PACKAGE_DATA / "tickets.json")
    catalog.check_against(bundled_tree)
    return catalog
