import pytest
from doodba.reconcile.context import Context, ObjectRef
from doodba.types.settings import Settings
from fakes import InMemoryObjectStore, RecordingSensor


@pytest.fixture
def store():
    return InMemoryObjectStore()


@pytest.fixture
def sensor():
    return RecordingSensor()


@pytest.fixture
def conf():
    return Settings(requeue_wait_seconds=5, requeue_error_seconds=300)


@pytest.fixture
def ctx(store, conf, sensor):
    return Context(store, conf=conf, sensor=sensor)


@pytest.fixture
def ref():
    return ObjectRef("default", "odoo")
