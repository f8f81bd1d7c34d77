import pytest

from partyclient.settings import Settings
from partyclient.store.name_store import MemoryNameStore
from tests.fakes import FakeConnector


@pytest.fixture
def settings():
    return Settings(NAME_STORE_BACKEND="memory")


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def name_store():
    return MemoryNameStore("Ann")
