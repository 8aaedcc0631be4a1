import copy
from contextlib import contextmanager
from unittest.mock import patch, MagicMock

import pytest

from participant_registry.store.models import RegistryState


class MemoryStore:
    """Stands in for Redis: load hands out a copy, save keeps a copy."""

    def __init__(self, admin: str = "deployer"):
        self.state = RegistryState(admin=admin)
        self.saves = 0

    def load(self) -> RegistryState:
        return copy.deepcopy(self.state)

    def save(self, state: RegistryState) -> None:
        self.saves += 1
        self.state = copy.deepcopy(state)


@contextmanager
def _no_lock(*args, **kwargs):
    yield


@pytest.fixture
def memory_ledger():
    store = MemoryStore()
    with patch("participant_registry.core.ledger.load_state", side_effect=store.load), \
         patch("participant_registry.core.ledger.save_state", side_effect=store.save), \
         patch("participant_registry.core.ledger.registry_lock", _no_lock), \
         patch("participant_registry.core.ledger.metrics", MagicMock()), \
         patch("participant_registry.core.ledger.publish_event") as mock_publish:
        store.publish = mock_publish
        yield store
