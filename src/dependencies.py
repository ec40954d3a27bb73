import random

from src.config import settings
from src.stores.base_store import RegimeStore
from src.stores.memory_store import InMemoryRegimeStore

# One store and random source shared by all requests; tests override these dependencies
_store = InMemoryRegimeStore(settings.stage_segment_totals)
_rng = random.Random(settings.RANDOM_SEED)


def get_regime_store() -> RegimeStore:
    return _store


def get_rng() -> random.Random:
    return _rng
