import json
import random
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests
from fastapi.testclient import TestClient

from main import app
from src.dependencies import get_regime_store, get_rng
from src.stores.memory_store import InMemoryRegimeStore
from src.utils.models import Regime, Segment

# ----------------------------- Store & randomness -----------------------------
@pytest.fixture
def store() -> InMemoryRegimeStore:
    """Fresh in-memory store using the protocol's stage totals (12 / 48)."""
    return InMemoryRegimeStore(stage_segment_totals={2: 12, 3: 48})

@pytest.fixture
def rng() -> random.Random:
    """Seeded random source so shuffles are reproducible."""
    return random.Random(1234)

# ----------------------------- Time control ---------------------------------
@pytest.fixture
def morning() -> datetime:
    """A fixed, naive local time early enough that the day never limits a session."""
    return datetime(2024, 3, 12, 9, 30, 0)

# ----------------------------- Core client ----------------------------------
@pytest.fixture
def client(store, rng) -> TestClient:
    """TestClient wired to the per-test store and seeded random source."""
    app.dependency_overrides[get_regime_store] = lambda: store
    app.dependency_overrides[get_rng] = lambda: rng
    yield TestClient(app)
    app.dependency_overrides.clear()

# ----------------------------- Factories ------------------------------------
@pytest.fixture
def make_regime() -> Callable[..., Regime]:
    def _make(bpm: float = 6, duration_ms: float = 300000, regime_id: Optional[int] = None, **kw) -> Regime:
        return Regime(duration_ms=duration_ms, breaths_per_minute=bpm, id=regime_id, **kw)
    return _make

@pytest.fixture
def add_segments(store, morning) -> Callable[..., List[Segment]]:
    """Adds one segment per coherence value for the regime, ending before `morning`'s day."""
    def _add(regime_id: Optional[int], coherences: List[float], stage: int = 2, end: Optional[datetime] = None) -> List[Segment]:
        end = end or morning - timedelta(days=1)
        added = []
        for i, coherence in enumerate(coherences):
            seg = Segment(
                regime_id=regime_id,
                session_start_time=i * 300000,
                end_date_time=end,
                avg_coherence=coherence,
                stage=stage,
            )
            added.append(store.add_segment(seg))
        return added
    return _add

@pytest.fixture
def fixed_now(monkeypatch, morning) -> datetime:
    """Freeze the app's clock at `morning` for deterministic day boundaries."""
    monkeypatch.setattr("src.session.local_now", lambda: morning)
    return morning

# ----------------------------- HTTP response shim ----------------------------
class _Resp:
    def __init__(self, status_code: int, json_obj: Dict[str, Any]):
        self.status_code = status_code
        self._json = json_obj
        self.text = json.dumps(json_obj)
    def json(self) -> Dict[str, Any]: return self._json
    def raise_for_status(self):
        if not (200 <= self.status_code < 300):
            raise requests.exceptions.HTTPError(f"HTTP {self.status_code}", response=self)
@pytest.fixture
def make_response() -> Callable[[int, Dict[str, Any]], _Resp]:
    def _make(status: int, body: Dict[str, Any]) -> _Resp: return _Resp(status, body)
    return _make
