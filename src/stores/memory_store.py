import copy
import math
from contextlib import contextmanager
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

import pandas as pd
from dateutil import tz
from scipy import stats

from src.config import settings
from src.exceptions import DataIntegrityError
from src.logger import get_logger
from src.stores.base_store import RegimeStore
from src.utils.models import Regime, RegimeStats, Segment

logger = get_logger(__name__)

SEGMENT_COLUMNS = ["regime_id", "session_start_time", "end_date_time", "avg_coherence", "stage"]


def _local_date(dt: datetime) -> date:
    if dt.tzinfo is not None:
        dt = dt.astimezone(tz.tzlocal())
    return dt.date()


class InMemoryRegimeStore(RegimeStore):
    """
    Regime store kept in process memory. Regimes are content addressed: the
    tuple of their defining fields maps to exactly one id.
    """
    def __init__(self, stage_segment_totals: Optional[Dict[int, int]] = None):
        self.stage_segment_totals = stage_segment_totals or settings.stage_segment_totals
        self._ids_by_key: Dict[Tuple, int] = {}
        self._regimes: Dict[int, Regime] = {}
        self._segments: List[Segment] = []
        self._assignments: Dict[date, List[int]] = {}
        self._next_id = 1

    # -------------------------------------------------------------------------
    # Regimes
    # -------------------------------------------------------------------------

    def get_or_create_regime_id(self, regime: Regime) -> int:
        regime_id = self._ids_by_key.get(regime.key)
        if regime_id is not None:
            return regime_id

        regime_id = self._next_id
        self._next_id += 1
        self._ids_by_key[regime.key] = regime_id
        self._regimes[regime_id] = regime.model_copy(update={"id": regime_id})
        logger.info(f"Created regime {regime_id}: {regime.key}")
        return regime_id

    def get_regime_by_id(self, regime_id: int) -> Regime:
        regime = self._regimes.get(regime_id)
        if regime is None:
            raise DataIntegrityError(f"No regime with id {regime_id} exists.")
        return regime.model_copy()

    def set_regime_best_count(self, regime_id: int, count: int) -> None:
        if regime_id not in self._regimes:
            raise DataIntegrityError(f"Cannot set best count {count} on unknown regime {regime_id}.")
        self._regimes[regime_id].is_best_cnt = count

    def get_all_regime_ids(self, stage: int) -> List[int]:
        ids = {s.regime_id for s in self._segments if s.regime_id is not None and 2 <= s.stage <= stage}
        for assigned in self._assignments.values():
            ids.update(assigned)
        return sorted(ids)

    # -------------------------------------------------------------------------
    # Segments and statistics
    # -------------------------------------------------------------------------

    def add_segment(self, segment: Segment) -> Segment:
        if segment.regime_id is not None and segment.regime_id not in self._regimes:
            raise DataIntegrityError(f"Segment refers to unknown regime {segment.regime_id}.")
        self._segments.append(segment)
        return segment

    def _paced_segments(self) -> pd.DataFrame:
        """Stage 2 and 3 segments done under a regime (i.e. not rest)."""
        df = pd.DataFrame([s.model_dump() for s in self._segments], columns=SEGMENT_COLUMNS)
        return df[df["regime_id"].notna() & df["stage"].isin([2, 3])]

    def get_regime_stats(self, regime_id: int) -> RegimeStats:
        df = self._paced_segments()
        values = df.loc[df["regime_id"] == regime_id, "avg_coherence"].astype(float)
        n = len(values)
        if n == 0:
            return RegimeStats(id=regime_id, mean=math.nan, low_90_ci=math.nan, high_90_ci=math.nan)

        mean = float(values.mean())
        if n < 2:
            return RegimeStats(id=regime_id, mean=mean, low_90_ci=math.nan, high_90_ci=math.nan)

        # Two-sided 90% Student t interval
        sem = float(values.std(ddof=1)) / math.sqrt(n)
        half_width = float(stats.t.ppf(0.95, n - 1)) * sem
        return RegimeStats(id=regime_id, mean=mean, low_90_ci=mean - half_width, high_90_ci=mean + half_width)

    def get_min_coherence_paced_regime_id(self) -> Optional[int]:
        df = self._paced_segments()
        if df.empty:
            return None
        means = df.groupby("regime_id")["avg_coherence"].mean()
        # groupby sorts by id, so idxmin picks the lowest id on ties
        return int(means.idxmin())

    def is_stage_complete(self, stage: int) -> bool:
        required = self.stage_segment_totals.get(stage)
        if required is None:
            return False
        return self.count_segments(stage) >= required

    def count_segments(self, stage: int) -> int:
        return sum(1 for s in self._segments if s.stage == stage)

    def get_segments_completed_today(self, stage: int, today: Optional[date] = None) -> List[Segment]:
        today = today or date.today()
        return [s for s in self._segments if s.stage == stage and _local_date(s.end_date_time) == today]

    # -------------------------------------------------------------------------
    # Daily assignments
    # -------------------------------------------------------------------------

    def get_daily_assignment(self, day: date) -> List[Regime]:
        return [self.get_regime_by_id(regime_id) for regime_id in self._assignments.get(day, [])]

    def save_daily_assignment(self, regimes: List[Regime], day: date) -> None:
        if day in self._assignments:
            raise DataIntegrityError(f"Regimes for {day} were already saved: {self._assignments[day]}.")
        for regime in regimes:
            if regime.id is None:
                regime.id = self.get_or_create_regime_id(regime)
        self._assignments[day] = [r.id for r in regimes]
        logger.info(f"Saved regimes for {day}: {self._assignments[day]}")

    @contextmanager
    def transaction(self):
        snapshot = copy.deepcopy(
            (self._ids_by_key, self._regimes, self._segments, self._assignments, self._next_id)
        )
        try:
            yield self
        except Exception:
            logger.warning("Rolling back regime store changes.")
            (self._ids_by_key, self._regimes, self._segments, self._assignments, self._next_id) = snapshot
            raise
