from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from typing import Iterator, List, Optional

from src.utils.models import Regime, RegimeStats, Segment

class RegimeStore(ABC):
    """
    An abstract base class that defines the interface the regime selector
    needs from persistent storage of regimes, completed segments and daily
    regime assignments.
    """

    @abstractmethod
    def get_or_create_regime_id(self, regime: Regime) -> int:
        """
        Returns the id of the stored regime with the same duration, pace, hold
        position and randomization, creating it first if there is none.
        """
        pass

    @abstractmethod
    def get_regime_by_id(self, regime_id: int) -> Regime:
        """Raises DataIntegrityError if there is no such regime."""
        pass

    @abstractmethod
    def get_all_regime_ids(self, stage: int) -> List[int]:
        """Ids of every regime that can be chosen in the given stage."""
        pass

    @abstractmethod
    def get_regime_stats(self, regime_id: int) -> RegimeStats:
        """
        Mean and 90% confidence interval of the average coherence of all the
        stage 2 and 3 segments done under the regime. NaN when not computable.
        """
        pass

    @abstractmethod
    def get_min_coherence_paced_regime_id(self) -> Optional[int]:
        """
        The regime with the lowest average coherence over stage 2 and 3 paced
        segments (lowest id on ties), or None if there are no such segments.
        """
        pass

    @abstractmethod
    def is_stage_complete(self, stage: int) -> bool:
        pass

    @abstractmethod
    def get_segments_completed_today(self, stage: int, today: Optional[date] = None) -> List[Segment]:
        pass

    @abstractmethod
    def count_segments(self, stage: int) -> int:
        """Number of stored segments of the stage."""
        pass

    @abstractmethod
    def get_daily_assignment(self, day: date) -> List[Regime]:
        """The ordered regimes assigned for the day, or an empty list."""
        pass

    @abstractmethod
    def save_daily_assignment(self, regimes: List[Regime], day: date) -> None:
        """
        Stores the ordered regimes as the assignment for the day, creating ids
        for any regime that doesn't have one yet.
        """
        pass

    @abstractmethod
    def set_regime_best_count(self, regime_id: int, count: int) -> None:
        pass

    @abstractmethod
    def add_segment(self, segment: Segment) -> Segment:
        pass

    @contextmanager
    def transaction(self) -> Iterator["RegimeStore"]:
        """
        Groups writes into one unit. Stores that can roll back should undo
        every write made inside the block when it raises.
        """
        yield self
