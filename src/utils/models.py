from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Literal, Optional, Tuple

HoldPos = Literal["postInhale", "postExhale"]
BreathType = Literal["inhale", "hold", "exhale"]

class Regime(BaseModel):
    """
    A prescribed breathing pattern: how long to breathe, at what pace, where
    (if anywhere) to hold the breath and whether the pace is randomized.
    Two regimes with the same defining fields share one id in the store.
    """
    duration_ms: float
    breaths_per_minute: float
    hold_pos: Optional[HoldPos] = None
    randomize: bool = False
    id: Optional[int] = None
    # Times this regime has been the reigning best in the adaptive stage 3 search
    is_best_cnt: int = 0

    @property
    def key(self) -> Tuple[float, float, Optional[str], bool]:
        return (self.duration_ms, self.breaths_per_minute, self.hold_pos, self.randomize)

class Segment(BaseModel):
    """A completed practice segment. Rest segments have no regime."""
    regime_id: Optional[int] = None
    session_start_time: int = Field(..., description="Offset (ms) of the segment start within its session")
    end_date_time: datetime
    avg_coherence: float = Field(..., allow_inf_nan=False)
    stage: Literal[1, 2, 3]

class SegmentIn(BaseModel):
    regime_id: Optional[int] = None
    session_start_time: int
    end_date_time: Optional[datetime] = None
    avg_coherence: float = Field(..., allow_inf_nan=False)
    stage: Literal[1, 2, 3]

class RegimeStats(BaseModel):
    id: int
    mean: float
    low_90_ci: float
    high_90_ci: float

class BreathPhase(BaseModel):
    duration_ms: float
    breath_type: BreathType

class DayRegimesRequest(BaseModel):
    condition: str
    stage: int

class SessionRegimesResponse(BaseModel):
    regimes: List[Regime]
    total_duration_ms: float

class StageStatus(BaseModel):
    stage: int
    complete: bool
    segments_done: int
    segments_required: int
