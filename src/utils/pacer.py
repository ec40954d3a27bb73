import math
import random
from typing import List

from src.exceptions import ValidationError
from src.utils.models import BreathPhase, Regime

MIN_BREATHS_PER_MINUTE = 1
MAX_BREATHS_PER_MINUTE = 60
MIN_DURATION_MS = 10000

# Each full breath may vary by up to this much from nominal, in RANDOM_STEP_MS increments
RANDOM_BREATH_RANGE_MS = 2000
RANDOM_STEP_MS = 100


def make_range(low: float, high: float, increment: float) -> List[float]:
    # Accumulates by repeated addition; the float drift decides whether `high` itself is included
    res = []
    i = low
    while i <= high:
        res.append(i)
        i += increment
    return res


def _ms_per_breath(regime: Regime) -> float:
    return (60 / regime.breaths_per_minute) * 1000


def validate_regime(regime: Regime) -> None:
    # Rules are stated as what must hold so NaN fails every one of them
    if not regime.breaths_per_minute >= MIN_BREATHS_PER_MINUTE:
        raise ValidationError(f"The minimum breaths per minute is 1, got {regime.breaths_per_minute}.")
    if not regime.breaths_per_minute <= MAX_BREATHS_PER_MINUTE:
        raise ValidationError(f"The maximum breaths per minute is 60, got {regime.breaths_per_minute}.")
    if not regime.duration_ms >= MIN_DURATION_MS:
        raise ValidationError(f"The minimum duration is 10000 ms (10 seconds), got {regime.duration_ms}.")
    if not math.isfinite(regime.duration_ms):
        raise ValidationError(f"The duration must be a finite number of ms, got {regime.duration_ms}.")
    ms_per_breath = _ms_per_breath(regime)
    if not regime.duration_ms >= ms_per_breath:
        raise ValidationError(
            f"The minimum number of breaths during the total duration is 1: "
            f"{regime.duration_ms} ms is shorter than one breath ({ms_per_breath} ms)."
        )


def regime_to_breaths(regime: Regime, rng=random) -> List[BreathPhase]:
    """
    Expands a regime into the ordered inhale/hold/exhale phases that pace a
    practice session.

    Without randomization every phase lasts 1/2 (no hold) or 1/3 (with hold)
    of a breath. With randomization each phase is drawn independently from a
    grid around that length, so that a whole breath varies by up to +/- 2
    seconds in 100 ms steps.

    A duration that isn't a whole number of breaths is rounded up to the next
    breath, so the result can be slightly longer than requested. Randomized
    regimes can also end up slightly longer or shorter, with a slightly
    different average pace.
    """
    validate_regime(regime)
    segments_per_breath = 3 if regime.hold_pos else 2
    ms_per_breath = _ms_per_breath(regime)
    base_segment_dur = ms_per_breath / segments_per_breath
    total_breaths = math.ceil(regime.duration_ms / ms_per_breath)
    random_seg_range = make_range(
        base_segment_dur - (RANDOM_BREATH_RANGE_MS / segments_per_breath),
        base_segment_dur + (RANDOM_BREATH_RANGE_MS / segments_per_breath),
        RANDOM_STEP_MS / segments_per_breath,
    )

    def segment_duration() -> float:
        if not regime.randomize:
            return base_segment_dur
        return random_seg_range[int(rng.random() * len(random_seg_range))]

    breaths = []
    for _ in range(total_breaths):
        # always start with inhalation
        breaths.append(BreathPhase(duration_ms=segment_duration(), breath_type="inhale"))
        if regime.hold_pos == "postInhale":
            breaths.append(BreathPhase(duration_ms=segment_duration(), breath_type="hold"))
        breaths.append(BreathPhase(duration_ms=segment_duration(), breath_type="exhale"))
        if regime.hold_pos == "postExhale":
            breaths.append(BreathPhase(duration_ms=segment_duration(), breath_type="hold"))
    return breaths
