import math
import random

import pytest

from src.exceptions import ValidationError
from src.utils.models import Regime
from src.utils.pacer import make_range, regime_to_breaths


def _expected_phase_count(regime: Regime) -> int:
    segments_per_breath = 3 if regime.hold_pos else 2
    ms_per_breath = 60000 / regime.breaths_per_minute
    return math.ceil(regime.duration_ms / ms_per_breath) * segments_per_breath

# --- 1. Validation ---

@pytest.mark.parametrize("bpm,duration_ms", [
    (0.5, 300000),      # too slow
    (61, 300000),       # too fast
    (6, 9999),          # shorter than the minimum duration
    (1, 30000),         # shorter than a single breath
    (math.nan, 300000),
    (6, math.nan),
    (6, math.inf),
    (math.inf, 300000),
])
def test_invalid_regimes_are_rejected(bpm, duration_ms):
    regime = Regime(duration_ms=duration_ms, breaths_per_minute=bpm)
    with pytest.raises(ValidationError):
        regime_to_breaths(regime)

def test_boundary_regimes_are_accepted():
    assert len(regime_to_breaths(Regime(duration_ms=60000, breaths_per_minute=1))) == 2
    assert len(regime_to_breaths(Regime(duration_ms=10000, breaths_per_minute=60))) == 20

# --- 2. Shape of the breath sequence ---

@pytest.mark.parametrize("hold_pos,pattern", [
    (None, ["inhale", "exhale"]),
    ("postInhale", ["inhale", "hold", "exhale"]),
    ("postExhale", ["inhale", "exhale", "hold"]),
])
@pytest.mark.parametrize("randomize", [False, True])
def test_phase_order_and_count(hold_pos, pattern, randomize):
    """Every breath starts with an inhale and holds appear only where requested."""
    regime = Regime(duration_ms=300000, breaths_per_minute=4.615, hold_pos=hold_pos, randomize=randomize)
    breaths = regime_to_breaths(regime, rng=random.Random(7))

    assert len(breaths) == _expected_phase_count(regime)
    types = [b.breath_type for b in breaths]
    n = len(pattern)
    for i in range(0, len(types), n):
        assert types[i:i + n] == pattern

def test_partial_breath_is_rounded_up():
    # 6 bpm -> 10 s per breath; 60 s is exactly 6 breaths, 61 s needs a 7th
    assert len(regime_to_breaths(Regime(duration_ms=60000, breaths_per_minute=6))) == 12
    assert len(regime_to_breaths(Regime(duration_ms=61000, breaths_per_minute=6))) == 14

# --- 3. Durations ---

def test_non_randomized_phases_are_equal():
    breaths = regime_to_breaths(Regime(duration_ms=300000, breaths_per_minute=6))
    assert len(breaths) == 60
    assert all(b.duration_ms == 5000 for b in breaths)

def test_non_randomized_hold_phases_are_a_third_of_a_breath():
    breaths = regime_to_breaths(Regime(duration_ms=300000, breaths_per_minute=6, hold_pos="postExhale"))
    assert len(breaths) == 90
    assert all(b.duration_ms == pytest.approx(10000 / 3) for b in breaths)

@pytest.mark.parametrize("hold_pos", [None, "postInhale"])
def test_randomized_phases_stay_on_the_grid(hold_pos):
    regime = Regime(duration_ms=300000, breaths_per_minute=12.245, hold_pos=hold_pos, randomize=True)
    segments_per_breath = 3 if hold_pos else 2
    base = (60000 / regime.breaths_per_minute) / segments_per_breath
    half_range = 2000 / segments_per_breath
    step = 100 / segments_per_breath

    breaths = regime_to_breaths(regime, rng=random.Random(99))
    durations = [b.duration_ms for b in breaths]

    for d in durations:
        assert base - half_range - 1e-6 <= d <= base + half_range + 1e-6
        steps = (d - (base - half_range)) / step
        assert steps == pytest.approx(round(steps), abs=1e-6)
    # with hundreds of draws from ~40 values, they can't all be the same
    assert len(set(durations)) > 1

def test_randomized_output_differs_between_calls():
    regime = Regime(duration_ms=300000, breaths_per_minute=10.909, randomize=True)
    rng = random.Random(3)
    first = [b.duration_ms for b in regime_to_breaths(regime, rng=rng)]
    second = [b.duration_ms for b in regime_to_breaths(regime, rng=rng)]
    assert first != second

def test_seeded_output_is_reproducible():
    regime = Regime(duration_ms=120000, breaths_per_minute=5.357, randomize=True, hold_pos="postInhale")
    first = regime_to_breaths(regime, rng=random.Random(42))
    second = regime_to_breaths(regime, rng=random.Random(42))
    assert first == second

def test_make_range_steps_from_low():
    assert make_range(0, 1, 0.25) == [0, 0.25, 0.5, 0.75, 1.0]
