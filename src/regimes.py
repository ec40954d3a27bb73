"""
Regime selection and generation.

A regime specifies a particular pattern of breathing that a participant
should follow: total duration (typically five minutes), pace (breaths per
minute), a hold position (pause after inhalation, after exhalation or not at
all) and whether the pace is randomized.

Each day a participant is assigned six regimes. In stage 2 they are a fixed,
condition specific set. In stage 3 condition A participants get regimes from
an adaptive search around the regime with the best average coherence so far,
while condition B participants repeat the regime with the lowest average
coherence.
"""
import math
import random
from datetime import date
from typing import List, Optional

from src.exceptions import InvalidArgument, NoViableRegimes
from src.logger import get_logger
from src.stores.base_store import RegimeStore
from src.utils.models import Regime, RegimeStats
from src.utils.pacer import MAX_BREATHS_PER_MINUTE, MIN_BREATHS_PER_MINUTE
from src.utils.sampling import array_shuffle, sample_without_replacement

logger = get_logger(__name__)

# potential subject conditions
COND_A = "A"
COND_B = "B"

REGIMES_PER_DAY = 6

# The static paces that participants breathe at in stage 2
DEFAULT_DURATION_MS = 5 * 60 * 1000
A_PACES = [4.615, 4.839, 5.085, 5.357, 5.66, 6]
STAGE_2_A_REGIMES = [
    Regime(duration_ms=DEFAULT_DURATION_MS, breaths_per_minute=p, randomize=False) for p in A_PACES
]

B_PACES = [10.909, 11.538, 12.245, 13.043, 13.953, 15]
STAGE_2_B_REGIMES = [
    Regime(duration_ms=DEFAULT_DURATION_MS, breaths_per_minute=p, randomize=True) for p in B_PACES
]


def _perturbed(regime: Regime, pace_diff: float) -> Regime:
    bpm = regime.breaths_per_minute + pace_diff
    bpm = float(min(max(bpm, MIN_BREATHS_PER_MINUTE), MAX_BREATHS_PER_MINUTE))
    return regime.model_copy(update={"id": None, "is_best_cnt": 0, "breaths_per_minute": bpm})


def pick_regimes(
    best_regime: Optional[Regime],
    potential_regimes: List[Regime],
    subj_condition: str,
    store: RegimeStore,
    rng=random,
) -> List[Regime]:
    """
    Given the current best regime and the regimes whose coherence may be as
    good, returns the six regimes to do today.

    With no other candidates the best regime has been confirmed once more, so
    two new regimes are made by nudging its pace up and down (by a smaller
    step each time it wins) and each of the three is done twice. With 1-4
    candidates the best regime fills the remaining slots as one block at the
    front or back. With 5 candidates all six are shuffled, and with more than
    five, six distinct regimes are sampled.
    """
    if subj_condition != COND_A:
        raise InvalidArgument(f"Unexpected subject condition '{subj_condition}'. Expected '{COND_A}'.")

    if best_regime is None:
        if not potential_regimes:
            raise NoViableRegimes("Found 0 possible regimes for training.")
        # Nothing has a mean yet; let the first candidate stand in as best
        best_regime, potential_regimes = potential_regimes[0], potential_regimes[1:]

    if len(potential_regimes) == 0:
        best_times = best_regime.is_best_cnt + 1
        new_pace_diff = 1 / (2 ** best_times)
        new_low_regime = _perturbed(best_regime, -new_pace_diff)
        new_high_regime = _perturbed(best_regime, new_pace_diff)
        best_regime.is_best_cnt = best_times

        store.set_regime_best_count(best_regime.id, best_regime.is_best_cnt)
        new_high_regime.id = store.get_or_create_regime_id(new_high_regime)
        new_low_regime.id = store.get_or_create_regime_id(new_low_regime)
        logger.info(
            f"Regime {best_regime.id} is best for the {best_times} time; "
            f"trying paces {new_low_regime.breaths_per_minute} and {new_high_regime.breaths_per_minute}"
        )
        return array_shuffle(
            [new_low_regime, best_regime, new_high_regime, new_low_regime, best_regime, new_high_regime], rng
        )

    if len(potential_regimes) < 5:
        best_in_front = rng.random() < 0.5
        best_arr = [best_regime] * (REGIMES_PER_DAY - len(potential_regimes))
        remaining_arr = array_shuffle(list(potential_regimes), rng)
        if best_in_front:
            return best_arr + remaining_arr
        return remaining_arr + best_arr

    if len(potential_regimes) == 5:
        return array_shuffle([best_regime, *potential_regimes], rng)

    # more than six options
    return sample_without_replacement([best_regime, *potential_regimes], REGIMES_PER_DAY, rng)


def _is_undetermined(rs: RegimeStats) -> bool:
    return math.isnan(rs.mean) or math.isnan(rs.low_90_ci) or math.isnan(rs.high_90_ci)


def _adaptive_regimes(store: RegimeStore, rng) -> List[Regime]:
    regime_stats = [store.get_regime_stats(regime_id) for regime_id in store.get_all_regime_ids(3)]

    best_regime_id = None
    target_avg_coherence = -10000
    for rs in regime_stats:
        if rs.mean > target_avg_coherence:
            target_avg_coherence = rs.mean
            best_regime_id = rs.id

    # Regimes without enough data stay in so they can accumulate some
    overlapping = [
        rs for rs in regime_stats
        if rs.id != best_regime_id
        and (_is_undetermined(rs) or rs.low_90_ci <= target_avg_coherence <= rs.high_90_ci)
    ]
    logger.info(
        f"Best regime {best_regime_id} (mean coherence {target_avg_coherence}); "
        f"overlapping regimes {[rs.id for rs in overlapping]}"
    )
    best_regime = store.get_regime_by_id(best_regime_id) if best_regime_id is not None else None
    return pick_regimes(
        best_regime, [store.get_regime_by_id(rs.id) for rs in overlapping], COND_A, store, rng
    )


def _least_coherent_regimes(store: RegimeStore) -> List[Regime]:
    regime_id = store.get_min_coherence_paced_regime_id()
    if regime_id is None:
        raise NoViableRegimes("No paced segments have been done, so there is no least coherent regime.")
    target_regime = store.get_regime_by_id(regime_id)
    return [target_regime] * REGIMES_PER_DAY


def generate_regimes_for_day(
    store: RegimeStore,
    subj_condition: str,
    stage: int,
    rng=random,
    today: Optional[date] = None,
) -> List[Regime]:
    """
    Generates and saves the six regimes the participant should breathe under
    today, or returns an empty list if the stage is already complete.

    Stage 3 regimes depend on the coherence achieved so far, so do not
    generate them in advance.
    """
    if subj_condition not in (COND_A, COND_B):
        raise InvalidArgument(
            f"Unexpected subject condition '{subj_condition}'. Expected either '{COND_A}' or '{COND_B}'."
        )
    if stage not in (2, 3):
        raise InvalidArgument(f"Only stages 2 and 3 are supported by generate_regimes_for_day, not stage {stage}.")

    if store.is_stage_complete(stage):
        logger.info(f"Stage {stage} is complete; no regimes to generate.")
        return []

    with store.transaction():
        if stage == 2:
            base = STAGE_2_A_REGIMES if subj_condition == COND_A else STAGE_2_B_REGIMES
            regimes = array_shuffle([r.model_copy() for r in base], rng)
        elif subj_condition == COND_A:
            regimes = _adaptive_regimes(store, rng)
        else:
            regimes = _least_coherent_regimes(store)

        store.save_daily_assignment(regimes, today or date.today())

    logger.info(f"Generated stage {stage} regimes for condition {subj_condition}: {[r.id for r in regimes]}")
    return regimes
