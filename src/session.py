import random
from datetime import datetime, timedelta
from typing import List, Optional

from dateutil import tz

from src.config import settings
from src.exceptions import DataIntegrityError
from src.logger import get_logger
from src.regimes import REGIMES_PER_DAY, generate_regimes_for_day
from src.stores.base_store import RegimeStore
from src.utils.models import Regime, Segment

logger = get_logger(__name__)


def local_now() -> datetime:
    """Current time in the participant's local time zone."""
    return datetime.now(tz.tzlocal())


def filter_completed_regimes(regimes_for_today: List[Regime], regimes_done_today: List[Segment]) -> List[Regime]:
    """
    Given the regimes the participant was assigned today and the segments they
    have actually done, returns the regimes still to do. A regime assigned
    more than once must be done as many times to disappear completely; partial
    completions are removed from left to right. Regimes are compared by id.
    """
    done_today_ids = [s.regime_id for s in regimes_done_today]
    remaining = []
    for regime in regimes_for_today:
        if regime.id in done_today_ids:
            done_today_ids.remove(regime.id)
        else:
            remaining.append(regime)
    return remaining


def filter_regimes_by_available_session_time(
    regimes: List[Regime],
    now: Optional[datetime] = None,
    max_session_ms: Optional[float] = None,
) -> List[Regime]:
    """
    Returns the leading regimes that fit both in the maximum session length
    and in what is left of the day. Stops at the first regime that doesn't fit.
    """
    now = now or local_now()
    if max_session_ms is None:
        max_session_ms = settings.max_session_ms
    end_of_day = now.replace(hour=23, minute=59, second=59)
    ms_remaining_today = (end_of_day - now) / timedelta(milliseconds=1)
    available_ms = min(ms_remaining_today, max_session_ms)

    regimes_for_session = []
    total_duration_ms = 0
    for regime in regimes:
        if total_duration_ms + regime.duration_ms > available_ms:
            break
        regimes_for_session.append(regime)
        total_duration_ms += regime.duration_ms
    return regimes_for_session


def get_regimes_for_session(
    store: RegimeStore,
    subj_condition: str,
    stage: int,
    now: Optional[datetime] = None,
    rng=random,
    max_session_ms: Optional[float] = None,
) -> List[Regime]:
    """
    Returns the regimes the participant should do in a session started now:
    today's assigned regimes that haven't been done yet (generating today's
    assignment if there isn't one), trimmed to the time available.
    """
    now = now or local_now()
    today = now.date()

    # first, check to see if we've already generated regimes for today
    regimes_for_today = store.get_daily_assignment(today)
    if len(regimes_for_today) > 0 and len(regimes_for_today) != REGIMES_PER_DAY:
        raise DataIntegrityError(
            f"Expected to have {REGIMES_PER_DAY} regimes for {today} but found {len(regimes_for_today)}."
        )

    if regimes_for_today:
        regimes_done_today = store.get_segments_completed_today(stage, today)
        remaining_to_do = filter_completed_regimes(regimes_for_today, regimes_done_today)
        logger.info(f"{len(remaining_to_do)} of today's {len(regimes_for_today)} regimes remain for stage {stage}")
    else:
        # we have no regimes; generate some
        remaining_to_do = generate_regimes_for_day(store, subj_condition, stage, rng=rng, today=today)
        for regime in remaining_to_do:
            if regime.id is None:
                regime.id = store.get_or_create_regime_id(regime)

    return filter_regimes_by_available_session_time(remaining_to_do, now, max_session_ms)
