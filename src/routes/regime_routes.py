import random
from fastapi import APIRouter, Depends, HTTPException
from typing import List

from src.dependencies import get_regime_store, get_rng
from src.exceptions import DataIntegrityError, InvalidArgument, NoViableRegimes, ValidationError
from src.logger import get_logger
from src.regimes import generate_regimes_for_day
from src import session
from src.stores.base_store import RegimeStore
from src.utils.models import BreathPhase, DayRegimesRequest, Regime, SessionRegimesResponse
from src.utils.pacer import regime_to_breaths

logger = get_logger(__name__)

router = APIRouter(prefix="/regimes", tags=["Regimes"])

#-------- Helper functions--------
def _raise_http(e: Exception):
    """Translates regime engine errors into HTTP errors."""
    if isinstance(e, InvalidArgument):
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(e, ValidationError):
        raise HTTPException(status_code=422, detail=str(e))
    if isinstance(e, NoViableRegimes):
        raise HTTPException(status_code=409, detail=str(e))
    logger.error(f"Regime data is inconsistent: {e}")
    raise HTTPException(status_code=500, detail=str(e))

#-------- Routes--------
@router.get("/session", response_model=SessionRegimesResponse)
def regimes_for_session(
    condition: str,
    stage: int,
    store: RegimeStore = Depends(get_regime_store),
    rng: random.Random = Depends(get_rng),
):
    """
    Returns the regimes to do in a session started now, trimmed to the time
    left in the day and the maximum session length.
    """
    try:
        regimes = session.get_regimes_for_session(store, condition, stage, rng=rng)
    except (InvalidArgument, NoViableRegimes, DataIntegrityError) as e:
        logger.warning(f"Could not get session regimes for condition {condition}, stage {stage}: {e}")
        _raise_http(e)
    total_duration_ms = sum(r.duration_ms for r in regimes)
    logger.info(f"Session for condition {condition}, stage {stage}: {len(regimes)} regimes, {total_duration_ms} ms")
    return SessionRegimesResponse(regimes=regimes, total_duration_ms=total_duration_ms)

@router.post("/day", response_model=List[Regime])
def regimes_for_day(
    data: DayRegimesRequest,
    store: RegimeStore = Depends(get_regime_store),
    rng: random.Random = Depends(get_rng),
):
    """Generates and saves today's regimes. Fails if today already has them."""
    try:
        return generate_regimes_for_day(store, data.condition, data.stage, rng=rng, today=session.local_now().date())
    except (InvalidArgument, NoViableRegimes, DataIntegrityError) as e:
        logger.warning(f"Could not generate regimes for {data}: {e}")
        _raise_http(e)

@router.post("/breaths", response_model=List[BreathPhase])
def breaths_for_regime(regime: Regime, rng: random.Random = Depends(get_rng)):
    """Expands an arbitrary regime into its breath phases."""
    try:
        return regime_to_breaths(regime, rng=rng)
    except ValidationError as e:
        _raise_http(e)

@router.get("/{regime_id}", response_model=Regime)
def lookup_regime(regime_id: int, store: RegimeStore = Depends(get_regime_store)):
    try:
        return store.get_regime_by_id(regime_id)
    except DataIntegrityError as e:
        raise HTTPException(status_code=404, detail=str(e))

@router.get("/{regime_id}/breaths", response_model=List[BreathPhase])
def breaths_for_stored_regime(
    regime_id: int,
    store: RegimeStore = Depends(get_regime_store),
    rng: random.Random = Depends(get_rng),
):
    """Expands a stored regime into the breath phases that drive the pacer."""
    try:
        regime = store.get_regime_by_id(regime_id)
    except DataIntegrityError as e:
        raise HTTPException(status_code=404, detail=str(e))
    try:
        return regime_to_breaths(regime, rng=rng)
    except ValidationError as e:
        _raise_http(e)
