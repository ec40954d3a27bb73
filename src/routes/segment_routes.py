from fastapi import APIRouter, Depends, HTTPException
from typing import List

from src import session
from src.config import settings
from src.dependencies import get_regime_store
from src.exceptions import DataIntegrityError
from src.logger import get_logger
from src.stores.base_store import RegimeStore
from src.utils.models import Segment, SegmentIn, StageStatus

logger = get_logger(__name__)

router = APIRouter(prefix="/segments", tags=["Segments"])

@router.post("", response_model=Segment, status_code=201)
def save_segment(data: SegmentIn, store: RegimeStore = Depends(get_regime_store)):
    """
    Records a completed practice segment. The end time defaults to now.
    """
    segment = Segment(
        regime_id=data.regime_id,
        session_start_time=data.session_start_time,
        end_date_time=data.end_date_time or session.local_now(),
        avg_coherence=data.avg_coherence,
        stage=data.stage,
    )
    try:
        store.add_segment(segment)
    except DataIntegrityError as e:
        logger.warning(f"Rejected segment {data}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Saved stage {segment.stage} segment for regime {segment.regime_id} (coherence {segment.avg_coherence})")
    return segment

@router.get("/today", response_model=List[Segment])
def segments_done_today(stage: int, store: RegimeStore = Depends(get_regime_store)):
    return store.get_segments_completed_today(stage, session.local_now().date())

@router.get("/stages/{stage}", response_model=StageStatus)
def stage_status(stage: int, store: RegimeStore = Depends(get_regime_store)):
    """
    Checks whether the participant has done all the segments a stage requires.
    """
    required = settings.stage_segment_totals.get(stage)
    if required is None:
        raise HTTPException(status_code=404, detail=f"Unknown stage {stage}.")
    return StageStatus(
        stage=stage,
        complete=store.is_stage_complete(stage),
        segments_done=store.count_segments(stage),
        segments_required=required,
    )
