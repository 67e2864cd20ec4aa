from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from ..config import PREFS_CACHE_FILE
from ..logging_setup import get_logger
from ..prefs_store import ContentRatioService, InvalidRatiosError, JsonFileCache, RatioRepository
from ..schema import BalanceIn, LocalRatioIn, RatiosIn

logger = get_logger("feedmix.routes.prefs")

router = APIRouter(prefix="/prefs")

def get_ratio_service() -> ContentRatioService:
    return ContentRatioService(JsonFileCache(PREFS_CACHE_FILE), RatioRepository())

@router.get("/ratios")
def get_ratios(user_id: Optional[str] = Query(None), service: ContentRatioService = Depends(get_ratio_service)):
    return service.load(user_id).to_dict()

@router.put("/ratios")
def put_ratios(body: RatiosIn, service: ContentRatioService = Depends(get_ratio_service)):
    logger.info(f"Updating ratios for user={body.user_id or 'anonymous'}")
    try:
        ratios = service.set_ratios(body.general, body.local, body.sport, user_id=body.user_id)
    except InvalidRatiosError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ratios.to_dict()

@router.post("/ratios/local")
def set_local_ratio(body: LocalRatioIn, service: ContentRatioService = Depends(get_ratio_service)):
    """Local vs. sport slider: the other side is always 100 - local."""
    return service.set_local_ratio(body.value, user_id=body.user_id).to_dict()

@router.post("/ratios/balance")
def balance(body: BalanceIn, service: ContentRatioService = Depends(get_ratio_service)):
    """Three-way slider: hold one value, redistribute the rest proportionally."""
    return service.rebalance(body.field, body.value, user_id=body.user_id).to_dict()
