from typing import List
from fastapi import APIRouter, Depends, HTTPException
import logging

from olt_manager import schemas
from olt_manager.api.deps import get_discovery_manager, get_olt_target
from olt_manager.services.discovery.manager import DiscoveryManager
from olt_manager.services.olt.exceptions import (
    DiscoveryShuttingDownError,
    OltConfigurationError,
    OltError,
    OltNotFoundError,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/{olt_id}/start", response_model=schemas.Msg)
async def start_discovery(
    olt_id: int,
    manager: DiscoveryManager = Depends(get_discovery_manager),
):
    try:
        await manager.start_discovery(olt_id)
    except OltNotFoundError:
        raise HTTPException(status_code=404, detail="OLT not found")
    except DiscoveryShuttingDownError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except OltConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"msg": f"Discovery started for OLT {olt_id}"}

@router.post("/{olt_id}/stop", response_model=schemas.Msg)
async def stop_discovery(
    olt_id: int,
    manager: DiscoveryManager = Depends(get_discovery_manager),
):
    await manager.stop_discovery(olt_id)
    return {"msg": f"Discovery stopped for OLT {olt_id}"}

@router.get("/status", response_model=List[schemas.DiscoveryRun])
async def read_all_status(
    manager: DiscoveryManager = Depends(get_discovery_manager),
):
    """전체 OLT discovery run 상태"""
    return await manager.get_status()

@router.get("/{olt_id}/status", response_model=schemas.DiscoveryRun)
async def read_status(
    olt_id: int,
    manager: DiscoveryManager = Depends(get_discovery_manager),
):
    run = await manager.get_status(olt_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Discovery has never run for this OLT")
    return run

@router.post("/{olt_id}/discover-now", response_model=List[schemas.DiscoveredOnu])
async def discover_now(
    olt: schemas.OltTarget = Depends(get_olt_target),
    manager: DiscoveryManager = Depends(get_discovery_manager),
):
    """백그라운드 루프와 별개로 한 번 수집해 결과를 그대로 반환합니다 (저장하지 않음)."""
    try:
        return await manager.discover_once(olt)
    except OltConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OltError as e:
        logger.warning(f"discover-now 실패 (OLT {olt.name}): {e}")
        raise HTTPException(status_code=502, detail=f"Discovery failed: {e}")
