from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from olt_manager import crud, schemas
from olt_manager.api.deps import get_discovery_manager, get_olt_target
from olt_manager.db.session import get_db
from olt_manager.services.discovery.manager import DiscoveryManager
from olt_manager.services.olt.exceptions import OltConfigurationError, OltError, OltProtocolError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=schemas.Olt)
async def create_olt(
    olt_in: schemas.OltCreate,
    db: AsyncSession = Depends(get_db)
):
    if olt_in.telnet_password != olt_in.telnet_password_confirm:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    db_olt = await crud.olt.get_olt_by_name(db, name=olt_in.name)
    if db_olt:
        raise HTTPException(status_code=400, detail="OLT with this name already registered")
    return await crud.olt.create_olt(db=db, olt=olt_in)

@router.get("/", response_model=List[schemas.Olt])
async def read_olts(
    skip: int = 0,
    limit: int | None = None,
    db: AsyncSession = Depends(get_db)
):
    """OLT 목록 조회 (limit이 None이면 전체 조회)"""
    return await crud.olt.get_olts(db, skip=skip, limit=limit)

@router.get("/{olt_id}", response_model=schemas.Olt)
async def read_olt(
    olt_id: int,
    db: AsyncSession = Depends(get_db)
):
    db_olt = await crud.olt.get_olt(db=db, olt_id=olt_id)
    if db_olt is None:
        raise HTTPException(status_code=404, detail="OLT not found")
    return db_olt

@router.put("/{olt_id}", response_model=schemas.Olt)
async def update_olt(
    olt_id: int,
    olt_in: schemas.OltUpdate,
    db: AsyncSession = Depends(get_db)
):
    if olt_in.telnet_password and olt_in.telnet_password != olt_in.telnet_password_confirm:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    db_olt = await crud.olt.get_olt(db=db, olt_id=olt_id)
    if db_olt is None:
        raise HTTPException(status_code=404, detail="OLT not found")
    return await crud.olt.update_olt(db=db, db_obj=db_olt, obj_in=olt_in)

@router.delete("/{olt_id}", response_model=schemas.Olt)
async def delete_olt(
    olt_id: int,
    db: AsyncSession = Depends(get_db),
    manager: DiscoveryManager = Depends(get_discovery_manager),
):
    db_olt = await crud.olt.get_olt(db=db, olt_id=olt_id)
    if db_olt is None:
        raise HTTPException(status_code=404, detail="OLT not found")
    # 삭제 전에 백그라운드 루프부터 정지
    await manager.stop_discovery(olt_id)
    return await crud.olt.remove_olt(db=db, id=olt_id)

@router.get("/{olt_id}/onus", response_model=List[schemas.Onu])
async def read_olt_onus(
    olt_id: int,
    needs_detail: bool = False,
    skip: int = 0,
    limit: int | None = None,
    db: AsyncSession = Depends(get_db)
):
    """OLT에 저장된 ONU 목록 (needs_detail=true 이면 상세정보 미수집 ONU만)"""
    db_olt = await crud.olt.get_olt(db=db, olt_id=olt_id)
    if db_olt is None:
        raise HTTPException(status_code=404, detail="OLT not found")
    return await crud.onu.get_onus(db, olt_id, needs_detail=needs_detail, skip=skip, limit=limit)

@router.get("/{olt_id}/onus/detail", response_model=schemas.OnuDetail)
async def read_onu_detail(
    pon_port: str = Query(..., description="PON 포트 (예: 1/2/3 또는 2/3)"),
    onu_id: int = Query(..., ge=0),
    olt: schemas.OltTarget = Depends(get_olt_target),
    manager: DiscoveryManager = Depends(get_discovery_manager),
):
    """장비에 직접 접속해 ONU 한 대의 detail-info 를 조회합니다 (저장하지 않음)."""
    try:
        return await manager.get_deep_detail(olt, pon_port, onu_id)
    except OltConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OltProtocolError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OltError as e:
        logger.warning(f"ONU detail 조회 실패 (OLT {olt.name}, {pon_port}:{onu_id}): {e}")
        raise HTTPException(status_code=502, detail=f"Failed to query OLT: {e}")
