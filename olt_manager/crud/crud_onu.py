from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from olt_manager.models.onu import Onu


async def get_onu_by_serial(db: AsyncSession, pon_serial: str) -> Optional[Onu]:
    result = await db.execute(select(Onu).filter(Onu.pon_serial == pon_serial))
    return result.scalars().first()

async def get_onus(
    db: AsyncSession,
    olt_id: int,
    needs_detail: bool = False,
    skip: int = 0,
    limit: Optional[int] = None,
) -> List[Onu]:
    """OLT별 ONU 목록 조회

    needs_detail=True 이면 상세정보를 한 번도 채우지 않았고 (details_updated_at 없음) onu_id가 있는 ONU만 반환합니다.
    """
    stmt = select(Onu).filter(Onu.olt_id == olt_id)
    if needs_detail:
        stmt = stmt.filter(Onu.details_updated_at.is_(None), Onu.onu_id.is_not(None))
    stmt = stmt.order_by(Onu.pon_port, Onu.onu_id).offset(skip)
    if limit:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()

async def create_onu(db: AsyncSession, data: Dict[str, Any]) -> Onu:
    db_onu = Onu(**data)
    db.add(db_onu)
    await db.commit()
    await db.refresh(db_onu)
    return db_onu

async def update_onu(db: AsyncSession, pon_serial: str, fields: Dict[str, Any]) -> Optional[Onu]:
    db_onu = await get_onu_by_serial(db, pon_serial)
    if db_onu is None:
        return None
    for field, value in fields.items():
        setattr(db_onu, field, value)
    db.add(db_onu)
    await db.commit()
    await db.refresh(db_onu)
    return db_onu
