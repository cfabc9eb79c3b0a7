from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from olt_manager.models.discovery_run import DiscoveryRun


async def get_discovery_run(db: AsyncSession, olt_id: int) -> Optional[DiscoveryRun]:
    result = await db.execute(select(DiscoveryRun).filter(DiscoveryRun.olt_id == olt_id))
    return result.scalars().first()

async def get_discovery_runs(db: AsyncSession) -> List[DiscoveryRun]:
    result = await db.execute(select(DiscoveryRun).order_by(DiscoveryRun.olt_id))
    return result.scalars().all()

async def upsert_discovery_run(db: AsyncSession, olt_id: int, **fields: Any) -> DiscoveryRun:
    """OLT당 하나뿐인 discovery run 행을 생성하거나 갱신합니다 (last-writer-wins)."""
    run = await get_discovery_run(db, olt_id)
    if run is None:
        fields.setdefault("status", "running")
        run = DiscoveryRun(olt_id=olt_id, **fields)
    else:
        for field, value in fields.items():
            setattr(run, field, value)
    db.add(run)
    await db.commit()
    await db.refresh(run)
    return run
