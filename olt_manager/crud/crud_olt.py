from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from olt_manager.core.security import encrypt
from olt_manager.models.olt import Olt
from olt_manager.schemas.olt import OltCreate, OltUpdate

_SECRET_FIELDS = ("telnet_password", "enable_password")


async def get_olt(db: AsyncSession, olt_id: int):
    result = await db.execute(select(Olt).filter(Olt.id == olt_id))
    return result.scalars().first()

async def get_olt_by_name(db: AsyncSession, name: str):
    result = await db.execute(select(Olt).filter(Olt.name == name))
    return result.scalars().first()

async def get_olts(db: AsyncSession, skip: int = 0, limit: int | None = None, active_only: bool = False):
    """OLT 목록 조회 (limit이 None이면 전체 조회)"""
    stmt = select(Olt).order_by(Olt.id).offset(skip)
    if active_only:
        stmt = stmt.filter(Olt.is_active == True)
    if limit:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()

async def create_olt(db: AsyncSession, olt: OltCreate):
    create_data = olt.model_dump()
    create_data.pop("telnet_password_confirm", None)
    for field in _SECRET_FIELDS:
        if create_data.get(field):
            create_data[field] = encrypt(create_data[field])
    db_olt = Olt(**create_data)
    db.add(db_olt)
    await db.commit()
    await db.refresh(db_olt)
    return db_olt

async def update_olt(db: AsyncSession, db_obj: Olt, obj_in: OltUpdate):
    obj_data = obj_in.model_dump(exclude_unset=True)
    obj_data.pop("telnet_password_confirm", None)
    for field in _SECRET_FIELDS:
        if obj_data.get(field):
            obj_data[field] = encrypt(obj_data[field])
        else:
            obj_data.pop(field, None)

    for field in obj_data:
        setattr(db_obj, field, obj_data[field])

    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj

async def remove_olt(db: AsyncSession, id: int):
    result = await db.execute(select(Olt).filter(Olt.id == id))
    db_olt = result.scalars().first()
    if db_olt:
        await db.delete(db_olt)
        await db.commit()
    return db_olt
