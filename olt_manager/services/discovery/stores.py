"""
discovery 매니저가 사용하는 저장소 구현 (SQLAlchemy async)

매 호출마다 세션을 새로 열고, ORM 객체 대신 분리된 pydantic 스냅샷을 돌려줍니다.
"""
import logging
from typing import Any, Dict, List, Optional

from olt_manager import crud, models, schemas
from olt_manager.core.security import decrypt
from olt_manager.db.session import SessionLocal
from olt_manager.services.websocket_manager import websocket_manager

logger = logging.getLogger(__name__)


def _decrypt_secret(olt: models.Olt, field: str) -> Optional[str]:
    return decrypt(getattr(olt, field), label=f"OLT '{olt.name}' {field}")


def build_target(olt: models.Olt) -> schemas.OltTarget:
    """OLT 행에서 드라이버용 접속 정보 스냅샷을 만듭니다 (비밀번호 복호화 포함)."""
    return schemas.OltTarget(
        id=olt.id,
        name=olt.name,
        vendor=olt.vendor,
        ip_address=olt.ip_address,
        is_active=olt.is_active,
        telnet_enabled=olt.telnet_enabled,
        telnet_port=olt.telnet_port,
        telnet_username=olt.telnet_username,
        telnet_password=_decrypt_secret(olt, "telnet_password"),
        enable_password=_decrypt_secret(olt, "enable_password"),
        snmp_enabled=olt.snmp_enabled,
        snmp_port=olt.snmp_port,
        snmp_community=olt.snmp_community,
        total_pon_slots=olt.total_pon_slots,
        ports_per_slot=olt.ports_per_slot,
    )


class SqlOltRegistry:
    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    async def get_device(self, olt_id: int) -> Optional[schemas.OltTarget]:
        async with self._session_factory() as db:
            olt = await crud.olt.get_olt(db, olt_id)
            return build_target(olt) if olt else None

    async def list_devices(self, active_only: bool = True) -> List[schemas.OltTarget]:
        async with self._session_factory() as db:
            olts = await crud.olt.get_olts(db, active_only=active_only)
            return [build_target(olt) for olt in olts]


class SqlOnuRepository:
    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    async def find_by_serial(self, pon_serial: str) -> Optional[schemas.Onu]:
        async with self._session_factory() as db:
            onu = await crud.onu.get_onu_by_serial(db, pon_serial)
            return schemas.Onu.model_validate(onu) if onu else None

    async def insert(self, record: Dict[str, Any]) -> schemas.Onu:
        async with self._session_factory() as db:
            onu = await crud.onu.create_onu(db, record)
            return schemas.Onu.model_validate(onu)

    async def update(self, pon_serial: str, fields: Dict[str, Any]) -> Optional[schemas.Onu]:
        async with self._session_factory() as db:
            onu = await crud.onu.update_onu(db, pon_serial, fields)
            return schemas.Onu.model_validate(onu) if onu else None

    async def list_by_device(self, olt_id: int, needs_detail: bool = False) -> List[schemas.Onu]:
        async with self._session_factory() as db:
            onus = await crud.onu.get_onus(db, olt_id, needs_detail=needs_detail)
            return [schemas.Onu.model_validate(onu) for onu in onus]


class SqlDiscoveryRunStore:
    def __init__(self, session_factory=SessionLocal, broadcaster=websocket_manager):
        self._session_factory = session_factory
        self._broadcaster = broadcaster

    async def upsert_run(self, olt_id: int, **fields: Any) -> schemas.DiscoveryRun:
        async with self._session_factory() as db:
            run = schemas.DiscoveryRun.model_validate(await crud.discovery_run.upsert_discovery_run(db, olt_id, **fields))

        if self._broadcaster is not None:
            try:
                await self._broadcaster.broadcast_discovery_status(olt_id, run.model_dump())
            except Exception as e:
                logger.warning(f"[discovery] Failed to broadcast status for OLT {olt_id}: {e}")
        return run

    async def get_run(self, olt_id: int) -> Optional[schemas.DiscoveryRun]:
        async with self._session_factory() as db:
            run = await crud.discovery_run.get_discovery_run(db, olt_id)
            return schemas.DiscoveryRun.model_validate(run) if run else None

    async def list_runs(self) -> List[schemas.DiscoveryRun]:
        async with self._session_factory() as db:
            runs = await crud.discovery_run.get_discovery_runs(db)
            return [schemas.DiscoveryRun.model_validate(run) for run in runs]
