from fastapi import Depends, HTTPException, Request

from olt_manager import schemas
from olt_manager.services.discovery.manager import DiscoveryManager
from olt_manager.services.olt.exceptions import OltConfigurationError


def get_discovery_manager(request: Request) -> DiscoveryManager:
    manager = getattr(request.app.state, "discovery_manager", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Discovery manager is not running")
    return manager


async def get_olt_target(
    olt_id: int,
    manager: DiscoveryManager = Depends(get_discovery_manager),
) -> schemas.OltTarget:
    """경로의 olt_id 로 드라이버용 접속 정보를 조회합니다."""
    try:
        olt = await manager.registry.get_device(olt_id)
    except OltConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if olt is None:
        raise HTTPException(status_code=404, detail="OLT not found")
    return olt
