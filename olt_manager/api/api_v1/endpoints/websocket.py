"""
WebSocket 엔드포인트
discovery 상태 실시간 업데이트를 위한 WebSocket 연결
"""
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from olt_manager.services.websocket_manager import websocket_manager

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    discovery 상태 실시간 업데이트를 위한 WebSocket 연결

    메시지 형식:
    {
        "type": "discovery_status",
        "olt_id": 1,
        "status": "running" | "stopped" | "error",
        "discovered_count": 120,
        "updated_count": 3,
        "skipped_count": 117,
        "error_message": null
    }
    """
    await websocket_manager.connect(websocket)
    try:
        # 클라이언트가 연결을 끊을 때까지 대기 (ping/pong 용 수신)
        while True:
            data = await websocket.receive_text()
            logger.debug(f"WebSocket 메시지 수신: {data}")
    except WebSocketDisconnect:
        websocket_manager.disconnect(websocket)
        logger.info("WebSocket 연결이 정상적으로 종료됨")
    except Exception as e:
        logger.error(f"WebSocket 오류: {e}", exc_info=True)
        websocket_manager.disconnect(websocket)
