"""
WebSocket 연결 매니저
OLT discovery 상태 변경을 실시간으로 클라이언트에 브로드캐스트
"""
import asyncio
import logging
from typing import Any, Dict, Set
from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WebSocketManager:
    """WebSocket 연결을 관리하고 브로드캐스트하는 매니저"""

    def __init__(self, send_timeout: float = 1.0):
        self.active_connections: Set[WebSocket] = set()
        # 느린 클라이언트가 discovery 루프를 붙잡지 않도록 전송마다 제한
        self.send_timeout = send_timeout

    async def connect(self, websocket: WebSocket):
        """클라이언트 연결 수락"""
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"WebSocket 연결됨. 총 연결 수: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        """클라이언트 연결 해제"""
        self.active_connections.discard(websocket)
        logger.info(f"WebSocket 연결 해제됨. 총 연결 수: {len(self.active_connections)}")

    async def broadcast_discovery_status(self, olt_id: int, run: Dict[str, Any]):
        """OLT discovery run 변경을 모든 연결된 클라이언트에 브로드캐스트"""
        message = {
            "type": "discovery_status",
            "olt_id": olt_id,
            "status": run.get("status"),
            "discovered_count": run.get("discovered_count"),
            "updated_count": run.get("updated_count"),
            "skipped_count": run.get("skipped_count"),
            "error_message": run.get("error_message"),
        }

        if not self.active_connections:
            logger.debug(f"WebSocket 활성 연결이 없음. OLT {olt_id} 상태 브로드캐스트 스킵: {message['status']}")
            return

        disconnected = set()
        success_count = 0
        for connection in list(self.active_connections):
            try:
                await asyncio.wait_for(connection.send_json(message), timeout=self.send_timeout)
                success_count += 1
            except asyncio.TimeoutError:
                logger.warning(f"WebSocket 전송이 {self.send_timeout}s 안에 끝나지 않아 연결을 해제합니다")
                disconnected.add(connection)
            except Exception as e:
                logger.warning(f"WebSocket 메시지 전송 실패: {e}")
                disconnected.add(connection)

        # 연결이 끊어진 클라이언트 제거
        for connection in disconnected:
            self.disconnect(connection)

        logger.debug(f"WebSocket 브로드캐스트: OLT {olt_id}, 상태={message['status']}, 성공={success_count}/{len(self.active_connections)}")


# 전역 인스턴스
websocket_manager = WebSocketManager()
