# olt_manager/services/olt/factory.py
import logging
from typing import Dict, Optional, Type

from olt_manager.core.config import settings
from olt_manager.schemas.olt import OltTarget
from .exceptions import OltUnsupportedError
from .interface import OltDriver, Vendor
from .snmp_client import SnmpClient
from .vendors.hioso import HiosoDriver
from .vendors.zte import ZteDriver

logger = logging.getLogger(__name__)


class OltDriverFactory:
    """OLT 드라이버 인스턴스를 생성하는 팩토리 클래스

    지원되는 OLT 벤더:
    - zte: ZTE C320 계열 GPON OLT (벌크 세션 풀 전략)
    - hioso: HIOSO EPON OLT (순차 전략)

    벤더 문자열은 여기서 한 번만 Vendor 로 해석되고, 이후에는 드라이버 타입으로만 분기합니다.
    """
    DRIVERS: Dict[Vendor, Type[OltDriver]] = {
        Vendor.ZTE: ZteDriver,
        Vendor.HIOSO: HiosoDriver,
    }
    # ZteDriver 전용 생성자 인자
    ZTE_OPTIONS = ("pool_size", "detail_parallelism", "timestamp_sentinel")

    def __init__(self, snmp_client: Optional[SnmpClient] = None, **overrides):
        """
        Args:
            snmp_client: 모든 드라이버가 공유할 SNMP 클라이언트 (없으면 settings 로 생성)
            **overrides: 드라이버 생성자 인자 덮어쓰기 (batch_size, session_factory 등)
        """
        self._snmp_client = snmp_client
        self._overrides = overrides

    @property
    def snmp_client(self) -> SnmpClient:
        if self._snmp_client is None:
            self._snmp_client = SnmpClient(timeout=settings.SNMP_TIMEOUT, retries=settings.SNMP_RETRIES)
        return self._snmp_client

    @staticmethod
    def resolve_vendor(vendor: str) -> Vendor:
        """자유 형식 벤더 문자열을 Vendor 로 변환합니다.

        Raises:
            OltUnsupportedError: 지원하지 않는 벤더인 경우
        """
        name = (vendor or "").lower()
        for candidate in Vendor:
            if candidate.value in name:
                return candidate
        raise OltUnsupportedError(f"지원하지 않는 OLT 벤더입니다: {vendor}")

    def get_driver(self, olt: OltTarget) -> OltDriver:
        """OLT 접속 정보에 맞는 드라이버 객체를 생성하여 반환합니다."""
        vendor = self.resolve_vendor(olt.vendor)
        kwargs = {
            "snmp_client": self.snmp_client,
            "batch_size": settings.DISCOVERY_BATCH_SIZE,
            "connect_timeout": settings.TELNET_CONNECT_TIMEOUT,
            "command_timeout": settings.TELNET_COMMAND_TIMEOUT,
            "list_timeout": settings.TELNET_LIST_TIMEOUT,
        }
        if vendor is Vendor.ZTE:
            kwargs.update(
                pool_size=settings.ZTE_SESSION_POOL_SIZE,
                detail_parallelism=settings.ZTE_DETAIL_PARALLELISM,
                timestamp_sentinel=settings.DETAIL_TIMESTAMP_SENTINEL,
            )
        kwargs.update(self._overrides)
        if vendor is not Vendor.ZTE:
            for key in self.ZTE_OPTIONS:
                kwargs.pop(key, None)
        logger.debug(f"[driver] {olt.name}: using {vendor.value} driver")
        return self.DRIVERS[vendor](olt, **kwargs)

    def __call__(self, olt: OltTarget) -> OltDriver:
        return self.get_driver(olt)

    @classmethod
    def get_supported_vendors(cls) -> list:
        """지원되는 OLT 벤더 목록 반환"""
        return [vendor.value for vendor in cls.DRIVERS]
