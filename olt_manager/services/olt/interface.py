# olt_manager/services/olt/interface.py
import inspect
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Union

from olt_manager.schemas.olt import OltTarget
from olt_manager.schemas.onu import DiscoveredOnu, OnuDetail
from .exceptions import OltConfigurationError, OltConnectionError, OltPartialFailure, SnmpRequestError
from .snmp_client import SnmpClient
from .telnet_session import TelnetParams, TelnetSession

OnuBatch = List[DiscoveredOnu]
BatchCallback = Callable[[OnuBatch], Union[None, Awaitable[None]]]


class Vendor(str, Enum):
    ZTE = "zte"
    HIOSO = "hioso"


class OltDriver(ABC):
    """OLT 드라이버 추상 클래스

    한 OLT 의 ONU 목록을 만드는 공통 계약입니다. 프로토콜 선택은 여기서 한 번만
    결정하고 (SNMP 우선, 실패 시 텔넷 폴백), 벤더별 수집 전략은 하위 클래스가
    구현합니다.

    discover() 는 배치 단위의 비동기 스트림이며 재시작할 수 없습니다.
    """

    vendor: Vendor

    def __init__(
        self,
        olt: OltTarget,
        snmp_client: Optional[SnmpClient] = None,
        session_factory: Callable[[], TelnetSession] = TelnetSession,
        batch_size: int = 20,
        connect_timeout: float = 15.0,
        command_timeout: float = 6.0,
        list_timeout: float = 60.0,
    ):
        self.olt = olt
        self._snmp_client = snmp_client
        self._session_factory = session_factory
        self.batch_size = max(1, batch_size)
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.list_timeout = list_timeout
        self.logger = logging.getLogger(self.__class__.__module__)
        self.partial_failures = 0

    @property
    def snmp(self) -> SnmpClient:
        if self._snmp_client is None:
            self._snmp_client = SnmpClient()
        return self._snmp_client

    # ------------------------------------------------------------------
    # 프로토콜 디스패치
    # ------------------------------------------------------------------
    async def discover(self) -> AsyncIterator[OnuBatch]:
        """ONU 배치 스트림.

        Raises:
            OltConfigurationError: SNMP/텔넷 모두 비활성화된 경우
            OltConnectionError: SNMP 실패 후 텔넷 폴백이 불가능하거나 함께 실패한 경우
        """
        olt = self.olt
        if not olt.snmp_enabled and not olt.telnet_enabled:
            raise OltConfigurationError(f"OLT '{olt.name}' 에 활성화된 프로토콜이 없습니다 (SNMP/Telnet)")

        snmp_error: Optional[Exception] = None
        if olt.snmp_enabled:
            try:
                onus = await self.discover_snmp()
            except Exception as e:
                if not olt.telnet_enabled:
                    raise OltConnectionError(
                        f"SNMP discovery failed for {olt.name}: {e}; telnet fallback is disabled"
                    ) from e
                snmp_error = e
                self.logger.warning(f"[{self.vendor.value}] SNMP discovery failed for {olt.name}, falling back to telnet: {e}")
            else:
                for i in range(0, len(onus), self.batch_size):
                    yield onus[i:i + self.batch_size]
                return

        try:
            async for batch in self.discover_telnet():
                yield batch
        except Exception as e:
            if snmp_error is None:
                raise
            raise OltConnectionError(
                f"SNMP discovery failed for {olt.name}: {snmp_error}; telnet discovery failed: {e}"
            ) from e

    async def discover_once(self, on_batch: Optional[BatchCallback] = None) -> List[DiscoveredOnu]:
        """discover() 스트림을 끝까지 소비해 전체 목록을 반환합니다."""
        results: List[DiscoveredOnu] = []
        async for batch in self.discover():
            results.extend(batch)
            if on_batch is not None:
                outcome = on_batch(batch)
                if inspect.isawaitable(outcome):
                    await outcome
        return results

    # ------------------------------------------------------------------
    # 부분 실패
    # ------------------------------------------------------------------
    def report_partial_failure(self, error: OltPartialFailure) -> None:
        """속성 하나, ONU 하나 단위의 실패는 기록만 하고 상위 작업은 계속합니다."""
        self.partial_failures += 1
        self.logger.warning(f"[{self.vendor.value}] {self.olt.name}: {error}")

    async def snmp_attribute(self, oid: str, decode: Callable[[Any], Any]) -> Any:
        """OID 하나를 조회해 decode 한 값. 실패하면 None."""
        try:
            return decode(await self.snmp.get(self.olt, oid))
        except (SnmpRequestError, ValueError) as e:
            self.report_partial_failure(OltPartialFailure(f"SNMP attribute {oid} unavailable: {e}"))
            return None

    # ------------------------------------------------------------------
    # 텔넷 세션
    # ------------------------------------------------------------------
    def telnet_params(self) -> TelnetParams:
        return TelnetParams(
            host=self.olt.ip_address,
            port=self.olt.telnet_port or 23,
            username=self.olt.telnet_username or "",
            password=self.olt.telnet_password or "",
            connect_timeout=self.connect_timeout,
        )

    async def open_session(self) -> TelnetSession:
        """로그인과 벤더별 초기 명령까지 마친 세션을 반환합니다."""
        session = self._session_factory()
        try:
            await session.connect(self.telnet_params())
            await self.prepare_session(session)
        except BaseException:
            await session.close()
            raise
        return session

    async def run(
        self, session: TelnetSession, command: str, timeout: Optional[float] = None, echo: bool = True
    ) -> str:
        return await session.execute(command, timeout or self.command_timeout, echo=echo)

    async def enter_enable_mode(self, session: TelnetSession) -> None:
        if self.olt.enable_password:
            # "Password:" 는 쉘 프롬프트가 아니므로 짧게 기다림
            await self.run(session, "enable", timeout=2.0)
            await self.run(session, self.olt.enable_password, echo=False)
        else:
            await self.run(session, "enable")

    # ------------------------------------------------------------------
    # 벤더별 구현
    # ------------------------------------------------------------------
    @abstractmethod
    async def prepare_session(self, session: TelnetSession) -> None:
        """로그인 직후 실행할 벤더별 명령 (enable, 페이징 해제 등)"""
        pass

    @abstractmethod
    async def discover_snmp(self) -> List[DiscoveredOnu]:
        pass

    @abstractmethod
    def discover_telnet(self) -> AsyncIterator[OnuBatch]:
        pass

    @abstractmethod
    async def get_onu_detail(self, pon_port: str, onu_id: int) -> OnuDetail:
        """ONU 한 대의 상세 정보를 조회합니다 (독립된 텔넷 세션 사용)."""
        pass
