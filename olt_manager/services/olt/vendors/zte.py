# olt_manager/services/olt/vendors/zte.py
import asyncio
import contextlib
import re
from collections import defaultdict
from typing import AsyncIterator, Dict, List, Optional, Tuple

from olt_manager.schemas.onu import DiscoveredOnu, OnuDetail
from ..detail_parser import DEFAULT_SENTINEL, parse_onu_detail, parse_power_attenuation
from ..exceptions import OltConnectionError, OltError, OltPartialFailure, OltProtocolError
from ..interface import OltDriver, OnuBatch, Vendor
from ..oids import ZTE_GPON, ZTE_PHASE_WORKING, ZTE_POWER_DIVISOR
from ..snmp_client import (
    decode_serial, decode_zte_ifindex, format_mac, index_from_oid, scale_optical_power, to_int,
)
from ..telnet_session import TelnetSession

# "1/2/3:4   enable   enable   working   1(GPON)"
STATE_LINE = re.compile(r"^\s*(?:gpon-onu_)?(\d+)/(\d+)/(\d+):(\d+)\s+(\S+)\s+(\S+)\s+(\S+)")
ERROR_REPLY = re.compile(r"(%\s*(?:Error|Invalid|Code)|Invalid input|Unknown command)", re.IGNORECASE)

OnuStateMap = Dict[str, List[Tuple[int, str]]]


def _zte_power(value) -> Optional[float]:
    return scale_optical_power(value, ZTE_POWER_DIVISOR)


def phase_to_status(phase: Optional[str]) -> str:
    return "online" if phase and phase.lower() == "working" else "offline"


def normalize_pon_port(pon_port: str) -> str:
    """'2/3' -> '1/2/3' (shelf 1), 'gpon-olt_1/2/3' -> '1/2/3'"""
    pon_port = pon_port.strip()
    if "_" in pon_port:
        pon_port = pon_port.split("_", 1)[1]
    if pon_port.count("/") == 1:
        pon_port = f"1/{pon_port}"
    return pon_port


def port_sort_key(pon_port: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in pon_port.split("/") if part.isdigit())


def parse_onu_state_list(text: str) -> OnuStateMap:
    """`show gpon onu state` -> {pon_port: [(onu_id, phase_state), ...]}"""
    ports: OnuStateMap = defaultdict(list)
    for line in text.splitlines():
        m = STATE_LINE.match(line)
        if not m:
            continue
        shelf, slot, port, onu_id, admin, omcc, phase = m.groups()
        ports[f"{shelf}/{slot}/{port}"].append((int(onu_id), phase))
    return dict(ports)


class _BatchAccumulator:
    """ONU 를 모았다가 batch_size 가 차면 큐로 내보냄"""

    def __init__(self, batch_size: int, queue: asyncio.Queue):
        self._batch_size = batch_size
        self._queue = queue
        self._items: List[DiscoveredOnu] = []

    def add(self, onu: DiscoveredOnu) -> None:
        self._items.append(onu)
        if len(self._items) >= self._batch_size:
            self.flush()

    def flush(self) -> None:
        if self._items:
            self._queue.put_nowait(self._items)
            self._items = []


class ZteDriver(OltDriver):
    """ZTE C320 계열 GPON OLT

    텔넷 수집은 대용량 장비를 위한 벌크 전략을 사용합니다.
    1. 임시 세션으로 `show gpon onu state` 한 번 실행해 포트별 ONU 목록 확보
    2. 세션 풀(pool_size)을 열고 PON 포트를 라운드로빈으로 분배
    3. 세션마다 포트별 벌크 상태 조회 후 ONU 별 detail-info 를 detail_parallelism 만큼 병렬 실행
    4. 벌크 조회 실패 시 같은 세션에서 ONU 단위 detail-info 로 폴백
    """

    vendor = Vendor.ZTE

    def __init__(
        self,
        olt,
        pool_size: int = 8,
        detail_parallelism: int = 5,
        timestamp_sentinel: str = DEFAULT_SENTINEL,
        **kwargs,
    ):
        super().__init__(olt, **kwargs)
        self.pool_size = max(1, pool_size)
        self.detail_parallelism = max(1, detail_parallelism)
        self.timestamp_sentinel = re.compile(timestamp_sentinel)

    async def prepare_session(self, session: TelnetSession) -> None:
        if self.olt.enable_password:
            await self.enter_enable_mode(session)
        await self.run(session, "terminal length 0")

    # ------------------------------------------------------------------
    # SNMP
    # ------------------------------------------------------------------
    async def discover_snmp(self) -> List[DiscoveredOnu]:
        rows = await self.snmp.walk(self.olt, ZTE_GPON['phase_state'])
        self.logger.info(f"[zte] SNMP: {len(rows)} ONU phase-state entries on {self.olt.name}")

        onus: List[DiscoveredOnu] = []
        for oid, value in rows:
            try:
                ifindex = index_from_oid(oid)
            except ValueError:
                self.logger.debug(f"[zte] Skipping malformed OID {oid}")
                continue
            shelf, slot, port, onu_id = decode_zte_ifindex(ifindex)
            pon_port = f"{shelf}/{slot}/{port}"

            serial, mac, rx, tx, distance = await asyncio.gather(
                self.snmp_attribute(f"{ZTE_GPON['serial_number']}.{ifindex}", decode_serial),
                self.snmp_attribute(f"{ZTE_GPON['mac_address']}.{ifindex}", format_mac),
                self.snmp_attribute(f"{ZTE_GPON['rx_power']}.{ifindex}", _zte_power),
                self.snmp_attribute(f"{ZTE_GPON['tx_power']}.{ifindex}", _zte_power),
                self.snmp_attribute(f"{ZTE_GPON['distance']}.{ifindex}", to_int),
            )
            onus.append(DiscoveredOnu(
                pon_serial=serial or f"UNKNOWN_{pon_port}_{onu_id}",
                pon_port=pon_port,
                onu_id=onu_id,
                mac_address=mac,
                signal_rx=rx,
                signal_tx=tx,
                status="online" if to_int(value) == ZTE_PHASE_WORKING else "offline",
                distance=distance,
            ))
        return onus

    # ------------------------------------------------------------------
    # Telnet (bulk pooled)
    # ------------------------------------------------------------------
    async def discover_telnet(self) -> AsyncIterator[OnuBatch]:
        inventory = await self._list_onu_states()
        total = sum(len(entries) for entries in inventory.values())
        self.logger.info(f"[zte] {self.olt.name}: {total} ONUs on {len(inventory)} PON ports")
        if not inventory:
            return

        queue: asyncio.Queue = asyncio.Queue()
        producer = asyncio.create_task(self._collect_pooled(inventory, queue))
        try:
            while True:
                batch = await queue.get()
                if batch is None:
                    break
                yield batch
            await producer
        finally:
            if not producer.done():
                producer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await producer

    async def _list_onu_states(self) -> OnuStateMap:
        session = await self.open_session()
        try:
            text = await self.run(session, "show gpon onu state", timeout=self.list_timeout)
        finally:
            await session.close()

        inventory = parse_onu_state_list(text)
        if not inventory and ERROR_REPLY.search(text):
            raise OltProtocolError(f"ONU state list rejected by {self.olt.name}: {text[:200]}")
        return inventory

    async def _collect_pooled(self, inventory: OnuStateMap, queue: asyncio.Queue) -> None:
        ports = sorted(inventory, key=port_sort_key)
        pool_size = min(self.pool_size, len(ports))
        opened = await asyncio.gather(*(self.open_session() for _ in range(pool_size)), return_exceptions=True)
        sessions = [s for s in opened if not isinstance(s, BaseException)]
        failures = [s for s in opened if isinstance(s, BaseException)]
        accumulator = _BatchAccumulator(self.batch_size, queue)

        try:
            if not sessions:
                raise OltConnectionError(f"Could not open any telnet session to {self.olt.name}: {failures[0]}")
            if failures:
                self.logger.warning(
                    f"[zte] {len(failures)} of {pool_size} pooled sessions to {self.olt.name} failed: {failures[0]}"
                )

            assignments = [ports[i::len(sessions)] for i in range(len(sessions))]
            await asyncio.gather(*(
                self._collect_ports(session, assigned, inventory, accumulator)
                for session, assigned in zip(sessions, assignments)
            ))
            accumulator.flush()
        finally:
            await asyncio.gather(*(s.close() for s in sessions), return_exceptions=True)
            queue.put_nowait(None)

    async def _collect_ports(
        self,
        session: TelnetSession,
        ports: List[str],
        inventory: OnuStateMap,
        accumulator: _BatchAccumulator,
    ) -> None:
        semaphore = asyncio.Semaphore(self.detail_parallelism)

        async def fetch(pon_port: str, onu_id: int, phase: str) -> None:
            async with semaphore:
                accumulator.add(await self._collect_onu(session, pon_port, onu_id, phase))

        for pon_port in ports:
            entries = inventory[pon_port]
            try:
                reply = await self.run(session, f"show gpon onu state gpon-olt_{pon_port}")
                states = dict(parse_onu_state_list(reply).get(pon_port, []))
                if not states:
                    raise OltProtocolError(f"empty bulk state reply: {reply[:120]!r}")
            except OltError as e:
                self.logger.warning(f"[zte] Bulk state query failed on {pon_port}, falling back to per-ONU detail: {e}")
                for onu_id, phase in entries:
                    accumulator.add(await self._collect_onu(session, pon_port, onu_id, phase, phase_from_detail=True))
                continue

            await asyncio.gather(*(
                fetch(pon_port, onu_id, states.get(onu_id, phase)) for onu_id, phase in entries
            ))

    async def _collect_onu(
        self,
        session: TelnetSession,
        pon_port: str,
        onu_id: int,
        phase: str,
        phase_from_detail: bool = False,
    ) -> DiscoveredOnu:
        onu_ref = f"gpon-onu_{pon_port}:{onu_id}"
        detail: Optional[OnuDetail] = None
        rx = tx = None
        try:
            detail = parse_onu_detail(
                await self.run(session, f"show gpon onu detail-info {onu_ref}"), self.timestamp_sentinel
            )
        except OltError as e:
            self.report_partial_failure(OltPartialFailure(f"detail-info failed for {onu_ref}: {e}"))
        try:
            rx, tx = parse_power_attenuation(await self.run(session, f"show pon power attenuation {onu_ref}"))
        except OltError as e:
            self.report_partial_failure(OltPartialFailure(f"power attenuation failed for {onu_ref}: {e}"))

        if phase_from_detail and detail and detail.phase_state:
            phase = detail.phase_state

        return DiscoveredOnu(
            pon_serial=(detail and detail.serial_number) or f"UNKNOWN_{pon_port}_{onu_id}",
            pon_port=pon_port,
            onu_id=onu_id,
            signal_rx=rx,
            signal_tx=tx,
            status=phase_to_status(phase),
            distance=detail.distance if detail else None,
            onu_type=detail.onu_type if detail else None,
        )

    # ------------------------------------------------------------------
    # 단일 ONU 상세 조회
    # ------------------------------------------------------------------
    async def get_onu_detail(self, pon_port: str, onu_id: int) -> OnuDetail:
        onu_ref = f"gpon-onu_{normalize_pon_port(pon_port)}:{onu_id}"
        session = await self.open_session()
        try:
            text = await self.run(session, f"show gpon onu detail-info {onu_ref}")
            try:
                rx, tx = parse_power_attenuation(await self.run(session, f"show pon power attenuation {onu_ref}"))
            except OltError as e:
                self.logger.debug(f"[zte] power attenuation failed for {onu_ref}: {e}")
                rx = tx = None
        finally:
            await session.close()

        detail = parse_onu_detail(text, self.timestamp_sentinel)
        if not detail.model_dump(exclude_none=True, exclude={"details_raw_output"}):
            raise OltProtocolError(f"No detail-info for {onu_ref} on {self.olt.name}: {text[:200]}")
        return detail.model_copy(update={"signal_rx": rx, "signal_tx": tx})
