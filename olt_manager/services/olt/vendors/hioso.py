# olt_manager/services/olt/vendors/hioso.py
import asyncio
import re
from typing import AsyncIterator, List, Optional, Tuple

from olt_manager.schemas.onu import DiscoveredOnu, OnuDetail
from ..exceptions import OltConnectionError, OltError, OltPartialFailure, OltProtocolError
from ..interface import OltDriver, OnuBatch, Vendor
from ..oids import HIOSO_EPON, HIOSO_POWER_DIVISOR, HIOSO_STATUS_ONLINE
from ..snmp_client import decode_hioso_ifindex, format_mac, index_from_oid, scale_optical_power, to_int
from ..telnet_session import TelnetSession

MAC_TEXT = re.compile(
    r"(?:[0-9A-Fa-f]{2}[:\-]){5}[0-9A-Fa-f]{2}|[0-9A-Fa-f]{4}\.[0-9A-Fa-f]{4}\.[0-9A-Fa-f]{4}"
)
STATUS_WORD = re.compile(
    r"\b(online|offline|silent|registered|deregistered|active|inactive|working)\b", re.IGNORECASE
)
ONLINE_WORDS = {"online", "registered", "active", "working"}
BRIEF_ONU_ID = re.compile(r"^\s*(?:(?:e?pon)?\s*\d+/\d+:)?(\d+)\b", re.IGNORECASE)
SERIAL_FIELD = re.compile(r"(?:Serial\s*Number|\bSN)\s*:\s*([A-Za-z0-9]+)", re.IGNORECASE)
RX_POWER = re.compile(r"Rx\s*Power\s*(?:\(dBm\))?\s*:\s*([-+]?\d+(?:\.\d+)?)", re.IGNORECASE)
TX_POWER = re.compile(r"Tx\s*Power\s*(?:\(dBm\))?\s*:\s*([-+]?\d+(?:\.\d+)?)", re.IGNORECASE)
ERROR_REPLY = re.compile(r"(^\s*%\s*\w|\binvalid\b|\bnot (?:found|exist)|unknown command)", re.IGNORECASE | re.MULTILINE)


def _hioso_power(value) -> Optional[float]:
    return scale_optical_power(value, HIOSO_POWER_DIVISOR)


def word_to_status(word: Optional[str]) -> str:
    return "online" if word and word.lower() in ONLINE_WORDS else "offline"


def parse_onu_brief(text: str) -> List[Tuple[int, Optional[str], Optional[str]]]:
    """`show onu brief` -> [(onu_id, mac, status_word), ...]

    컬럼 구성이 펌웨어마다 달라서 행 앞의 ONU 번호와, 행 안의 MAC/상태 단어만 찾습니다.
    """
    entries = []
    seen = set()
    for line in text.splitlines():
        m = BRIEF_ONU_ID.match(line)
        if not m:
            continue
        mac_match = MAC_TEXT.search(line)
        status_match = STATUS_WORD.search(line)
        if not mac_match and not status_match:
            continue
        onu_id = int(m.group(1))
        if onu_id in seen:
            continue
        seen.add(onu_id)
        entries.append((
            onu_id,
            format_mac(mac_match.group(0)) if mac_match else None,
            status_match.group(1).lower() if status_match else None,
        ))
    return entries


def parse_onu_info(text: str) -> dict:
    """`show onu <id>` 응답에서 mac/serial/status/rx/tx 추출 (행 단위, 마지막 값 우선)"""
    info = {"mac_address": None, "serial": None, "status": None, "signal_rx": None, "signal_tx": None}
    for line in text.splitlines():
        mac = MAC_TEXT.search(line)
        if mac:
            info["mac_address"] = format_mac(mac.group(0))
        serial = SERIAL_FIELD.search(line)
        if serial:
            info["serial"] = serial.group(1)
        status = STATUS_WORD.search(line)
        if status:
            info["status"] = status.group(1).lower()
        rx = RX_POWER.search(line)
        if rx:
            info["signal_rx"] = float(rx.group(1))
        tx = TX_POWER.search(line)
        if tx:
            info["signal_tx"] = float(tx.group(1))
    return info


def normalize_pon_port(pon_port: str) -> str:
    """'1/1/2' 처럼 shelf 가 붙은 경우 slot/port 만 사용"""
    parts = [p for p in pon_port.strip().split("/") if p]
    return "/".join(parts[-2:])


class HiosoDriver(OltDriver):
    """HIOSO EPON OLT

    소용량 장비라 단일 세션에서 slot x port 를 순차 조회합니다.
    포트 단위 실패는 기록 후 건너뜁니다.
    """

    vendor = Vendor.HIOSO

    DEFAULT_SLOTS = 1
    DEFAULT_PORTS_PER_SLOT = 4

    async def prepare_session(self, session: TelnetSession) -> None:
        await self.enter_enable_mode(session)
        await self.run(session, "configure terminal")
        await self.run(session, "epon")

    # ------------------------------------------------------------------
    # SNMP
    # ------------------------------------------------------------------
    async def discover_snmp(self) -> List[DiscoveredOnu]:
        rows = await self.snmp.walk(self.olt, HIOSO_EPON['online_status'])
        self.logger.info(f"[hioso] SNMP: {len(rows)} ONU status entries on {self.olt.name}")

        onus: List[DiscoveredOnu] = []
        for oid, value in rows:
            try:
                ifindex = index_from_oid(oid)
            except ValueError:
                self.logger.debug(f"[hioso] Skipping malformed OID {oid}")
                continue
            slot, port, onu_id = decode_hioso_ifindex(ifindex)
            pon_port = f"{slot}/{port}"

            mac, rx, tx = await asyncio.gather(
                self.snmp_attribute(f"{HIOSO_EPON['mac_address']}.{ifindex}", format_mac),
                self.snmp_attribute(f"{HIOSO_EPON['rx_power']}.{ifindex}", _hioso_power),
                self.snmp_attribute(f"{HIOSO_EPON['tx_power']}.{ifindex}", _hioso_power),
            )
            onus.append(DiscoveredOnu(
                # EPON 은 MAC 이 곧 식별자
                pon_serial=mac or f"UNKNOWN_{pon_port}_{onu_id}",
                pon_port=pon_port,
                onu_id=onu_id,
                mac_address=mac,
                signal_rx=rx,
                signal_tx=tx,
                status="online" if to_int(value) == HIOSO_STATUS_ONLINE else "offline",
            ))
        return onus

    # ------------------------------------------------------------------
    # Telnet (sequential)
    # ------------------------------------------------------------------
    async def discover_telnet(self) -> AsyncIterator[OnuBatch]:
        slots = self.olt.total_pon_slots or self.DEFAULT_SLOTS
        ports = self.olt.ports_per_slot or self.DEFAULT_PORTS_PER_SLOT
        self.logger.info(f"[hioso] {self.olt.name}: scanning {slots} slots x {ports} ports")

        session = await self.open_session()
        batch: List[DiscoveredOnu] = []
        errors: List[str] = []
        total = 0
        try:
            for slot in range(1, slots + 1):
                for port in range(1, ports + 1):
                    pon_port = f"{slot}/{port}"
                    try:
                        onus = await self._collect_port(session, pon_port)
                    except OltError as e:
                        if not session.connected:
                            raise OltConnectionError(f"Telnet session to {self.olt.name} lost at pon {pon_port}: {e}") from e
                        errors.append(f"pon {pon_port}: {e}")
                        self.logger.warning(f"[hioso] Skipping pon {pon_port} on {self.olt.name}: {e}")
                        continue

                    total += len(onus)
                    for onu in onus:
                        batch.append(onu)
                        if len(batch) >= self.batch_size:
                            yield batch
                            batch = []
            if batch:
                yield batch
        finally:
            await session.close()

        self.logger.info(f"[hioso] {self.olt.name}: {total} ONUs discovered, {len(errors)} ports skipped")

    async def _enter_port(self, session: TelnetSession, pon_port: str) -> None:
        reply = await self.run(session, f"pon {pon_port}")
        if ERROR_REPLY.search(reply):
            raise OltProtocolError(f"pon {pon_port} rejected: {reply[:120]}")

    async def _exit_port(self, session: TelnetSession, pon_port: str) -> None:
        try:
            await self.run(session, "exit")
        except OltError as e:
            self.logger.debug(f"[hioso] exit from pon {pon_port} failed: {e}")

    async def _collect_port(self, session: TelnetSession, pon_port: str) -> List[DiscoveredOnu]:
        await self._enter_port(session, pon_port)
        try:
            brief = await self.run(session, "show onu brief")
            onus = []
            for onu_id, mac, status_word in parse_onu_brief(brief):
                info = {}
                try:
                    reply = await self.run(session, f"show onu {onu_id}")
                    if not ERROR_REPLY.search(reply):
                        info = parse_onu_info(reply)
                except OltError as e:
                    self.report_partial_failure(OltPartialFailure(f"show onu {onu_id} on pon {pon_port} failed: {e}"))

                mac = info.get("mac_address") or mac
                onus.append(DiscoveredOnu(
                    pon_serial=info.get("serial") or mac or f"UNKNOWN_{pon_port}_{onu_id}",
                    pon_port=pon_port,
                    onu_id=onu_id,
                    mac_address=mac,
                    signal_rx=info.get("signal_rx"),
                    signal_tx=info.get("signal_tx"),
                    status=word_to_status(info.get("status") or status_word),
                ))
            return onus
        finally:
            await self._exit_port(session, pon_port)

    # ------------------------------------------------------------------
    # 단일 ONU 상세 조회
    # ------------------------------------------------------------------
    async def get_onu_detail(self, pon_port: str, onu_id: int) -> OnuDetail:
        pon_port = normalize_pon_port(pon_port)
        session = await self.open_session()
        try:
            await self._enter_port(session, pon_port)
            try:
                reply = await self.run(session, f"show onu {onu_id}")
            finally:
                await self._exit_port(session, pon_port)
        finally:
            await session.close()

        info = parse_onu_info(reply)
        if ERROR_REPLY.search(reply) or not any(info.values()):
            raise OltProtocolError(f"No ONU {pon_port}:{onu_id} on {self.olt.name}: {reply[:200]}")
        return OnuDetail(
            state=info["status"],
            serial_number=info["serial"],
            mac_address=info["mac_address"],
            signal_rx=info["signal_rx"],
            signal_tx=info["signal_tx"],
            details_raw_output=reply,
        )
