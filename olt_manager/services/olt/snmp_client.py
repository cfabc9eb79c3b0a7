"""
Async SNMP client for OLT enterprise tables.

GET and GETBULK-based subtree walks over pysnmp's v3arch asyncio API, plus the
pure decoders for vendor-packed ifIndex values, fixed-point optical power,
hex-encoded serials and MAC addresses.

Usage:
    client = SnmpClient(timeout=5.0, retries=2)
    rows = await client.walk(olt, ZTE_GPON['phase_state'])
    for oid, value in rows:
        shelf, slot, port, onu_id = decode_zte_ifindex(index_from_oid(oid))
"""
import asyncio
import logging
import re
import string
from typing import Any, List, Optional, Tuple

from pysnmp.hlapi.v3arch.asyncio import (
    bulk_cmd, get_cmd,
    SnmpEngine, CommunityData,
    UdpTransportTarget, ContextData,
    ObjectType, ObjectIdentity,
)
from pysnmp.proto.rfc1905 import EndOfMibView, NoSuchInstance, NoSuchObject

from .exceptions import SnmpRequestError

logger = logging.getLogger(__name__)
logging.getLogger("pysnmp").setLevel(logging.WARNING)

WalkResult = List[Tuple[str, Any]]

_EMPTY_TYPES = (NoSuchObject, NoSuchInstance, EndOfMibView)
_HEX_PAIRS = re.compile(r"^[0-9A-Fa-f]{2}(?:[\s:\-][0-9A-Fa-f]{2})+$")
_PRINTABLE = set(string.printable) - set("\t\n\r\x0b\x0c")


class SnmpClient:
    """
    SNMP v2c client bound to one engine.

    Every request gets a bounded timeout and retry count; any transport
    failure, timeout or error-status is raised as ``SnmpRequestError`` with
    the underlying indication on ``.cause``.
    """

    def __init__(
        self,
        engine: Optional[SnmpEngine] = None,
        timeout: float = 5.0,
        retries: int = 2,
        bulk_size: int = 25,
        max_iterations: int = 2000,
    ):
        self.engine = engine or SnmpEngine()
        self.timeout = timeout
        self.retries = retries
        self.bulk_size = bulk_size
        self.max_iterations = max_iterations

    @staticmethod
    def _auth(device) -> CommunityData:
        return CommunityData(device.snmp_community or "public", mpModel=1)

    async def _transport(self, device) -> UdpTransportTarget:
        return await UdpTransportTarget.create(
            (device.ip_address, device.snmp_port or 161),
            timeout=self.timeout,
            retries=self.retries,
        )

    async def get(self, device, oid: str) -> Optional[Any]:
        """Fetch one scalar; returns None when the agent has no such instance."""
        try:
            transport = await self._transport(device)
            error_indication, error_status, error_index, var_binds = await asyncio.wait_for(
                get_cmd(
                    self.engine,
                    self._auth(device),
                    transport,
                    ContextData(),
                    ObjectType(ObjectIdentity(oid)),
                ),
                timeout=self._deadline(),
            )
        except asyncio.TimeoutError as e:
            raise SnmpRequestError(f"SNMP get {oid} on {device.ip_address} timed out", e) from e
        except Exception as e:
            raise SnmpRequestError(f"SNMP get {oid} on {device.ip_address} failed: {e}", e) from e

        if error_indication:
            raise SnmpRequestError(f"SNMP get {oid} on {device.ip_address} failed: {error_indication}", error_indication)
        if error_status:
            raise SnmpRequestError(
                f"SNMP get {oid} on {device.ip_address} returned {error_status.prettyPrint()}", error_status
            )
        if not var_binds:
            return None
        value = var_binds[0][1]
        if isinstance(value, _EMPTY_TYPES):
            return None
        return value

    async def walk(self, device, oid_prefix: str) -> WalkResult:
        """
        Walk every instance under ``oid_prefix`` with GETBULK.

        Stops when a returned OID leaves the subtree, on endOfMibView, or when
        the agent returns a short page.

        Returns:
            List of (oid_string, value) tuples in agent order
        """
        base = oid_prefix.strip(".")
        results: WalkResult = []
        last_oid = base

        for iteration in range(self.max_iterations):
            try:
                transport = await self._transport(device)
                error_indication, error_status, error_index, var_binds = await asyncio.wait_for(
                    bulk_cmd(
                        self.engine,
                        self._auth(device),
                        transport,
                        ContextData(),
                        0,
                        self.bulk_size,
                        ObjectType(ObjectIdentity(last_oid)),
                        lexicographicMode=False,
                    ),
                    timeout=self._deadline(),
                )
            except asyncio.TimeoutError as e:
                raise SnmpRequestError(f"SNMP walk {base} on {device.ip_address} timed out", e) from e
            except Exception as e:
                raise SnmpRequestError(f"SNMP walk {base} on {device.ip_address} failed: {e}", e) from e

            if error_indication:
                raise SnmpRequestError(
                    f"SNMP walk {base} on {device.ip_address} failed: {error_indication}", error_indication
                )
            if error_status:
                raise SnmpRequestError(
                    f"SNMP walk {base} on {device.ip_address} returned {error_status.prettyPrint()}", error_status
                )
            if not var_binds:
                break

            in_table = False
            for var_bind in var_binds:
                oid_str = str(var_bind[0])
                value = var_bind[1]
                if not oid_str.startswith(base + ".") or isinstance(value, _EMPTY_TYPES):
                    in_table = False
                    break
                results.append((oid_str, value))
                last_oid = oid_str
                in_table = True

            if not in_table or len(var_binds) < self.bulk_size:
                break
        else:
            logger.warning(f"[snmp] Walk of {base} on {device.ip_address} hit the {self.max_iterations} iteration limit")

        logger.debug(f"[snmp] Walk {base} on {device.ip_address}: {len(results)} rows")
        return results

    def _deadline(self) -> float:
        # pysnmp retries internally; leave room for all of them
        return self.timeout * (self.retries + 1) + 2


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------

def index_from_oid(oid: str) -> int:
    """Last sub-identifier of an instance OID."""
    return int(str(oid).rsplit(".", 1)[-1])


def decode_zte_ifindex(ifindex: int) -> Tuple[int, int, int, int]:
    """ZTE GPON: shelf(8) | slot(8) | port(8) | onu(8)."""
    return (
        (ifindex >> 24) & 0xFF,
        (ifindex >> 16) & 0xFF,
        (ifindex >> 8) & 0xFF,
        ifindex & 0xFF,
    )


def encode_zte_ifindex(shelf: int, slot: int, port: int, onu_id: int) -> int:
    return ((shelf & 0xFF) << 24) | ((slot & 0xFF) << 16) | ((port & 0xFF) << 8) | (onu_id & 0xFF)


def decode_hioso_ifindex(ifindex: int) -> Tuple[int, int, int]:
    """HIOSO EPON: slot(8) | port(8) | onu(8); a zero slot or port means 1."""
    slot = (ifindex >> 16) & 0xFF
    port = (ifindex >> 8) & 0xFF
    return slot or 1, port or 1, ifindex & 0xFF


def to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, _EMPTY_TYPES):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(str(value).strip())
        except ValueError:
            return None


def scale_optical_power(value: Any, divisor: int) -> Optional[float]:
    """Raw tenths/hundredths of a dBm -> dBm."""
    raw = to_int(value)
    if raw is None:
        return None
    return round(raw / divisor, 2)


def _as_bytes(value: Any) -> Optional[bytes]:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if hasattr(value, "asOctets"):
        return value.asOctets()
    return None


def decode_serial(value: Any) -> Optional[str]:
    """
    Serial number from an OctetString, raw bytes or a hex text dump.

    - "48 57 54 43 ..." (space separated hex pairs) -> ASCII
    - 8 raw bytes with a 4-letter vendor id -> "ZTEG" + hex of the last 4
    - printable bytes -> decoded text
    """
    if value is None or isinstance(value, _EMPTY_TYPES):
        return None

    raw = _as_bytes(value)
    if raw is None:
        text = str(value).strip()
        if not text:
            return None
        if " " in text and _HEX_PAIRS.match(text):
            raw = bytes(int(pair, 16) for pair in text.split())
        elif text.lower().startswith("0x") and len(text) > 2:
            try:
                raw = bytes.fromhex(text[2:])
            except ValueError:
                return text
        else:
            return text

    raw = raw.rstrip(b"\x00")
    if not raw:
        return None
    decoded = raw.decode("latin-1")
    if all(ch in _PRINTABLE for ch in decoded):
        return decoded.strip() or None
    vendor_id = raw[:4].decode("latin-1")
    if len(raw) == 8 and vendor_id.isalpha():
        return vendor_id.upper() + raw[4:].hex().upper()
    return raw.hex().upper()


def format_mac(value: Any) -> Optional[str]:
    """Normalize a MAC to upper-case, colon separated hex (AA:BB:CC:DD:EE:FF)."""
    if value is None or isinstance(value, _EMPTY_TYPES):
        return None

    raw = _as_bytes(value)
    if raw is not None:
        if len(raw) == 6:
            return ":".join(f"{b:02X}" for b in raw)
        # some agents hand the text form back as an OctetString
        value = raw.decode("latin-1", errors="ignore")

    text = str(value).strip()
    if text.lower().startswith("0x"):
        text = text[2:]
    digits = re.sub(r"[\s:\-.]", "", text)
    if len(digits) != 12 or not all(ch in string.hexdigits for ch in digits):
        return None
    digits = digits.upper()
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))
