import pytest
from pysnmp.proto import rfc1902

from olt_manager.services.olt.exceptions import OltConnectionError, OltProtocolError
from olt_manager.services.olt.oids import HIOSO_EPON
from olt_manager.services.olt.vendors.hioso import (
    HiosoDriver,
    normalize_pon_port,
    parse_onu_brief,
    parse_onu_info,
)

from conftest import FakeSnmpClient, SessionRecorder, make_target

ONU_BRIEF = """\
ONU-ID  MAC Address        Status    Distance(m)
------  -----------------  --------  -----------
1       aa:bb:cc:00:00:01  online    320
2       aa:bb:cc:00:00:02  offline   0
"""

ONU_1_INFO = """\
ONU 1 information:
  MAC: aa:bb:cc:00:00:01
  SN: HIOS00000001
  Status: online
  Rx Power(dBm): -22.40
  Tx Power(dBm): 2.10
"""


def telnet_responses(**overrides):
    responses = {
        "pon 1/1": "",
        "pon 1/2": "% Invalid input detected at '^' marker.",
        "show onu brief": ONU_BRIEF,
        "show onu 1": ONU_1_INFO,
    }
    responses.update(overrides)
    return responses


def make_driver(recorder, snmp=None, **olt_fields):
    fields = dict(vendor="hioso", total_pon_slots=1, ports_per_slot=2)
    fields.update(olt_fields)
    return HiosoDriver(make_target(**fields), snmp_client=snmp or FakeSnmpClient(), session_factory=recorder)


def test_parse_onu_brief():
    assert parse_onu_brief(ONU_BRIEF) == [
        (1, "AA:BB:CC:00:00:01", "online"),
        (2, "AA:BB:CC:00:00:02", "offline"),
    ]


def test_parse_onu_info():
    assert parse_onu_info(ONU_1_INFO) == {
        "mac_address": "AA:BB:CC:00:00:01",
        "serial": "HIOS00000001",
        "status": "online",
        "signal_rx": -22.4,
        "signal_tx": 2.1,
    }


def test_normalize_pon_port_drops_shelf():
    assert normalize_pon_port("1/1/2") == "1/2"
    assert normalize_pon_port("1/2") == "1/2"


async def test_sequential_scan_skips_rejected_port():
    recorder = SessionRecorder(telnet_responses())

    onus = await make_driver(recorder).discover_once()

    assert len(recorder.sessions) == 1
    session = recorder.sessions[0]
    assert session.closed is True
    assert session.commands[:3] == ["enable", "configure terminal", "epon"]
    assert "pon 1/2" in session.commands

    assert [onu.pon_serial for onu in onus] == ["HIOS00000001", "AA:BB:CC:00:00:02"]
    first, second = onus
    assert first.pon_port == "1/1"
    assert first.status == "online"
    assert first.signal_rx == -22.4
    assert second.mac_address == "AA:BB:CC:00:00:02"
    assert second.status == "offline"
    assert second.signal_rx is None


async def test_lost_session_aborts_scan():
    recorder = SessionRecorder(telnet_responses(**{"pon 1/2": OltConnectionError("connection reset")}))

    with pytest.raises(OltConnectionError):
        await make_driver(recorder).discover_once()

    assert recorder.sessions[0].closed is True


async def test_snmp_discovery_uses_mac_as_serial():
    ifindex = (1 << 16) | (2 << 8) | 3
    snmp = FakeSnmpClient(
        walks={HIOSO_EPON["online_status"]: [
            (f"{HIOSO_EPON['online_status']}.{ifindex}", rfc1902.Integer32(1)),
            (f"{HIOSO_EPON['online_status']}.5", rfc1902.Integer32(2)),
        ]},
        values={
            f"{HIOSO_EPON['mac_address']}.{ifindex}": rfc1902.OctetString(b"\xaa\xbb\xcc\x00\x00\x03"),
            f"{HIOSO_EPON['rx_power']}.{ifindex}": rfc1902.Integer32(-215),
            f"{HIOSO_EPON['tx_power']}.{ifindex}": rfc1902.Integer32(25),
        },
    )
    recorder = SessionRecorder()

    onus = await make_driver(recorder, snmp=snmp, snmp_enabled=True).discover_once()

    assert onus[0].pon_serial == "AA:BB:CC:00:00:03"
    assert onus[0].pon_port == "1/2"
    assert onus[0].onu_id == 3
    assert onus[0].status == "online"
    assert onus[0].signal_rx == -21.5
    assert onus[0].signal_tx == 2.5
    assert onus[1].pon_serial == "UNKNOWN_1/1_5"
    assert onus[1].status == "offline"
    assert recorder.sessions == []


async def test_get_onu_detail():
    recorder = SessionRecorder(telnet_responses())

    detail = await make_driver(recorder).get_onu_detail("1/1/1", 1)

    assert detail.serial_number == "HIOS00000001"
    assert detail.state == "online"
    assert detail.signal_tx == 2.1
    assert recorder.sessions[0].commands[-3:] == ["pon 1/1", "show onu 1", "exit"]


async def test_get_onu_detail_missing_onu():
    recorder = SessionRecorder(telnet_responses())

    with pytest.raises(OltProtocolError):
        await make_driver(recorder).get_onu_detail("1/1", 9)
