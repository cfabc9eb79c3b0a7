import pytest
from pysnmp.proto import rfc1902

from olt_manager.services.olt.exceptions import OltConnectionError, OltProtocolError
from olt_manager.services.olt.oids import ZTE_GPON
from olt_manager.services.olt.snmp_client import encode_zte_ifindex
from olt_manager.services.olt.vendors.zte import (
    ZteDriver,
    normalize_pon_port,
    parse_onu_state_list,
    phase_to_status,
)

from conftest import FakeSnmpClient, SessionRecorder, make_target, snmp_timeout

STATE_LIST = """\
OnuIndex   Admin State  OMCC State  Phase State  Channel
--------------------------------------------------------------
1/2/1:1    enable       enable      working      1(GPON)
1/2/1:2    enable       disable     LOS          1(GPON)
1/2/2:1    enable       enable      working      1(GPON)
ONU Number: 3/3
"""

PORT_1_STATE = """\
OnuIndex   Admin State  OMCC State  Phase State  Channel
--------------------------------------------------------------
1/2/1:1    enable       enable      working      1(GPON)
1/2/1:2    enable       disable     LOS          1(GPON)
"""

DETAIL_1_1 = """\
Name:                   cust-0001
Type:                   ZTE-F660
Phase state:            working
Serial number:          ZTEGC0A80101
ONU Distance:           1066m
"""

DETAIL_2_1 = """\
Name:                   cust-0003
Type:                   ZTE-F601
Phase state:            LOS
Serial number:          ZTEGC0A80201
"""

ATTENUATION_1_1 = """\
           OLT                  ONU              Attenuation
 up      Rx :-19.912(dbm)      Tx:2.220(dbm)        22.132(dB)
 down    Tx :5.860(dbm)        Rx:-20.680(dbm)      26.540(dB)
"""


def telnet_responses(**overrides):
    responses = {
        "show gpon onu state": STATE_LIST,
        "show gpon onu state gpon-olt_1/2/1": PORT_1_STATE,
        "show gpon onu state gpon-olt_1/2/2": "%Error 20203: Invalid input detected",
        "show gpon onu detail-info gpon-onu_1/2/1:1": DETAIL_1_1,
        "show pon power attenuation gpon-onu_1/2/1:1": ATTENUATION_1_1,
        "show gpon onu detail-info gpon-onu_1/2/2:1": DETAIL_2_1,
    }
    responses.update(overrides)
    return responses


def make_driver(recorder=None, snmp=None, **kwargs):
    olt = kwargs.pop("olt", make_target(vendor="zte"))
    return ZteDriver(
        olt,
        snmp_client=snmp or FakeSnmpClient(),
        session_factory=recorder or SessionRecorder(telnet_responses()),
        **kwargs,
    )


async def collect(driver):
    batches = []
    async for batch in driver.discover():
        batches.append(batch)
    return batches


def test_parse_onu_state_list_groups_by_port():
    inventory = parse_onu_state_list(STATE_LIST)

    assert inventory == {
        "1/2/1": [(1, "working"), (2, "LOS")],
        "1/2/2": [(1, "working")],
    }


def test_phase_and_port_helpers():
    assert phase_to_status("working") == "online"
    assert phase_to_status("LOS") == "offline"
    assert phase_to_status(None) == "offline"
    assert normalize_pon_port("2/3") == "1/2/3"
    assert normalize_pon_port("gpon-olt_1/2/3") == "1/2/3"


async def test_telnet_bulk_collection():
    recorder = SessionRecorder(telnet_responses())
    driver = make_driver(recorder)

    onus = {onu.pon_serial: onu for onu in await driver.discover_once()}

    assert set(onus) == {"ZTEGC0A80101", "UNKNOWN_1/2/1_2", "ZTEGC0A80201"}
    first = onus["ZTEGC0A80101"]
    assert first.pon_port == "1/2/1"
    assert first.onu_id == 1
    assert first.status == "online"
    assert first.signal_rx == -20.68
    assert first.signal_tx == 2.22
    assert first.distance == 1066
    assert first.onu_type == "ZTE-F660"
    assert onus["UNKNOWN_1/2/1_2"].status == "offline"


async def test_bulk_failure_falls_back_to_per_onu_detail():
    recorder = SessionRecorder(telnet_responses())
    driver = make_driver(recorder)

    onus = {onu.pon_serial: onu for onu in await driver.discover_once()}

    # 목록에서는 working 이었지만 폴백 경로는 detail-info 의 phase state 를 따름
    assert onus["ZTEGC0A80201"].status == "offline"
    assert "show gpon onu detail-info gpon-onu_1/2/2:1" in recorder.all_commands


async def test_pool_sessions_are_opened_per_port_and_closed():
    recorder = SessionRecorder(telnet_responses())
    driver = make_driver(recorder, pool_size=8)

    await driver.discover_once()

    # 목록용 1개 + 포트 수(2)만큼의 풀 세션
    assert len(recorder.sessions) == 3
    assert all(session.closed for session in recorder.sessions)
    assert all(session.commands[0] == "terminal length 0" for session in recorder.sessions)


async def test_batches_respect_batch_size():
    driver = make_driver(batch_size=2)

    batches = await collect(driver)

    assert sum(len(batch) for batch in batches) == 3
    assert all(1 <= len(batch) <= 2 for batch in batches)


async def test_partial_pool_failure_still_collects():
    recorder = SessionRecorder(telnet_responses(), connect_errors=[None, OltConnectionError("refused")])
    driver = make_driver(recorder)

    onus = await driver.discover_once()

    assert len(onus) == 3


async def test_no_pooled_session_raises():
    recorder = SessionRecorder(
        telnet_responses(),
        connect_errors=[None, OltConnectionError("refused"), OltConnectionError("refused")],
    )
    driver = make_driver(recorder)

    with pytest.raises(OltConnectionError):
        await driver.discover_once()


async def test_rejected_state_list_is_protocol_error():
    recorder = SessionRecorder(telnet_responses(**{"show gpon onu state": "%Error 20203: Invalid input detected"}))

    with pytest.raises(OltProtocolError):
        await make_driver(recorder).discover_once()


async def test_enable_password_enters_privileged_mode():
    recorder = SessionRecorder(telnet_responses())
    driver = make_driver(recorder, olt=make_target(vendor="zte", enable_password="en-secret"))

    await driver.discover_once()

    assert recorder.sessions[0].commands[:3] == ["enable", "en-secret", "terminal length 0"]


async def test_snmp_discovery_decodes_entries():
    first = encode_zte_ifindex(1, 2, 3, 1)
    second = encode_zte_ifindex(1, 2, 3, 2)
    third = encode_zte_ifindex(1, 2, 4, 1)
    snmp = FakeSnmpClient(
        walks={ZTE_GPON["phase_state"]: [
            (f"{ZTE_GPON['phase_state']}.{first}", rfc1902.Integer32(3)),
            (f"{ZTE_GPON['phase_state']}.{second}", rfc1902.Integer32(2)),
            (f"{ZTE_GPON['phase_state']}.{third}", rfc1902.Integer32(3)),
        ]},
        values={
            f"{ZTE_GPON['serial_number']}.{first}": rfc1902.OctetString(b"ZTEG\xc0\xa8\x01\x01"),
            f"{ZTE_GPON['mac_address']}.{first}": rfc1902.OctetString(b"\xaa\xbb\xcc\x00\x00\x01"),
            f"{ZTE_GPON['rx_power']}.{first}": rfc1902.Integer32(-2150),
            f"{ZTE_GPON['tx_power']}.{first}": rfc1902.Integer32(230),
            f"{ZTE_GPON['distance']}.{first}": rfc1902.Integer32(1200),
            f"{ZTE_GPON['serial_number']}.{third}": rfc1902.OctetString(b"ZTEGC0A80301"),
            f"{ZTE_GPON['rx_power']}.{third}": snmp_timeout(),
        },
    )
    recorder = SessionRecorder()
    driver = make_driver(recorder, snmp=snmp, olt=make_target(vendor="zte", snmp_enabled=True))

    onus = await driver.discover_once()

    assert [onu.pon_serial for onu in onus] == ["ZTEGC0A80101", "UNKNOWN_1/2/3_2", "ZTEGC0A80301"]
    assert onus[0].model_dump(exclude={"onu_type"}) == {
        "pon_serial": "ZTEGC0A80101",
        "pon_port": "1/2/3",
        "onu_id": 1,
        "mac_address": "AA:BB:CC:00:00:01",
        "signal_rx": -21.5,
        "signal_tx": 2.3,
        "status": "online",
        "distance": 1200,
    }
    assert onus[1].status == "offline"
    assert onus[2].pon_port == "1/2/4"
    assert onus[2].signal_rx is None
    assert driver.partial_failures == 1
    assert recorder.sessions == []


async def test_get_onu_detail_normalizes_port_and_adds_power():
    recorder = SessionRecorder(telnet_responses())
    driver = make_driver(recorder)

    detail = await driver.get_onu_detail("2/1", 1)

    assert detail.name == "cust-0001"
    assert detail.signal_rx == -20.68
    assert detail.signal_tx == 2.22
    assert recorder.sessions[0].closed is True


async def test_get_onu_detail_unknown_onu():
    recorder = SessionRecorder(telnet_responses())

    with pytest.raises(OltProtocolError):
        await make_driver(recorder).get_onu_detail("1/2/9", 7)
