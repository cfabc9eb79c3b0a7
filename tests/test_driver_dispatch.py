import pytest

from olt_manager.schemas.onu import DiscoveredOnu, OnuDetail
from olt_manager.services.olt import OltDriverFactory, Vendor
from olt_manager.services.olt.exceptions import (
    OltConfigurationError,
    OltConnectionError,
    OltUnsupportedError,
    SnmpRequestError,
)
from olt_manager.services.olt.interface import OltDriver
from olt_manager.services.olt.vendors.hioso import HiosoDriver
from olt_manager.services.olt.vendors.zte import ZteDriver

from conftest import FakeSnmpClient, make_target


def onu(serial: str) -> DiscoveredOnu:
    return DiscoveredOnu(pon_serial=serial, pon_port="1/1/1", onu_id=int(serial[-1]))


class StubDriver(OltDriver):
    vendor = Vendor.ZTE

    def __init__(self, olt, snmp_result=None, snmp_error=None, telnet_batches=(), telnet_error=None, **kwargs):
        super().__init__(olt, **kwargs)
        self.snmp_result = snmp_result or []
        self.snmp_error = snmp_error
        self.telnet_batches = list(telnet_batches)
        self.telnet_error = telnet_error
        self.snmp_calls = 0
        self.telnet_calls = 0

    async def prepare_session(self, session):
        pass

    async def discover_snmp(self):
        self.snmp_calls += 1
        if self.snmp_error:
            raise self.snmp_error
        return self.snmp_result

    async def discover_telnet(self):
        self.telnet_calls += 1
        for batch in self.telnet_batches:
            yield batch
        if self.telnet_error:
            raise self.telnet_error

    async def get_onu_detail(self, pon_port, onu_id):
        return OnuDetail()


async def test_snmp_disabled_never_touches_snmp():
    snmp = FakeSnmpClient()
    driver = StubDriver(make_target(snmp_enabled=False), snmp_client=snmp, telnet_batches=[[onu("T1")]])

    result = await driver.discover_once()

    assert [o.pon_serial for o in result] == ["T1"]
    assert driver.snmp_calls == 0
    assert snmp.calls == []


async def test_snmp_success_is_chunked_into_batches():
    driver = StubDriver(
        make_target(snmp_enabled=True),
        snmp_result=[onu(f"S{i}") for i in range(5)],
        batch_size=2,
    )

    batches = [batch async for batch in driver.discover()]

    assert [len(b) for b in batches] == [2, 2, 1]
    assert driver.telnet_calls == 0


async def test_snmp_failure_falls_back_to_telnet():
    driver = StubDriver(
        make_target(snmp_enabled=True, telnet_enabled=True),
        snmp_error=SnmpRequestError("timeout"),
        telnet_batches=[[onu("T1"), onu("T2")]],
    )

    result = await driver.discover_once()

    assert [o.pon_serial for o in result] == ["T1", "T2"]
    assert driver.snmp_calls == 1
    assert driver.telnet_calls == 1


async def test_snmp_failure_without_telnet_is_connection_error():
    driver = StubDriver(
        make_target(snmp_enabled=True, telnet_enabled=False),
        snmp_error=SnmpRequestError("timeout"),
    )

    with pytest.raises(OltConnectionError) as exc_info:
        await driver.discover_once()

    assert "fallback is disabled" in str(exc_info.value)
    assert driver.telnet_calls == 0


async def test_both_protocols_failing_reports_both():
    driver = StubDriver(
        make_target(snmp_enabled=True, telnet_enabled=True),
        snmp_error=SnmpRequestError("snmp timeout"),
        telnet_error=OltConnectionError("telnet refused"),
    )

    with pytest.raises(OltConnectionError) as exc_info:
        await driver.discover_once()

    message = str(exc_info.value)
    assert "snmp timeout" in message
    assert "telnet refused" in message


async def test_no_protocol_enabled_is_configuration_error():
    driver = StubDriver(make_target(snmp_enabled=False, telnet_enabled=False))

    with pytest.raises(OltConfigurationError):
        await driver.discover_once()


async def test_discover_once_calls_sync_and_async_callbacks():
    driver = StubDriver(make_target(), telnet_batches=[[onu("T1")], [onu("T2")]])
    seen = []

    async def on_batch(batch):
        seen.extend(o.pon_serial for o in batch)

    await driver.discover_once(on_batch)
    await driver.discover_once(lambda batch: seen.append(len(batch)))

    assert seen == ["T1", "T2", 1, 1]


def test_factory_resolves_vendor_once():
    factory = OltDriverFactory(snmp_client=FakeSnmpClient())

    assert isinstance(factory(make_target(vendor="ZTE C320")), ZteDriver)
    assert isinstance(factory.get_driver(make_target(vendor="hioso")), HiosoDriver)
    assert factory.get_supported_vendors() == ["zte", "hioso"]


def test_factory_rejects_unknown_vendor():
    with pytest.raises(OltUnsupportedError):
        OltDriverFactory(snmp_client=FakeSnmpClient()).get_driver(make_target(vendor="huawei"))


def test_factory_overrides_driver_arguments():
    factory = OltDriverFactory(snmp_client=FakeSnmpClient(), batch_size=7, pool_size=2)

    driver = factory(make_target(vendor="zte"))

    assert driver.batch_size == 7
    assert driver.pool_size == 2


def test_factory_drops_zte_only_arguments_for_hioso():
    factory = OltDriverFactory(snmp_client=FakeSnmpClient(), pool_size=2)

    driver = factory(make_target(vendor="hioso"))

    assert isinstance(driver, HiosoDriver)
    assert not hasattr(driver, "pool_size")
