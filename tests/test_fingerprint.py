from olt_manager.schemas.onu import DiscoveredOnu
from olt_manager.services.discovery.fingerprint import compute_fingerprint


def make_onu(**overrides):
    data = dict(
        pon_serial="ZTEGC0A80101",
        pon_port="1/2/1",
        onu_id=1,
        mac_address="AA:BB:CC:00:00:01",
        signal_rx=-20.68,
        signal_tx=2.22,
        status="online",
    )
    data.update(overrides)
    return DiscoveredOnu(**data)


def test_same_content_same_fingerprint():
    assert compute_fingerprint(make_onu()) == compute_fingerprint(make_onu())


def test_model_and_mapping_agree():
    onu = make_onu()

    assert compute_fingerprint(onu) == compute_fingerprint(onu.model_dump())


def test_tracked_field_change_changes_fingerprint():
    base = compute_fingerprint(make_onu())

    assert compute_fingerprint(make_onu(signal_rx=-21.0)) != base
    assert compute_fingerprint(make_onu(status="offline")) != base
    assert compute_fingerprint(make_onu(pon_port="1/2/2")) != base


def test_untracked_fields_do_not_matter():
    base = compute_fingerprint(make_onu())

    assert compute_fingerprint(make_onu(distance=1200, onu_type="ZTE-F660")) == base


def test_missing_values_are_normalized():
    fingerprint = compute_fingerprint({"pon_serial": "X", "pon_port": "1/1", "status": "offline"})

    assert fingerprint == compute_fingerprint(
        {"pon_serial": "X", "pon_port": "1/1", "status": "offline", "mac_address": None, "onu_id": None}
    )
    assert len(fingerprint) == 64
