"""
ONU 콘텐츠 지문

discovery 결과 중 변할 수 있는 필드만 정규화된 JSON 으로 직렬화해 SHA-256 을 계산합니다.
저장된 지문과 같으면 쓰기를 건너뜁니다.
"""
import hashlib
import json
from collections.abc import Mapping
from typing import Any

FINGERPRINT_FIELDS = (
    "pon_serial",
    "mac_address",
    "pon_port",
    "onu_id",
    "status",
    "signal_rx",
    "signal_tx",
)


def _normalize(value: Any) -> str:
    return "" if value is None else str(value)


def compute_fingerprint(onu: Any) -> str:
    """DiscoveredOnu 또는 dict 의 지문 (hex)"""
    if isinstance(onu, Mapping):
        values = {field: _normalize(onu.get(field)) for field in FINGERPRINT_FIELDS}
    else:
        values = {field: _normalize(getattr(onu, field, None)) for field in FINGERPRINT_FIELDS}
    canonical = json.dumps(values, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
