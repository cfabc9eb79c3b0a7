# olt_manager/services/olt/detail_parser.py
"""
`show gpon onu detail-info` / `show pon power attenuation` 응답 파서

detail-info 응답은 "라벨: 값" 형태의 줄들과, 그 아래 인증/오프라인 이력 테이블로
구성됩니다. 이력 테이블의 각 행은 `index, authpass-time, offline-time, cause` 이며
장비는 "시각 없음"을 센티널 날짜(기본 0000-00-00 ...)로 채워 보냅니다.
"""
import re
from datetime import datetime
from typing import Optional, Pattern, Tuple, Union

from olt_manager.schemas.onu import OnuDetail

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_SENTINEL = r"^0000-00-00"

# 라벨(소문자) -> OnuDetail 필드
DETAIL_LABELS = {
    "name": "name",
    "type": "onu_type",
    "state": "state",
    "admin state": "admin_state",
    "phase state": "phase_state",
    "config state": "config_state",
    "authentication mode": "authentication_mode",
    "sn bind": "sn_bind",
    "serial number": "serial_number",
    "description": "description",
    "vport mode": "vport_mode",
    "dba mode": "dba_mode",
    "fec": "fec",
    "online duration": "online_duration",
    "current channel": "current_channel",
    "line profile": "line_profile",
    "service profile": "service_profile",
    "onu distance": "distance",
}

_LABEL_LINE = re.compile(r"^\s*([A-Za-z][A-Za-z0-9 +/\-]*?)\s*:\s*(.*?)\s*$")
_HISTORY_ROW = re.compile(
    r"^\s*(\d+)\s+(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2})\s+(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2})\s*(.*?)\s*$"
)
_DISTANCE = re.compile(r"(\d+)\s*m?\b")
_DBM = r"(-?\d+(?:\.\d+)?)\s*\(?dbm\)?"
_ATTENUATION_UP = re.compile(r"^\s*up\b.*?Tx\s*:\s*" + _DBM, re.IGNORECASE)
_ATTENUATION_DOWN = re.compile(r"^\s*down\b.*?Rx\s*:\s*" + _DBM, re.IGNORECASE)


def parse_distance(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    m = _DISTANCE.search(value)
    return int(m.group(1)) if m else None


def parse_timestamp(value: str, sentinel: Pattern) -> Optional[datetime]:
    value = " ".join(value.split())
    if sentinel.search(value):
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def parse_onu_detail(text: str, sentinel: Union[str, Pattern] = DEFAULT_SENTINEL) -> OnuDetail:
    """detail-info 응답 한 건을 OnuDetail 로 변환합니다.

    Args:
        text: 장비가 돌려준 원문
        sentinel: "시각 없음"을 나타내는 정규식. 매칭되는 시각은 무시됩니다.

    이력 테이블에서는 센티널이 아닌 마지막 인증 시각과 마지막 오프라인 시각만 남기며,
    last_down_cause 는 마지막 실제 오프라인 시각이 있는 행의 원인입니다.
    """
    if isinstance(sentinel, str):
        sentinel = re.compile(sentinel)

    fields: dict = {}
    last_auth: Optional[datetime] = None
    last_offline: Optional[datetime] = None
    last_cause: Optional[str] = None

    for line in text.splitlines():
        row = _HISTORY_ROW.match(line)
        if row:
            auth_time = parse_timestamp(row.group(2), sentinel)
            offline_time = parse_timestamp(row.group(3), sentinel)
            if auth_time:
                last_auth = auth_time
            if offline_time:
                last_offline = offline_time
                last_cause = row.group(4) or None
            continue

        m = _LABEL_LINE.match(line)
        if not m:
            continue
        field = DETAIL_LABELS.get(m.group(1).strip().lower())
        if not field or field in fields:
            continue
        value = m.group(2)
        if not value:
            continue
        fields[field] = parse_distance(value) if field == "distance" else value

    return OnuDetail(
        **fields,
        last_authpass_time=last_auth,
        last_offline_time=last_offline,
        last_down_cause=last_cause,
        details_raw_output=text,
    )


def parse_power_attenuation(text: str) -> Tuple[Optional[float], Optional[float]]:
    """ONU 측 (rx, tx) dBm. rx 는 down 행의 ONU Rx, tx 는 up 행의 ONU Tx."""
    rx = tx = None
    for line in text.splitlines():
        up = _ATTENUATION_UP.match(line)
        if up:
            tx = float(up.group(1))
            continue
        down = _ATTENUATION_DOWN.match(line)
        if down:
            rx = float(down.group(1))
    return rx, tx
