from pydantic import BaseModel
from typing import Literal, Optional
from datetime import datetime

OnuStatus = Literal["online", "offline"]


class DiscoveredOnu(BaseModel):
    """한 번의 discovery 사이클에서 만들어지는 ONU 레코드 (생성 후 변경 불가)"""
    pon_serial: str
    pon_port: str
    onu_id: Optional[int] = None
    mac_address: Optional[str] = None
    signal_rx: Optional[float] = None
    signal_tx: Optional[float] = None
    status: OnuStatus = "offline"
    distance: Optional[int] = None
    onu_type: Optional[str] = None

    class Config:
        frozen = True


class OnuDetail(BaseModel):
    """`show gpon onu detail-info` 한 건을 파싱한 결과"""
    name: Optional[str] = None
    onu_type: Optional[str] = None
    description: Optional[str] = None
    state: Optional[str] = None
    admin_state: Optional[str] = None
    phase_state: Optional[str] = None
    config_state: Optional[str] = None
    authentication_mode: Optional[str] = None
    sn_bind: Optional[str] = None
    serial_number: Optional[str] = None
    vport_mode: Optional[str] = None
    dba_mode: Optional[str] = None
    fec: Optional[str] = None
    online_duration: Optional[str] = None
    current_channel: Optional[str] = None
    line_profile: Optional[str] = None
    service_profile: Optional[str] = None
    distance: Optional[int] = None
    mac_address: Optional[str] = None
    signal_rx: Optional[float] = None
    signal_tx: Optional[float] = None
    last_authpass_time: Optional[datetime] = None
    last_offline_time: Optional[datetime] = None
    last_down_cause: Optional[str] = None
    details_raw_output: Optional[str] = None


class Onu(BaseModel):
    id: int
    olt_id: int
    pon_serial: str
    pon_port: str
    onu_id: Optional[int] = None
    mac_address: Optional[str] = None
    signal_rx: Optional[float] = None
    signal_tx: Optional[float] = None
    status: str
    distance: Optional[int] = None
    onu_type: Optional[str] = None
    data_hash: Optional[str] = None
    last_online: Optional[datetime] = None
    name: Optional[str] = None
    description: Optional[str] = None
    state: Optional[str] = None
    admin_state: Optional[str] = None
    phase_state: Optional[str] = None
    config_state: Optional[str] = None
    authentication_mode: Optional[str] = None
    sn_bind: Optional[str] = None
    serial_number: Optional[str] = None
    vport_mode: Optional[str] = None
    dba_mode: Optional[str] = None
    fec: Optional[str] = None
    online_duration: Optional[str] = None
    current_channel: Optional[str] = None
    line_profile: Optional[str] = None
    service_profile: Optional[str] = None
    last_authpass_time: Optional[datetime] = None
    last_offline_time: Optional[datetime] = None
    last_down_cause: Optional[str] = None
    details_updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
