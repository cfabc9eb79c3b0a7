from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import Column, Integer, String, DateTime, Float, Text, ForeignKey
from olt_manager.db.session import Base


def _now():
    return datetime.now(ZoneInfo("Asia/Seoul")).replace(tzinfo=None)


class Onu(Base):
    __tablename__ = "onus"

    id = Column(Integer, primary_key=True, index=True)
    olt_id = Column(Integer, ForeignKey("olts.id", ondelete="CASCADE"), nullable=False, index=True)

    # discovery로 채워지는 컬럼
    pon_serial = Column(String, nullable=False, unique=True, index=True)
    pon_port = Column(String, nullable=False)
    onu_id = Column(Integer, nullable=True)
    mac_address = Column(String, nullable=True)
    signal_rx = Column(Float, nullable=True)
    signal_tx = Column(Float, nullable=True)
    status = Column(String, nullable=False, default="offline")  # online, offline
    distance = Column(Integer, nullable=True)
    onu_type = Column(String, nullable=True)
    data_hash = Column(String(64), nullable=True)
    last_online = Column(DateTime, nullable=True)

    # enrichment(detail-info)로 채워지는 컬럼
    name = Column(String, nullable=True)
    description = Column(String, nullable=True)
    state = Column(String, nullable=True)
    admin_state = Column(String, nullable=True)
    phase_state = Column(String, nullable=True)
    config_state = Column(String, nullable=True)
    authentication_mode = Column(String, nullable=True)
    sn_bind = Column(String, nullable=True)
    serial_number = Column(String, nullable=True)
    vport_mode = Column(String, nullable=True)
    dba_mode = Column(String, nullable=True)
    fec = Column(String, nullable=True)
    online_duration = Column(String, nullable=True)
    current_channel = Column(String, nullable=True)
    line_profile = Column(String, nullable=True)
    service_profile = Column(String, nullable=True)
    last_authpass_time = Column(DateTime, nullable=True)
    last_offline_time = Column(DateTime, nullable=True)
    last_down_cause = Column(String, nullable=True)
    details_raw_output = Column(Text, nullable=True)
    details_updated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)
