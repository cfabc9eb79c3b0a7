from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from olt_manager.db.session import Base


def _now():
    return datetime.now(ZoneInfo("Asia/Seoul")).replace(tzinfo=None)


class Olt(Base):
    __tablename__ = "olts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False, unique=True)
    vendor = Column(String, nullable=False)  # e.g., zte, hioso
    model = Column(String, nullable=True)
    description = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    ip_address = Column(String, nullable=False, unique=True)

    telnet_enabled = Column(Boolean, nullable=False, default=True)
    telnet_port = Column(Integer, nullable=False, default=23)
    telnet_username = Column(String, nullable=True)
    telnet_password = Column(String, nullable=True)  # Fernet 암호화
    enable_password = Column(String, nullable=True)  # Fernet 암호화

    snmp_enabled = Column(Boolean, nullable=False, default=False)
    snmp_port = Column(Integer, nullable=False, default=161)
    snmp_community = Column(String, nullable=True)

    # 물리 용량: 슬롯 수 x 슬롯당 PON 포트 수
    total_pon_slots = Column(Integer, nullable=True)
    ports_per_slot = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)
