from pydantic import BaseModel
from typing import Optional
from datetime import datetime

# Base schema for OLT attributes
class OltBase(BaseModel):
    name: str
    vendor: str
    ip_address: str
    model: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    telnet_enabled: bool = True
    telnet_port: int = 23
    telnet_username: Optional[str] = None
    snmp_enabled: bool = False
    snmp_port: int = 161
    snmp_community: Optional[str] = None
    total_pon_slots: Optional[int] = None
    ports_per_slot: Optional[int] = None

# Schema for creating a new OLT
class OltCreate(OltBase):
    telnet_password: Optional[str] = None
    telnet_password_confirm: Optional[str] = None
    enable_password: Optional[str] = None

# Schema for updating an existing OLT
class OltUpdate(OltBase):
    telnet_password: Optional[str] = None
    telnet_password_confirm: Optional[str] = None
    enable_password: Optional[str] = None

# Schema for reading OLT data (from DB)
class Olt(OltBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OltTarget(BaseModel):
    """드라이버에 전달되는 접속 정보 스냅샷 (복호화된 비밀번호 포함)

    레지스트리 행에서 한 번 만들어지며 discovery 코어에서는 읽기 전용입니다.
    """
    id: int
    name: str
    vendor: str
    ip_address: str
    is_active: bool = True
    telnet_enabled: bool = True
    telnet_port: int = 23
    telnet_username: Optional[str] = None
    telnet_password: Optional[str] = None
    enable_password: Optional[str] = None
    snmp_enabled: bool = False
    snmp_port: int = 161
    snmp_community: Optional[str] = None
    total_pon_slots: Optional[int] = None
    ports_per_slot: Optional[int] = None

    class Config:
        frozen = True
