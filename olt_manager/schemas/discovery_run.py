from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class DiscoveryRun(BaseModel):
    olt_id: int
    status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    error_message: Optional[str] = None
    discovered_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0

    class Config:
        from_attributes = True
