from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from olt_manager.db.session import Base


class DiscoveryRun(Base):
    __tablename__ = "discovery_runs"

    id = Column(Integer, primary_key=True, index=True)
    olt_id = Column(Integer, ForeignKey("olts.id", ondelete="CASCADE"), nullable=False, unique=True)
    status = Column(String, nullable=False)  # running, stopped, error
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    last_run_at = Column(DateTime, nullable=True)
    error_message = Column(String, nullable=True)
    discovered_count = Column(Integer, nullable=False, default=0)
    updated_count = Column(Integer, nullable=False, default=0)
    skipped_count = Column(Integer, nullable=False, default=0)
