from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from datetime import datetime, timezone
from .database import Base

def _utcnow():
    return datetime.now(timezone.utc)

class DssRecommendation(Base):
    """Latest externally computed recommendation per train, keyed by train number"""
    __tablename__ = "dss_recommendations"

    id = Column(Integer, primary_key=True, index=True)
    train_id = Column(String(20), unique=True, index=True, nullable=False)
    action = Column(String(50))  # Hold, Proceed, Reroute, ...
    reason = Column(Text)
    payload = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

class DssOverride(Base):
    __tablename__ = "dss_overrides"

    id = Column(Integer, primary_key=True, index=True)
    train_id = Column(String(20), index=True, nullable=False)
    overridden_action = Column(String(50), nullable=False)
    new_action = Column(String(50), nullable=False)
    reason = Column(Text, nullable=False)
    controller_id = Column(String(50), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
