from sqlalchemy.orm import Session
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional
import logging

from .models import DssRecommendation, DssOverride
from .schemas import OverrideCreate, RecommendationRecord, OverrideRecord

logger = logging.getLogger(__name__)

def upsert_recommendations(db: Session, recommendations: List[Any]) -> Dict[str, int]:
    """
    Store a batch of recommendations keyed by ``trainId``. Fields of an
    existing record are merged with the incoming ones; records without a
    ``trainId`` are skipped. The batch is committed once.
    """
    stored = 0
    skipped = 0
    pending: Dict[str, DssRecommendation] = {}
    received_at = datetime.now(timezone.utc)

    for rec in recommendations:
        if not isinstance(rec, dict) or not rec.get("trainId"):
            logger.warning(f"Skipping recommendation with missing trainId: {rec}")
            skipped += 1
            continue

        train_id = str(rec["trainId"])
        data = {**rec, "trainId": train_id, "timestamp": received_at.isoformat()}

        recommendation = pending.get(train_id)
        if recommendation is None:
            recommendation = db.query(DssRecommendation).filter(DssRecommendation.train_id == train_id).first()

        if recommendation is None:
            recommendation = DssRecommendation(train_id=train_id, payload=data)
            db.add(recommendation)
        else:
            # New dict so the JSON column is flagged dirty
            recommendation.payload = {**(recommendation.payload or {}), **data}

        recommendation.action = recommendation.payload.get("action")
        recommendation.reason = recommendation.payload.get("reason")
        recommendation.updated_at = received_at
        pending[train_id] = recommendation
        stored += 1

    db.commit()
    return {"stored": stored, "skipped": skipped}

def _recommendation_record(rec: DssRecommendation) -> RecommendationRecord:
    return RecommendationRecord(
        train_id=rec.train_id,
        action=rec.action,
        reason=rec.reason,
        payload=rec.payload or {},
        updated_at=rec.updated_at
    )

def list_recommendations(db: Session) -> List[RecommendationRecord]:
    rows = db.query(DssRecommendation).order_by(DssRecommendation.train_id).all()
    return [_recommendation_record(r) for r in rows]

def get_recommendation(db: Session, train_id: str) -> Optional[RecommendationRecord]:
    rec = db.query(DssRecommendation).filter(DssRecommendation.train_id == train_id).first()
    return _recommendation_record(rec) if rec else None

def _override_record(row: DssOverride) -> OverrideRecord:
    return OverrideRecord(
        id=row.id,
        train_id=row.train_id,
        overridden_action=row.overridden_action,
        new_action=row.new_action,
        reason=row.reason,
        controller_id=row.controller_id,
        created_at=row.created_at
    )

def create_override(db: Session, override: OverrideCreate) -> OverrideRecord:
    row = DssOverride(
        train_id=override.train_id,
        overridden_action=override.overridden_action,
        new_action=override.new_action,
        reason=override.reason or "No reason provided.",
        controller_id=override.controller_id,
        created_at=datetime.now(timezone.utc)
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return _override_record(row)

def list_overrides(db: Session, train_id: Optional[str] = None) -> List[OverrideRecord]:
    query = db.query(DssOverride)
    if train_id:
        query = query.filter(DssOverride.train_id == train_id)
    return [_override_record(r) for r in query.order_by(DssOverride.id).all()]
