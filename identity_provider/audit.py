"""
Audit logging for the token endpoint. Security-relevant events only; no tokens,
secrets, or full request bodies. GET /audit lists recent events.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from identity_provider.database import get_db
from identity_provider.models import AuditLog

EVENT_TOKEN_ISSUED = "token_issued"
EVENT_TOKEN_DENIED = "token_denied"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"

_MAX_LIMIT = 500


def log_audit(
    db: Session,
    event_type: str,
    *,
    client_id: str | None = None,
    subject: str | None = None,
    audience: str | None = None,
    outcome: str = OUTCOME_SUCCESS,
    reason: str | None = None,
) -> None:
    """Append one audit record."""
    db.add(
        AuditLog(
            event_type=event_type,
            client_id=client_id,
            subject=subject,
            audience=audience,
            outcome=outcome,
            reason=reason,
        )
    )
    db.commit()


router = APIRouter(tags=["audit"])


def query_audit_logs(
    db: Session,
    *,
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
    client_id: str | None = None,
) -> list[dict]:
    """Most recent first; empty-string filters mean 'all'."""
    q = db.query(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    if event_type:
        q = q.filter(AuditLog.event_type == event_type)
    if outcome:
        q = q.filter(AuditLog.outcome == outcome)
    if client_id:
        q = q.filter(AuditLog.client_id == client_id)
    rows = q.limit(min(max(1, limit), _MAX_LIMIT)).all()
    return [
        {
            "created_at": r.created_at.isoformat() if r.created_at else None,
            "event_type": r.event_type,
            "client_id": r.client_id,
            "subject": r.subject,
            "audience": r.audience,
            "outcome": r.outcome,
            "reason": r.reason,
        }
        for r in rows
    ]


@router.get("/audit")
def list_audit_logs(
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
    client_id: str | None = None,
    db: Session = Depends(get_db),
):
    """List recent token endpoint events (lab use)."""
    return query_audit_logs(db, limit=limit, event_type=event_type, outcome=outcome, client_id=client_id)
