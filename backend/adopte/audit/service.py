"""Audit log writer."""

from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from ..rate_limit import get_client_ip
from .models import AuditLog


def audit(db: Session, request: Request, action: str, detail: str = "", user_id: UUID | None = None) -> None:
    """Queue an audit entry on *db*; committed with the caller's transaction."""
    db.add(
        AuditLog(
            user_id=user_id,
            action=action,
            detail=detail,
            ip_address=get_client_ip(request)[:45],
            request_id=getattr(request.state, "request_id", "") or "",
        )
    )
