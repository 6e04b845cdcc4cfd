from __future__ import annotations

import json
from typing import Any

from sqlalchemy.orm import Session

from civicfix.db.models.report_audit_log import ReportAuditLog


def _dump(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, str):
        return v
    try:
        return json.dumps(v, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(v)


def add_report_audit_log(
    db: Session,
    *,
    report_id: int,
    actor_id: int,
    action: str,
    field: str = "",
    before: Any = None,
    after: Any = None,
    comment: str = "",
) -> None:
    """Add a report audit log record to the current transaction."""
    db.add(
        ReportAuditLog(
            report_id=int(report_id),
            actor_id=int(actor_id),
            action=(action or "").strip().lower(),
            field=(field or "").strip(),
            before_json=_dump(before),
            after_json=_dump(after),
            comment=(comment or "").strip(),
        )
    )
