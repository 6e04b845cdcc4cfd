"""ORM-level append-only enforcement for the approval history.

Approval entries are written once, at transition time, and never edited or
removed. SQLAlchemy fires ``before_update``/``before_delete`` before any SQL
reaches the database, so raising there aborts the flush and the enclosing
transaction.

Called once at startup:

    from civicfix.db.immutability import register_immutability_listeners
    register_immutability_listeners()
"""

from __future__ import annotations

import logging

from sqlalchemy import event

logger = logging.getLogger("civicfix.db.immutability")


class ImmutableRecordError(Exception):
    """Raised when code tries to modify or delete an append-only row."""


def _check_approval_entry_update(mapper, connection, target):
    raise ImmutableRecordError(
        f"approval entry {target.id} of report {target.report_id} is immutable"
    )


def _check_approval_entry_delete(mapper, connection, target):
    raise ImmutableRecordError(
        f"approval entry {target.id} of report {target.report_id} cannot be deleted"
    )


def register_immutability_listeners() -> None:
    from civicfix.db.models.approval_entry import ApprovalEntry

    if not event.contains(ApprovalEntry, "before_update", _check_approval_entry_update):
        event.listen(ApprovalEntry, "before_update", _check_approval_entry_update)
    if not event.contains(ApprovalEntry, "before_delete", _check_approval_entry_delete):
        event.listen(ApprovalEntry, "before_delete", _check_approval_entry_delete)
    logger.debug("immutability listeners registered")


def unregister_immutability_listeners() -> None:
    """Remove the listeners. Tests only."""
    from civicfix.db.models.approval_entry import ApprovalEntry

    if event.contains(ApprovalEntry, "before_update", _check_approval_entry_update):
        event.remove(ApprovalEntry, "before_update", _check_approval_entry_update)
    if event.contains(ApprovalEntry, "before_delete", _check_approval_entry_delete):
        event.remove(ApprovalEntry, "before_delete", _check_approval_entry_delete)
