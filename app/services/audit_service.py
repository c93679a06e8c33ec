"""
Audit trail for orders, payments, catalog and settings changes.

Entries are added to the caller's session and never committed here: they
persist or vanish together with the change they describe.
"""
import json
import logging
from datetime import datetime

from app.models.audit_log import AuditAction, AuditLog

logger = logging.getLogger(__name__)


def _encode_details(details):
    if not details:
        return None
    return json.dumps(details, default=str, ensure_ascii=False, sort_keys=True)


def log_action(session, action: AuditAction, description: str = None, details: dict = None,
               customer_id: int = None, order_id: int = None) -> AuditLog:
    """Stage an audit entry; ``details`` is stored as JSON text."""
    entry = AuditLog(
        action=action,
        description=(description or action.value)[:255],
        details=_encode_details(details),
        customer_id=customer_id,
        order_id=order_id,
        created_at=datetime.utcnow(),
    )
    session.add(entry)
    logger.info(f"[AUDIT] {action.value} order={order_id} customer={customer_id}")
    return entry
