"""
Audit logging for authentication and inventory-changing events.

Entries are single-line JSON on the "audit" logger so they can be shipped
to centralized logging. Passwords and tokens are never logged.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pharmadesk.models.user import User

audit_logger = logging.getLogger("audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """Central audit logging."""

    @staticmethod
    def log_authentication(
        action: str,  # "login", "logout", "register", "failed_login"
        email: str,
        ip_address: str,
        success: bool,
        reason: str = "",
    ):
        """
        Usage:
            AuditLog.log_authentication("login", "user@example.com", "192.168.1.1", True)
            AuditLog.log_authentication("failed_login", "user@example.com", "192.168.1.1", False, reason="Invalid password")
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"auth.{action}",
            "email": email,
            "ip_address": ip_address,
            "success": success,
        }

        if reason and not success:
            log_entry["reason"] = reason

        if success:
            audit_logger.info(json.dumps(log_entry))
        else:
            audit_logger.warning(json.dumps(log_entry))

    @staticmethod
    def log_action(
        action: str,  # "create", "update", "receive", "record"
        resource_type: str,  # "sale", "stock", "medicine", "supplier"
        resource_id: int,
        user: Optional[User] = None,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Usage:
            AuditLog.log_action("record", "sale", 12, current_user, changes={"total_amount": "240.00"})
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"{resource_type}.{action}",
            "user_id": user.id if user else None,
            "user_email": user.email if user else None,
            "resource_id": resource_id,
        }

        if changes:
            log_entry["changes"] = changes

        audit_logger.info(json.dumps(log_entry, default=str))

    @staticmethod
    def log_partial_write(
        resource_type: str,
        resource_id: int,
        failed_step: str,
        error: str,
        user: Optional[User] = None,
    ):
        """
        A multi-step write stopped part way. Earlier steps stay committed.

        Usage:
            AuditLog.log_partial_write("sale", 12, "stock_deduction", "Could not fully deduct Paracetamol. Remaining: 3")
        """
        log_entry = {
            "timestamp": _now(),
            "event_severity": "WARNING",
            "event_type": f"{resource_type}.partial_write",
            "resource_id": resource_id,
            "failed_step": failed_step,
            "error": error,
            "user_id": user.id if user else None,
        }

        audit_logger.warning(json.dumps(log_entry))

    @staticmethod
    def log_security_event(
        event_type: str,  # "password_changed", "email_changed", "avatar_updated"
        user_id: int,
        details: Optional[str] = None,
    ):
        log_entry = {
            "timestamp": _now(),
            "event_type": f"security.{event_type}",
            "user_id": user_id,
        }

        if details:
            log_entry["details"] = details

        audit_logger.info(json.dumps(log_entry))
