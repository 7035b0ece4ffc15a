"""Audit service for security and data-change events"""

from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.models.user import AuditLog


class AuditAction:
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    TOKEN_REFRESH = "TOKEN_REFRESH"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    PASSWORD_RESET = "PASSWORD_RESET"
    IMPERSONATE = "IMPERSONATE"
    STOP_IMPERSONATION = "STOP_IMPERSONATION"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class AuditService:
    """Service for audit logging"""

    async def log_event(
        self,
        db: AsyncSession,
        action: str,
        success: bool = True,
        user_id: str | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
        old_values: dict | None = None,
        new_values: dict | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        commit: bool = True,
    ) -> AuditLog:
        """
        Log an audit event

        Args:
            db: Database session
            action: Action name (LOGIN, LOGIN_FAILED, UPDATE, ...)
            success: Whether the action succeeded
            user_id: Acting user (if known)
            entity_type: Type of the affected entity
            entity_id: Id of the affected entity
            old_values: Values before the change
            new_values: Values after the change
            ip_address: Client IP address
            user_agent: Client user agent
            commit: Commit immediately so the entry survives a later rollback

        Returns:
            Created AuditLog record
        """
        audit_log = AuditLog(
            user_id=user_id,
            action=action,
            success=success,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        db.add(audit_log)
        if commit:
            await db.commit()

        # Also log to application logs
        log_level = logger.info if success else logger.warning
        log_level(
            f"Audit: {action} - {'SUCCESS' if success else 'FAILED'}",
            extra={
                "action": action,
                "success": success,
                "user_id": user_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "ip_address": ip_address,
            },
        )

        return audit_log


# Global instance
audit_service = AuditService()
