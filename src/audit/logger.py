"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of registrations, logins and record entry
2. Visibility into quote services that stop answering
3. A history the user can look back through

The audit logger:
- Is async to match the storage layer
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, if configured (for the user-visible history)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_user_registered(self, user_id: int, email: str) -> None:
        await self.log(AuditEventBuilder.user_registered(user_id=user_id, email=email))

    async def log_registration_rejected(self, email: str, reason: str) -> None:
        await self.log(AuditEventBuilder.registration_rejected(email=email, reason=reason))

    async def log_login_succeeded(self, user_id: int, email: str) -> None:
        await self.log(AuditEventBuilder.login_succeeded(user_id=user_id, email=email))

    async def log_login_failed(self, email: str) -> None:
        await self.log(AuditEventBuilder.login_failed(email=email))

    async def log_logout(self, user_id: int) -> None:
        await self.log(AuditEventBuilder.logout(user_id=user_id))

    async def log_transaction_added(
        self,
        transaction_id: int,
        user_id: int,
        transaction_type: str,
        amount: str,
        category: str,
    ) -> None:
        """Log a stored transaction."""
        event = AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            user_id=user_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
        )
        await self.log(event)

    async def log_holding_added(
        self,
        holding_id: int,
        user_id: int,
        symbol: str,
        quantity: str,
        purchase_price: str,
    ) -> None:
        """Log a stored holding."""
        event = AuditEventBuilder.holding_added(
            holding_id=holding_id,
            user_id=user_id,
            symbol=symbol,
            quantity=quantity,
            purchase_price=purchase_price,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
        user_id: Optional[int] = None,
    ) -> None:
        """Log rejected input."""
        event = AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            issues=issues,
            user_id=user_id,
        )
        await self.log(event)

    async def log_prices_refreshed(
        self,
        requested: int,
        resolved: int,
        correlation_id: UUID,
        user_id: Optional[int] = None,
    ) -> None:
        event = AuditEventBuilder.prices_refreshed(
            requested=requested,
            resolved=resolved,
            correlation_id=correlation_id,
            user_id=user_id,
        )
        await self.log(event)

    async def log_price_unavailable(
        self,
        symbol: str,
        asset_type: str,
        correlation_id: UUID,
        user_id: Optional[int] = None,
    ) -> None:
        event = AuditEventBuilder.price_unavailable(
            symbol=symbol,
            asset_type=asset_type,
            correlation_id=correlation_id,
            user_id=user_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
        user_id: Optional[int] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
            user_id=user_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step action (e.g., a portfolio
    refresh) and pass it through all subsequent operations.
    """
    return uuid4()
