"""
Main Orchestrator for Personal Finance Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Accounts (register / login / logout → session)
2. Budget (validate → store transaction → totals and category breakdown)
3. Portfolio (validate → store holding → concurrent price lookup → P&L)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every record read or written is scoped to the session's user
- Nothing reaches the store without passing validation
- Price lookups can fail without failing the portfolio view
- Every step is audited

Account failures (duplicate email, wrong password) come back as False,
never as exceptions, so the shell can show a simple message.
"""

import asyncio
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from src.aggregation import summarize_budget, summarize_portfolio
from src.audit import AuditLogger, create_correlation_id
from src.auth import SessionProvider, hash_password, verify_password
from src.auth.session import Session
from src.config import Settings, get_settings
from src.models.records import (
    BudgetSummary,
    CreateHoldingRequest,
    CreateTransactionRequest,
    Holding,
    LoginRequest,
    PortfolioSummary,
    PriceMap,
    RegisterRequest,
    Transaction,
)
from src.services.pricing import PriceLookupService, distinct_symbols
from src.services.storage import (
    AuditStorageInterface,
    DuplicateEmailError,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    JsonFileRecordStore,
    RecordStoreInterface,
    StorageError,
)
from src.validation import RecordValidationError, RecordValidator

logger = structlog.get_logger(__name__)


async def _audit_storage_error(
    audit_logger: Optional[AuditLogger],
    error: StorageError,
    entity_type: str,
    user_id: int,
) -> None:
    logger.error("record_save_failed", entity_type=entity_type, user_id=user_id, error=str(error))
    if audit_logger:
        await audit_logger.log_error(
            error_type=type(error).__name__,
            error_message=str(error),
            details={"entity_type": entity_type},
            user_id=user_id,
        )


class AccountFlow:
    """
    Registration, login and logout.

    Owns no identity state itself; the SessionProvider does.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        sessions: SessionProvider,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._sessions = sessions
        self._audit_logger = audit_logger
        self._app_settings = (settings or get_settings()).app

    @property
    def current_session(self) -> Optional[Session]:
        return self._sessions.current()

    async def register(self, email: str, password: str, name: str) -> bool:
        """
        Create an account and log it in.

        Returns:
            True on success. False if the input is invalid or the
            email is already registered; the store is untouched then.
        """
        try:
            request = RegisterRequest(email=email, password=password, name=name)
        except ValidationError as e:
            await self._reject(email, f"invalid input ({e.error_count()} errors)")
            return False

        if len(request.password) < self._app_settings.min_password_length:
            await self._reject(request.email, "password too short")
            return False

        if await self._store.find_user_by_email(request.email) is not None:
            await self._reject(request.email, "email already registered")
            return False

        password_hash = await asyncio.to_thread(
            hash_password, request.password, self._app_settings.bcrypt_rounds
        )
        try:
            user = await self._store.create_user(request.email, password_hash, request.name)
        except DuplicateEmailError:
            await self._reject(request.email, "email already registered")
            return False

        self._sessions.begin(user)
        if self._audit_logger:
            await self._audit_logger.log_user_registered(user_id=user.id, email=user.email)
        return True

    async def _reject(self, email: str, reason: str) -> None:
        logger.info("registration_rejected", reason=reason)
        if self._audit_logger:
            await self._audit_logger.log_registration_rejected(email=email, reason=reason)

    async def login(self, email: str, password: str) -> bool:
        """
        Log in with email and password.

        Returns:
            True on success, False for unknown email or wrong password.
        """
        try:
            request = LoginRequest(email=email, password=password)
        except ValidationError:
            request = None

        user = await self._store.find_user_by_email(request.email) if request else None
        matched = user is not None and await asyncio.to_thread(
            verify_password, request.password, user.password_hash
        )
        if not matched:
            if self._audit_logger:
                await self._audit_logger.log_login_failed(email=str(email).strip().lower())
            return False

        self._sessions.begin(user)
        if self._audit_logger:
            await self._audit_logger.log_login_succeeded(user_id=user.id, email=user.email)
        return True

    async def logout(self) -> None:
        """End the current session, if any."""
        ended = self._sessions.end()
        if ended and self._audit_logger:
            await self._audit_logger.log_logout(user_id=ended.user_id)


class BudgetFlow:
    """
    Income/expense entry and the budget summary.

    Flow:
    1. Validate → form data to CreateTransactionRequest
    2. Scope    → owner comes from the session, never from the caller
    3. Save     → record store assigns the ID
    4. Summary  → aggregation over the user's transactions
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        sessions: SessionProvider,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._sessions = sessions
        self._app_settings = (settings or get_settings()).app
        self._validator = validator or RecordValidator(self._app_settings)
        self._audit_logger = audit_logger

    @property
    def categories(self) -> list[str]:
        return self._validator.categories

    async def add_transaction(
        self,
        data: Union[CreateTransactionRequest, Mapping[str, Any]],
    ) -> Transaction:
        """
        Validate and store a transaction for the logged-in user.

        Raises:
            NotAuthenticatedError: If nobody is logged in
            RecordValidationError: If the input is invalid
            StorageError: If the record could not be saved
        """
        user_id = self._sessions.require_user_id()

        request, result = self._validator.validate_transaction(data)
        if request is None or not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    entity_type="transaction",
                    issues=result.issues_as_dicts(),
                    user_id=user_id,
                )
            raise RecordValidationError("transaction", result)

        try:
            stored = await self._store.add_transaction(request.to_record(user_id))
        except StorageError as e:
            await _audit_storage_error(self._audit_logger, e, "transaction", user_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_transaction_added(
                transaction_id=stored.id,
                user_id=user_id,
                transaction_type=stored.type.value,
                amount=str(stored.amount),
                category=stored.category,
            )
        return stored

    async def list_transactions(self) -> list[Transaction]:
        return await self._store.list_transactions(self._sessions.require_user_id())

    async def summary(self) -> BudgetSummary:
        """Totals, per-category expenses and the over-budget flag."""
        transactions = await self.list_transactions()
        return summarize_budget(
            transactions,
            self.categories,
            threshold=str(self._app_settings.over_budget_threshold),
        )


class PortfolioFlow:
    """
    Holding entry and the portfolio summary.

    Flow:
    1. Validate → form data to CreateHoldingRequest
    2. Save     → record store assigns the ID
    3. Prices   → one concurrent lookup per distinct symbol
    4. Summary  → value, cost basis, P&L, allocation; missing prices
                  fall back to purchase price
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        sessions: SessionProvider,
        price_service: Optional[PriceLookupService] = None,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self._store = store
        self._sessions = sessions
        self._price_service = price_service or PriceLookupService(settings.prices)
        self._validator = validator or RecordValidator(settings.app)
        self._audit_logger = audit_logger

    async def add_holding(
        self,
        data: Union[CreateHoldingRequest, Mapping[str, Any]],
    ) -> Holding:
        """
        Validate and store a holding for the logged-in user.

        Raises:
            NotAuthenticatedError: If nobody is logged in
            RecordValidationError: If the input is invalid
            StorageError: If the record could not be saved
        """
        user_id = self._sessions.require_user_id()

        request, result = self._validator.validate_holding(data)
        if request is None or not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    entity_type="holding",
                    issues=result.issues_as_dicts(),
                    user_id=user_id,
                )
            raise RecordValidationError("holding", result)

        try:
            stored = await self._store.add_holding(request.to_record(user_id))
        except StorageError as e:
            await _audit_storage_error(self._audit_logger, e, "holding", user_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_holding_added(
                holding_id=stored.id,
                user_id=user_id,
                symbol=stored.symbol,
                quantity=str(stored.quantity),
                purchase_price=str(stored.purchase_price),
            )
        return stored

    async def list_holdings(self) -> list[Holding]:
        return await self._store.list_holdings(self._sessions.require_user_id())

    async def refresh_prices(self, holdings: list[Holding]) -> PriceMap:
        """Fetch live prices for the given holdings and audit the gaps."""
        price_map = await self._price_service.fetch_price_map(holdings)

        if self._audit_logger:
            correlation_id = create_correlation_id()
            user_id = self._sessions.current_user_id()
            symbols = distinct_symbols(holdings)
            for symbol, asset_type in symbols.items():
                if symbol not in price_map:
                    await self._audit_logger.log_price_unavailable(
                        symbol=symbol,
                        asset_type=asset_type.value,
                        correlation_id=correlation_id,
                        user_id=user_id,
                    )
            await self._audit_logger.log_prices_refreshed(
                requested=len(symbols),
                resolved=len(price_map),
                correlation_id=correlation_id,
                user_id=user_id,
            )
        return price_map

    async def summary(self) -> PortfolioSummary:
        """Value the logged-in user's holdings at current prices."""
        holdings = await self.list_holdings()
        price_map = await self.refresh_prices(holdings)
        return summarize_portfolio(holdings, price_map)

    async def aclose(self) -> None:
        await self._price_service.aclose()


def create_record_store(settings: Optional[Settings] = None) -> RecordStoreInterface:
    """Build the record store selected by FINANCE_STORAGE_BACKEND."""
    storage_settings = (settings or get_settings()).storage
    if storage_settings.backend == "memory":
        return InMemoryRecordStore()
    return JsonFileRecordStore(storage_settings.data_path)


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[RecordStoreInterface] = None,
    price_service: Optional[PriceLookupService] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> tuple[AccountFlow, BudgetFlow, PortfolioFlow]:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to get_settings())
        store: Record store override (defaults to the configured backend)
        price_service: Price lookup override (e.g. with a mock transport)
        audit_storage: Where audit events go (defaults to in-memory)

    Returns:
        (account_flow, budget_flow, portfolio_flow), sharing one
        session provider and one record store.
    """
    settings = settings or get_settings()
    store = store or create_record_store(settings)
    sessions = SessionProvider()
    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())
    validator = RecordValidator(settings.app)

    account_flow = AccountFlow(
        store=store,
        sessions=sessions,
        audit_logger=audit_logger,
        settings=settings,
    )
    budget_flow = BudgetFlow(
        store=store,
        sessions=sessions,
        validator=validator,
        audit_logger=audit_logger,
        settings=settings,
    )
    portfolio_flow = PortfolioFlow(
        store=store,
        sessions=sessions,
        price_service=price_service or PriceLookupService(settings.prices),
        validator=validator,
        audit_logger=audit_logger,
        settings=settings,
    )

    return account_flow, budget_flow, portfolio_flow
