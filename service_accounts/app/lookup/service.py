"""
Account credential lookup.
"""

import time
from enum import Enum
from typing import Optional, Protocol

from shared.errors import AccountNotFound, QueryFailed
from shared.logging import get_logger
from shared.metrics import MetricsCollector


HEALTH_BODY = "OK"


class CredentialStore(Protocol):
    """What the lookup needs from a store handle."""

    async def fetch_account_jwt(self, account_id: str) -> Optional[str]:
        ...


class LookupOutcome(str, Enum):
    """Operator-facing outcome of a lookup."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    QUERY_FAILED = "query_failed"


class AccountLookupService:
    """Resolves account identifiers to their stored JWT."""

    def __init__(self, store: CredentialStore, metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("accounts.lookup")

    async def resolve(self, account_id: str) -> str:
        """Return the token stored for ``account_id``.

        The identifier is passed to the store verbatim. Only the first
        matching row is read; duplicates upstream are not detected.

        Raises:
            AccountNotFound: no record matches the identifier.
            QueryFailed: the store could not run the query.
        """
        start_time = time.time()
        try:
            account_jwt = await self.store.fetch_account_jwt(account_id)
        except QueryFailed as e:
            self._record(LookupOutcome.QUERY_FAILED, start_time)
            self.logger.error(
                "Account lookup query failed",
                account_id=account_id,
                error=e.detail,
                details=e.details
            )
            raise

        if account_jwt is None:
            self._record(LookupOutcome.NOT_FOUND, start_time)
            self.logger.info("Account not found", account_id=account_id)
            raise AccountNotFound(account_id)

        self._record(LookupOutcome.FOUND, start_time)
        self.logger.debug("Account resolved", account_id=account_id)
        return account_jwt

    @staticmethod
    def health() -> str:
        """Liveness probe; never touches the store."""
        return HEALTH_BODY

    def _record(self, outcome: LookupOutcome, start_time: float):
        if self.metrics:
            self.metrics.record_account_lookup(outcome.value, time.time() - start_time)
            if outcome is LookupOutcome.QUERY_FAILED:
                self.metrics.record_error("QUERY_FAILED")
