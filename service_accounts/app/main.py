"""
Accounts service for the Authorization layer.

Serves the stored account JWT for an account identifier:

    GET /jwt/v1/accounts/{account_id}  -> 200 token | 404 "Account not found"
    GET /jwt/v1/accounts/              -> 200 "OK"
"""

from typing import Dict, Optional

from fastapi import Depends, Request
from fastapi.responses import PlainTextResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import AccountNotFound, QueryFailed

from .lookup.service import AccountLookupService, CredentialStore
from .persistence.postgres import acquire_store


NOT_FOUND_BODY = "Account not found"


def get_lookup_service(request: Request) -> AccountLookupService:
    """Dependency returning the lookup service bound to the shared store."""
    return request.app.state.lookup_service


class AccountsService(BaseService):
    """Accounts service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, store: Optional[CredentialStore] = None):
        super().__init__("accounts", config)

        # An injected store belongs to the caller; only a store opened here is closed here
        self.store = store
        self._owns_store = store is None
        if store is not None:
            self._bind_store(store)

        @self.app.on_event("startup")
        async def _startup():
            if self.store is None:
                self.store = await acquire_store(self.config)
                self._bind_store(self.store)
            self.logger.info(
                "Accounts service started",
                host=self.config.host,
                port=self.config.port
            )

        @self.app.on_event("shutdown")
        async def _shutdown():
            if self._owns_store and self.store is not None:
                await self.store.stop()
                self.store = None

        self._setup_accounts_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.accounts_service = self

    def _bind_store(self, store: CredentialStore):
        self.lookup_service = AccountLookupService(store, metrics=self.metrics)
        self.app.state.lookup_service = self.lookup_service

    def _setup_accounts_routes(self):
        """Set up account lookup routes."""

        # Registered first so the bare prefix never reaches the path-typed route below

        @self.app.get("/jwt/v1/accounts/", response_class=PlainTextResponse)
        async def accounts_base():
            """Liveness probe; does not query the store."""
            return PlainTextResponse(AccountLookupService.health())

        @self.app.get("/jwt/v1/accounts/{account_id:path}", response_class=PlainTextResponse)
        async def account_details(
            account_id: str,
            lookup: AccountLookupService = Depends(get_lookup_service)
        ):
            """Return the stored JWT for an account."""
            try:
                account_jwt = await lookup.resolve(account_id)
            except (AccountNotFound, QueryFailed):
                # Both outcomes look the same to clients; the lookup already logged which one
                return PlainTextResponse(NOT_FOUND_BODY, status_code=404)

            return PlainTextResponse(account_jwt)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check accounts dependencies."""
        store = self.store
        health_check = getattr(store, "health_check", None)
        if health_check is None:
            return {"postgres": "error"}
        return {"postgres": "ok" if await health_check() else "error"}


def create_app(config: Optional[ServiceConfig] = None, store: Optional[CredentialStore] = None):
    """Create FastAPI application."""
    service = AccountsService(config=config, store=store)
    return service.app


def main():
    service = AccountsService()
    service.run()


if __name__ == "__main__":
    main()
