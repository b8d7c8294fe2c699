"""
Accounts Service package for the Authorization layer.

Resolves an account identifier to the signed account JWT stored for it.

- app.main: Application entrypoint that wires routes and lifecycle.
- app.persistence: PostgreSQL credential store (the shared pool).
- app.lookup: Lookup service mapping store results to outcomes.

Design notes:
- Module import must not perform network calls. The store is opened in
  the startup hook and closed in the shutdown hook.
- The store is passed to handlers through FastAPI dependencies on
  app.state, never through a module global.
- Read-only: the service never writes to the store.
"""
