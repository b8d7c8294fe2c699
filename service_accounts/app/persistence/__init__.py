from .postgres import PostgreSQLCredentialStore, acquire_store

__all__ = ["PostgreSQLCredentialStore", "acquire_store"]
