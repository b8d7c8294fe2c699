from .service import AccountLookupService, CredentialStore, LookupOutcome

__all__ = ["AccountLookupService", "CredentialStore", "LookupOutcome"]
