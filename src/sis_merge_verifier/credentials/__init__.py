"""Credential and session exports."""

from .session_models import Session, SessionStateError
from .token_provider import CredentialProvider, CredentialRefreshError, TokenIssuer, TokenSnapshot

__all__ = [
    "Session",
    "SessionStateError",
    "CredentialProvider",
    "CredentialRefreshError",
    "TokenIssuer",
    "TokenSnapshot",
]
