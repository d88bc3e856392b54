"""Accounts: registration, sign-in and account management flows."""

from mindscribe.accounts.services import AUTH_ERROR_MESSAGES, AccountService, describe_auth_error

__all__ = ["AUTH_ERROR_MESSAGES", "AccountService", "describe_auth_error"]
