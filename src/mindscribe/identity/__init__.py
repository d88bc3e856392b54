"""Identity: provider contract and the local JSON-backed provider."""

from mindscribe.identity.base import AuthStateCallback, IdentityProvider
from mindscribe.identity.local import LocalIdentityProvider
from mindscribe.identity.models import UserIdentity

__all__ = [
    "AuthStateCallback",
    "IdentityProvider",
    "LocalIdentityProvider",
    "UserIdentity",
]
