"""Authentication provider boundary."""

from greenbook.auth.models import AuthPrincipal
from greenbook.auth.federation import FederatedTokenVerifier
from greenbook.auth.models import FederatedProfile
from greenbook.auth.provider import AuthProvider
from greenbook.auth.provider import LocalAuthProvider
from greenbook.auth.provider import PrincipalChangeFeed

__all__ = [
    "AuthPrincipal",
    "AuthProvider",
    "FederatedProfile",
    "FederatedTokenVerifier",
    "LocalAuthProvider",
    "PrincipalChangeFeed",
]
