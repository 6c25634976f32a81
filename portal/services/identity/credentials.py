"""
Pluggable credential hashing. The default uses passlib's CryptContext with the
configured schemes; any object with hash/verify can replace it.
"""
from typing import Protocol

from passlib.context import CryptContext

from portal.core.config import settings


class CredentialVerifier(Protocol):
    def hash(self, secret: str) -> str: ...

    def verify(self, secret: str, stored_hash: str) -> bool: ...


class PasslibVerifier:
    def __init__(self, schemes: list[str] | None = None) -> None:
        self.context = CryptContext(schemes=schemes or settings.password_schemes_list, deprecated="auto")

    def hash(self, secret: str) -> str:
        return self.context.hash(secret)

    def verify(self, secret: str, stored_hash: str) -> bool:
        if not stored_hash:
            return False
        try:
            return self.context.verify(secret, stored_hash)
        except ValueError:
            # stored value is not a hash any configured scheme recognizes
            return False


default_verifier = PasslibVerifier()
