"""
Token Service
Signed bearer tokens for the unverified LegalLens login.
The token only names the user; the stored user record is authoritative.
"""

import logging
import jwt
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from legallens.config import Settings, get_settings
from legallens.schemas.domain import User
from legallens.services.storage_service import StorageService


logger = logging.getLogger(__name__)

TOKEN_ISSUER = "legallens"


class AuthService:
    """Issue bearer tokens and resolve them back to stored users."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def generate_token(self, user: User) -> str:
        issued_at = datetime.now(timezone.utc)
        claims = {
            'sub': user.id,
            'iss': TOKEN_ISSUER,
            'iat': issued_at,
            'exp': issued_at + timedelta(days=self.settings.jwt_expiry_days),
        }
        return jwt.encode(claims, self.settings.secret_key, algorithm=self.settings.jwt_algorithm)

    def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Verified claims, or None for an expired, tampered or foreign token."""
        try:
            return jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[self.settings.jwt_algorithm],
                issuer=TOKEN_ISSUER,
                options={'require': ['sub', 'exp']},
            )
        except jwt.PyJWTError as e:
            logger.info("Rejected bearer token: %s", e)
            return None

    def resolve_user(self, token: str, storage: StorageService) -> Optional[User]:
        claims = self.decode_token(token)
        if claims is None:
            return None
        return storage.get_user(claims['sub'])
