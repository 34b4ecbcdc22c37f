"""
Auth module: password hashing, session tokens and the per-request context.

A session is a signed JWT carrying the account id and role. Every request gets
its own RequestContext built from that token; the context also holds the flash
messages produced while handling the request, which are returned with the
response instead of living in shared session state.
"""

import time
from dataclasses import dataclass, field
from typing import Optional
import bcrypt
from jose import jwt, JWTError
from fastapi import Request
from clinic.config import get_settings

ALGORITHM = "HS256"


def hash_password(plaintext: str) -> str:
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")


def verify_password(plaintext: str, digest: str) -> bool:
    """Constant-time check of plaintext against a bcrypt digest."""
    try:
        return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
    except ValueError:
        # malformed digest
        return False


@dataclass
class RequestContext:
    """Resolved identity plus the flash messages of one request."""
    account_id: Optional[int] = None
    role: Optional[str] = None
    messages: list = field(default_factory=list)

    @property
    def is_anonymous(self) -> bool:
        return self.account_id is None

    def flash(self, category: str, text: str) -> None:
        if text:
            self.messages.append({"category": category, "text": text})

    def drain(self) -> list:
        """Hand the pending messages to the caller and forget them."""
        messages, self.messages = self.messages, []
        return messages


def create_token(user) -> str:
    """Create a signed JWT for the given User model instance."""
    settings = get_settings()
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "exp": int(time.time()) + settings.token_expire_seconds,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[RequestContext]:
    """Decode and validate a JWT. Returns None if invalid/expired."""
    try:
        settings = get_settings()
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[ALGORITHM])
        return RequestContext(account_id=int(payload["sub"]), role=payload.get("role"))
    except (JWTError, KeyError, ValueError):
        return None


async def get_request_context(request: Request) -> RequestContext:
    """
    FastAPI dependency. Extracts the JWT from the Authorization header.
    Missing or invalid tokens give an anonymous context rather than an error;
    the lifecycle gate decides what anonymous callers may reach.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return RequestContext()
    context = decode_token(auth_header[7:])
    return context if context else RequestContext()
