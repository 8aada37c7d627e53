from dataclasses import dataclass
from uuid import UUID

import jwt

from community.core.config import settings


class TokenError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class TokenClaims:
    user_id: UUID
    email: str | None


def decode_access_token(token: str) -> TokenClaims:
    """Verify an access token issued by the auth provider.

    Tokens are HS256 JWTs signed with the provider's shared secret; ``sub``
    carries the user id. Credential checking itself stays with the provider.
    """
    options = {"require": ["exp", "sub"]}
    try:
        if settings.auth_jwt_audience:
            payload = jwt.decode(
                token,
                settings.auth_jwt_secret,
                algorithms=["HS256"],
                audience=settings.auth_jwt_audience,
                options=options,
            )
        else:
            payload = jwt.decode(
                token,
                settings.auth_jwt_secret,
                algorithms=["HS256"],
                options={**options, "verify_aud": False},
            )
    except jwt.PyJWTError as exc:
        raise TokenError("invalid token") from exc

    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError as exc:
        raise TokenError("invalid token subject") from exc
    return TokenClaims(user_id=user_id, email=payload.get("email"))
