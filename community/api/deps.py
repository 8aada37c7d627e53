from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from community.core.security import TokenError, decode_access_token
from community.db.session import get_db
from community.models.profile import Profile
from community.repositories.profile_repo import ProfileRepository

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Profile:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="login required")
    return _resolve_profile(credentials.credentials, db)


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Profile | None:
    if not credentials:
        return None
    return _resolve_profile(credentials.credentials, db)


def authenticate_token(token: str | None, db: Session) -> Profile | None:
    """Resolve a raw token (e.g. a websocket query param); ``None`` when invalid."""
    if not token:
        return None
    try:
        claims = decode_access_token(token)
    except TokenError:
        return None
    return ProfileRepository(db).get_by_id(claims.user_id)


def _resolve_profile(token: str, db: Session) -> Profile:
    try:
        claims = decode_access_token(token)
    except TokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token") from exc

    profile = ProfileRepository(db).get_by_id(claims.user_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="profile not found")
    return profile
