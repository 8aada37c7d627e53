from fastapi import APIRouter, Depends

from community.api.deps import get_current_user
from community.models.profile import Profile
from community.schemas.profile import ProfilePublic

router = APIRouter(tags=["profile"])


@router.get("/me", response_model=ProfilePublic)
def get_me(current_user: Profile = Depends(get_current_user)):
    return ProfilePublic.model_validate(current_user)
