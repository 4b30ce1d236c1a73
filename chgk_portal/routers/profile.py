"""
Profile router — own profile, moderator user directory and role changes.

Endpoints:
    GET   /profile                      → own profile (default one if never saved)
    PATCH /profile                      → update name, telegram, avatar, knowledge tags
    GET   /profile/directory            → all profiles with question counts (host)
    GET   /profile/{user_id}            → one profile (host)
    PATCH /profile/{user_id}/roles      → rank, expert and captain flags (host)
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from chgk_portal.dependencies import require_db
from chgk_portal.models.user import User
from chgk_portal.routers.auth import require_admin, require_viewer
from chgk_portal.schemas.user import DirectoryEntry, ProfileAdminUpdate, ProfileOut, ProfileSelfUpdate
from chgk_portal.services import profiles

router = APIRouter(prefix="/profile", tags=["profile"])


# ═══════════════════════════════════════════════════════════════
#  Own profile
# ═══════════════════════════════════════════════════════════════

@router.get("", response_model=ProfileOut)
async def own_profile(current_user: User = Depends(require_viewer), db=Depends(require_db)):
    """The stored profile, or an unsaved default until the first save."""
    profile = await profiles.get(db, current_user.id)
    if profile is None:
        return profiles.default_profile(current_user.id, current_user.email)
    return profile


@router.patch("", response_model=ProfileOut)
async def update_own_profile(
    data: ProfileSelfUpdate,
    current_user: User = Depends(require_viewer),
    db=Depends(require_db),
):
    fields = data.model_dump(exclude_unset=True)
    if "full_name" not in fields and await profiles.get(db, current_user.id) is None:
        fields["full_name"] = profiles.default_profile(current_user.id, current_user.email).full_name
    profile = await profiles.upsert(db, current_user.id, fields)
    if profile is None:
        raise HTTPException(status_code=500, detail="Could not save the profile")
    return profile


# ═══════════════════════════════════════════════════════════════
#  Moderator directory
# ═══════════════════════════════════════════════════════════════

@router.get("/directory", response_model=List[DirectoryEntry], dependencies=[Depends(require_admin)])
async def directory(db=Depends(require_db)):
    return await profiles.directory(db)


@router.get("/{user_id}", response_model=ProfileOut, dependencies=[Depends(require_admin)])
async def view_profile(user_id: int, db=Depends(require_db)):
    profile = await profiles.get(db, user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@router.patch("/{user_id}/roles", response_model=ProfileOut, dependencies=[Depends(require_admin)])
async def update_roles(user_id: int, data: ProfileAdminUpdate, db=Depends(require_db)):
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    profile = await profiles.upsert(db, user_id, data.model_dump(exclude_unset=True))
    if profile is None:
        raise HTTPException(status_code=500, detail="Could not save the profile")
    return profile
