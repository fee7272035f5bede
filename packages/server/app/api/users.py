"""
User endpoints.

GET /api/users/me  Profile of the signed-in user, 401 when anonymous
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.core.auth import get_current_user
from app.models.user import User
from app.services import users as user_service
from taskhub_shared.schemas.users import UserResponse

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: Optional[User] = Depends(get_current_user)):
    view = user_service.get_current_user_view(current_user)
    if view is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return view
