"""
RecordHub Backend - User Route Handlers
========================================

What:  GET /api/user/{user_id} returns a stored profile without credential fields.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from recordhub.database import Database, get_database
from recordhub.services.user_service import user_service

router = APIRouter(tags=["User"])


@router.get("/{user_id}", summary="Get a user profile")
async def get_user(
    user_id: str,
    database: Database = Depends(get_database),
) -> Dict[str, Any]:
    return await user_service.get_profile(db=database.db, user_id=user_id)
