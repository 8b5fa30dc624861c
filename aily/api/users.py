import logging
from fastapi import APIRouter, HTTPException, Depends, status
from arango.database import StandardDatabase

from aily.models.user import User, UserCreate, UserRegistered
from aily.crud.user import UserCRUD
from aily.crud.aily import AilyCRUD
from aily.db.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


def get_user_crud(db: StandardDatabase = Depends(get_db)) -> UserCRUD:
    return UserCRUD(db)


def get_aily_crud(db: StandardDatabase = Depends(get_db)) -> AilyCRUD:
    return AilyCRUD(db)


@router.post("", response_model=UserRegistered, status_code=status.HTTP_201_CREATED)
async def register_user(
    user: UserCreate,
    user_crud: UserCRUD = Depends(get_user_crud),
    aily_crud: AilyCRUD = Depends(get_aily_crud)
):
    """Register a teacher and give them their own Aily."""
    if user_crud.get_user_by_email(user.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )

    created = user_crud.create_user(user)
    aily = aily_crud.create_for_user(created.key)
    logger.info(f"👤 Registered {created.email} with Aily {aily.key}")

    return UserRegistered(user=created, aily_id=aily.key)


@router.get("/{user_id}", response_model=User)
async def get_user(
    user_id: str,
    user_crud: UserCRUD = Depends(get_user_crud)
):
    user = user_crud.get_user_by_key(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user
