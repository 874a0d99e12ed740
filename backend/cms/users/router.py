from fastapi import APIRouter, Depends, Query, status

from ..database import SessionDep
from ..exceptions import NotFoundError, ValidationError
from ..pagination import MAX_PAGE_SIZE
from ..auth.dependencies import CurrentUser, require_admin
from ..auth.schema import Principal

from .schema import UserCreate, UserUpdate, UserUpdatePassword, UserMe, UserList
from . import service as user_service

router = APIRouter(prefix="/users", tags=["users"])

@router.get("/me", response_model=UserMe)
async def read_users_me(db: SessionDep, principal: Principal = CurrentUser):
    return await user_service.get_user_by_id(principal.user_id, db)

@router.post("/me/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_my_password(
    body: UserUpdatePassword,
    db: SessionDep,
    principal: Principal = CurrentUser,
):
    user = await user_service.get_user_by_id(principal.user_id, db)
    await user_service.change_password(db, user, body)

@router.get("", response_model=UserList, dependencies=[Depends(require_admin)])
async def list_users(
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
):
    result = await user_service.list_users(db, page=page, limit=limit)
    return UserList(users=[UserMe.model_validate(u) for u in result.items], total=result.total, has_more=result.has_more)

@router.post("", response_model=UserMe, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_user(user_data: UserCreate, db: SessionDep):
    return await user_service.create_user(user_data, db)

@router.get("/{user_id}", response_model=UserMe, dependencies=[Depends(require_admin)])
async def get_user(user_id: int, db: SessionDep):
    user = await user_service.get_user_by_id(user_id, db)
    if not user:
        raise NotFoundError("User", user_id)
    return user

@router.patch("/{user_id}", response_model=UserMe)
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: SessionDep,
    principal: Principal = Depends(require_admin),
):
    user = await user_service.get_user_by_id(user_id, db)
    if not user:
        raise NotFoundError("User", user_id)
    if user.id == principal.user_id and (body.is_active is False or (body.role and body.role != principal.role)):
        raise ValidationError("Administrators cannot demote or deactivate themselves")
    return await user_service.update_user(db, db_user=user, user_in=body)

@router.delete("/{user_id}", response_model=UserMe)
async def deactivate_user(
    user_id: int,
    db: SessionDep,
    principal: Principal = Depends(require_admin),
):
    """Deactivates the account; users are never physically deleted."""
    if user_id == principal.user_id:
        raise ValidationError("Administrators cannot deactivate themselves")
    return await user_service.deactivate_user(db, user_id)
