from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth.dependencies import CurrentUser, require_admin
from ..database import SessionDep
from ..models import DeleteResponse
from ..pagination import MAX_PAGE_SIZE
from . import service
from .schemas import (
    CategoryCreate,
    CategoryList,
    CategoryOut,
    CategoryReorderRequest,
    CategoryStats,
    CategoryUpdate,
)

router = APIRouter(prefix="/categories", tags=["categories"])
public_router = APIRouter(prefix="/categories", tags=["public"])


def _to_list(result) -> CategoryList:
    return CategoryList(
        categories=[CategoryOut.model_validate(c) for c in result.items],
        total=result.total,
        has_more=result.has_more,
        page=result.page,
        limit=result.limit,
    )


@router.get("", response_model=CategoryList, dependencies=[CurrentUser])
async def list_categories(
    db: SessionDep,
    search: Optional[str] = None,
    active_only: bool = Query(False, alias="activeOnly"),
    parent_id: Optional[int] = Query(None, alias="parentId"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
):
    result = await service.list_categories(
        db, search=search, active_only=active_only, parent_id=parent_id, page=page, limit=limit
    )
    return _to_list(result)


@router.get("/stats", response_model=CategoryStats, dependencies=[CurrentUser])
async def get_category_stats(db: SessionDep):
    return await service.category_stats(db)


# must be registered before /{category_id}
@router.put("/reorder", response_model=list[CategoryOut], dependencies=[Depends(require_admin)])
async def reorder_categories(body: CategoryReorderRequest, db: SessionDep):
    categories = await service.reorder_categories(db, body.items)
    return [CategoryOut.model_validate(c) for c in categories]


@router.get("/{category_id}", response_model=CategoryOut, dependencies=[CurrentUser])
async def get_category(category_id: int, db: SessionDep):
    return CategoryOut.model_validate(await service.get_category(db, category_id))


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_category(body: CategoryCreate, db: SessionDep):
    return CategoryOut.model_validate(await service.create_category(db, body))


@router.put("/{category_id}", response_model=CategoryOut, dependencies=[Depends(require_admin)])
async def update_category(category_id: int, body: CategoryUpdate, db: SessionDep):
    return CategoryOut.model_validate(await service.update_category(db, category_id, body))


@router.delete("/{category_id}", response_model=DeleteResponse, dependencies=[Depends(require_admin)])
async def delete_category(category_id: int, db: SessionDep):
    await service.delete_category(db, category_id)
    return DeleteResponse(id=category_id)


@public_router.get("", response_model=CategoryList)
async def list_public_categories(
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    result = await service.list_categories(db, active_only=True, page=page, limit=limit)
    return _to_list(result)
