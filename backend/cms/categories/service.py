import logging
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..articles.models import Article
from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..pagination import LIKE_ESCAPE, Page, like_pattern, paginate
from ..slugs import slugify, unique_slug
from .models import Category
from .schemas import CategoryCreate, CategoryOrderItem, CategoryStats, CategoryUpdate

logger = logging.getLogger(__name__)

SLUG_FALLBACK = "category"


async def get_by_id(db: AsyncSession, category_id: int) -> Optional[Category]:
    result = await db.execute(select(Category).where(Category.id == category_id))
    return result.scalar_one_or_none()


async def get_by_slug(db: AsyncSession, slug: str) -> Optional[Category]:
    result = await db.execute(select(Category).where(Category.slug == slug))
    return result.scalar_one_or_none()


async def get_category(db: AsyncSession, category_id: int) -> Category:
    category = await get_by_id(db, category_id)
    if category is None:
        raise NotFoundError("Category", category_id)
    await _attach_article_counts(db, [category])
    return category


async def count_articles(db: AsyncSession, category_id: int) -> int:
    result = await db.execute(select(func.count(Article.id)).where(Article.category_id == category_id))
    return result.scalar_one()


async def _attach_article_counts(db: AsyncSession, categories: Sequence[Category]) -> None:
    ids = [c.id for c in categories]
    if not ids:
        return
    rows = await db.execute(
        select(Article.category_id, func.count(Article.id))
        .where(Article.category_id.in_(ids))
        .group_by(Article.category_id)
    )
    counts = dict(rows.all())
    for category in categories:
        category.article_count = counts.get(category.id, 0)


async def list_categories(
    db: AsyncSession,
    *,
    search: Optional[str] = None,
    active_only: bool = False,
    parent_id: Optional[int] = None,
    page: int = 1,
    limit: int = 50,
) -> Page:
    conditions = []
    if active_only:
        conditions.append(Category.is_active.is_(True))
    if parent_id is not None:
        conditions.append(Category.parent_id == parent_id)
    if search:
        pattern = like_pattern(search)
        conditions.append(
            or_(
                Category.name.ilike(pattern, escape=LIKE_ESCAPE),
                Category.description.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    stmt = select(Category).where(*conditions).order_by(
        func.coalesce(Category.display_order, 0).asc(), Category.name.asc(), Category.id.asc()
    )
    result = await paginate(db, stmt, page=page, limit=limit)
    await _attach_article_counts(db, result.items)
    return result


async def _validate_parent(db: AsyncSession, parent_id: Optional[int], category_id: Optional[int] = None) -> None:
    if parent_id is None:
        return
    if category_id is not None and parent_id == category_id:
        raise ValidationError("A category cannot be its own parent")
    parent = await get_by_id(db, parent_id)
    if parent is None:
        raise ValidationError(f"Parent category {parent_id} does not exist")
    if category_id is None:
        return
    # walk up from the new parent; meeting category_id would close a cycle
    seen = set()
    current = parent
    while current is not None and current.parent_id is not None:
        if current.parent_id == category_id:
            raise ValidationError("A category cannot be moved under its own descendant")
        if current.parent_id in seen:
            break
        seen.add(current.parent_id)
        current = await get_by_id(db, current.parent_id)


async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    await _validate_parent(db, data.parent_id)
    slug = await unique_slug(db, Category, slugify(data.name, SLUG_FALLBACK))
    category = Category(
        name=data.name,
        slug=slug,
        description=data.description,
        color=data.color,
        icon=data.icon,
        display_order=data.display_order,
        is_active=data.is_active,
        parent_id=data.parent_id,
    )
    db.add(category)
    await db.commit()
    await db.refresh(category)
    logger.info("Created category id=%s slug=%s", category.id, category.slug)
    category.article_count = 0
    return category


async def update_category(db: AsyncSession, category_id: int, data: CategoryUpdate) -> Category:
    category = await get_by_id(db, category_id)
    if category is None:
        raise NotFoundError("Category", category_id)

    update_data = data.model_dump(exclude_unset=True)
    if "parent_id" in update_data:
        await _validate_parent(db, update_data["parent_id"], category.id)

    for field in ("name", "display_order", "is_active"):
        # non-nullable columns: an explicit null means "keep"
        if field in update_data and update_data[field] is None:
            update_data.pop(field)

    new_name = update_data.get("name")
    if new_name is not None and new_name != category.name:
        category.slug = await unique_slug(
            db, Category, slugify(new_name, SLUG_FALLBACK), exclude_id=category.id
        )

    for field, value in update_data.items():
        setattr(category, field, value)

    await db.commit()
    await db.refresh(category)
    await _attach_article_counts(db, [category])
    return category


async def delete_category(db: AsyncSession, category_id: int) -> None:
    category = await get_by_id(db, category_id)
    if category is None:
        raise NotFoundError("Category", category_id)

    article_count = await count_articles(db, category_id)
    if article_count > 0:
        raise ConflictError(
            f"Category is referenced by {article_count} article(s); reassign the articles before deleting it"
        )

    await db.execute(update(Category).where(Category.parent_id == category_id).values(parent_id=None))
    await db.delete(category)
    await db.commit()
    logger.info("Deleted category id=%s", category_id)


async def reorder_categories(db: AsyncSession, items: Iterable[CategoryOrderItem]) -> list[Category]:
    items = list(items)
    ids = [item.id for item in items]
    result = await db.execute(select(Category).where(Category.id.in_(ids)))
    by_id = {c.id: c for c in result.scalars().all()}
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise NotFoundError("Category", missing[0])

    for item in items:
        by_id[item.id].display_order = item.display_order
    await db.commit()

    ordered = sorted(by_id.values(), key=lambda c: (c.display_order or 0, c.name, c.id))
    await _attach_article_counts(db, ordered)
    return ordered


async def category_stats(db: AsyncSession) -> CategoryStats:
    total = (await db.execute(select(func.count(Category.id)))).scalar_one()
    active = (await db.execute(select(func.count(Category.id)).where(Category.is_active.is_(True)))).scalar_one()
    return CategoryStats(total=total, active=active, inactive=total - active)


async def seed_categories(db: AsyncSession, items: Iterable[dict]) -> int:
    """Create categories from plain dicts, skipping names that already exist."""
    created = 0
    for i, raw in enumerate(items):
        try:
            data = CategoryCreate.model_validate(raw)
        except ValueError as e:
            logger.warning("Skipping seed item %s: %s", i + 1, e)
            continue
        exists = await db.execute(select(Category.id).where(Category.name == data.name).limit(1))
        if exists.scalar_one_or_none() is not None:
            continue
        await create_category(db, data)
        created += 1
    return created
