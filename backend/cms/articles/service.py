# backend/cms/articles/service.py
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..categories.models import Category
from ..database import utcnow
from ..exceptions import CMSError, NotFoundError, ValidationError
from ..models import BulkItemResult, BulkResponse
from ..pagination import LIKE_ESCAPE, Page, like_pattern, paginate
from ..slugs import slugify, unique_slug
from .models import Article, ArticleStatus
from .schemas import ArticleCreate, ArticleStats, ArticleUpdate

logger = logging.getLogger(__name__)

SLUG_FALLBACK = "article"

_LOAD_OPTIONS = (selectinload(Article.category), selectinload(Article.author))


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Trim, drop empties and de-duplicate case-insensitively, keeping first spelling and order."""
    seen = set()
    result = []
    for tag in tags or []:
        tag = (tag or "").strip()
        if not tag or tag.lower() in seen:
            continue
        seen.add(tag.lower())
        result.append(tag)
    return result


def visible_condition(now: datetime):
    """Public visibility gate: published and not scheduled for later."""
    return and_(
        Article.status == ArticleStatus.PUBLISHED,
        or_(Article.published_at.is_(None), Article.published_at <= now),
    )


def _tag_condition(pattern: str, dialect_name: str):
    """Substring match against the individual tag strings, not the serialised JSON array."""
    if dialect_name == "postgresql":
        elements = func.json_array_elements_text(Article.tags)
    else:
        elements = func.json_each(Article.tags)
    tag = elements.table_valued("value").alias("tag")
    return select(1).select_from(tag).where(tag.c.value.ilike(pattern, escape=LIKE_ESCAPE)).exists()


def _category_condition(category: str):
    category = category.strip()
    if category.isdigit():
        return Article.category_id == int(category)
    return Article.category_id.in_(select(Category.id).where(Category.slug == category))


def _filter_conditions(
    dialect_name: str,
    *,
    query: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[ArticleStatus] = None,
    source: Optional[str] = None,
    featured: Optional[bool] = None,
    author_id: Optional[int] = None,
) -> list:
    conditions = []
    if query and query.strip():
        pattern = like_pattern(query)
        conditions.append(
            or_(
                Article.title.ilike(pattern, escape=LIKE_ESCAPE),
                Article.excerpt.ilike(pattern, escape=LIKE_ESCAPE),
                Article.content.ilike(pattern, escape=LIKE_ESCAPE),
                _tag_condition(pattern, dialect_name),
            )
        )
    if category and category.strip() and category.strip().lower() != "all":
        conditions.append(_category_condition(category))
    if status is not None:
        conditions.append(Article.status == status)
    if source:
        conditions.append(Article.source == source)
    if featured is not None:
        conditions.append(Article.is_featured.is_(featured))
    if author_id is not None:
        conditions.append(Article.author_id == author_id)
    return conditions


async def list_articles(db: AsyncSession, *, page: int = 1, limit: int = 20, **filters) -> Page:
    stmt = (
        select(Article)
        .where(*_filter_conditions(db.get_bind().dialect.name, **filters))
        .order_by(Article.updated_at.desc(), Article.id.desc())
    )
    return await paginate(db, stmt, page=page, limit=limit, options=_LOAD_OPTIONS)


async def list_public_articles(db: AsyncSession, *, page: int = 1, limit: int = 20, **filters) -> Page:
    # status is fixed by the visibility gate
    filters.pop("status", None)
    stmt = (
        select(Article)
        .where(visible_condition(utcnow()), *_filter_conditions(db.get_bind().dialect.name, **filters))
        # undated published articles count from their creation; NULL ordering differs between backends
        .order_by(func.coalesce(Article.published_at, Article.created_at).desc(), Article.id.desc())
    )
    return await paginate(db, stmt, page=page, limit=limit, options=_LOAD_OPTIONS)


async def get_article(db: AsyncSession, article_id: int) -> Article:
    result = await db.execute(
        select(Article)
        .where(Article.id == article_id)
        .options(*_LOAD_OPTIONS)
        .execution_options(populate_existing=True)
    )
    article = result.scalar_one_or_none()
    if article is None:
        raise NotFoundError("Article", article_id)
    return article


async def get_public_article(db: AsyncSession, slug: str) -> Article:
    result = await db.execute(
        select(Article)
        .where(Article.slug == slug, visible_condition(utcnow()))
        .options(*_LOAD_OPTIONS)
    )
    article = result.scalar_one_or_none()
    if article is None:
        raise NotFoundError("Article", slug)
    return article


async def _ensure_category(db: AsyncSession, category_id: int) -> None:
    exists = await db.execute(select(Category.id).where(Category.id == category_id))
    if exists.scalar_one_or_none() is None:
        raise ValidationError(f"Category {category_id} does not exist")


def _resolve_publication(
    status: ArticleStatus,
    published_at: Optional[datetime],
    *,
    published_at_supplied: bool,
) -> Optional[datetime]:
    """Apply the status/published_at rules and return the date to store."""
    if status == ArticleStatus.DRAFT:
        if published_at_supplied and published_at is not None:
            raise ValidationError("A draft article cannot have a publication date")
        return None
    if status == ArticleStatus.PUBLISHED and published_at is None:
        return utcnow()
    return published_at


async def create_article(db: AsyncSession, data: ArticleCreate, author_id: int) -> Article:
    await _ensure_category(db, data.category_id)

    base = slugify(data.slug or data.title, SLUG_FALLBACK)
    slug = await unique_slug(db, Article, base)
    published_at = _resolve_publication(data.status, data.published_at, published_at_supplied=True)

    article = Article(
        title=data.title.strip(),
        slug=slug,
        content=data.content,
        excerpt=data.excerpt,
        category_id=data.category_id,
        author_id=author_id,
        tags=normalize_tags(data.tags),
        status=data.status,
        published_at=published_at,
        image_url=data.image_url,
        meta_title=data.meta_title,
        meta_description=data.meta_description,
        is_featured=data.is_featured,
        source=data.source,
    )
    db.add(article)
    await db.commit()
    logger.info("Created article id=%s slug=%s status=%s", article.id, article.slug, article.status.value)
    return await get_article(db, article.id)


async def _apply_update(db: AsyncSession, article: Article, data: ArticleUpdate) -> None:
    update_data = data.model_dump(exclude_unset=True)

    # non-nullable columns: an explicit null means "keep"
    for field in ("title", "content", "category_id", "status", "is_featured", "source", "slug"):
        if field in update_data and update_data[field] is None:
            update_data.pop(field)

    if "category_id" in update_data and update_data["category_id"] != article.category_id:
        await _ensure_category(db, update_data["category_id"])

    if "tags" in update_data:
        update_data["tags"] = normalize_tags(update_data["tags"])
    if "title" in update_data:
        update_data["title"] = update_data["title"].strip()

    status = update_data.get("status", article.status)
    published_supplied = "published_at" in update_data
    published_at = update_data["published_at"] if published_supplied else article.published_at
    if status == ArticleStatus.DRAFT and published_supplied and published_at is not None:
        raise ValidationError("A draft article cannot have a publication date")
    update_data["published_at"] = _resolve_publication(
        status, published_at, published_at_supplied=False
    )

    if "slug" in update_data:
        new_slug = slugify(update_data["slug"], SLUG_FALLBACK)
        if new_slug != article.slug:
            update_data["slug"] = await unique_slug(db, Article, new_slug, exclude_id=article.id)
        else:
            update_data.pop("slug")
    elif "title" in update_data and update_data["title"] != article.title:
        update_data["slug"] = await unique_slug(
            db, Article, slugify(update_data["title"], SLUG_FALLBACK), exclude_id=article.id
        )

    for field, value in update_data.items():
        setattr(article, field, value)


async def update_article(db: AsyncSession, article_id: int, data: ArticleUpdate) -> Article:
    article = await get_article(db, article_id)
    await _apply_update(db, article, data)
    await db.commit()
    logger.info("Updated article id=%s", article_id)
    return await get_article(db, article_id)


async def delete_article(db: AsyncSession, article_id: int) -> None:
    article = await get_article(db, article_id)
    await db.delete(article)
    await db.commit()
    logger.info("Deleted article id=%s", article_id)


async def bulk_update(db: AsyncSession, article_ids: Iterable[int], data: ArticleUpdate) -> BulkResponse:
    results = []
    for article_id in article_ids:
        try:
            await update_article(db, article_id, data)
            results.append(BulkItemResult(id=article_id, success=True, action="update"))
        except CMSError as e:
            await db.rollback()
            results.append(BulkItemResult(id=article_id, success=False, action="update", error=e.message))
    response = BulkResponse.from_results(results)
    logger.info("Bulk update: %s succeeded, %s failed", response.success, response.failed)
    return response


async def bulk_delete(db: AsyncSession, article_ids: Iterable[int]) -> BulkResponse:
    results = []
    for article_id in article_ids:
        try:
            await delete_article(db, article_id)
            results.append(BulkItemResult(id=article_id, success=True, action="delete"))
        except CMSError as e:
            await db.rollback()
            results.append(BulkItemResult(id=article_id, success=False, action="delete", error=e.message))
    response = BulkResponse.from_results(results)
    logger.info("Bulk delete: %s succeeded, %s failed", response.success, response.failed)
    return response


async def article_stats(db: AsyncSession) -> ArticleStats:
    now = utcnow()

    async def _count(*conditions) -> int:
        result = await db.execute(select(func.count(Article.id)).where(*conditions))
        return result.scalar_one()

    return ArticleStats(
        total=await _count(),
        published=await _count(visible_condition(now)),
        drafts=await _count(Article.status == ArticleStatus.DRAFT),
        archived=await _count(Article.status == ArticleStatus.ARCHIVED),
        scheduled=await _count(Article.status == ArticleStatus.PUBLISHED, Article.published_at > now),
        featured=await _count(Article.is_featured.is_(True)),
    )
