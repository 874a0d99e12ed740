from dataclasses import dataclass
from typing import Any, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

MAX_PAGE_SIZE = 100
LIKE_ESCAPE = "\\"


@dataclass
class Page:
    items: Sequence[Any]
    total: int
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total


def like_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards escaped; use with ``escape=LIKE_ESCAPE``."""
    escaped = (
        term.strip()
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


async def paginate(
    db: AsyncSession,
    stmt: Select,
    *,
    page: int,
    limit: int,
    options: Sequence[Any] = (),
) -> Page:
    """Run ``stmt`` for one page and count the full filtered result.

    Loader ``options`` apply to the page query only, not to the count.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()
    offset = (page - 1) * limit
    result = await db.execute(stmt.options(*options).offset(offset).limit(limit))
    return Page(items=list(result.scalars().unique().all()), total=total, page=page, limit=limit)
