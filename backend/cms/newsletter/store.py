"""Subscriber persistence.

``SqlSubscriberStore`` keeps subscribers in the ``newsletter_subscribers``
table. ``JsonFileSubscriberStore`` keeps them in a single JSON document under
``DATA_DIR`` for installs without a database; every write replaces the whole
file through a temp file and ``os.replace`` so readers never see a partial
document.

Both hand out ``NewsletterSubscriber`` instances; the file store's are
transient (never attached to a session).
"""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Iterable, List, Optional

from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import SessionDep, utcnow
from ..exceptions import NotFoundError
from ..models import as_utc
from ..pagination import LIKE_ESCAPE, Page, like_pattern, paginate
from .models import NewsletterSubscriber, default_preferences

logger = logging.getLogger(__name__)

JSON_STORE_FILENAME = "newsletter-subscribers.json"

_FIELDS = (
    "id",
    "email",
    "is_active",
    "source",
    "subscribed_at",
    "unsubscribed_at",
    "unsubscribe_token",
    "preferences",
    "updated_at",
)
_DATETIME_FIELDS = ("subscribed_at", "unsubscribed_at", "updated_at")
# stand-in for hand-edited records that lack a subscription date
_UNKNOWN_SUBSCRIBED_AT = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SubscriberStore(ABC):
    @abstractmethod
    async def list(
        self,
        *,
        active_only: bool = False,
        source: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Page:
        """Newest subscriptions first."""

    @abstractmethod
    async def all(self) -> List[NewsletterSubscriber]:
        """Every subscriber ordered by id."""

    @abstractmethod
    async def get_by_id(self, subscriber_id: int) -> Optional[NewsletterSubscriber]: ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[NewsletterSubscriber]: ...

    @abstractmethod
    async def get_by_token(self, token: str) -> Optional[NewsletterSubscriber]: ...

    @abstractmethod
    async def find_by_emails(self, emails: Iterable[str]) -> List[NewsletterSubscriber]: ...

    @abstractmethod
    async def add(self, subscriber: NewsletterSubscriber) -> NewsletterSubscriber: ...

    @abstractmethod
    async def save(self, subscriber: NewsletterSubscriber) -> NewsletterSubscriber: ...

    @abstractmethod
    async def delete(self, subscriber: NewsletterSubscriber) -> None: ...

    @abstractmethod
    async def counts(self, since: datetime) -> tuple[int, int, int]:
        """(total, active, subscribed since ``since``)."""

    async def rollback(self) -> None:
        """Discard a failed write; only meaningful for transactional stores."""


class SqlSubscriberStore(SubscriberStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self, *, active_only=False, source=None, search=None, page=1, limit=50) -> Page:
        stmt = select(NewsletterSubscriber)
        if active_only:
            stmt = stmt.where(NewsletterSubscriber.is_active.is_(True))
        if source:
            stmt = stmt.where(NewsletterSubscriber.source == source)
        if search and search.strip():
            stmt = stmt.where(
                NewsletterSubscriber.email.ilike(like_pattern(search.lower()), escape=LIKE_ESCAPE)
            )
        stmt = stmt.order_by(NewsletterSubscriber.subscribed_at.desc(), NewsletterSubscriber.id.desc())
        return await paginate(self.db, stmt, page=page, limit=limit)

    async def all(self) -> List[NewsletterSubscriber]:
        result = await self.db.execute(select(NewsletterSubscriber).order_by(NewsletterSubscriber.id))
        return list(result.scalars().all())

    async def get_by_id(self, subscriber_id: int) -> Optional[NewsletterSubscriber]:
        return await self.db.get(NewsletterSubscriber, subscriber_id)

    async def get_by_email(self, email: str) -> Optional[NewsletterSubscriber]:
        result = await self.db.execute(select(NewsletterSubscriber).where(NewsletterSubscriber.email == email))
        return result.scalar_one_or_none()

    async def get_by_token(self, token: str) -> Optional[NewsletterSubscriber]:
        result = await self.db.execute(
            select(NewsletterSubscriber).where(NewsletterSubscriber.unsubscribe_token == token)
        )
        return result.scalar_one_or_none()

    async def find_by_emails(self, emails: Iterable[str]) -> List[NewsletterSubscriber]:
        emails = list(emails)
        if not emails:
            return []
        result = await self.db.execute(select(NewsletterSubscriber).where(NewsletterSubscriber.email.in_(emails)))
        return list(result.scalars().all())

    async def add(self, subscriber: NewsletterSubscriber) -> NewsletterSubscriber:
        self.db.add(subscriber)
        await self.db.commit()
        await self.db.refresh(subscriber)
        return subscriber

    async def save(self, subscriber: NewsletterSubscriber) -> NewsletterSubscriber:
        await self.db.commit()
        await self.db.refresh(subscriber)
        return subscriber

    async def delete(self, subscriber: NewsletterSubscriber) -> None:
        await self.db.delete(subscriber)
        await self.db.commit()

    async def counts(self, since: datetime) -> tuple[int, int, int]:
        total = (await self.db.execute(select(func.count(NewsletterSubscriber.id)))).scalar_one()
        active = (
            await self.db.execute(
                select(func.count(NewsletterSubscriber.id)).where(NewsletterSubscriber.is_active.is_(True))
            )
        ).scalar_one()
        recent = (
            await self.db.execute(
                select(func.count(NewsletterSubscriber.id)).where(NewsletterSubscriber.subscribed_at >= since)
            )
        ).scalar_one()
        return total, active, recent

    async def rollback(self) -> None:
        await self.db.rollback()


def _to_record(subscriber: NewsletterSubscriber) -> dict:
    record = {field: getattr(subscriber, field) for field in _FIELDS}
    for field in _DATETIME_FIELDS:
        if record[field] is not None:
            record[field] = as_utc(record[field]).isoformat()
    return record


def _from_record(record: dict) -> NewsletterSubscriber:
    values = {field: record.get(field) for field in _FIELDS}
    for field in _DATETIME_FIELDS:
        if values[field]:
            values[field] = as_utc(datetime.fromisoformat(values[field]))
    if not values["subscribed_at"]:
        values["subscribed_at"] = values["updated_at"] or _UNKNOWN_SUBSCRIBED_AT
    if values["is_active"] is None:
        values["is_active"] = True
    if not values["preferences"]:
        values["preferences"] = default_preferences()
    return NewsletterSubscriber(**values)


class JsonFileSubscriberStore(SubscriberStore):
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {"nextId": 1, "subscribers": []}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        data.setdefault("subscribers", [])
        data.setdefault("nextId", max((s["id"] for s in data["subscribers"]), default=0) + 1)
        return data

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
            logger.debug("Wrote %s subscriber(s) to %s", len(data["subscribers"]), self.path)
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _load(self) -> List[NewsletterSubscriber]:
        return [_from_record(r) for r in self._read()["subscribers"]]

    async def list(self, *, active_only=False, source=None, search=None, page=1, limit=50) -> Page:
        items = self._load()
        if active_only:
            items = [s for s in items if s.is_active]
        if source:
            items = [s for s in items if s.source == source]
        if search and search.strip():
            needle = search.strip().lower()
            items = [s for s in items if needle in s.email]
        items.sort(key=lambda s: (s.subscribed_at, s.id), reverse=True)
        offset = (page - 1) * limit
        return Page(items=items[offset:offset + limit], total=len(items), page=page, limit=limit)

    async def all(self) -> List[NewsletterSubscriber]:
        return sorted(self._load(), key=lambda s: s.id)

    async def get_by_id(self, subscriber_id: int) -> Optional[NewsletterSubscriber]:
        return next((s for s in self._load() if s.id == subscriber_id), None)

    async def get_by_email(self, email: str) -> Optional[NewsletterSubscriber]:
        return next((s for s in self._load() if s.email == email), None)

    async def get_by_token(self, token: str) -> Optional[NewsletterSubscriber]:
        return next((s for s in self._load() if s.unsubscribe_token == token), None)

    async def find_by_emails(self, emails: Iterable[str]) -> List[NewsletterSubscriber]:
        wanted = set(emails)
        return [s for s in self._load() if s.email in wanted]

    async def add(self, subscriber: NewsletterSubscriber) -> NewsletterSubscriber:
        data = self._read()
        now = utcnow()
        subscriber.id = data["nextId"]
        if subscriber.is_active is None:
            subscriber.is_active = True
        if subscriber.subscribed_at is None:
            subscriber.subscribed_at = now
        if subscriber.preferences is None:
            subscriber.preferences = default_preferences()
        subscriber.updated_at = now
        data["subscribers"].append(_to_record(subscriber))
        data["nextId"] = subscriber.id + 1
        self._write(data)
        return subscriber

    async def save(self, subscriber: NewsletterSubscriber) -> NewsletterSubscriber:
        data = self._read()
        subscriber.updated_at = utcnow()
        for i, record in enumerate(data["subscribers"]):
            if record["id"] == subscriber.id:
                data["subscribers"][i] = _to_record(subscriber)
                break
        else:
            raise NotFoundError("Subscriber", subscriber.id)
        self._write(data)
        return subscriber

    async def delete(self, subscriber: NewsletterSubscriber) -> None:
        data = self._read()
        data["subscribers"] = [r for r in data["subscribers"] if r["id"] != subscriber.id]
        self._write(data)

    async def counts(self, since: datetime) -> tuple[int, int, int]:
        items = self._load()
        return (
            len(items),
            sum(1 for s in items if s.is_active),
            sum(1 for s in items if s.subscribed_at >= since),
        )


def get_subscriber_store(db: SessionDep) -> SubscriberStore:
    if settings.NEWSLETTER_STORAGE == "json":
        return JsonFileSubscriberStore(Path(settings.DATA_DIR) / JSON_STORE_FILENAME)
    return SqlSubscriberStore(db)

StoreDep = Annotated[SubscriberStore, Depends(get_subscriber_store)]
