"""Base repository with common data access operations."""

from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from src.drip.schemas.pagination import decode_cursor, encode_cursor


def _parse_cursor(cursor: str) -> datetime | UUID | str:
    raw = decode_cursor(cursor)
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return UUID(raw)
    except ValueError:
        return raw


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit)
    belongs to the service layer.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        """Get a record by its primary key."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def paginate(
        self,
        query: Any,
        cursor: str | None,
        limit: int,
        cursor_field: Any,
    ) -> tuple[list[ModelType], str | None, bool]:
        """Run ``query`` newest-first, one page at a time.

        Args:
            query: Base select to paginate.
            cursor: Cursor returned by the previous page, if any.
            limit: Maximum number of items to return.
            cursor_field: Column the cursor is taken from (datetime, UUID or scalar).

        Returns:
            Tuple of (items, next_cursor, has_more). An undecodable cursor
            restarts from the first page.
        """
        if cursor:
            try:
                query = query.where(cursor_field < _parse_cursor(cursor))
            except (ValueError, TypeError):
                pass

        query = query.order_by(cursor_field.desc()).limit(limit + 1)
        result = await self.session.execute(query)
        items = list(result.scalars().all())

        has_more = len(items) > limit
        if has_more:
            items = items[:limit]

        next_cursor = None
        if has_more and items:
            value = getattr(items[-1], cursor_field.key)
            if isinstance(value, datetime):
                next_cursor = encode_cursor(value.isoformat())
            elif value is not None:
                next_cursor = encode_cursor(str(value))

        return items, next_cursor, has_more
