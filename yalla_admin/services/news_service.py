"""System news service"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.errors import ErrorCode, NotFoundException
from yalla_admin.models.content import NewsReadStatus, SystemNews
from yalla_admin.schemas.auth import CurrentUser
from yalla_admin.schemas.common import MessageResponse, PagedResponse
from yalla_admin.schemas.content import NewsResponse, UnreadCount


class NewsService:
    """Published announcements shown in the dashboard"""

    async def list_news(
        self,
        db: AsyncSession,
        user: CurrentUser,
        page: int = 1,
        page_size: int = 20,
    ) -> PagedResponse[NewsResponse]:
        visible = await self._visible_news(db, user.role)
        read_ids = await self._read_ids(db, user.user_id)

        start = (page - 1) * page_size
        items = [
            self._to_response(news, news.id in read_ids)
            for news in visible[start:start + page_size]
        ]
        return PagedResponse.build(items, len(visible), page, page_size)

    async def get_news(self, db: AsyncSession, user: CurrentUser, news_id: str) -> NewsResponse:
        news = await self._get(db, user.role, news_id)
        read_ids = await self._read_ids(db, user.user_id)
        return self._to_response(news, news.id in read_ids)

    async def mark_as_read(self, db: AsyncSession, user: CurrentUser, news_id: str) -> MessageResponse:
        news = await self._get(db, user.role, news_id)
        existing = await db.scalar(
            select(NewsReadStatus).where(
                NewsReadStatus.news_id == news.id,
                NewsReadStatus.user_id == user.user_id,
            )
        )
        if existing is None:
            db.add(NewsReadStatus(news_id=news.id, user_id=user.user_id))
            await db.commit()
        return MessageResponse(message="Новость отмечена как прочитанная")

    async def get_unread_count(self, db: AsyncSession, user: CurrentUser) -> UnreadCount:
        visible = await self._visible_news(db, user.role)
        read_ids = await self._read_ids(db, user.user_id)
        return UnreadCount(count=sum(1 for news in visible if news.id not in read_ids))

    @staticmethod
    async def _visible_news(db: AsyncSession, role: str) -> list[SystemNews]:
        # target_roles is a JSON list, filtered here to stay portable across databases
        result = await db.execute(
            select(SystemNews)
            .where(SystemNews.is_published.is_(True))
            .order_by(SystemNews.published_at.desc(), SystemNews.created_at.desc())
        )
        return [news for news in result.scalars().all() if not news.target_roles or role in news.target_roles]

    @staticmethod
    async def _read_ids(db: AsyncSession, user_id: str) -> set[str]:
        result = await db.execute(select(NewsReadStatus.news_id).where(NewsReadStatus.user_id == user_id))
        return set(result.scalars().all())

    async def _get(self, db: AsyncSession, role: str, news_id: str) -> SystemNews:
        news = await db.get(SystemNews, news_id)
        if news is None or not news.is_published or (news.target_roles and role not in news.target_roles):
            raise NotFoundException(ErrorCode.NEWS_NOT_FOUND)
        return news

    @staticmethod
    def _to_response(news: SystemNews, is_read: bool) -> NewsResponse:
        return NewsResponse(
            id=news.id,
            title=news.title,
            content=news.content,
            published_at=news.published_at,
            is_read=is_read,
        )


# Global instance
news_service = NewsService()
