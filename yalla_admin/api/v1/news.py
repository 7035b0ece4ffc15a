"""System news endpoints"""

from fastapi import APIRouter, Query

from yalla_admin.core.dependencies import AuthUser, DBSession
from yalla_admin.schemas.common import MessageResponse, PagedResponse
from yalla_admin.schemas.content import NewsResponse, UnreadCount
from yalla_admin.services.news_service import news_service

router = APIRouter()


@router.get("", response_model=PagedResponse[NewsResponse])
async def list_news(
    user: AuthUser,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
):
    return await news_service.list_news(db, user, page, page_size)


@router.get("/unread-count", response_model=UnreadCount)
async def get_unread_count(user: AuthUser, db: DBSession):
    return await news_service.get_unread_count(db, user)


@router.get("/{news_id}", response_model=NewsResponse)
async def get_news(news_id: str, user: AuthUser, db: DBSession):
    return await news_service.get_news(db, user, news_id)


@router.post("/{news_id}/read", response_model=MessageResponse)
async def mark_as_read(news_id: str, user: AuthUser, db: DBSession):
    return await news_service.mark_as_read(db, user, news_id)
