"""
Тесты новостей, документов и времени отсечки.
"""

from datetime import datetime, time, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select

from yalla_admin.core.errors import ErrorCode
from yalla_admin.models.company import Project
from yalla_admin.models.content import CompanyDocument, SystemNews
from yalla_admin.services.storage_service import StorageService


@pytest_asyncio.fixture
async def news(db_session):
    items = [
        SystemNews(
            title="Новое меню",
            content="С понедельника новое меню",
            is_published=True,
            published_at=datetime(2024, 1, 8, tzinfo=timezone.utc),
            target_roles=[],
        ),
        SystemNews(
            title="Только для менеджеров",
            content="Инструкция",
            is_published=True,
            published_at=datetime(2024, 1, 9, tzinfo=timezone.utc),
            target_roles=["MANAGER"],
        ),
        SystemNews(title="Черновик", content="Не опубликовано", is_published=False, target_roles=[]),
    ]
    db_session.add_all(items)
    await db_session.commit()
    return items


class TestNews:
    """Тесты ленты новостей."""

    @pytest.mark.asyncio
    async def test_list_filters_by_role(self, client, admin_headers, news):
        response = await client.get("/api/v1/news", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["title"] == "Новое меню"
        assert data["items"][0]["isRead"] is False

    @pytest.mark.asyncio
    async def test_mark_as_read(self, client, admin_headers, news):
        before = await client.get("/api/v1/news/unread-count", headers=admin_headers)
        assert before.json()["count"] == 1

        response = await client.post(f"/api/v1/news/{news[0].id}/read", headers=admin_headers)
        assert response.status_code == 200
        # повторная отметка не создаёт дубликат
        await client.post(f"/api/v1/news/{news[0].id}/read", headers=admin_headers)

        after = await client.get("/api/v1/news/unread-count", headers=admin_headers)
        assert after.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_hidden_news_not_found(self, client, admin_headers, news):
        for item in news[1:]:
            response = await client.get(f"/api/v1/news/{item.id}", headers=admin_headers)
            assert response.status_code == 404
            assert response.json()["error"]["code"] == ErrorCode.NEWS_NOT_FOUND


class TestCutoffTime:
    """Тесты времени отсечки заказов."""

    @pytest.mark.asyncio
    async def test_get_company_cutoff(self, client, admin_headers):
        response = await client.get("/api/v1/home/cutoff-time", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["cutoffTime"] == "10:30"
        assert response.json()["timezone"] == "Asia/Dushanbe"

    @pytest.mark.asyncio
    async def test_update_applies_to_projects(self, client, admin_headers, project, db_session):
        response = await client.put(
            "/api/v1/home/cutoff-time",
            json={"cutoffTime": "11:15"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["cutoffTime"] == "11:15"
        stored = await db_session.scalar(
            select(Project.cutoff_time).where(Project.id == project.id).execution_options(populate_existing=True)
        )
        assert stored == time(11, 15)

    @pytest.mark.asyncio
    async def test_invalid_format(self, client, admin_headers):
        response = await client.put(
            "/api/v1/home/cutoff-time",
            json={"cutoffTime": "9:5"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == ErrorCode.INVALID_TIME_FORMAT
        assert error["message"] == "Неверный формат времени. Используйте формат HH:mm"


class TestDocuments:
    """Тесты документов компании и ссылок на скачивание."""

    @pytest.mark.asyncio
    async def test_download_absolute_url(self, client, admin_headers, company, db_session):
        document = CompanyDocument(
            company_id=company.id,
            type="CONTRACT",
            file_name="contract.pdf",
            file_url="https://cdn.example.com/contract.pdf",
        )
        db_session.add(document)
        await db_session.commit()

        listing = await client.get("/api/v1/documents", headers=admin_headers)
        assert listing.json()["total"] == 1

        response = await client.get(f"/api/v1/documents/{document.id}/download", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["url"] == "https://cdn.example.com/contract.pdf"
        assert response.json()["expiresIn"] is None

    @pytest.mark.asyncio
    async def test_unknown_document(self, client, admin_headers):
        response = await client.get("/api/v1/documents/missing", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == ErrorCode.DOCUMENT_NOT_FOUND


class TestStorageService:
    """Тесты подписи ссылок в Supabase Storage."""

    @pytest.fixture
    def storage(self):
        return StorageService(
            base_url="https://storage.example.com/",
            service_key="service-key",
            bucket="documents",
            ttl_seconds=600,
        )

    @pytest.mark.asyncio
    async def test_not_configured_returns_stored_path(self):
        storage = StorageService(base_url="", service_key="", bucket="documents")

        assert await storage.get_download_url("acts/2024-01.pdf") == ("acts/2024-01.pdf", None)

    @pytest.mark.asyncio
    async def test_signed_url(self, storage):
        signed = httpx.Response(
            200,
            json={"signedURL": "/object/sign/documents/acts/2024-01.pdf?token=abc"},
            request=httpx.Request("POST", "https://storage.example.com"),
        )
        with patch.object(httpx.AsyncClient, "post", AsyncMock(return_value=signed)) as mock_post:
            url, expires_in = await storage.get_download_url("/acts/2024-01.pdf")

        assert url == "https://storage.example.com/storage/v1/object/sign/documents/acts/2024-01.pdf?token=abc"
        assert expires_in == 600
        called_url = mock_post.call_args.args[0]
        assert called_url == "https://storage.example.com/storage/v1/object/sign/documents/acts/2024-01.pdf"
        assert mock_post.call_args.kwargs["json"] == {"expiresIn": 600}

    @pytest.mark.asyncio
    async def test_signing_failure_falls_back(self, storage):
        with patch.object(httpx.AsyncClient, "post", AsyncMock(side_effect=httpx.ConnectError("down"))):
            url, expires_in = await storage.get_download_url("acts/2024-01.pdf")

        assert url == "acts/2024-01.pdf"
        assert expires_in is None
