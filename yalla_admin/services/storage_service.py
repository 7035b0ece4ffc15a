"""File storage: signed download links from Supabase Storage"""

import httpx

from yalla_admin.core.config import logger, settings


class StorageService:
    """
    Signs private object paths with the Supabase Storage REST API

    Stored values that are already absolute URLs are returned as they are.
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        ttl_seconds: int = 3600,
        timeout: float = 10.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._service_key = service_key
        self._bucket = bucket
        self._ttl_seconds = ttl_seconds
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url and self._service_key)

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    async def get_download_url(self, stored: str) -> tuple[str, int | None]:
        """
        Download URL for a stored document location

        Args:
            stored: Absolute URL or object path inside the bucket

        Returns:
            URL and its lifetime in seconds (None for permanent URLs)
        """
        if stored.startswith(("http://", "https://")) or not self.is_configured:
            return stored, None

        path = stored.lstrip("/")
        url = f"{self._base_url}/storage/v1/object/sign/{self._bucket}/{path}"
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            try:
                response = await client.post(
                    url,
                    json={"expiresIn": self._ttl_seconds},
                    headers={
                        "Authorization": f"Bearer {self._service_key}",
                        "apikey": self._service_key,
                    },
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning(f"Failed to sign storage object {path}: {e}")
                return stored, None

        signed = response.json().get("signedURL") or response.json().get("signedUrl")
        if not signed:
            logger.warning(f"Storage returned no signed URL for {path}")
            return stored, None
        return f"{self._base_url}/storage/v1{signed}", self._ttl_seconds


# Global instance
storage_service = StorageService(
    base_url=settings.supabase_url,
    service_key=settings.supabase_service_key,
    bucket=settings.supabase_bucket,
    ttl_seconds=settings.supabase_signed_url_ttl,
)
