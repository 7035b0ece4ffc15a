"""Request rate limiting and login brute-force protection using Redis"""

import redis.asyncio as aioredis

from yalla_admin.core.config import logger, settings


class RateLimiter:
    """
    Redis counters for per-IP request limits and failed login attempts

    Every check fails open: when Redis is unavailable requests are allowed.
    """

    def __init__(self):
        self._redis: aioredis.Redis | None = None

    def get_redis(self) -> aioredis.Redis:
        """Get Redis connection (created lazily)"""
        if self._redis is None:
            self._redis = aioredis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=1,
            )
        return self._redis

    async def check_rate_limit_ip(
        self,
        ip_address: str,
        limit: int | None = None,
        window: int = 60,
    ) -> tuple[bool, int]:
        """
        Check rate limit for IP address

        Args:
            ip_address: Client IP address
            limit: Maximum requests allowed (default from settings)
            window: Time window in seconds (default: 60)

        Returns:
            Tuple of (is_allowed, remaining_requests)
        """
        if limit is None:
            limit = settings.rate_limit_per_minute

        key = f"yalla:rate_limit:ip:{ip_address}"

        try:
            redis = self.get_redis()
            current = await redis.incr(key)

            # Set expiration on first request
            if current == 1:
                await redis.expire(key, window)

            is_allowed = current <= limit
            remaining = max(0, limit - current)

            if not is_allowed:
                logger.warning(
                    f"Rate limit exceeded for IP {ip_address}: {current}/{limit} in {window}s"
                )

            return is_allowed, remaining

        except Exception as e:
            logger.error(f"Rate limiter error (IP): {e}")
            # Fail open - allow request if Redis is down
            return True, limit

    async def record_failed_login(self, phone: str, ip_address: str) -> None:
        """
        Record a failed login attempt for the phone and the IP address

        Args:
            phone: Phone used for the attempt
            ip_address: IP address of the request
        """
        phone_key = f"yalla:failed_login:phone:{phone}"
        ip_key = f"yalla:failed_login:ip:{ip_address}"

        try:
            redis = self.get_redis()
            phone_count = await redis.incr(phone_key)
            ip_count = await redis.incr(ip_key)

            # Counters reset after the lockout duration
            if phone_count == 1:
                await redis.expire(phone_key, settings.brute_force_lockout_duration)
            if ip_count == 1:
                await redis.expire(ip_key, settings.brute_force_lockout_duration)

            logger.warning(
                f"Failed login attempt: phone={phone}, ip={ip_address}, "
                f"phone_count={phone_count}, ip_count={ip_count}"
            )

        except Exception as e:
            logger.error(f"Failed to record failed login: {e}")

    async def is_locked_out(self, phone: str, ip_address: str) -> tuple[bool, str | None]:
        """
        Check whether logins are locked for the phone or the IP address

        Returns:
            Tuple of (is_locked, reason)
        """
        try:
            redis = self.get_redis()
            phone_count = int(await redis.get(f"yalla:failed_login:phone:{phone}") or 0)
            ip_count = int(await redis.get(f"yalla:failed_login:ip:{ip_address}") or 0)
        except Exception as e:
            logger.error(f"Failed to check lockout: {e}")
            return False, None

        threshold = settings.brute_force_threshold
        if phone_count >= threshold:
            return True, f"Too many failed attempts for phone {phone}"
        # IP addresses may be shared by an office, allow more attempts
        if ip_count >= threshold * 3:
            return True, f"Too many failed attempts from IP {ip_address}"
        return False, None

    async def reset_failed_logins(self, phone: str, ip_address: str) -> None:
        """Reset failed login counters after a successful login"""
        try:
            redis = self.get_redis()
            await redis.delete(
                f"yalla:failed_login:phone:{phone}",
                f"yalla:failed_login:ip:{ip_address}",
            )
        except Exception as e:
            logger.error(f"Failed to reset failed logins: {e}")

    async def close(self) -> None:
        """Close Redis connection"""
        if self._redis:
            await self._redis.aclose()
            self._redis = None


# Global instance
rate_limiter = RateLimiter()
