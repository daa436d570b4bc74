from fastapi import Request
from mediaproxy.infra.redis import get_redis
from mediaproxy.config.settings import config
from mediaproxy.core.errors import MediaProxyError
from mediaproxy.utils.locale import get_locale
from mediaproxy.i18n import i18n

class RateLimitExceeded(MediaProxyError):
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after

class RedisRateLimiter:
    """Fixed-window per-client limiter backed by a Redis Lua script"""

    def __init__(self):
        self.lua_script = """
        local key = KEYS[1]
        local limit = tonumber(ARGV[1])
        local window = tonumber(ARGV[2])

        local current = redis.call('INCR', key)
        if current == 1 then
            redis.call('EXPIRE', key, window)
        end

        if current > limit then
            local ttl = redis.call('TTL', key)
            return {0, ttl}
        end

        return {1, 0}
        """

    async def __call__(self, request: Request):
        if not config.rate_limit.enabled:
            return True

        redis = get_redis()
        if not redis:
            return True

        client_ip = request.client.host if request.client else "unknown"
        key = f"rate:{client_ip}:{request.url.path}"

        try:
            allowed, ttl = await redis.eval(
                self.lua_script,
                1,
                key,
                config.rate_limit.max_requests,
                config.rate_limit.window_seconds
            )
        except Exception:
            # Redis trouble never blocks a request
            return True

        if not allowed:
            locale = get_locale(request.headers.get("accept-language"))
            raise RateLimitExceeded(i18n.get("error.rate_limit", locale=locale, seconds=ttl), ttl)

        return True

rate_limiter = RedisRateLimiter()
