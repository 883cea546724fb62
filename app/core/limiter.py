"""Rate limiter instance for SlowAPI.

Shared so both main (app.state.limiter) and route modules can use the same
instance without circular imports. Central limit strings and decorators
keep rate limits DRY.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# Single source of truth for rate limit strings and decorators.
ADMIN_READ_LIMIT = "60/minute"
CACHE_CLEAR_LIMIT = "10/minute"
CACHE_WARMUP_LIMIT = "5/minute"
WRITE_ENDPOINT_LIMIT = "120/minute"

limit_admin_reads = limiter.limit(ADMIN_READ_LIMIT)
limit_cache_clear = limiter.limit(CACHE_CLEAR_LIMIT)
limit_cache_warmup = limiter.limit(CACHE_WARMUP_LIMIT)
limit_writes = limiter.limit(WRITE_ENDPOINT_LIMIT)
