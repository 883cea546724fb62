"""Core constants: cache key structure and shared literal values.

Single source of truth for cache key structure (DRY). Used by the cache
key builders, the namespace registry and the admin surface.
"""

# Delimiter for composite keys: {namespace}:{tenant}:{organization}:{entity_id}
CACHE_KEY_SEP = ":"

# Stand-in for an absent organization or entity id (e.g. platformConfig).
CACHE_KEY_NONE = "_"

# Stored in place of a value when a loader found nothing (negative caching).
CACHE_MISS_MARKER = "__missing__"

# Seconds in one day; default TTL for configuration-like namespaces.
ONE_DAY_SECONDS = 86400
ONE_HOUR_SECONDS = 3600

# Redis SCAN page size and UNLINK batch size for prefix deletes.
CACHE_SCAN_BATCH = 500

# Registered namespace names (wire values; also accepted by the admin API).
NS_SESSIONS = "sessions"
NS_ENTITY_TYPES = "entityTypes"
NS_FORMS = "forms"
NS_ORGANIZATIONS = "organizations"
NS_MENTOR = "mentor"
NS_MENTEE = "mentee"
NS_PLATFORM_CONFIG = "platformConfig"
NS_NOTIFICATION_TEMPLATES = "notificationTemplates"
NS_DISPLAY_PROPERTIES = "displayProperties"
NS_PERMISSIONS = "permissions"
NS_API_PERMISSIONS = "apiPermissions"

# Minimum seconds between connect attempts for a Redis store that is down.
REDIS_RECONNECT_INTERVAL_SECONDS = 5.0
