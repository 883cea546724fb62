"""Domain value objects for the mentoring cache.

Value objects are immutable types that represent cache concepts with
self-validation. They have no identity, only value.
"""

from dataclasses import dataclass


def _validate_code(value: str | None, field_name: str, max_len: int = 255) -> None:
    """Validate a tenant/organization code: non-empty string within max_len.

    Raises:
        ValueError: If value is empty or too long.
    """
    if not value or not isinstance(value, str):
        raise ValueError(f"{field_name} must be a non-empty string")
    if len(value) > max_len:
        raise ValueError(f"{field_name} must not exceed {max_len} characters")


def _normalize_entity_id(value: object) -> str:
    """Return the entity id as a string. Integer ids (e.g. user ids) are converted.

    Raises:
        ValueError: If value is not a string or integer, or is empty.
    """
    if isinstance(value, bool) or not isinstance(value, str | int):
        raise ValueError("entity_id must be a string or an integer")
    text = str(value)
    if not text:
        raise ValueError("entity_id must not be empty")
    return text


@dataclass(frozen=True)
class NamespaceSpec:
    """Static configuration of one cache namespace.

    Built once at startup into the NamespaceRegistry and never mutated.
    default_ttl None means entries never expire and are only removed by
    explicit invalidation (used for permissions).

    Attributes:
        name: Registered namespace name; the leading key component.
        key_template: Human-readable key shape, for health output and docs.
        default_ttl: TTL in seconds, or None for never.
        allow_negative_caching: Cache "not found" loader results.
        enabled: When False, reads miss and writes are skipped.
        use_internal: Route entries to the per-process store.
    """

    name: str
    key_template: str
    default_ttl: int | None
    allow_negative_caching: bool = False
    enabled: bool = True
    use_internal: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Namespace name must be a non-empty string")
        if self.default_ttl is not None and self.default_ttl <= 0:
            raise ValueError(
                f"Namespace {self.name!r} default_ttl must be positive or None"
            )


@dataclass(frozen=True)
class CacheKey:
    """Composite cache key: namespace, tenant, organization, entity id.

    Two keys with identical components always resolve to the same slot.
    organization_code and entity_id are optional; namespaces such as
    platformConfig have no entity id. An integer entity_id is stored as its
    string form, so 42 and "42" address the same slot.
    """

    namespace: str
    tenant_code: str
    organization_code: str | None = None
    entity_id: str | None = None

    def __post_init__(self) -> None:
        if not self.namespace or not isinstance(self.namespace, str):
            raise ValueError("Cache key namespace is required")
        _validate_code(self.tenant_code, "tenant_code")
        if self.organization_code is not None:
            _validate_code(self.organization_code, "organization_code")
        if self.entity_id is not None:
            object.__setattr__(self, "entity_id", _normalize_entity_id(self.entity_id))


@dataclass(frozen=True)
class CacheEntry:
    """One stored entry in a backing store.

    value is the serialized payload; stored_at and expires_at are on the
    store's clock (expires_at None = never expires).
    """

    key: str
    value: str
    stored_at: float
    expires_at: float | None = None

    def is_expired(self, now: float) -> bool:
        """Return True if the entry's TTL has elapsed at time now."""
        return self.expires_at is not None and now >= self.expires_at
