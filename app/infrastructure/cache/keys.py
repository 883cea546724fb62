"""Cache key builders. Single place for key format (DRY).

Physical key: {namespace}:{tenant_code}:{organization_code}:{entity_id}.
The namespace is always the leading component, so two namespaces never
alias the same slot. Namespace, tenant and organization must not contain
CACHE_KEY_SEP; the entity id is the last component and may contain it
(composite ids such as role:module:path). Integer entity ids are keyed by
their string form; an entity id equal to the placeholder is rejected so it
never aliases the entity-less slot.
"""

from app.core.constants import CACHE_KEY_NONE, CACHE_KEY_SEP
from app.domain.exceptions import ValidationException
from app.domain.value_objects import CacheKey


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValidationException unless value is a usable key component string.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValidationException: If value cannot be used as a key component.
    """
    if not value or not isinstance(value, str):
        raise ValidationException(
            f"Cache key component {name!r} must be a non-empty string", field=name
        )
    if CACHE_KEY_SEP in value:
        raise ValidationException(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}",
            field=name,
        )
    if value == CACHE_KEY_NONE:
        raise ValidationException(
            f"Cache key component {name!r} must not be the placeholder {CACHE_KEY_NONE!r}",
            field=name,
        )


def build_key(key: CacheKey) -> str:
    """Render a CacheKey to its physical string form.

    Args:
        key: Composite cache key.

    Returns:
        Key string, e.g. 'mentor:t1:o1:u42' or 'platformConfig:t1:o1:_'.
    """
    _validate_key_component(key.namespace, "namespace")
    _validate_key_component(key.tenant_code, "tenant_code")
    org = key.organization_code
    if org is not None:
        _validate_key_component(org, "organization_code")
    entity = key.entity_id
    if entity == CACHE_KEY_NONE:
        raise ValidationException(
            f"Cache key entity_id must not be the placeholder {CACHE_KEY_NONE!r}",
            field="entity_id",
        )
    return CACHE_KEY_SEP.join(
        [
            key.namespace,
            key.tenant_code,
            CACHE_KEY_NONE if org is None else org,
            CACHE_KEY_NONE if entity is None else entity,
        ]
    )


def cache_key(
    namespace: str,
    tenant_code: str,
    organization_code: str | None = None,
    entity_id: str | int | None = None,
) -> str:
    """Build the physical key from its components (see build_key).

    Raises:
        ValidationException: If a component is missing, mistyped or malformed.
    """
    try:
        key = CacheKey(namespace, tenant_code, organization_code, entity_id)
    except ValueError as e:
        raise ValidationException(str(e)) from e
    return build_key(key)


def scope_prefix(
    namespace: str,
    tenant_code: str | None = None,
    organization_code: str | None = None,
) -> str:
    """Build a key prefix covering a namespace, optionally narrowed to tenant and organization.

    The prefix always ends with CACHE_KEY_SEP so tenant 't1' never matches 't10'.
    organization_code None with a tenant means every organization, including
    tenant-level entries stored under the placeholder.

    Raises:
        ValidationException: If organization_code is given without tenant_code.
    """
    _validate_key_component(namespace, "namespace")
    parts = [namespace]
    if tenant_code is not None:
        _validate_key_component(tenant_code, "tenant_code")
        parts.append(tenant_code)
        if organization_code is not None:
            _validate_key_component(organization_code, "organization_code")
            parts.append(organization_code)
    elif organization_code is not None:
        raise ValidationException(
            "organization_code requires tenant_code", field="organization_code"
        )
    return CACHE_KEY_SEP.join(parts) + CACHE_KEY_SEP


def slot_prefix(
    namespace: str,
    tenant_code: str,
    organization_code: str | None = None,
) -> str:
    """Prefix of every entity under exactly (namespace, tenant, organization).

    Unlike scope_prefix, a missing organization selects the tenant-level
    slot ('_') only, not every organization.
    """
    base = cache_key(namespace, tenant_code, organization_code, None)
    return base[: -len(CACHE_KEY_NONE)]


def namespace_of(physical_key: str) -> str:
    """Return the namespace (leading component) of a physical key."""
    return physical_key.split(CACHE_KEY_SEP, 1)[0]


def parse_key(physical_key: str) -> CacheKey:
    """Parse a physical key back into its components.

    Raises:
        ValidationException: If the key does not have four components.
    """
    parts = physical_key.split(CACHE_KEY_SEP, 3)
    if len(parts) != 4:
        raise ValidationException(f"Malformed cache key: {physical_key!r}", field="key")
    namespace, tenant_code, org, entity = parts
    try:
        return CacheKey(
            namespace,
            tenant_code,
            None if org == CACHE_KEY_NONE else org,
            None if entity == CACHE_KEY_NONE else entity,
        )
    except ValueError as e:
        raise ValidationException(str(e), field="key") from e
