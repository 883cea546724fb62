"""Tests for cache key builders (format, validation, prefixes, parsing)."""

import pytest

from app.domain.exceptions import ValidationException
from app.infrastructure.cache.keys import (
    cache_key,
    namespace_of,
    parse_key,
    scope_prefix,
    slot_prefix,
)


def test_cache_key_full_form() -> None:
    assert cache_key("mentor", "t1", "o1", "u42") == "mentor:t1:o1:u42"


def test_cache_key_uses_placeholder_for_missing_parts() -> None:
    """platformConfig has no entity id; tenant-level entries have no organization."""
    assert cache_key("platformConfig", "t1", "o1") == "platformConfig:t1:o1:_"
    assert cache_key("permissions", "t1", None, "admin") == "permissions:t1:_:admin"


def test_cache_key_is_deterministic() -> None:
    """Identical components always resolve to the same physical key."""
    assert cache_key("forms", "t1", "o1", "a:b") == cache_key("forms", "t1", "o1", "a:b")


def test_namespace_is_leading_component() -> None:
    """Two namespaces never alias the same slot."""
    assert cache_key("mentor", "t1", "o1", "u1") != cache_key("mentee", "t1", "o1", "u1")
    assert namespace_of(cache_key("mentee", "t1", "o1", "u1")) == "mentee"


def test_entity_id_may_contain_separator() -> None:
    assert (
        cache_key("apiPermissions", "t1", "o1", "admin:users:/v1/list")
        == "apiPermissions:t1:o1:admin:users:/v1/list"
    )


@pytest.mark.parametrize(
    ("tenant", "org"),
    [("", "o1"), ("t:1", "o1"), ("t1", "o:1"), ("_", "o1"), ("t1", "")],
)
def test_cache_key_rejects_invalid_components(tenant: str, org: str) -> None:
    with pytest.raises(ValidationException):
        cache_key("mentor", tenant, org, "u1")


def test_cache_key_rejects_overlong_tenant() -> None:
    with pytest.raises(ValidationException):
        cache_key("mentor", "t" * 256, "o1", "u1")


def test_scope_prefix_narrowing() -> None:
    assert scope_prefix("mentor") == "mentor:"
    assert scope_prefix("mentor", "t1") == "mentor:t1:"
    assert scope_prefix("mentor", "t1", "o1") == "mentor:t1:o1:"


def test_scope_prefix_tenant_does_not_match_longer_tenant() -> None:
    """Prefix ends with the separator so t1 never matches t10."""
    assert not cache_key("mentor", "t10", "o1", "u1").startswith(scope_prefix("mentor", "t1"))


def test_scope_prefix_org_without_tenant_is_rejected() -> None:
    with pytest.raises(ValidationException):
        scope_prefix("mentor", None, "o1")


def test_slot_prefix_selects_one_organization() -> None:
    assert slot_prefix("sessions", "t1", "o1") == "sessions:t1:o1:"
    assert slot_prefix("permissions", "t1") == "permissions:t1:_:"


def test_parse_key_inverts_cache_key() -> None:
    key = parse_key("apiPermissions:t1:_:admin:users:/v1")
    assert key.namespace == "apiPermissions"
    assert key.tenant_code == "t1"
    assert key.organization_code is None
    assert key.entity_id == "admin:users:/v1"


def test_parse_key_rejects_short_keys() -> None:
    with pytest.raises(ValidationException):
        parse_key("mentor:t1")


def test_integer_entity_id_uses_string_form() -> None:
    assert cache_key("mentor", "t1", "o1", 42) == "mentor:t1:o1:42"
    assert cache_key("mentor", "t1", "o1", 0) == "mentor:t1:o1:0"
    assert cache_key("mentor", "t1", "o1", 0) != cache_key("mentor", "t1", "o1")


@pytest.mark.parametrize("entity_id", ["_", "", 4.2, False])
def test_cache_key_rejects_invalid_entity_ids(entity_id) -> None:
    with pytest.raises(ValidationException):
        cache_key("mentor", "t1", "o1", entity_id)


@pytest.mark.parametrize(("namespace", "tenant"), [(5, "t1"), ("mentor", 7)])
def test_cache_key_rejects_non_string_codes(namespace, tenant) -> None:
    with pytest.raises(ValidationException):
        cache_key(namespace, tenant, "o1", "u1")
