"""Pytest configuration and fixtures for the mentoring cache service.

HTTP tests use app.main:app through httpx ASGITransport, which does not run
the lifespan; the client fixture builds an in-memory cache runtime and
attaches it to app.state instead. Authoritative sources are in-memory fakes
handed to the runtime as source scopes.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from app.application.dtos.organization import EntityTypeResult, OrganizationResult
from app.core.cache_runtime import CacheRuntime, build_cache_runtime
from app.core.config import Settings, get_settings
from app.core.limiter import limiter
from app.domain.enums import OrganizationStatus
from app.domain.exceptions import ResourceNotFoundException
from app.infrastructure.cache import CacheCore, CacheHelper, InMemoryCacheStore, build_registry
from app.infrastructure.messaging import InMemoryInvalidationTransport, InvalidationBus
from app.infrastructure.persistence.sources import DataSources
from app.main import app

TENANT = "t1"
ORG = "o1"


class FakeOrganizationRepository:
    """In-memory organization source keyed by (tenant, org)."""

    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], OrganizationResult] = {}
        self.reads = 0
        self.fail_reads = False

    def add(
        self,
        tenant_code: str,
        organization_code: str,
        *,
        status: str = OrganizationStatus.ACTIVE.value,
        platform_config: dict[str, Any] | None = None,
        display_properties: dict[str, Any] | None = None,
    ) -> OrganizationResult:
        org = OrganizationResult(
            id=f"id-{tenant_code}-{organization_code}",
            tenant_code=tenant_code,
            organization_code=organization_code,
            organization_id=None,
            name=f"Org {organization_code}",
            status=status,
            platform_config=platform_config or {},
            display_properties=display_properties or {},
        )
        self.rows[(tenant_code, organization_code)] = org
        return org

    async def get_by_code(
        self, tenant_code: str, organization_code: str
    ) -> OrganizationResult | None:
        self.reads += 1
        if self.fail_reads:
            raise RuntimeError("database unavailable")
        return self.rows.get((tenant_code, organization_code))

    async def list_active_codes(self, tenant_code: str) -> list[str]:
        return sorted(
            org.organization_code
            for (t, _), org in self.rows.items()
            if t == tenant_code and org.status == OrganizationStatus.ACTIVE.value
        )

    async def update_platform_config(
        self, tenant_code: str, organization_code: str, config: dict[str, Any]
    ) -> OrganizationResult:
        current = self.rows.get((tenant_code, organization_code))
        if current is None:
            raise ResourceNotFoundException("organization", f"{tenant_code}/{organization_code}")
        updated = OrganizationResult(
            id=current.id,
            tenant_code=current.tenant_code,
            organization_code=current.organization_code,
            organization_id=current.organization_id,
            name=current.name,
            status=current.status,
            platform_config=dict(config),
            display_properties=current.display_properties,
        )
        self.rows[(tenant_code, organization_code)] = updated
        return updated


class FakeEntityTypeRepository:
    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], list[EntityTypeResult]] = {}

    def add(self, tenant_code: str, organization_code: str, model_name: str, value: str) -> None:
        self.rows.setdefault((tenant_code, organization_code), []).append(
            EntityTypeResult(
                id=f"et-{model_name}-{value}",
                model_name=model_name,
                value=value,
                label=value.title(),
                data_type="STRING",
                status="ACTIVE",
            )
        )

    async def list_for_organization(
        self, tenant_code: str, organization_code: str, model_name: str | None = None
    ) -> list[EntityTypeResult]:
        rows = self.rows.get((tenant_code, organization_code), [])
        return [r for r in rows if model_name is None or r.model_name == model_name]


class FakeSources:
    """Source scope factories; counts commits so write-through ordering can be checked."""

    def __init__(self) -> None:
        self.organizations = FakeOrganizationRepository()
        self.entity_types = FakeEntityTypeRepository()
        self.commits = 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[DataSources]:
        yield DataSources(self.organizations, self.entity_types)

    @asynccontextmanager
    async def write(self) -> AsyncIterator[DataSources]:
        yield DataSources(self.organizations, self.entity_types)
        self.commits += 1


@pytest.fixture
def settings() -> Settings:
    """Settings with Redis off and no admin key (in-process cache only)."""
    return Settings(_env_file=None, redis_enabled=False, admin_api_key=None)


@pytest.fixture
def registry(settings: Settings):
    return build_registry(settings)


@pytest.fixture
def store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def core(registry, store: InMemoryCacheStore) -> CacheCore:
    return CacheCore(registry, store, store, timeout=0.5, negative_ttl=60)


@pytest.fixture
def helper(core: CacheCore) -> CacheHelper:
    return CacheHelper(core)


@pytest.fixture
def transport() -> InMemoryInvalidationTransport:
    return InMemoryInvalidationTransport()


@pytest.fixture
def bus(core: CacheCore, transport: InMemoryInvalidationTransport) -> InvalidationBus:
    return InvalidationBus(core, transport, "cache:invalidate", origin="node-a")


@pytest.fixture
def sources() -> FakeSources:
    fake = FakeSources()
    fake.organizations.add(
        TENANT,
        ORG,
        platform_config={"theme": "dark"},
        display_properties={"title": "Mentoring"},
    )
    fake.organizations.add(TENANT, "o2")
    fake.organizations.add(TENANT, "o3", status=OrganizationStatus.INACTIVE.value)
    fake.entity_types.add(TENANT, ORG, "designation", "mentor")
    fake.entity_types.add(TENANT, ORG, "designation", "mentee")
    return fake


@pytest.fixture
def runtime(settings: Settings, sources: FakeSources) -> CacheRuntime:
    """Cache runtime wired with in-memory store, transport and fake sources (not started)."""
    return build_cache_runtime(
        settings,
        transport=InMemoryInvalidationTransport(),
        read_scope=sources.read,
        write_scope=sources.write,
    )


@pytest.fixture
async def client(runtime: CacheRuntime) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the FastAPI app (ASGI) with the runtime attached."""
    limiter.enabled = False
    await runtime.start()
    runtime.attach(app)
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        await runtime.stop()
        for name in (
            "cache_runtime",
            "cache",
            "cache_admin",
            "cache_invalidation",
            "platform_config_service",
        ):
            if hasattr(app.state, name):
                delattr(app.state, name)
        limiter.enabled = True
        get_settings.cache_clear()
