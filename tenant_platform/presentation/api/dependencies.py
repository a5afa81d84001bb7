"""
Service wiring for the HTTP layer.

Services that hold process-wide state (the validation cache, the idempotency
lock registry) must be shared by every request, so everything here is a lazily
created singleton. Tests replace them through ``app.dependency_overrides``.
"""

from tenant_platform.application.services.tenant_lifecycle_service import TenantLifecycleService
from tenant_platform.application.services.tenant_service import TenantService
from tenant_platform.application.services.tenant_validation_service import (
    TenantValidationService,
)
from tenant_platform.infrastructure.cache.redis_cache import CacheService
from tenant_platform.infrastructure.config.settings import get_settings
from tenant_platform.infrastructure.idempotency.store import (
    IdempotencyStore,
    InMemoryIdempotencyStore,
    RedisIdempotencyStore,
)
from tenant_platform.infrastructure.messaging.event_publisher import (
    TenantEventPublisher,
    get_event_publisher,
)
from tenant_platform.infrastructure.persistence.database import AsyncSessionLocal
from tenant_platform.infrastructure.persistence.repositories import (
    AddressRepository,
    ContactInfoRepository,
    TenantRepository,
)
from tenant_platform.infrastructure.persistence.transaction import TransactionManager

# Global service instances (singletons)
_cache_service: CacheService | None = None
_transaction_manager: TransactionManager | None = None
_idempotency_store: IdempotencyStore | None = None
_tenant_service: TenantService | None = None
_validation_service: TenantValidationService | None = None
_lifecycle_service: TenantLifecycleService | None = None


def get_cache_service() -> CacheService:
    """
    Cache service dependency (singleton)

    Initialized and connected on app startup in main.py
    """
    global _cache_service
    if _cache_service is None:
        _cache_service = CacheService()
    return _cache_service


def set_cache_service(cache_service: CacheService) -> None:
    """Set global cache service (called on app startup)"""
    global _cache_service
    _cache_service = cache_service


def get_transaction_manager() -> TransactionManager:
    global _transaction_manager
    if _transaction_manager is None:
        _transaction_manager = TransactionManager(
            AsyncSessionLocal, default_timeout=get_settings().transaction_timeout
        )
    return _transaction_manager


def get_idempotency_store() -> IdempotencyStore:
    """In-process store by default; Redis when IDEMPOTENCY_BACKEND=redis"""
    global _idempotency_store
    if _idempotency_store is None:
        settings = get_settings()
        if settings.idempotency_backend == "redis":
            _idempotency_store = RedisIdempotencyStore(
                get_cache_service(), ttl=settings.idempotency_ttl
            )
        else:
            _idempotency_store = InMemoryIdempotencyStore(ttl=settings.idempotency_ttl)
    return _idempotency_store


def get_tenant_service() -> TenantService:
    global _tenant_service
    if _tenant_service is None:
        transactions = get_transaction_manager()
        _tenant_service = TenantService(
            transactions=transactions,
            tenant_repo=TenantRepository(transactions),
            address_repo=AddressRepository(transactions),
            contact_repo=ContactInfoRepository(transactions),
            events=TenantEventPublisher(get_event_publisher()),
            idempotency=get_idempotency_store(),
            transaction_timeout=get_settings().transaction_timeout,
        )
    return _tenant_service


def get_validation_service() -> TenantValidationService:
    global _validation_service
    if _validation_service is None:
        _validation_service = TenantValidationService(
            get_tenant_service(), cache_ttl=get_settings().tenant_validation_cache_ttl
        )
    return _validation_service


def get_lifecycle_service() -> TenantLifecycleService:
    global _lifecycle_service
    if _lifecycle_service is None:
        transactions = get_transaction_manager()
        _lifecycle_service = TenantLifecycleService(
            transactions=transactions,
            tenant_repo=TenantRepository(transactions),
            events=TenantEventPublisher(get_event_publisher()),
            transaction_timeout=get_settings().transaction_timeout,
        )
    return _lifecycle_service
