"""Shared fixtures: throwaway keys, the default registry, stores."""

import pytest

from finvault.audit import AuditLogger
from finvault.crypto import (
    CryptoContext,
    build_default_registry,
    generate_key_secret,
    import_key,
)
from finvault.services.storage import (
    EncryptedRowStore,
    InMemoryRowStore,
    RowStoreAuditStorage,
)


@pytest.fixture
def secret():
    return generate_key_secret()


@pytest.fixture
async def key(secret):
    return await import_key(secret)


@pytest.fixture
async def other_key():
    return await import_key(generate_key_secret())


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def context(key, registry):
    return CryptoContext(key, registry)


@pytest.fixture
def raw_store():
    return InMemoryRowStore()


@pytest.fixture
def audit_storage():
    return RowStoreAuditStorage(InMemoryRowStore())


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def encrypted_store(raw_store, context, audit_logger):
    return EncryptedRowStore(raw_store, context, audit_logger)
