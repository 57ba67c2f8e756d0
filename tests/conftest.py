import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient

from app.main import create_app
from app.service import CanaryService
from canarychain import (
    ChainGuard,
    DirectoryProofStore,
    create_canary,
    document_hash,
    generate_key_pair,
    seal_canary,
)


def now_utc():
    return datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture
def signing_key():
    return generate_key_pair("canary-test-01")


@pytest.fixture
def store(tmp_path):
    return DirectoryProofStore(tmp_path / "proofs")


@pytest.fixture
def service(signing_key, store):
    return CanaryService(signing_key.trusted_key(), ChainGuard(store))


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


@pytest.fixture
def make_proof(signing_key):
    """Seal a canary whose deadline is `days` from now, linked to `previous` proof text."""
    def _make(days=30, previous=None, key=None, **kwargs):
        body = create_canary(
            deadline=now_utc() + timedelta(days=days),
            previous_hash=document_hash(previous) if previous is not None else "",
            **kwargs
        )
        return seal_canary(body, key or signing_key)
    return _make
