"""Fixtures for the secure asset tests."""

import pytest

from asset_fakes import FakeProvider, FakeSession, RecordingSleep
from secure_assets.config import ResolverConfig


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def resolver_config(tmp_path):
    return ResolverConfig(
        token_endpoint="https://auth.example.com/token",
        gate_capacity=2,
        max_retries=3,
        retry_base_delay_ms=1000,
        handle_dir=str(tmp_path / "handles"),
    )
