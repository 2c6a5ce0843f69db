import asyncio
from datetime import datetime, timezone

import pytest

from andee.delivery.gateway import DeliveryError
from andee.infrastructure.config import DeliveryConfig
from andee.infrastructure.database import AppDatabase


def ms(iso: str) -> int:
    """ISO-8601 timestamp (with offset) to ms since epoch."""
    return int(datetime.fromisoformat(iso).timestamp() * 1000)


class FakeClock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, delta_ms: int) -> None:
        self.now += delta_ms

    def set(self, now: int) -> None:
        self.now = now


class FakeGateway:
    """Records deliveries; fails for chat ids in ``fail_for`` and stalls for those in ``hang_for``."""

    name = "fake"

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail_for: set[str] = set()
        self.hang_for: set[str] = set()
        self.closed = False

    async def deliver(self, chat_id: str, text: str, credential: str) -> None:
        if chat_id in self.hang_for:
            await asyncio.sleep(10)
        if chat_id in self.fail_for:
            raise DeliveryError(f"refused by {chat_id}")
        self.sent.append((chat_id, text, credential))

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def db() -> AppDatabase:
    """Create an in-memory database for testing."""
    app_db = AppDatabase()
    app_db._init_test()
    return app_db


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(ms("2025-06-01T12:00:00+00:00"))


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def delivery_config() -> DeliveryConfig:
    return DeliveryConfig(delivery_timeout_s=0.05, execution_retention_days=30)


@pytest.fixture
def to_ms():
    return ms
