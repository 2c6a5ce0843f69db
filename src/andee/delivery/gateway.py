"""Delivery gateway protocol and timeout-bounded invocation."""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable


class DeliveryError(Exception):
    """Delivery failed: network error, timeout, or downstream rejection."""


@runtime_checkable
class DeliveryGateway(Protocol):
    name: str

    async def deliver(self, chat_id: str, text: str, credential: str) -> None: ...
    async def aclose(self) -> None: ...


async def deliver_with_timeout(
    gateway: DeliveryGateway, chat_id: str, text: str, credential: str, timeout_s: float
) -> None:
    """Deliver or raise DeliveryError. A timeout counts as a failed delivery."""
    try:
        await asyncio.wait_for(gateway.deliver(chat_id, text, credential), timeout=timeout_s)
    except asyncio.TimeoutError as err:
        raise DeliveryError(f"{gateway.name} delivery timed out after {timeout_s}s") from err
