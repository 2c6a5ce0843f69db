"""Telegram Bot API delivery."""

from __future__ import annotations

import httpx

from andee.delivery.gateway import DeliveryError
from andee.infrastructure.config import DELIVERY_TIMEOUT_S, TELEGRAM_API_BASE
from andee.infrastructure.logger import logger

# Telegram rejects longer messages outright
MAX_MESSAGE_LENGTH = 4096


def is_group_chat(chat_id: str) -> bool:
    """Telegram group and supergroup ids are negative."""
    return chat_id.startswith("-")


class TelegramGateway:
    """Sends plain-text messages through sendMessage using the caller's bot token."""

    name = "telegram"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        api_base: str = TELEGRAM_API_BASE,
        timeout_s: float = DELIVERY_TIMEOUT_S,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._api_base = api_base.rstrip("/")

    async def deliver(self, chat_id: str, text: str, credential: str) -> None:
        if not credential:
            raise DeliveryError("Missing bot token")
        if len(text) > MAX_MESSAGE_LENGTH:
            text = text[: MAX_MESSAGE_LENGTH - 1] + "…"

        url = f"{self._api_base}/bot{credential}/sendMessage"
        try:
            response = await self._client.post(url, json={"chat_id": chat_id, "text": text})
        except httpx.HTTPError as err:
            raise DeliveryError(f"Telegram request failed: {err.__class__.__name__}") from err

        if response.status_code >= 400:
            raise DeliveryError(f"Telegram API error: {response.status_code} - {response.text[:200]}")
        try:
            body = response.json()
        except ValueError:
            body = {}
        if body.get("ok") is False:
            raise DeliveryError(f"Telegram API error: {body.get('description', 'unknown')}")

        logger.debug("Telegram message sent", chat_id=chat_id, length=len(text))

    async def aclose(self) -> None:
        await self._client.aclose()
