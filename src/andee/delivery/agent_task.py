"""Hands scheduled prompts to the agent container's scheduled-task endpoint."""

from __future__ import annotations

import httpx

from andee.delivery.gateway import DeliveryError
from andee.delivery.telegram import is_group_chat
from andee.infrastructure.config import ANDEE_API_KEY, DELIVERY_TIMEOUT_S
from andee.infrastructure.logger import logger

SYSTEM_SENDER_ID = "system"


class AgentTaskGateway:
    """POSTs the prompt so the agent runs it and replies in the chat itself.

    The endpoint only queues the prompt, so success means "accepted", not
    "answered".
    """

    name = "agent-task"

    def __init__(
        self,
        url: str,
        api_key: str = ANDEE_API_KEY,
        client: httpx.AsyncClient | None = None,
        timeout_s: float = DELIVERY_TIMEOUT_S,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def deliver(self, chat_id: str, text: str, credential: str) -> None:
        headers = {"X-Scheduled-Task": "true"}
        if self._api_key:
            headers["X-API-Key"] = self._api_key

        payload = {
            "chatId": chat_id,
            "senderId": SYSTEM_SENDER_ID,
            "isGroup": is_group_chat(chat_id),
            "text": text,
            "botToken": credential,
            "isScheduledTask": True,
        }
        try:
            response = await self._client.post(self._url, json=payload, headers=headers)
        except httpx.HTTPError as err:
            raise DeliveryError(f"Scheduled task request failed: {err.__class__.__name__}") from err

        if response.status_code >= 400:
            raise DeliveryError(f"Scheduled task rejected: {response.status_code} - {response.text[:200]}")

        logger.debug("Scheduled task accepted", chat_id=chat_id, url=self._url)

    async def aclose(self) -> None:
        await self._client.aclose()
