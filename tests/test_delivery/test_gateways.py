"""Tests for the Telegram and agent-task delivery gateways."""

import asyncio
import json

import httpx
import pytest

from andee.delivery.agent_task import AgentTaskGateway
from andee.delivery.gateway import DeliveryError, DeliveryGateway, deliver_with_timeout
from andee.delivery.telegram import MAX_MESSAGE_LENGTH, TelegramGateway, is_group_chat


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestTelegramGateway:
    @pytest.mark.asyncio
    async def test_posts_send_message(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "result": {}})

        gateway = TelegramGateway(client=_client(handler), api_base="https://tg.test")
        await gateway.deliver("123", "hello", "TOKEN")
        await gateway.aclose()

        assert str(seen[0].url) == "https://tg.test/botTOKEN/sendMessage"
        assert json.loads(seen[0].content) == {"chat_id": "123", "text": "hello"}

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        gateway = TelegramGateway(
            client=_client(lambda request: httpx.Response(403, text="Forbidden")), api_base="https://tg.test"
        )
        with pytest.raises(DeliveryError, match="403"):
            await gateway.deliver("123", "hello", "TOKEN")

    @pytest.mark.asyncio
    async def test_ok_false(self):
        gateway = TelegramGateway(
            client=_client(lambda request: httpx.Response(200, json={"ok": False, "description": "chat not found"})),
            api_base="https://tg.test",
        )
        with pytest.raises(DeliveryError, match="chat not found"):
            await gateway.deliver("123", "hello", "TOKEN")

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        gateway = TelegramGateway(client=_client(handler), api_base="https://tg.test")
        with pytest.raises(DeliveryError, match="ConnectError"):
            await gateway.deliver("123", "hello", "TOKEN")

    @pytest.mark.asyncio
    async def test_missing_token(self):
        gateway = TelegramGateway(client=_client(lambda request: httpx.Response(200, json={"ok": True})))
        with pytest.raises(DeliveryError, match="bot token"):
            await gateway.deliver("123", "hello", "")

    @pytest.mark.asyncio
    async def test_long_text_truncated(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        gateway = TelegramGateway(client=_client(handler), api_base="https://tg.test")
        await gateway.deliver("123", "x" * (MAX_MESSAGE_LENGTH + 100), "TOKEN")
        assert len(seen[0]["text"]) == MAX_MESSAGE_LENGTH

    def test_satisfies_protocol(self):
        assert isinstance(TelegramGateway(client=_client(lambda r: httpx.Response(200))), DeliveryGateway)


class TestAgentTaskGateway:
    @pytest.mark.asyncio
    async def test_posts_scheduled_task(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202, json={"queued": True})

        gateway = AgentTaskGateway("https://agent.test/scheduled-task", api_key="key", client=_client(handler))
        await gateway.deliver("-100", "[SCHEDULED: m]\n\nhi", "TOKEN")

        request = seen[0]
        assert request.headers["X-Scheduled-Task"] == "true"
        assert request.headers["X-API-Key"] == "key"
        assert json.loads(request.content) == {
            "chatId": "-100",
            "senderId": "system",
            "isGroup": True,
            "text": "[SCHEDULED: m]\n\nhi",
            "botToken": "TOKEN",
            "isScheduledTask": True,
        }

    @pytest.mark.asyncio
    async def test_no_api_key_header_when_unset(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        gateway = AgentTaskGateway("https://agent.test/task", api_key="", client=_client(handler))
        await gateway.deliver("42", "hi", "TOKEN")
        assert "X-API-Key" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_rejected(self):
        gateway = AgentTaskGateway(
            "https://agent.test/task", api_key="", client=_client(lambda request: httpx.Response(500, text="down"))
        )
        with pytest.raises(DeliveryError, match="500"):
            await gateway.deliver("42", "hi", "TOKEN")


class TestDeliverWithTimeout:
    @pytest.mark.asyncio
    async def test_timeout_becomes_delivery_error(self):
        class SlowGateway:
            name = "slow"

            async def deliver(self, chat_id, text, credential):
                await asyncio.sleep(5)

            async def aclose(self):
                pass

        with pytest.raises(DeliveryError, match="timed out"):
            await deliver_with_timeout(SlowGateway(), "1", "hi", "tok", 0.01)


def test_is_group_chat():
    assert is_group_chat("-100123")
    assert not is_group_chat("12345")
