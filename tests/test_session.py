"""End-to-end tests for the chat session over mocked and in-process transports."""
import asyncio
import json

import httpx
import pytest

from conftest import WEBSITE_BLOCK, FakeLLMProvider, content, sse_body
from quotestream.chat import ChatSession, RateLimiter, SendOutcome, SessionCallback
from quotestream.client import ChatProxyClient
from quotestream.config import GREETING, RATE_LIMIT_NOTICE, TECHNICAL_ERROR_NOTICE
from quotestream.errors import IncompleteStreamError
from quotestream.llm import StreamingResponse
from quotestream.proxy import ChatProxy
from quotestream.quotes import ComplexityTier
from quotestream.stream import QuoteProtocol

URL = "https://proxy.test/functions/v1/chat-with-ai"


def _client(transport: httpx.AsyncBaseTransport) -> ChatProxyClient:
    return ChatProxyClient(URL, http_client=httpx.AsyncClient(transport=transport))


def _fragments(text: str, size: int = 7) -> list[dict]:
    return [content(text[i:i + size]) for i in range(0, len(text), size)]


class RecordingCallback(SessionCallback):
    def __init__(self):
        self.events: list[tuple] = []

    def on_message_started(self, message):
        self.events.append(("started", message.id))

    def on_text(self, message, delta, replaced):
        self.events.append(("text", delta, replaced))

    def on_quote_item(self, item):
        self.events.append(("item", item.service))

    def on_message_finished(self, message):
        self.events.append(("finished", message.id))

    def on_notice(self, message):
        self.events.append(("notice", message.text))


class HangingLLMProvider(FakeLLMProvider):
    """Sends its deltas, then waits forever."""

    def __init__(self, deltas: list[str]):
        super().__init__(deltas)
        self.sent = asyncio.Event()

    async def chat_completion_stream(self, messages, model=None, temperature=0.7, max_tokens=None, **kwargs):
        self.calls.append(messages)

        async def _deltas():
            for delta in self.deltas:
                yield delta
            self.sent.set()
            await asyncio.Event().wait()

        return StreamingResponse(_deltas())


class TestChatSessionStreaming:
    """Streaming sends against a mocked proxy."""

    @pytest.mark.asyncio
    async def test_website_request_builds_quote(self, sse_transport):
        reply = "Gerne! Für Ihre neue Website empfehle ich: " + WEBSITE_BLOCK + " Sollen wir starten?"
        requests: list[httpx.Request] = []
        transport = sse_transport(sse_body(*_fragments(reply)), requests=requests)
        callback = RecordingCallback()

        async with ChatSession(_client(transport), callback=callback) as session:
            result = await session.send("Ich brauche eine neue Website")

        assert result.outcome is SendOutcome.SENT
        assert [i.service for i in result.items] == ["Konzeption & Wireframes"]
        item = result.items[0]
        assert item.estimated_hours == 16
        assert item.complexity_tier is ComplexityTier.MEDIUM
        assert item.price == 2496
        assert session.accumulator.total == 2496
        assert result.message.text == "Gerne! Für Ihre neue Website empfehle ich:  Sollen wir starten?"
        assert not result.message.streaming
        assert ("item", "Konzeption & Wireframes") in callback.events
        assert callback.events[-1] == ("finished", result.message.id)

        body = json.loads(requests[0].content)
        assert body == {
            "messages": [{"role": "user", "content": "Ich brauche eine neue Website"}],
            "stream": True,
        }

    @pytest.mark.asyncio
    async def test_extracted_protocol_uses_quote_frames(self, sse_transport):
        body = sse_body(
            content("Hier mein Vorschlag."),
            {"type": "quote_recommendation", "data": {"service": "SEO", "estimatedHours": 10, "complexity": "niedrig"}},
        )
        transport = sse_transport(body, protocol=QuoteProtocol.EXTRACTED.value)

        async with ChatSession(_client(transport)) as session:
            result = await session.send("SEO bitte")

        assert result.message.text == "Hier mein Vorschlag."
        assert [(i.service, i.price) for i in result.items] == [("SEO", 1200)]

    @pytest.mark.asyncio
    async def test_malformed_frames_and_payloads_are_skipped(self, sse_transport):
        body = (
            b"data: {broken\n\n"
            + sse_body(
                content("Text "),
                content('[QUOTE_RECOMMENDATION]{"description": "ohne Leistung"}[/QUOTE_RECOMMENDATION]'),
                content("Ende"),
            )
        )

        async with ChatSession(_client(sse_transport(body))) as session:
            result = await session.send("Hallo")

        assert result.outcome is SendOutcome.SENT
        assert result.message.text == "Text Ende"
        assert result.items == []
        assert session.accumulator.total == 0

    @pytest.mark.asyncio
    async def test_history_carries_previous_turns(self, sse_transport):
        requests: list[httpx.Request] = []
        transport = sse_transport(sse_body(content("Antwort")), requests=requests)

        async with ChatSession(_client(transport)) as session:
            await session.send("Frage 1")
            await session.send("Frage 2")

        messages = json.loads(requests[1].content)["messages"]
        assert messages == [
            {"role": "user", "content": "Frage 1"},
            {"role": "assistant", "content": "Antwort"},
            {"role": "user", "content": "Frage 2"},
        ]

    @pytest.mark.asyncio
    async def test_input_is_sanitized_before_sending(self, sse_transport):
        requests: list[httpx.Request] = []
        transport = sse_transport(sse_body(content("ok")), requests=requests)

        async with ChatSession(_client(transport)) as session:
            await session.send("  <b>Shop</b>  ")

        assert json.loads(requests[0].content)["messages"][0]["content"] == "bShop/b"


class TestChatSessionGuards:
    """Sends that never reach the network or fail there."""

    @pytest.mark.asyncio
    async def test_empty_input_sends_nothing(self, sse_transport):
        requests: list[httpx.Request] = []
        transport = sse_transport(sse_body(content("x")), requests=requests)

        async with ChatSession(_client(transport)) as session:
            result = await session.send("  <>  ")

        assert result.outcome is SendOutcome.EMPTY
        assert requests == []
        assert len(session.conversation.messages) == 1
        assert session.conversation.messages[0].text == GREETING

    @pytest.mark.asyncio
    async def test_rate_limit_adds_notice(self, sse_transport, fake_clock):
        requests: list[httpx.Request] = []
        transport = sse_transport(sse_body(content("ok")), requests=requests)
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)

        async with ChatSession(_client(transport), rate_limiter=limiter) as session:
            first = await session.send("eins")
            second = await session.send("zwei")

        assert first.outcome is SendOutcome.SENT
        assert second.outcome is SendOutcome.RATE_LIMITED
        assert second.message.text == RATE_LIMIT_NOTICE
        assert second.message.notice
        assert len(requests) == 1
        assert [m.content for m in session.conversation.history()] == ["eins", "ok"]

    @pytest.mark.asyncio
    async def test_http_error_adds_error_notice(self, sse_transport):
        transport = sse_transport(b'{"error": "boom"}', status_code=500)
        callback = RecordingCallback()

        async with ChatSession(_client(transport), callback=callback) as session:
            result = await session.send("Hallo")

            assert result.outcome is SendOutcome.FAILED
            assert result.error.status_code == 500
            assert not session.is_typing
            assert session.conversation.messages[-1].text == TECHNICAL_ERROR_NOTICE
            assert ("notice", TECHNICAL_ERROR_NOTICE) in callback.events

    @pytest.mark.asyncio
    async def test_connection_error_is_a_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with ChatSession(_client(httpx.MockTransport(handler))) as session:
            result = await session.send("Hallo")

        assert result.outcome is SendOutcome.FAILED
        assert result.error.status_code is None

    @pytest.mark.asyncio
    async def test_stream_without_done_fails_but_keeps_text(self, sse_transport):
        body = sse_body(content("Teilweise "), content("Antwort"), done=False)

        async with ChatSession(_client(sse_transport(body))) as session:
            result = await session.send("Hallo")

        assert result.outcome is SendOutcome.FAILED
        assert isinstance(result.error, IncompleteStreamError)
        assert result.message.text == "Teilweise Antwort"
        assert not result.message.streaming
        assert session.conversation.messages[-1].text == TECHNICAL_ERROR_NOTICE

    @pytest.mark.asyncio
    async def test_session_recovers_after_failure(self, sse_transport):
        responses = iter([
            httpx.Response(502, content=b""),
            httpx.Response(200, headers={"Content-Type": "text/event-stream"}, content=sse_body(content("ok"))),
        ])
        transport = httpx.MockTransport(lambda request: next(responses))

        async with ChatSession(_client(transport)) as session:
            failed = await session.send("eins")
            retried = await session.send("eins")

        assert failed.outcome is SendOutcome.FAILED
        assert retried.outcome is SendOutcome.SENT
        assert retried.message.text == "ok"


class TestChatSessionInProcess:
    """Full round trips through the in-process chat proxy."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("protocol", list(QuoteProtocol))
    async def test_round_trip_per_protocol(self, protocol):
        if protocol is QuoteProtocol.SECTION:
            reply = "Mein Vorschlag. [QUOTE_SECTION]" + WEBSITE_BLOCK + "[/QUOTE_SECTION]"
        else:
            reply = "Mein Vorschlag. " + WEBSITE_BLOCK
        llm = FakeLLMProvider([reply[i:i + 9] for i in range(0, len(reply), 9)])
        client = ChatProxyClient.in_process(ChatProxy(llm, protocol=protocol))

        async with ChatSession(client) as session:
            result = await session.send("Ich brauche eine neue Website")

        assert result.outcome is SendOutcome.SENT
        assert result.message.text.strip() == "Mein Vorschlag."
        assert session.accumulator.total == 2496
        assert llm.calls[0][0].role == "system"
        assert llm.closed

    @pytest.mark.asyncio
    async def test_non_streaming_round_trip(self):
        llm = FakeLLMProvider(["Mein Vorschlag. ", WEBSITE_BLOCK])
        client = ChatProxyClient.in_process(ChatProxy(llm))

        async with ChatSession(client, streaming=False) as session:
            result = await session.send("Ich brauche eine neue Website")

        assert result.outcome is SendOutcome.SENT
        assert result.message.text == "Mein Vorschlag."
        assert [i.price for i in result.items] == [2496]

    @pytest.mark.asyncio
    async def test_upstream_failure_mid_stream(self):
        llm = FakeLLMProvider(["Hallo ", "Welt", "!"], fail_after=2)
        client = ChatProxyClient.in_process(ChatProxy(llm))

        async with ChatSession(client) as session:
            result = await session.send("Hallo")

        assert result.outcome is SendOutcome.FAILED
        assert result.message.text == "Hallo Welt"

    @pytest.mark.asyncio
    async def test_cancellation_finalizes_partial_reply(self):
        llm = HangingLLMProvider(["Das ist ", "eine Teilantwort"])
        client = ChatProxyClient.in_process(ChatProxy(llm))

        async with ChatSession(client) as session:
            task = asyncio.create_task(session.send("Hallo"))
            await asyncio.wait_for(llm.sent.wait(), timeout=2)
            for _ in range(5):
                await asyncio.sleep(0)

            busy = await session.send("Noch etwas")
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

            assert busy.outcome is SendOutcome.BUSY
            assert not session.is_typing
            partial = session.conversation.messages[-1]
            assert partial.text == "Das ist eine Teilantwort"
            assert not partial.streaming
