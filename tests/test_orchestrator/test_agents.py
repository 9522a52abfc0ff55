"""Tests for group chat agents."""

import asyncio
from typing import Optional, Union

import pytest

from deskcrew.errors import (
    AuthenticationError,
    GenerationError,
    InvalidConfigError,
    RateLimitError,
)
from deskcrew.models.types import FinishReason, MessageRole, ModelResponse, ToolCall, Usage
from deskcrew.orchestrator import AgentReply, ChatCompletionAgent, ScriptedAgent, Transcript
from deskcrew.tools import ToolExecutor, ToolRegistry, create_tool
from deskcrew.models.tools import ToolParameter


class MockModelClient:
    """Replays scripted model responses and records each request."""

    def __init__(self, responses: Optional[list[Union[str, ModelResponse, Exception]]] = None):
        self.model_id = "mock"
        self.responses = list(responses or [])
        self.calls: list[dict] = []

    @property
    def is_available(self) -> bool:
        return True

    async def generate(self, messages, tools=None, max_tokens=None, temperature=None, system=None):
        self.calls.append({
            "messages": list(messages),
            "tools": tools,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system,
        })
        item = self.responses.pop(0) if self.responses else ""
        if isinstance(item, Exception):
            raise item
        if isinstance(item, ModelResponse):
            return item
        return ModelResponse(
            content=item,
            model="mock",
            finish_reason=FinishReason.STOP,
            usage=Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )


def tool_call_response(*calls: ToolCall) -> ModelResponse:
    return ModelResponse(
        content="",
        model="mock",
        finish_reason=FinishReason.TOOL_USE,
        tool_calls=list(calls),
    )


def build_tools() -> tuple[ToolRegistry, ToolExecutor, list[str]]:
    registry = ToolRegistry()
    copied: list[str] = []

    def set_clipboard(args):
        copied.append(args["content"])
        return "Copied to clipboard."

    def broken(args):
        raise RuntimeError("clipboard locked")

    registry.register(create_tool(
        name="set_clipboard",
        description="Copy",
        parameters=[ToolParameter(name="content", type="string", description="Text")],
        handler=set_clipboard,
    ))
    registry.register(create_tool(name="broken", description="Fails", parameters=[], handler=broken))
    return registry, ToolExecutor(registry), copied


def sample_history():
    transcript = Transcript()
    transcript.add_user_message("Do we have a crane certificate for site B?")
    transcript.add_agent_message(AgentReply(author="Coach", content="STOCK"))
    return transcript.messages()


class TestChatCompletionAgent:
    """Tests for ChatCompletionAgent."""

    @pytest.mark.asyncio
    async def test_plain_reply(self) -> None:
        client = MockModelClient(['{"certificate": "valid"}'])
        agent = ChatCompletionAgent(
            name="StockManager",
            instructions="Answer in JSON.",
            client=client,
            participants=["Coach", "StockManager", "Expert"],
        )

        reply = await agent.invoke(sample_history())

        assert reply.author == "StockManager"
        assert reply.content == '{"certificate": "valid"}'
        assert reply.warnings == []
        assert reply.usage.total_tokens == 15

    @pytest.mark.asyncio
    async def test_transcript_is_converted_with_authors(self) -> None:
        client = MockModelClient(["ok"])
        agent = ChatCompletionAgent(
            name="StockManager",
            instructions="Answer in JSON.",
            client=client,
            participants=["Coach", "StockManager", "Expert"],
            max_tokens=256,
            temperature=0.1,
        )
        history = sample_history()

        await agent.invoke(history)

        call = client.calls[0]
        roles = [(m.role, m.name) for m in call["messages"]]
        assert roles == [(MessageRole.USER, None), (MessageRole.ASSISTANT, "Coach")]
        assert call["system"].startswith("Answer in JSON.")
        assert "Coach, Expert" in call["system"]
        assert call["max_tokens"] == 256
        assert call["temperature"] == 0.1
        assert call["tools"] is None
        # The shared transcript is never modified
        assert len(history) == 2

    @pytest.mark.asyncio
    async def test_tool_loop(self) -> None:
        registry, executor, copied = build_tools()
        client = MockModelClient([
            tool_call_response(ToolCall(id="c1", name="set_clipboard", arguments={"content": "EX-200"})),
            "I copied the answer to your clipboard.",
        ])
        agent = ChatCompletionAgent(
            name="Coach",
            instructions="Relay answers.",
            client=client,
            tools=registry.grant(["set_clipboard"]),
            executor=executor,
        )

        reply = await agent.invoke(sample_history())

        assert reply.content == "I copied the answer to your clipboard."
        assert copied == ["EX-200"]
        assert len(client.calls) == 2
        follow_up = client.calls[1]["messages"]
        assert follow_up[-2].tool_calls[0].id == "c1"
        assert follow_up[-1].role == MessageRole.TOOL
        assert follow_up[-1].tool_results[0].content == "Copied to clipboard."
        assert [d.name for d in client.calls[0]["tools"]] == ["set_clipboard"]

    @pytest.mark.asyncio
    async def test_tool_failure_becomes_warning(self) -> None:
        registry, executor, copied = build_tools()
        client = MockModelClient([
            tool_call_response(ToolCall(id="c1", name="broken", arguments={})),
            "Here is the answer anyway.",
        ])
        agent = ChatCompletionAgent(
            name="Coach",
            instructions="Relay answers.",
            client=client,
            tools=registry.grant(["broken"]),
            executor=executor,
        )

        reply = await agent.invoke(sample_history())

        assert reply.content == "Here is the answer anyway."
        assert len(reply.warnings) == 1
        assert "Tool 'broken' failed" in reply.warnings[0]
        assert client.calls[1]["messages"][-1].tool_results[0].is_error is True

    @pytest.mark.asyncio
    async def test_empty_after_tools_is_allowed(self) -> None:
        registry, executor, copied = build_tools()
        client = MockModelClient([
            tool_call_response(ToolCall(id="c1", name="set_clipboard", arguments={"content": "x"})),
            "",
        ])
        agent = ChatCompletionAgent(
            name="Coach",
            instructions="",
            client=client,
            tools=registry.grant(["set_clipboard"]),
            executor=executor,
        )
        reply = await agent.invoke(sample_history())
        assert reply.content == ""

    @pytest.mark.asyncio
    async def test_tool_loop_is_bounded(self) -> None:
        registry, executor, copied = build_tools()
        looping = [
            tool_call_response(ToolCall(id=f"c{i}", name="set_clipboard", arguments={"content": "x"}))
            for i in range(3)
        ]
        agent = ChatCompletionAgent(
            name="Coach",
            instructions="",
            client=MockModelClient(looping),
            tools=registry.grant(["set_clipboard"]),
            executor=executor,
            max_tool_iterations=2,
        )
        with pytest.raises(GenerationError) as exc_info:
            await agent.invoke(sample_history())
        assert exc_info.value.source == "Coach"

    @pytest.mark.asyncio
    async def test_ungranted_tool_is_refused(self) -> None:
        registry, executor, copied = build_tools()
        client = MockModelClient([
            tool_call_response(ToolCall(id="c1", name="set_clipboard", arguments={"content": "x"})),
            "The machine is in stock.",
        ])
        # Shares the executor with Coach but was granted nothing
        agent = ChatCompletionAgent(
            name="StockManager",
            instructions="",
            client=client,
            executor=executor,
        )

        reply = await agent.invoke(sample_history())

        assert copied == []
        assert reply.content == "The machine is in stock."
        assert "not found" in reply.warnings[0]
        assert client.calls[1]["messages"][-1].tool_results[0].is_error is True

    @pytest.mark.asyncio
    async def test_tool_call_without_executor_fails_softly(self) -> None:
        client = MockModelClient([
            tool_call_response(ToolCall(id="c1", name="set_clipboard", arguments={"content": "x"})),
            "Answer without tools.",
        ])
        agent = ChatCompletionAgent(name="Expert", instructions="", client=client)

        reply = await agent.invoke(sample_history())

        assert reply.content == "Answer without tools."
        assert len(reply.warnings) == 1

    @pytest.mark.asyncio
    async def test_empty_reply_raises(self) -> None:
        agent = ChatCompletionAgent(name="Expert", instructions="", client=MockModelClient(["  "]))
        with pytest.raises(GenerationError, match="empty response"):
            await agent.invoke(sample_history())

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [RateLimitError("mock", retry_after=1.0), AuthenticationError("mock", "bad key")],
    )
    async def test_model_errors_are_wrapped(self, error: Exception) -> None:
        agent = ChatCompletionAgent(name="Expert", instructions="", client=MockModelClient([error]))
        with pytest.raises(GenerationError) as exc_info:
            await agent.invoke(sample_history())
        assert exc_info.value.source == "Expert"
        assert exc_info.value.original_error is error
        assert exc_info.value.__cause__ is error

    def test_tools_without_executor(self) -> None:
        registry, _, _ = build_tools()
        with pytest.raises(InvalidConfigError):
            ChatCompletionAgent(
                name="Coach",
                instructions="",
                client=MockModelClient(),
                tools=registry.grant(["set_clipboard"]),
            )

    def test_empty_name(self) -> None:
        with pytest.raises(InvalidConfigError):
            ChatCompletionAgent(name=" ", instructions="", client=MockModelClient())


class TestScriptedAgent:
    """Tests for ScriptedAgent."""

    @pytest.mark.asyncio
    async def test_replays_in_order(self) -> None:
        agent = ScriptedAgent("Coach", ["STOCK", "Here you go"])
        history = sample_history()
        assert (await agent.invoke(history)).content == "STOCK"
        assert (await agent.invoke(history)).content == "Here you go"
        assert len(agent.invocations) == 2

    @pytest.mark.asyncio
    async def test_exhausted_script_raises(self) -> None:
        agent = ScriptedAgent("Coach", [])
        with pytest.raises(GenerationError):
            await agent.invoke(sample_history())

    @pytest.mark.asyncio
    async def test_callable_responder(self) -> None:
        agent = ScriptedAgent("Expert", lambda history: f"seen {len(history)}")
        assert (await agent.invoke(sample_history())).content == "seen 2"

    @pytest.mark.asyncio
    async def test_async_responder(self) -> None:
        async def respond(history):
            await asyncio.sleep(0)
            return "async answer"

        agent = ScriptedAgent("Expert", respond)
        reply = await agent.invoke(sample_history())
        assert reply == AgentReply(author="Expert", content="async answer")
