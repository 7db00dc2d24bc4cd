"""
tests/unit/test_reasoning.py — Reasoning Provider Unit Tests

Covers:
  - Each staged-decode function on its own (strict, balanced substring, fallback)
  - Coercion of decoded payloads (aliases, malformed calls, nextAction spellings)
  - RuleBasedProvider rule matching and default reply
  - LLMReasoningProvider prompt/message construction and error containment

No real API keys or network calls required.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from taskweave.brain.llm_client import BaseLLMClient
from taskweave.brain.types import LLMConfig, LLMResponse, Message, Role
from taskweave.capabilities import CapabilityRegistry, setup_capabilities
from taskweave.exceptions import LLMConnectionError, LLMRateLimitError
from taskweave.reasoning import (
    CapabilityCall,
    Decision,
    LLMReasoningProvider,
    NextAction,
    ParseStage,
    RuleBasedProvider,
    coerce_decision,
    decode_reply,
    find_balanced_object,
    parse_reply,
    strict_decode,
)


# ─────────────────────────────────────────────────────────────────────────────
# Types
# ─────────────────────────────────────────────────────────────────────────────


class TestNextAction:
    @pytest.mark.parametrize("raw,expected", [
        ("complete", NextAction.COMPLETE),
        ("continue", NextAction.CONTINUE),
        ("await_input", NextAction.AWAIT_INPUT),
        ("awaitInput", NextAction.AWAIT_INPUT),
        ("spawnSubagent", NextAction.SPAWN_SUBAGENT),
        ("AWAIT_INPUT", NextAction.AWAIT_INPUT),
        ("await-input", NextAction.AWAIT_INPUT),
        ("something else", NextAction.COMPLETE),
        (None, NextAction.COMPLETE),
        (3, NextAction.COMPLETE),
    ])
    def test_parse(self, raw, expected):
        assert NextAction.parse(raw) is expected


class TestDecision:
    def test_accepts_wire_aliases(self):
        decision = Decision.model_validate({
            "message": "hi",
            "capabilityCalls": [{"toolName": "calculator", "parameters": {"expression": "1+1"}}],
            "nextAction": "awaitInput",
        })
        assert decision.capability_calls[0].name == "calculator"
        assert decision.next_action is NextAction.AWAIT_INPUT

    def test_to_dict_emits_camel_case(self):
        decision = Decision(
            message="m",
            capability_calls=[CapabilityCall(name="wait", parameters={"milliseconds": 1})],
        )
        data = decision.to_dict()
        assert data["capabilityCalls"][0]["name"] == "wait"
        assert data["nextAction"] == "complete"

    def test_from_error(self):
        decision = Decision.from_error("boom happened", error="boom")
        assert decision.is_error
        assert decision.next_action is NextAction.COMPLETE
        assert decision.capability_calls == []


# ─────────────────────────────────────────────────────────────────────────────
# Staged parsing
# ─────────────────────────────────────────────────────────────────────────────


class TestStrictDecode:
    def test_plain_object(self):
        assert strict_decode('{"message": "hi"}') == {"message": "hi"}

    def test_code_fence_stripped(self):
        text = '```json\n{"message": "fenced"}\n```'
        assert strict_decode(text) == {"message": "fenced"}

    def test_non_object_json_rejected(self):
        assert strict_decode("[1, 2, 3]") is None
        assert strict_decode('"just a string"') is None

    def test_prose_rejected(self):
        assert strict_decode('Sure! {"message": "hi"}') is None


class TestFindBalancedObject:
    def test_object_inside_prose(self):
        text = 'Here you go: {"message": "hi", "nextAction": "complete"} hope it helps'
        assert find_balanced_object(text) == {"message": "hi", "nextAction": "complete"}

    def test_braces_inside_strings_ignored(self):
        text = 'prefix {"message": "use {curly} braces \\" here"} suffix'
        assert find_balanced_object(text) == {"message": 'use {curly} braces " here'}

    def test_nested_objects(self):
        text = 'x {"a": {"b": {"c": 1}}} y'
        assert find_balanced_object(text) == {"a": {"b": {"c": 1}}}

    def test_skips_undecodable_candidate(self):
        text = 'first {not json} then {"ok": true}'
        assert find_balanced_object(text) == {"ok": True}

    def test_unclosed_brace_in_prose_skipped(self):
        text = (
            'Sets look like {a, b. Answer: '
            '{"message": "hi", "capabilityCalls": [], "nextAction": "complete"}'
        )
        assert find_balanced_object(text) == {
            "message": "hi", "capabilityCalls": [], "nextAction": "complete",
        }

    def test_unbalanced_returns_none(self):
        assert find_balanced_object('{"message": "never closed"') is None

    def test_no_braces(self):
        assert find_balanced_object("no json here") is None


class TestDecodeReply:
    def test_strict_stage(self):
        reply = decode_reply('{"message": "hi"}')
        assert reply.stage is ParseStage.STRICT
        assert reply.decoded

    def test_substring_stage(self):
        reply = decode_reply('Answer: {"message": "hi"}')
        assert reply.stage is ParseStage.SUBSTRING

    def test_stray_brace_keeps_substring_stage(self):
        decision = parse_reply(
            'Note {draft\n{"message": "ok", "capabilityCalls": '
            '[{"name": "calculator", "parameters": {"expression": "1+1"}}]}'
        )
        assert decision.metadata["parse_stage"] == "substring"
        assert decision.capability_calls == [
            CapabilityCall(name="calculator", parameters={"expression": "1+1"})
        ]

    def test_fallback_stage(self):
        reply = decode_reply("plain text answer")
        assert reply.stage is ParseStage.FALLBACK
        assert reply.payload is None
        assert not reply.decoded


class TestCoerceDecision:
    def test_reply_without_json_becomes_message(self):
        decision = parse_reply("The answer is 42.")
        assert decision.message == "The answer is 42."
        assert decision.capability_calls == []
        assert decision.next_action is NextAction.COMPLETE
        assert decision.metadata["parse_stage"] == "fallback"

    def test_full_contract(self):
        raw = json.dumps({
            "reasoning": "need math",
            "message": "Calculating",
            "capabilityCalls": [
                {"name": "calculator", "parameters": {"expression": "2+2"}, "reasoning": "math"},
            ],
            "nextAction": "continue",
        })
        decision = parse_reply(raw)

        assert decision.message == "Calculating"
        assert decision.capability_calls == [
            CapabilityCall(name="calculator", parameters={"expression": "2+2"}, reasoning="math")
        ]
        assert decision.next_action is NextAction.CONTINUE
        assert decision.metadata["reasoning"] == "need math"
        assert decision.metadata["raw_response"] == raw
        assert decision.metadata["parse_stage"] == "strict"

    def test_legacy_tool_calls_key(self):
        decision = parse_reply(
            '{"message": "m", "toolCalls": [{"toolName": "wait", "parameters": {"milliseconds": 5}}]}'
        )
        assert decision.capability_calls[0].name == "wait"

    def test_calls_not_a_list_defaults_to_empty(self):
        decision = parse_reply('{"message": "m", "capabilityCalls": "calculator"}')
        assert decision.capability_calls == []

    def test_malformed_call_entries_dropped(self):
        decision = parse_reply(json.dumps({
            "message": "m",
            "capabilityCalls": [
                "calculator",
                {"parameters": {}},
                {"name": "bad", "parameters": "x=1"},
                {"name": "good"},
            ],
        }))
        assert [c.name for c in decision.capability_calls] == ["good"]
        assert decision.capability_calls[0].parameters == {}

    def test_missing_message_uses_raw(self):
        raw = '{"capabilityCalls": []}'
        assert parse_reply(raw).message == raw

    def test_missing_next_action_defaults_to_complete(self):
        assert parse_reply('{"message": "m"}').next_action is NextAction.COMPLETE

    def test_coerce_from_fallback_reply(self):
        decision = coerce_decision(decode_reply("hello"))
        assert decision.message == "hello"


# ─────────────────────────────────────────────────────────────────────────────
# RuleBasedProvider
# ─────────────────────────────────────────────────────────────────────────────


ALL_BUILTINS = ["calculator", "read_file", "list_directory", "get_timestamp"]


class TestRuleBasedProvider:
    @pytest.fixture
    def provider(self):
        return RuleBasedProvider()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text,capability,params", [
        ("calculate 2+2", "calculator", {"expression": "2+2"}),
        ("Please CALCULATE (3 * 4) - 1", "calculator", {"expression": "(3 * 4) - 1"}),
        ("read file ./notes.txt", "read_file", {"path": "./notes.txt"}),
        ("list .", "list_directory", {"path": "."}),
        ("what time is it?", "get_timestamp", {"format": "readable"}),
        ("quelle heure est-il", "get_timestamp", {"format": "readable"}),
    ])
    async def test_rule_matches(self, provider, text, capability, params):
        decision = await provider.think("", [], ALL_BUILTINS, text)

        assert len(decision.capability_calls) == 1
        call = decision.capability_calls[0]
        assert call.name == capability
        assert call.parameters == params
        assert decision.next_action is NextAction.COMPLETE

    @pytest.mark.asyncio
    async def test_default_reply_lists_capabilities(self, provider):
        decision = await provider.think("", [], ["calculator", "wait"], "hello")

        assert decision.capability_calls == []
        assert "calculator, wait" in decision.message
        assert '"hello"' in decision.message

    @pytest.mark.asyncio
    async def test_rule_skipped_when_capability_unavailable(self, provider):
        decision = await provider.think("", [], ["read_file"], "calculate 1+1")
        assert decision.capability_calls == []

    @pytest.mark.asyncio
    async def test_no_capabilities(self, provider):
        decision = await provider.think("", [], [], "calculate 1+1")
        assert decision.capability_calls == []
        assert "none" in decision.message

    def test_no_synthesis(self, provider):
        assert provider.supports_synthesis is False


# ─────────────────────────────────────────────────────────────────────────────
# LLMReasoningProvider
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def llm_client():
    client = MagicMock(spec=BaseLLMClient)
    client.generate = AsyncMock(return_value=LLMResponse(content='{"message": "ok"}'))
    return client


@pytest.fixture
def llm_provider(llm_client):
    registry = setup_capabilities(CapabilityRegistry())
    return LLMReasoningProvider(llm_client, LLMConfig(model="test-model"), registry)


class TestLLMReasoningProvider:
    @pytest.mark.asyncio
    async def test_system_prompt_embeds_manifest_and_contract(self, llm_provider, llm_client):
        await llm_provider.think("You are a tester.", [], ["calculator"], "calculate 1+1")

        system = llm_client.generate.call_args.kwargs["system"]
        assert system.startswith("You are a tester.")
        assert "### calculator" in system
        assert "### read_file" not in system
        assert '"capabilityCalls"' in system
        assert '"nextAction"' in system

    @pytest.mark.asyncio
    async def test_messages_exclude_system_and_map_roles(self, llm_provider, llm_client):
        history = [
            Message.system("hidden"),
            Message.user("first"),
            Message.tool('{"success": true}'),
            Message.assistant("reply"),
        ]
        await llm_provider.think("sys", history, [], "current")

        sent = llm_client.generate.call_args.kwargs["messages"]
        assert [(m.role, m.content) for m in sent] == [
            (Role.USER, "first"),
            (Role.ASSISTANT, '{"success": true}'),
            (Role.ASSISTANT, "reply"),
            (Role.USER, "current"),
        ]

    @pytest.mark.asyncio
    async def test_reply_is_parsed(self, llm_provider, llm_client):
        llm_client.generate.return_value = LLMResponse(content=(
            'Thinking... {"message": "Calculating", "capabilityCalls": '
            '[{"name": "calculator", "parameters": {"expression": "1+1"}}], "nextAction": "complete"}'
        ))

        decision = await llm_provider.think("sys", [], ["calculator"], "calculate 1+1")

        assert decision.message == "Calculating"
        assert decision.capability_calls[0].name == "calculator"
        assert decision.metadata["parse_stage"] == "substring"

    @pytest.mark.asyncio
    async def test_reply_without_json(self, llm_provider, llm_client):
        llm_client.generate.return_value = LLMResponse(content="Just words.")

        decision = await llm_provider.think("sys", [], [], "hi")

        assert decision.message == "Just words."
        assert decision.capability_calls == []
        assert decision.next_action is NextAction.COMPLETE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        LLMConnectionError("connection refused", provider="anthropic"),
        LLMRateLimitError("slow down", provider="openai"),
        RuntimeError("unexpected"),
    ])
    async def test_transport_errors_become_terminal_decision(self, llm_provider, llm_client, error):
        llm_client.generate.side_effect = error

        decision = await llm_provider.think("sys", [], [], "hi")

        assert decision.is_error
        assert str(error) in decision.message
        assert decision.metadata["error"] == str(error)
        assert decision.capability_calls == []
        assert decision.next_action is NextAction.COMPLETE

    @pytest.mark.asyncio
    async def test_synthesize_returns_plain_text(self, llm_provider, llm_client):
        llm_client.generate.return_value = LLMResponse(content="  The result is 2.  ")
        original = Decision(
            message="Calculating",
            capability_calls=[CapabilityCall(name="calculator", reasoning="math")],
        )

        summary = await llm_provider.synthesize("calculate 1+1", original, [Message.user("calculate 1+1")])

        assert summary.message == "The result is 2."
        assert not summary.is_error
        prompt = llm_client.generate.call_args.kwargs["messages"][-1].content
        assert 'The user asked: "calculate 1+1"' in prompt
        assert "- calculator: math" in prompt

    @pytest.mark.asyncio
    async def test_synthesize_error_is_contained(self, llm_provider, llm_client):
        llm_client.generate.side_effect = LLMConnectionError("down")
        summary = await llm_provider.synthesize("x", Decision(message="orig"), [])
        assert summary.is_error

    def test_supports_synthesis(self, llm_provider):
        assert llm_provider.supports_synthesis is True
