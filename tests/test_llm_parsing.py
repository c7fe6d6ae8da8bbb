"""Capability request building and reply parsing."""
import asyncio
from unittest.mock import AsyncMock, patch
import httpx
import pytest
import core.llm_verifier as llm_verifier
import core.anthropic_client as anthropic_client
from core.anthropic_client import (
    TOOL_NAME,
    build_request,
    extract_with_reviewer,
    parse_tool_response,
)
from core.entities import Err, Ok
from core.llm_verifier import anthropic_match, parse_match
from core.reviewers import ReviewerConfig

SCHEMA = {"totalN": {"type": "number", "description": "Total sample size"}}


def test_parse_match_plain_json():
    m = parse_match(
        '{"isValid": true, "confidence": 88, "matchType": "paraphrase",'
        ' "reasoning": "same meaning", "issues": []}'
    )
    assert m.is_valid and m.confidence == 88.0
    assert m.match_type == "paraphrase"
    assert m.issues == []


def test_parse_match_strips_code_fences():
    m = parse_match('```json\n{"isValid": false, "confidence": 40, "matchType": "weak", "reasoning": "x"}\n```')
    assert m.match_type == "weak"
    assert not m.is_valid


def test_parse_match_malformed_is_conservative_no_match():
    m = parse_match("I think it matches")
    assert not m.is_valid
    assert m.confidence == 0.0
    assert m.match_type == "no-match"
    assert m.issues


def test_parse_match_normalizes_vocabulary_and_ranges():
    m = parse_match('{"isValid": "yes", "confidence": 150, "matchType": "Related", "issues": "unit"}')
    assert m.match_type == "weak"
    assert m.confidence == 100.0
    assert m.is_valid is False
    assert m.issues == ["unit"]
    assert parse_match('{"matchType": "bogus"}').match_type == "no-match"


def test_build_request_forces_the_extraction_tool():
    reviewer = ReviewerConfig(
        id="r1", name="R1", temperature=0.3, custom_parameters={"top_p": 0.9}
    )
    payload = build_request(reviewer, SCHEMA, "[0] We enrolled 120.")
    assert payload["tool_choice"] == {"type": "tool", "name": TOOL_NAME}
    assert payload["tools"][0]["input_schema"]["properties"]["data"]["properties"] == SCHEMA
    assert payload["temperature"] == 0.3
    assert payload["top_p"] == 0.9
    assert "[0] We enrolled 120." in payload["messages"][0]["content"]


def test_parse_tool_response_ok():
    data = {
        "content": [
            {"type": "text", "text": "Looking..."},
            {
                "type": "tool_use",
                "name": TOOL_NAME,
                "input": {
                    "data": {"totalN": 120},
                    "confidence": 130,
                    "reasoning": "methods",
                    "sourceText": "[0] We enrolled 120.",
                },
            },
        ]
    }
    out = parse_tool_response(data)
    assert isinstance(out, Ok)
    assert out.value.data == {"totalN": 120}
    assert out.value.confidence == 100.0
    assert out.value.source_text == "[0] We enrolled 120."


def test_parse_tool_response_errors():
    assert isinstance(parse_tool_response({"content": [{"type": "text", "text": "hi"}]}), Err)
    bad = {"content": [{"type": "tool_use", "input": {"data": {}}}]}
    assert isinstance(parse_tool_response(bad), Err)


def _status_error(code):
    request = httpx.Request("POST", "https://api.anthropic.test/v1/messages")
    return httpx.HTTPStatusError(
        "err", request=request, response=httpx.Response(code, request=request)
    )


def _reply(text):
    return {"content": [{"type": "text", "text": text}]}


class TestAnthropicMatch:
    """Semantic-match client with the HTTP call patched out."""

    def _call(self):
        return asyncio.run(
            anthropic_match(
                api_key="k",
                model="m",
                extracted_text="120",
                source_text="The trial enrolled 120 patients.",
                field_context="totalN",
                api_url="https://api.anthropic.test/v1/messages",
            )
        )

    def test_rate_limit_is_err(self):
        with patch.object(
            llm_verifier, "post_messages", AsyncMock(side_effect=_status_error(429))
        ):
            out = self._call()
        assert isinstance(out, Err)
        assert out.reason == "Rate limit exceeded"

    def test_transport_failure_is_err(self):
        with patch.object(
            llm_verifier, "post_messages", AsyncMock(side_effect=httpx.ConnectError("down"))
        ):
            out = self._call()
        assert isinstance(out, Err)
        assert "ConnectError" in out.reason

    def test_reply_is_parsed(self):
        mock_post = AsyncMock(
            return_value=_reply(
                '{"isValid": true, "confidence": 97, "matchType": "exact", "reasoning": "verbatim"}'
            )
        )
        with patch.object(llm_verifier, "post_messages", mock_post):
            out = self._call()
        assert isinstance(out, Ok)
        assert out.value.match_type == "exact"
        payload = mock_post.await_args.args[2]
        assert payload["temperature"] == 0.0
        assert "totalN" in payload["messages"][0]["content"]

    @pytest.mark.parametrize("reply", [{}, {"content": []}])
    def test_empty_reply_is_no_match(self, reply):
        with patch.object(llm_verifier, "post_messages", AsyncMock(return_value=reply)):
            out = self._call()
        assert isinstance(out, Ok)
        assert out.value.match_type == "no-match"


class TestExtractWithReviewer:
    """Extraction client failures come back as Err values."""

    def _call(self):
        return asyncio.run(
            extract_with_reviewer(
                reviewer=ReviewerConfig(id="r1", name="R1"),
                field_schema=SCHEMA,
                target_text="[0] We enrolled 120.",
                api_key="k",
                api_url="https://api.anthropic.test/v1/messages",
            )
        )

    @pytest.mark.parametrize("code,reason", [(429, "rate_limited"), (500, "http_500")])
    def test_status_errors(self, code, reason):
        with patch.object(
            anthropic_client, "post_messages", AsyncMock(side_effect=_status_error(code))
        ):
            out = self._call()
        assert out == Err(reason)

    def test_missing_tool_call(self):
        with patch.object(
            anthropic_client, "post_messages", AsyncMock(return_value=_reply("no tool"))
        ):
            out = self._call()
        assert isinstance(out, Err)
