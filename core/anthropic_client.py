# core/anthropic_client.py
import json
from typing import Any, Dict
import httpx
from pydantic import BaseModel, Field, ValidationError
from config.settings import settings
from core.entities import Err, ExtractionPayload, Ok, Result
from core.extraction_steps import FieldSchema
from core.reviewers import ReviewerConfig
import logging
from util.functions import clamp
from util.timing import timed

logger = logging.getLogger(__name__)

TOOL_NAME = "extract_fields"


class _ToolInput(BaseModel):
    data: Dict[str, Any]
    confidence: float
    reasoning: str = ""
    sourceText: str = ""


def anthropic_headers(api_key: str) -> Dict[str, str]:
    return {
        "x-api-key": api_key,
        "anthropic-version": settings.ANTHROPIC_VERSION,
        "content-type": "application/json",
    }


async def post_messages(
    url: str, headers: Dict[str, str], payload: Dict[str, Any], timeout: float = 60.0
) -> Dict[str, Any]:
    """
    POST a Messages API request. Raises for non-2xx. Returns parsed JSON dict or {} on parse failure.
    """
    async with httpx.AsyncClient(timeout=timeout) as client:
        r = await client.post(url, headers=headers, json=payload)
        r.raise_for_status()
        try:
            return r.json()
        except ValueError:
            return {}


def _extract_user(field_schema: FieldSchema, target_text: str) -> str:
    """
    Build the user message: schema to fill plus the indexed document text.
    """
    return (
        "Extract the following fields:\n"
        f"{json.dumps(field_schema, indent=2)}\n\n"
        f"Document (one indexed sentence per line):\n{target_text}\n\n"
        "For any field you cannot find, use null."
    )


def _tool(field_schema: FieldSchema) -> Dict[str, Any]:
    return {
        "name": TOOL_NAME,
        "description": "Record structured data extracted from the document",
        "input_schema": {
            "type": "object",
            "properties": {
                "data": {
                    "type": "object",
                    "description": "Extracted field values",
                    "properties": field_schema,
                },
                "confidence": {
                    "type": "number",
                    "description": "Overall confidence score 0-100",
                },
                "reasoning": {
                    "type": "string",
                    "description": "Explanation of confidence level and extraction decisions",
                },
                "sourceText": {
                    "type": "string",
                    "description": "Sentences supporting the extraction, with their [N] markers",
                },
            },
            "required": ["data", "confidence", "reasoning"],
        },
    }


def build_request(
    reviewer: ReviewerConfig, field_schema: FieldSchema, target_text: str
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "model": reviewer.model or settings.ANTHROPIC_MODEL,
        "max_tokens": reviewer.max_tokens,
        "system": reviewer.system_prompt or settings.EXTRACT_SYSTEM_PROMPT,
        "messages": [
            {"role": "user", "content": _extract_user(field_schema, target_text)}
        ],
        "tools": [_tool(field_schema)],
        "tool_choice": {"type": "tool", "name": TOOL_NAME},
        "temperature": reviewer.temperature,
    }
    payload.update(reviewer.custom_parameters)
    return payload


def parse_tool_response(data: Dict[str, Any]) -> Result[ExtractionPayload]:
    """
    Pull the forced tool call out of a Messages API response and validate it.
    """
    content = data.get("content") or []
    node = next(
        (
            c
            for c in content
            if isinstance(c, dict) and c.get("type") == "tool_use"
        ),
        None,
    )
    if node is None:
        return Err("No tool call in model response")
    try:
        parsed = _ToolInput.model_validate(node.get("input") or {})
    except ValidationError as e:
        return Err(f"Malformed tool input: {e.error_count()} error(s)")
    return Ok(
        ExtractionPayload(
            data=parsed.data,
            confidence=clamp(parsed.confidence, 0.0, 100.0),
            reasoning=parsed.reasoning,
            source_text=parsed.sourceText,
        )
    )


async def extract_with_reviewer(
    *,
    reviewer: ReviewerConfig,
    field_schema: FieldSchema,
    target_text: str,
    api_key: str,
    api_url: str,
    timeout: float = 60.0,
) -> Result[ExtractionPayload]:
    """
    Run one reviewer over the target text. Transport, rate-limit and
    structured-output failures come back as Err, never as exceptions.
    """
    payload = build_request(reviewer, field_schema, target_text)
    try:
        with timed(logger, "ai.extract", reviewer=reviewer.id, model=payload["model"]):
            data = await post_messages(
                api_url, anthropic_headers(api_key), payload, timeout=timeout
            )
    except httpx.HTTPStatusError as e:
        code = e.response.status_code
        reason = "rate_limited" if code == 429 else f"http_{code}"
        logger.warning("ai.extract.status reviewer=%s status=%d", reviewer.id, code)
        return Err(reason)
    except httpx.HTTPError as e:
        logger.warning("ai.extract.transport reviewer=%s err=%s", reviewer.id, type(e).__name__)
        return Err(f"transport: {type(e).__name__}")

    result = parse_tool_response(data)
    if isinstance(result, Err):
        logger.warning("ai.extract.parse reviewer=%s reason=%s", reviewer.id, result.reason)
    return result
