# core/llm_verifier.py
import json
from typing import Any, Dict, List
import httpx
from config.settings import settings
from core.anthropic_client import anthropic_headers, post_messages
from core.entities import Err, MatchResult, Ok, Result
import logging
from util.functions import clamp, clip_words, strip_code_fences
from util.timing import timed
from util.types import MATCH_TYPES

logger = logging.getLogger(__name__)

# Older prompt vocabularies still show up in model output.
_MATCH_ALIASES = {"related": "weak", "unknown": "no-match", "none": "no-match"}


def _user_prompt(extracted_text: str, source_text: str, field_context: str) -> str:
    """
    Build the user message: field, extracted value and the reconstructed cited text.
    """
    return (
        f"FIELD NAME: {field_context}\n"
        f'EXTRACTED VALUE: "{extracted_text}"\n\n'
        f"SOURCE TEXT (from cited sentences):\n{clip_words(source_text, max_words=1500)}\n\n"
        "Return JSON only."
    )


def _issues(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw] if raw.strip() else []
    if isinstance(raw, list):
        return [str(x) for x in raw if str(x).strip()]
    return [str(raw)]


def parse_match(text: str) -> MatchResult:
    """
    Normalize the classifier reply. Anything unparsable degrades to a
    conservative no-match with zero confidence.
    """
    raw = strip_code_fences(text)
    try:
        parsed = json.loads(raw)
    except ValueError:
        return MatchResult.no_match(
            "Unable to parse validator output.",
            issues=["Validator returned malformed JSON"],
        )
    if not isinstance(parsed, dict):
        return MatchResult.no_match(
            "Validator output was not an object.",
            issues=["Validator returned malformed JSON"],
        )

    match_type = str(parsed.get("matchType", "no-match")).strip().lower()
    match_type = _MATCH_ALIASES.get(match_type, match_type)
    if match_type not in MATCH_TYPES:
        match_type = "no-match"

    try:
        conf = float(parsed.get("confidence", 0))
    except (TypeError, ValueError):
        conf = 0.0

    return MatchResult(
        is_valid=parsed.get("isValid") is True,
        confidence=clamp(conf, 0.0, 100.0),
        match_type=match_type,  # type: ignore[arg-type]
        reasoning=str(parsed.get("reasoning") or "No reasoning provided").strip(),
        issues=_issues(parsed.get("issues")),
    )


def _reply_text(data: Dict[str, Any]) -> str:
    content = data.get("content") or []
    if content and isinstance(content, list):
        node = content[0]
        if isinstance(node, dict) and node.get("type") == "text":
            return node.get("text") or ""
    return ""


async def anthropic_match(
    *,
    api_key: str,
    model: str,
    extracted_text: str,
    source_text: str,
    field_context: str,
    api_url: str,
    http_timeout: float = 45.0,
) -> Result[MatchResult]:
    """
    Ask Anthropic whether the cited source text supports the extracted value.
    Transport failures come back as Err; unparsable replies as a no-match Ok.
    """
    payload = {
        "model": model,
        "max_tokens": 500,
        "system": settings.MATCH_SYSTEM_PROMPT,
        "messages": [
            {
                "role": "user",
                "content": _user_prompt(extracted_text, source_text, field_context),
            }
        ],
        "temperature": 0.0,
    }
    try:
        with timed(logger, "ai.match", model=model, field=field_context):
            data = await post_messages(
                api_url, anthropic_headers(api_key), payload, timeout=http_timeout
            )
    except httpx.HTTPStatusError as e:
        code = e.response.status_code
        logger.warning("ai.match.status status=%d", code)
        return Err("Rate limit exceeded" if code == 429 else f"Validator HTTP {code}")
    except httpx.HTTPError as e:
        logger.warning("ai.match.transport err=%s", type(e).__name__)
        return Err(f"Validator unreachable: {type(e).__name__}")

    result = parse_match(_reply_text(data))
    logger.info(
        "ai.match.result valid=%s conf=%.0f type=%s",
        result.is_valid,
        result.confidence,
        result.match_type,
    )
    return Ok(result)
