# config/settings.py
import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")

_DEFAULT_REVIEWERS = (
    '[{"id":"reviewer-precise","name":"Precise Reviewer","priority":1,'
    '"temperature":0.0},'
    '{"id":"reviewer-balanced","name":"Balanced Reviewer","priority":2,'
    '"temperature":0.3},'
    '{"id":"reviewer-exploratory","name":"Exploratory Reviewer","priority":3,'
    '"temperature":0.7}]'
)


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")
    PERSISTENCE_TTL_SECONDS: int = Field(
        ..., validation_alias="PERSISTENCE_TTL_SECONDS"
    )

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(..., validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(..., validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(..., validation_alias="RATE_LIMIT_SECONDS")
    MAX_FILE_MB: int = Field(..., validation_alias="MAX_FILE_MB")
    TRUST_PROXY: bool = Field(..., validation_alias="TRUST_PROXY")

    # Anthropic Settings
    ANTHROPIC_API_URL: str = Field(..., validation_alias="ANTHROPIC_API_URL")
    ANTHROPIC_API_KEY: str = Field(..., validation_alias="ANTHROPIC_API_KEY")
    ANTHROPIC_MODEL: str = Field(..., validation_alias="ANTHROPIC_MODEL")
    ANTHROPIC_VERSION: str = Field(..., validation_alias="ANTHROPIC_VERSION")

    # Reviewer pool & consensus
    REVIEWERS_JSON: str = Field(
        default=_DEFAULT_REVIEWERS, validation_alias="REVIEWERS_JSON"
    )
    MIN_REVIEWERS: int = 2
    MAX_REVIEWERS: int = 8
    DEFAULT_REVIEWERS: int = 3
    THRESHOLD_EVEN: float = Field(default=0.80, validation_alias="THRESHOLD_EVEN")
    THRESHOLD_ODD: float = Field(default=0.75, validation_alias="THRESHOLD_ODD")
    REVIEWER_TIMEOUT_SECONDS: float = 60.0
    VALIDATOR_TIMEOUT_SECONDS: float = 45.0
    TARGET_TEXT_MAX_CHARS: int = 8000

    # Embedding Engine
    EMBEDDING_MODEL_NAME: str = "sentence-transformers/all-MiniLM-L6-v2"

    # Logging knobs
    LOGGER_NAME: str = "paper-provenance"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    # Prompts
    EXTRACT_SYSTEM_PROMPT: str = (
        "You extract structured data from research papers for systematic reviews.\n"
        "The document is given as numbered sentences: each line starts with [N], "
        "the sentence index.\n"
        "Rules:\n"
        "- Fill only fields the text states or directly implies; use null otherwise.\n"
        "- Never invent numbers. Copy numeric values as printed.\n"
        "- In sourceText, quote the sentences you relied on including their [N] markers.\n"
        "- Report an overall confidence from 0 to 100 and short reasoning.\n"
        "- Answer only through the provided tool."
    )

    MATCH_SYSTEM_PROMPT: str = (
        "You validate extracted data against cited source text from a research paper.\n"
        "Decide whether the SOURCE TEXT supports the EXTRACTED VALUE for the given FIELD.\n\n"
        "Match types:\n"
        "- exact: the source contains the exact value\n"
        "- paraphrase: the source says the same thing in different words\n"
        "- semantic: the source implies or logically supports the value\n"
        "- weak: the source loosely relates but does not directly support it\n"
        "- no-match: the source does not support the value\n\n"
        "Judge ONLY from the source text. "
        'Return JSON ONLY: {"isValid":true|false,"confidence":0-100,'
        '"matchType":"exact|paraphrase|semantic|weak|no-match",'
        '"reasoning":"...","issues":["..."]}\n'
        "- No code fences.\n"
    )


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
