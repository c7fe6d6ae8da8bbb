# controller/controller_dependencies.py
from core.anthropic_client import extract_with_reviewer
from core.consensus import ConsensusSettings
from core.entities import ExtractionPayload, MatchResult, Result
from core.extraction_steps import FieldSchema
from core.llm_verifier import anthropic_match
from core.reviewers import ReviewerConfig, ReviewerPool
from repository.consensus_repository import ConsensusRepository, ReviewRepository
from repository.document_repository import DocumentRepository
from repository.extraction_repository import ExtractionRepository
from service.citation_service import CitationService
from service.document_service import DocumentService
from service.extraction_service import ExtractionService
from fastapi import File, HTTPException, Request, UploadFile
from config.settings import settings


async def _extract(
    reviewer: ReviewerConfig, field_schema: FieldSchema, target_text: str
) -> Result[ExtractionPayload]:
    return await extract_with_reviewer(
        reviewer=reviewer,
        field_schema=field_schema,
        target_text=target_text,
        api_key=settings.ANTHROPIC_API_KEY,
        api_url=settings.ANTHROPIC_API_URL,
        timeout=settings.REVIEWER_TIMEOUT_SECONDS,
    )


async def _match(extracted: str, source: str, field_name: str) -> Result[MatchResult]:
    return await anthropic_match(
        api_key=settings.ANTHROPIC_API_KEY,
        model=settings.ANTHROPIC_MODEL,
        extracted_text=extracted,
        source_text=source,
        field_context=field_name,
        api_url=settings.ANTHROPIC_API_URL,
        http_timeout=settings.VALIDATOR_TIMEOUT_SECONDS,
    )


def get_reviewer_pool() -> ReviewerPool:
    return ReviewerPool.from_json(
        settings.REVIEWERS_JSON,
        min_reviewers=settings.MIN_REVIEWERS,
        max_reviewers=settings.MAX_REVIEWERS,
        default_reviewers=settings.DEFAULT_REVIEWERS,
    )


def get_document_service() -> DocumentService:
    return DocumentService(DocumentRepository())


def get_extraction_service() -> ExtractionService:
    return ExtractionService(
        documents=DocumentRepository(),
        extractions=ExtractionRepository(),
        consensus=ConsensusRepository(),
        reviews=ReviewRepository(),
        pool=get_reviewer_pool(),
        consensus_settings=ConsensusSettings(
            threshold_even=settings.THRESHOLD_EVEN,
            threshold_odd=settings.THRESHOLD_ODD,
        ),
        extract=_extract,
        reviewer_timeout=settings.REVIEWER_TIMEOUT_SECONDS,
        max_target_chars=settings.TARGET_TEXT_MAX_CHARS,
    )


def get_citation_service() -> CitationService:
    return CitationService(
        DocumentRepository(),
        ExtractionRepository(),
        _match,
        validator_timeout=settings.VALIDATOR_TIMEOUT_SECONDS,
    )


def _too_large() -> HTTPException:
    return HTTPException(
        status_code=413,
        detail={
            "ok": False,
            "error": "file_too_large",
            "maxMb": settings.MAX_FILE_MB,
        },
    )


async def enforce_max_upload_size(
    request: Request, file: UploadFile = File(...)
) -> UploadFile:
    # Fast pre-check via Content-Length if present
    max_bytes = settings.MAX_FILE_MB * 1024 * 1024
    cl = request.headers.get("content-length")
    if cl and cl.isdigit() and int(cl) > max_bytes:
        raise _too_large()

    # Hard cap while reading, works without Content-Length too
    blob = await file.read(max_bytes + 1)
    if len(blob) > max_bytes:
        raise _too_large()

    await file.seek(0)
    return file
