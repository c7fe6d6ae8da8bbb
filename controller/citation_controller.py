# controller/citation_controller.py
from fastapi import APIRouter, Depends
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from service.citation_service import CitationService
from model.api import (
    BatchValidateRequest,
    BatchValidateResponse,
    RecommendationsRequest,
    RecommendationsResponse,
    SuggestCitationsRequest,
    SuggestCitationsResponse,
    ValidateCitationRequest,
    ValidateCitationResponse,
)
from util.constants import InternalURIs
from controller.controller_dependencies import get_citation_service

citation_router = APIRouter(
    dependencies=[
        Depends(
            RateLimiter(
                times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
            )
        )
    ]
)


@citation_router.post(InternalURIs.VALIDATE_CITATION, response_model=ValidateCitationResponse)
async def validate_citation(
    payload: ValidateCitationRequest,
    service: CitationService = Depends(get_citation_service),
) -> ValidateCitationResponse:
    return await service.validate_one(payload)


@citation_router.post(
    InternalURIs.VALIDATE_CITATIONS_BATCH, response_model=BatchValidateResponse
)
async def validate_citations_batch(
    payload: BatchValidateRequest,
    service: CitationService = Depends(get_citation_service),
) -> BatchValidateResponse:
    return await service.validate_batch(payload)


@citation_router.post(InternalURIs.SUGGEST_CITATIONS, response_model=SuggestCitationsResponse)
async def suggest_citations(
    payload: SuggestCitationsRequest,
    service: CitationService = Depends(get_citation_service),
) -> SuggestCitationsResponse:
    return await service.suggest(payload)


@citation_router.post(
    InternalURIs.REVALIDATION_RECOMMENDATIONS, response_model=RecommendationsResponse
)
async def revalidation_recommendations(
    payload: RecommendationsRequest,
    service: CitationService = Depends(get_citation_service),
) -> RecommendationsResponse:
    return await service.recommendations(payload)
