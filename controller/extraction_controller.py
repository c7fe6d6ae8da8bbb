# controller/extraction_controller.py
from fastapi import APIRouter, Depends
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from service.extraction_service import ExtractionService
from model.api import RunExtractionRequest, RunExtractionResponse
from util.constants import InternalURIs
from controller.controller_dependencies import get_extraction_service

extraction_router = APIRouter(
    dependencies=[
        Depends(
            RateLimiter(
                times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
            )
        )
    ]
)


@extraction_router.post(InternalURIs.RUN_EXTRACTION, response_model=RunExtractionResponse)
async def run_extraction(
    payload: RunExtractionRequest,
    service: ExtractionService = Depends(get_extraction_service),
) -> RunExtractionResponse:
    return await service.run(payload)
