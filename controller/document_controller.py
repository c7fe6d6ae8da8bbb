# controller/document_controller.py
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from service.document_service import DocumentService
from model.api import CitableDocumentResponse, UploadDocumentResponse
from util.constants import InternalURIs
from controller.controller_dependencies import (
    enforce_max_upload_size,
    get_document_service,
)

document_router = APIRouter(
    dependencies=[
        Depends(
            RateLimiter(
                times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
            )
        )
    ]
)


@document_router.post(
    InternalURIs.DOCUMENTS,
    response_model=UploadDocumentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_max_upload_size)],
)
async def upload_document(
    file: UploadFile = File(...),
    documentId: Optional[str] = Form(None),
    service: DocumentService = Depends(get_document_service),
) -> UploadDocumentResponse:
    return await service.create_document(file, documentId)


@document_router.get(
    InternalURIs.CITABLE_DOCUMENT, response_model=CitableDocumentResponse
)
async def citable_document(
    document_id: str,
    section: Optional[str] = None,
    service: DocumentService = Depends(get_document_service),
) -> CitableDocumentResponse:
    return await service.citable(document_id, section)
