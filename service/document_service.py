# service/document_service.py
import logging
from typing import List, Optional
from uuid import uuid4
from fastapi import UploadFile
from redis.exceptions import RedisError
from core.chunk_indexer import chunks_for_section, create_citable_document
from core.entities import TextChunk
from core.pdf_text import index_pdf
from model.api import CitableDocumentResponse, UploadDocumentResponse
from repository.document_repository import DocumentRepository
from util.enums import ErrorMessage
from util.errors import AppError

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(self, documents: DocumentRepository) -> None:
        self._documents = documents

    async def create_document(
        self, file: UploadFile, document_id: Optional[str] = None
    ) -> UploadDocumentResponse:
        """
        Index an uploaded PDF and store its chunk set. Passing an existing
        document_id re-processes it: the old chunk set is replaced whole.
        Logs: ids and counts only (no payloads).
        """
        try:
            data = await file.read()
            await file.seek(0)
        except Exception:
            logger.error("upload.read.error")
            raise

        indexed = index_pdf(data)
        if indexed.page_count == 0:
            logger.warning("upload.unreadable bytes=%d", len(data))
            raise AppError.of(ErrorMessage.UNREADABLE_PDF)

        doc_id = document_id or str(uuid4())
        try:
            await self._documents.put_chunks(doc_id, indexed.chunks)
        except RedisError:
            logger.error("upload.persist.error document=%s", doc_id, exc_info=True)
            raise AppError.of(ErrorMessage.INTERNAL_ERROR)
        logger.info(
            "upload.ok document=%s pages=%d chunks=%d",
            doc_id,
            indexed.page_count,
            len(indexed.chunks),
        )
        return UploadDocumentResponse(
            documentId=doc_id,
            pageCount=indexed.page_count,
            chunkCount=len(indexed.chunks),
        )

    async def chunks(self, document_id: str) -> List[TextChunk]:
        chunks = await self._documents.get_chunks(document_id)
        if chunks is None:
            raise AppError.of(ErrorMessage.DOCUMENT_NOT_FOUND, document_id)
        return chunks

    async def citable(
        self, document_id: str, section: Optional[str] = None
    ) -> CitableDocumentResponse:
        chunks = await self.chunks(document_id)
        if section:
            chunks = chunks_for_section(chunks, section)
        return CitableDocumentResponse(
            documentId=document_id,
            section=section,
            chunkCount=len(chunks),
            text=create_citable_document(chunks),
        )
