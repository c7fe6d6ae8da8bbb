# repository/document_repository.py
from typing import List, Optional
from model.document import DocumentChunks, chunk_to_model, model_to_chunk
from core.entities import TextChunk
from repository.base import RedisRepository
from repository.namespaces import DOCUMENTS


class DocumentRepository(RedisRepository):
    """
    Flow:
    - One key per document holding its whole chunk set as JSON.
    - Re-processing overwrites the set in a single SET; chunks are never patched.
    """

    namespace = DOCUMENTS

    async def put_chunks(self, document_id: str, chunks: List[TextChunk]) -> None:
        r = await self._client()
        payload = DocumentChunks(
            documentId=document_id, chunks=[chunk_to_model(c) for c in chunks]
        )
        await r.set(
            self._key(document_id),
            payload.model_dump_json().encode("utf-8"),
            ex=self._ttl,
        )

    async def get_chunks(self, document_id: str) -> Optional[List[TextChunk]]:
        if not document_id:
            return None
        r = await self._client()
        raw = await r.get(self._key(document_id))
        if raw is None:
            return None
        await r.expire(self._key(document_id), self._ttl)
        doc = DocumentChunks.model_validate_json(raw)
        return [model_to_chunk(m) for m in doc.chunks]
