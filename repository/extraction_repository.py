# repository/extraction_repository.py
from typing import Iterable, List, Optional
from model.extraction import ExtractionRecord
from repository.base import RedisRepository
from repository.namespaces import DOCUMENT_EXTRACTIONS, EXTRACTIONS


def _decode(v: bytes | str) -> str:
    return v.decode("utf-8") if isinstance(v, (bytes, bytearray)) else str(v)


class ExtractionRepository(RedisRepository):
    """
    Flow:
    - Each extraction record lives under its own key.
    - A per-document id set lets batch validation select by document.
    - A re-run replaces the records of its extraction id as a whole.
    """

    namespace = EXTRACTIONS

    @staticmethod
    def _doc_key(document_id: str) -> str:
        return f"{DOCUMENT_EXTRACTIONS}:{document_id}"

    async def put(self, record: ExtractionRecord) -> None:
        r = await self._client()
        async with r.pipeline(transaction=True) as pipe:
            pipe.set(
                self._key(record.id),
                record.model_dump_json().encode("utf-8"),
                ex=self._ttl,
            )
            pipe.sadd(self._doc_key(record.document_id), record.id)
            pipe.expire(self._doc_key(record.document_id), self._ttl)
            await pipe.execute()

    async def get(self, extraction_id: str) -> Optional[ExtractionRecord]:
        r = await self._client()
        raw = await r.get(self._key(extraction_id))
        if raw is None:
            return None
        return ExtractionRecord.model_validate_json(raw)

    async def get_many(self, extraction_ids: Iterable[str]) -> List[ExtractionRecord]:
        ids = list(dict.fromkeys(extraction_ids))
        if not ids:
            return []
        r = await self._client()
        raws = await r.mget([self._key(i) for i in ids])
        return [ExtractionRecord.model_validate_json(raw) for raw in raws if raw is not None]

    async def for_document(self, document_id: str) -> List[ExtractionRecord]:
        r = await self._client()
        ids = await r.smembers(self._doc_key(document_id))
        return await self.get_many(sorted(_decode(i) for i in ids or []))

    async def delete_many(self, document_id: str, extraction_ids: Iterable[str]) -> None:
        ids = list(dict.fromkeys(extraction_ids))
        if not ids:
            return
        r = await self._client()
        async with r.pipeline(transaction=True) as pipe:
            pipe.delete(*[self._key(i) for i in ids])
            pipe.srem(self._doc_key(document_id), *ids)
            await pipe.execute()
