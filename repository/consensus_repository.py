# repository/consensus_repository.py
from typing import List
from model.consensus import ConsensusRow, ReviewRow
from repository.base import RedisRepository
from repository.namespaces import CONSENSUS, REVIEWS


class ConsensusRepository(RedisRepository):
    """
    Flow:
    - One hash per extraction run, field_name -> consensus row.
    - HSET replaces the row for a field on re-run; other fields are untouched.
    """

    namespace = CONSENSUS

    async def upsert(self, extraction_id: str, rows: List[ConsensusRow]) -> None:
        if not rows:
            return
        r = await self._client()
        key = self._key(extraction_id)
        mapping = {row.field_name: row.model_dump_json().encode("utf-8") for row in rows}
        async with r.pipeline(transaction=True) as pipe:
            pipe.hset(key, mapping=mapping)
            pipe.expire(key, self._ttl)
            await pipe.execute()


class ReviewRepository(RedisRepository):
    """
    Individual reviewer answers of the latest run for an extraction.
    """

    namespace = REVIEWS

    async def replace(self, extraction_id: str, rows: List[ReviewRow]) -> None:
        r = await self._client()
        key = self._key(extraction_id)
        async with r.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            if rows:
                pipe.rpush(key, *[row.model_dump_json().encode("utf-8") for row in rows])
                pipe.expire(key, self._ttl)
            await pipe.execute()
