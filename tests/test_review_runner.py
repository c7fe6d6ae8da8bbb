"""Concurrent reviewer fan-out."""
import asyncio
import pytest
from core.consensus import ConsensusSettings
from core.entities import Err, ExtractionPayload, Ok
from core.review_runner import ExtractionTask, run_reviews
from core.reviewers import ReviewerConfig

SETTINGS = ConsensusSettings(threshold_even=0.80, threshold_odd=0.75)
TASK = ExtractionTask(
    field_schema={"totalN": {"type": "number"}, "country": {"type": "string"}},
    target_text="[0] We enrolled 120 patients in Norway.",
)


def _reviewers(n):
    return [ReviewerConfig(id=f"r{i}", name=f"Reviewer {i}", priority=i) for i in range(n)]


def _payload(total, conf=90.0):
    return ExtractionPayload(
        data={"totalN": total, "country": "Norway"},
        confidence=conf,
        reasoning="stated in methods",
        source_text="[0] We enrolled 120 patients in Norway.",
    )


def test_all_reviewers_succeed():
    async def extract(reviewer, schema, text):
        assert schema is TASK.field_schema
        assert text == TASK.target_text
        return Ok(_payload(120))

    run = asyncio.run(run_reviews(TASK, _reviewers(3), extract, SETTINGS, timeout=5))
    assert [r.reviewer_id for r in run.reviews] == ["r0", "r1", "r2"]
    assert all(r.ok for r in run.reviews)
    assert run.consensus["totalN"].value == 120
    assert run.consensus["country"].agreement_level == 100.0
    assert run.conflicts == []
    assert run.summary.successful_reviewers == 3


def test_results_keep_reviewer_order_regardless_of_finish_order():
    delays = {"r0": 0.05, "r1": 0.0, "r2": 0.02}

    async def extract(reviewer, schema, text):
        await asyncio.sleep(delays[reviewer.id])
        return Ok(_payload(120))

    run = asyncio.run(run_reviews(TASK, _reviewers(3), extract, SETTINGS, timeout=5))
    assert [r.reviewer_id for r in run.reviews] == ["r0", "r1", "r2"]


def test_calls_run_concurrently():
    async def extract(reviewer, schema, text):
        await asyncio.sleep(0.2)
        return Ok(_payload(120))

    async def scenario():
        loop = asyncio.get_running_loop()
        t0 = loop.time()
        await run_reviews(TASK, _reviewers(4), extract, SETTINGS, timeout=5)
        return loop.time() - t0

    assert asyncio.run(scenario()) < 0.6


def test_failures_are_isolated():
    async def extract(reviewer, schema, text):
        if reviewer.id == "r1":
            return Err("rate_limited")
        if reviewer.id == "r2":
            raise RuntimeError("boom")
        return Ok(_payload(120))

    run = asyncio.run(run_reviews(TASK, _reviewers(4), extract, SETTINGS, timeout=5))
    errors = {r.reviewer_id: r.error for r in run.reviews}
    assert errors["r0"] is None and errors["r3"] is None
    assert errors["r1"] == "rate_limited"
    assert errors["r2"] == "boom"
    assert run.summary.total_reviewers == 4
    assert run.summary.successful_reviewers == 2
    assert run.consensus["totalN"].reviewer_parity == "even"


def test_slow_reviewer_times_out_without_blocking_others():
    async def extract(reviewer, schema, text):
        if reviewer.id == "r0":
            await asyncio.sleep(5)
        return Ok(_payload(120))

    run = asyncio.run(run_reviews(TASK, _reviewers(3), extract, SETTINGS, timeout=0.1))
    assert run.reviews[0].error.startswith("Timed out")
    assert run.reviews[1].ok and run.reviews[2].ok
    assert run.summary.successful_reviewers == 2


def test_all_failed_gives_null_consensus():
    async def extract(reviewer, schema, text):
        return Err("http_500")

    run = asyncio.run(run_reviews(TASK, _reviewers(2), extract, SETTINGS, timeout=5))
    assert run.summary.successful_reviewers == 0
    assert run.summary.average_confidence == 0.0
    assert all(c.value is None for c in run.consensus.values())


def test_disagreement_is_reported():
    totals = {"r0": 120, "r1": 118, "r2": 121, "r3": 119}

    async def extract(reviewer, schema, text):
        return Ok(_payload(totals[reviewer.id]))

    run = asyncio.run(run_reviews(TASK, _reviewers(4), extract, SETTINGS, timeout=5))
    (conflict,) = run.conflicts
    assert conflict.field_name == "totalN"
    assert "value_disagreement" in conflict.conflict_types
    assert run.consensus["totalN"].value == 120


def test_cancelling_the_run_cancels_every_call():
    cancelled = []

    async def extract(reviewer, schema, text):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(reviewer.id)
            raise
        return Ok(_payload(120))

    async def scenario():
        run = asyncio.create_task(
            run_reviews(TASK, _reviewers(3), extract, SETTINGS, timeout=30)
        )
        await asyncio.sleep(0.05)
        run.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run
        for _ in range(3):
            await asyncio.sleep(0)

    asyncio.run(scenario())
    assert sorted(cancelled) == ["r0", "r1", "r2"]
