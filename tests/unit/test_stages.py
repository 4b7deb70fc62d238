"""
Tests for the scoring and drafting stages and per-item execution options.
"""

import asyncio

import pytest

from conftest import make_context

from followups.core.errors import DraftingError, ScoringError
from followups.core.models import ScoredDeal, UrgencyResult
from followups.pipeline.draft import DraftingStage
from followups.pipeline.options import PipelineOptions, run_per_item
from followups.pipeline.score import ScoringStage, sort_by_urgency


def scored(deal_id: str, score: str) -> ScoredDeal:
    return ScoredDeal(deal=make_context(deal_id), urgency=UrgencyResult(score=score, reason=""))


class TestPipelineOptions:
    def test_defaults(self):
        options = PipelineOptions()
        assert options.on_item_error == "abort"
        assert options.concurrency == 1

    def test_rejects_unknown_mode(self):
        with pytest.raises(ValueError):
            PipelineOptions(on_item_error="retry")

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValueError):
            PipelineOptions(concurrency=0)

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded_and_order_kept(self):
        in_flight = 0
        peak = 0

        async def work(n: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01 * (5 - n))
            in_flight -= 1
            return n * 10

        results, skipped = await run_per_item(
            [1, 2, 3, 4], work, PipelineOptions(concurrency=2), stage="Test", key=str
        )
        assert results == [(1, 10), (2, 20), (3, 30), (4, 40)]
        assert skipped == []
        assert peak == 2

    @pytest.mark.asyncio
    async def test_non_collaborator_errors_always_propagate(self):
        async def boom(n: int) -> int:
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await run_per_item([1], boom, PipelineOptions(on_item_error="skip"), stage="Test", key=str)


class TestScoringStage:
    def test_sort_by_urgency_is_stable(self):
        batch = [scored("a", "low"), scored("b", "high"), scored("c", "critical"), scored("d", "high")]
        assert [s.deal.deal_id for s in sort_by_urgency(batch)] == ["c", "b", "d", "a"]

    @pytest.mark.asyncio
    async def test_scores_and_orders(self, scorer):
        scorer.scores = {"a": "low", "b": "critical", "c": "medium"}
        stage = ScoringStage(scorer)

        result, skipped = await stage.score([make_context("a"), make_context("b"), make_context("c")])
        assert skipped == []
        assert [(s.deal.deal_id, s.urgency.score) for s in result] == [
            ("b", "critical"),
            ("c", "medium"),
            ("a", "low"),
        ]

    @pytest.mark.asyncio
    async def test_abort_on_failure(self, scorer):
        scorer.failing = {"b"}
        stage = ScoringStage(scorer)

        with pytest.raises(ScoringError):
            await stage.score([make_context("a"), make_context("b"), make_context("c")])
        assert scorer.calls == ["a", "b"]

    @pytest.mark.asyncio
    async def test_skip_on_failure(self, scorer):
        scorer.failing = {"b"}
        stage = ScoringStage(scorer, PipelineOptions(on_item_error="skip"))

        result, skipped = await stage.score([make_context("a"), make_context("b"), make_context("c")])
        assert [s.deal.deal_id for s in result] == ["a", "c"]
        assert skipped == ["b"]

    @pytest.mark.asyncio
    async def test_empty_input(self, scorer):
        assert await ScoringStage(scorer).score([]) == ([], [])
        assert scorer.calls == []


class TestDraftingStage:
    @pytest.mark.asyncio
    async def test_keeps_input_order(self, drafter):
        stage = DraftingStage(drafter, PipelineOptions(concurrency=3))
        batch = [scored("c", "critical"), scored("a", "high"), scored("b", "low")]

        result, skipped = await stage.draft(batch)
        assert skipped == []
        assert [d.deal.deal_id for d in result] == ["c", "a", "b"]
        assert result[0].draft.subject == "Following up on Deal c"
        assert result[0].urgency.score == "critical"

    @pytest.mark.asyncio
    async def test_abort_on_failure(self, drafter):
        drafter.failing = {"a"}
        with pytest.raises(DraftingError):
            await DraftingStage(drafter).draft([scored("a", "high"), scored("b", "low")])

    @pytest.mark.asyncio
    async def test_skip_on_failure(self, drafter):
        drafter.failing = {"a"}
        stage = DraftingStage(drafter, PipelineOptions(on_item_error="skip"))

        result, skipped = await stage.draft([scored("a", "high"), scored("b", "low")])
        assert [d.deal.deal_id for d in result] == ["b"]
        assert skipped == ["a"]
