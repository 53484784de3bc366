"""Tests for SelectionEngine."""

import asyncio
import time
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio

from surveyor.audit.stores import InMemorySelectionAuditStore
from surveyor.config.models import PipelineConfig
from surveyor.selection.engine import SelectionEngine
from surveyor.selection.exceptions import (
    AmbiguousCombinationRuleError,
    InvalidConstraintsError,
    NoActiveCombinationRuleError,
    StageFailedError,
)
from surveyor.selection.models import (
    AlgorithmPreference,
    EvaluationContext,
    OptimizationAlgorithm,
    PipelineStage,
    PriorityTier,
    ProcessingMode,
    ReasonCode,
)
from surveyor.selection.optimization import TimeConstraintOptimizer
from surveyor.selection.request import SelectionConstraints, SelectionOptions
from surveyor.selection.stores import InMemorySelectionConfigStore
from tests.factories import CandidateFactory, CombinationRuleFactory, RequestFactory, TriggerFactory


class FailingOptimizer(TimeConstraintOptimizer):
    """Optimizer whose non-greedy strategies crash."""

    def __init__(self, fail_greedy: bool = False) -> None:
        super().__init__()
        self.fail_greedy = fail_greedy

    def optimize(self, questions, budget, algorithm=None, preference=AlgorithmPreference.BALANCED):
        if self.fail_greedy or algorithm != OptimizationAlgorithm.GREEDY:
            raise RuntimeError("solver crashed")
        return super().optimize(questions, budget, algorithm, preference)


class SlowOptimizer(TimeConstraintOptimizer):
    """Optimizer whose non-greedy strategies outlast the latency budget."""

    def optimize(self, questions, budget, algorithm=None, preference=AlgorithmPreference.BALANCED):
        if algorithm != OptimizationAlgorithm.GREEDY:
            time.sleep(0.3)
        return super().optimize(questions, budget, algorithm, preference)


@pytest.fixture
def config_store() -> InMemorySelectionConfigStore:
    return InMemorySelectionConfigStore()


@pytest.fixture
def audit_store() -> InMemorySelectionAuditStore:
    return InMemorySelectionAuditStore()


@pytest.fixture
def business_id():
    return uuid4()


@pytest_asyncio.fixture
async def rule(config_store, business_id):
    """A 60 second combination rule for the business."""
    rule = CombinationRuleFactory.create(business_id=business_id, max_duration_seconds=60)
    await config_store.save_combination_rule(rule)
    return rule


@pytest.fixture
def engine(config_store, audit_store) -> SelectionEngine:
    return SelectionEngine(
        config_store=config_store,
        audit_store=audit_store,
        pipeline_config=PipelineConfig(),
    )


@pytest.fixture
def candidates():
    """A (priority 5, 20 s), B (3, 15 s) and C (4, 40 s)."""
    return [
        CandidateFactory.create(id="A", base_priority=5, duration=20.0),
        CandidateFactory.create(id="B", base_priority=3, duration=15.0),
        CandidateFactory.create(id="C", base_priority=4, duration=40.0),
    ]


class TestSelection:
    """Tests for the full pipeline."""

    @pytest.mark.asyncio
    async def test_selects_best_fitting_questions(
        self, engine, rule, business_id, candidates
    ) -> None:
        """A and B fit the 54 available seconds; C does not."""
        request = RequestFactory.create(business_id=business_id, candidates=candidates)

        result = await engine.select(request)

        assert result.selected_ids == ["A", "B"]
        assert result.reason_code is None
        assert result.total_estimated_duration == 39.0
        assert result.time_utilization == pytest.approx(65.0)
        assert result.algorithm == OptimizationAlgorithm.DYNAMIC_PROGRAMMING
        assert result.metadata.rule_id == rule.id
        assert result.metadata.effective_max_duration == 60
        assert result.interaction_id == request.interaction_id

    @pytest.mark.asyncio
    async def test_selected_question_details(
        self, engine, rule, business_id, candidates
    ) -> None:
        """Each selected question carries priority, tier, timing and reason."""
        result = await engine.select(
            RequestFactory.create(business_id=business_id, candidates=candidates)
        )

        first, second = result.selected_questions
        # Never presented questions earn 0.1 * 10 fairness
        assert first.priority == pytest.approx(6.0)
        assert first.priority_tier == PriorityTier.CRITICAL
        assert second.priority_tier == PriorityTier.HIGH
        assert first.estimated_duration == 20
        assert first.time_allocation_seconds == 22
        assert first.confidence == 0.7
        assert first.reason.startswith("Optimal DP selection")
        assert first.is_triggered is False

    @pytest.mark.asyncio
    async def test_stage_timings_recorded(
        self, engine, rule, business_id, candidates
    ) -> None:
        """Every stage of a full run is timed."""
        result = await engine.select(
            RequestFactory.create(business_id=business_id, candidates=candidates)
        )

        stages = [t.stage for t in result.metadata.stage_timings]
        assert stages == [
            PipelineStage.INIT,
            PipelineStage.TRIGGER_EVALUATION,
            PipelineStage.TOPIC_GROUPING,
            PipelineStage.PRIORITY_BALANCING,
            PipelineStage.FREQUENCY_HARMONIZATION,
            PipelineStage.TIME_OPTIMIZATION,
            PipelineStage.COMBINATION,
        ]
        assert result.metadata.final_state == PipelineStage.DONE
        assert result.metadata.total_time_ms > 0

    @pytest.mark.asyncio
    async def test_audit_record_written(
        self, engine, audit_store, rule, business_id, candidates
    ) -> None:
        """A completed run leaves one audit record."""
        request = RequestFactory.create(business_id=business_id, candidates=candidates)
        await engine.select(request)

        records = await audit_store.list_selections_by_business(business_id)

        assert len(records) == 1
        assert records[0].final_state == PipelineStage.DONE
        assert records[0].interaction_id == request.interaction_id
        assert records[0].selected_question_ids == ["A", "B"]
        assert records[0].rule_id == rule.id
        assert "time_optimization" in records[0].stage_timings_ms

    @pytest.mark.asyncio
    async def test_request_budget_tighter_than_rule(
        self, engine, rule, business_id, candidates
    ) -> None:
        """The smaller of request and rule budgets applies."""
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            constraints=SelectionConstraints(max_duration_seconds=30),
        )

        result = await engine.select(request)

        assert result.metadata.effective_max_duration == 30
        assert result.selected_ids == ["A"]

    @pytest.mark.asyncio
    async def test_category_weights_applied(
        self, engine, config_store, rule, business_id
    ) -> None:
        """Category weights from the store shape adjusted priorities."""
        await config_store.save_priority_weight(business_id, "checkout_process", 3.0)
        candidates = [
            CandidateFactory.create(id="general", base_priority=4, duration=30.0),
            CandidateFactory.create(
                id="checkout",
                base_priority=2,
                duration=30.0,
                category="checkout_process",
            ),
        ]
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            options=SelectionOptions(algorithm=OptimizationAlgorithm.GREEDY),
        )

        result = await engine.select(request)

        # checkout: 2 * 3.0 + 1.0 = 7.0 beats general: 4 + 1.0; only one fits
        assert result.selected_ids == ["checkout"]


class TestTriggers:
    """Tests for trigger effects on selection."""

    @pytest.mark.asyncio
    async def test_trigger_boost_and_reason(
        self, engine, config_store, rule, business_id, candidates
    ) -> None:
        """A firing trigger boosts its question and explains why."""
        trigger = TriggerFactory.create(
            business_id=business_id,
            conditions=[TriggerFactory.condition()],
            question_ids=["B"],
            priority_boost=3.0,
        )
        await config_store.save_trigger(trigger)
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            context=EvaluationContext(purchase_categories=["bakery"]),
        )

        result = await engine.select(request)

        assert result.selected_ids == ["B", "A"]
        boosted = result.selected_questions[0]
        assert boosted.is_triggered is True
        assert boosted.priority == pytest.approx(7.0)
        assert boosted.trigger_reasons == [
            "purchase_based trigger activated: purchase_category(contains: bakery)"
        ]
        assert result.metadata.triggers.fired_trigger_ids == [trigger.id]
        assert result.metadata.triggers.priority_boosts == {"B": 3.0}

    @pytest.mark.asyncio
    async def test_include_triggered_only(
        self, engine, config_store, rule, business_id, candidates
    ) -> None:
        """Only questions a trigger selected are kept."""
        await config_store.save_trigger(
            TriggerFactory.create(business_id=business_id, question_ids=["C"])
        )
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            constraints=SelectionConstraints(include_triggered_only=True),
        )

        result = await engine.select(request)

        assert result.selected_ids == ["C"]

    @pytest.mark.asyncio
    async def test_include_triggered_only_without_triggers(
        self, engine, rule, business_id, candidates
    ) -> None:
        """With no firing trigger the selection is empty with a reason."""
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            constraints=SelectionConstraints(include_triggered_only=True),
        )

        result = await engine.select(request)

        assert result.selected_questions == []
        assert result.reason_code == ReasonCode.NO_TRIGGERED_QUESTIONS


class TestEmptySelections:
    """Tests for runs that select nothing."""

    @pytest.mark.asyncio
    async def test_no_candidates(self, engine, rule, business_id) -> None:
        """No candidates yields an empty selection, not an error."""
        result = await engine.select(RequestFactory.create(business_id=business_id, candidates=[]))

        assert result.selected_questions == []
        assert result.reason_code == ReasonCode.NO_ACTIVE_QUESTIONS
        assert result.total_estimated_duration == 0.0

    @pytest.mark.asyncio
    async def test_only_inactive_candidates(self, engine, rule, business_id) -> None:
        """Inactive candidates are never considered."""
        candidates = [CandidateFactory.create(id="A", is_active=False)]

        result = await engine.select(
            RequestFactory.create(business_id=business_id, candidates=candidates)
        )

        assert result.reason_code == ReasonCode.NO_ACTIVE_QUESTIONS

    @pytest.mark.asyncio
    async def test_below_priority_threshold(
        self, engine, rule, business_id, candidates
    ) -> None:
        """A threshold above every priority empties the selection."""
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            constraints=SelectionConstraints(priority_threshold=10.0),
        )

        result = await engine.select(request)

        assert result.reason_code == ReasonCode.BELOW_PRIORITY_THRESHOLD

    @pytest.mark.asyncio
    async def test_nothing_fits_budget(self, engine, rule, business_id, candidates) -> None:
        """Questions longer than the budget leave an empty selection."""
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            constraints=SelectionConstraints(max_duration_seconds=10),
        )

        result = await engine.select(request)

        assert result.selected_questions == []
        assert result.reason_code == ReasonCode.NO_QUESTIONS_FIT_BUDGET

    @pytest.mark.asyncio
    async def test_empty_selection_is_audited(
        self, engine, audit_store, rule, business_id
    ) -> None:
        """Empty runs are recorded with their reason."""
        await engine.select(RequestFactory.create(business_id=business_id, candidates=[]))

        records = await audit_store.list_selections_by_business(business_id)

        assert records[0].reason_code == ReasonCode.NO_ACTIVE_QUESTIONS


class TestErrors:
    """Tests for configuration and request errors."""

    @pytest.mark.asyncio
    async def test_no_active_rule(self, engine, audit_store, business_id, candidates) -> None:
        """A business without a rule cannot run."""
        with pytest.raises(NoActiveCombinationRuleError) as exc_info:
            await engine.select(
                RequestFactory.create(business_id=business_id, candidates=candidates)
            )

        assert exc_info.value.error_code == "NO_ACTIVE_COMBINATION_RULE"
        assert await audit_store.list_selections_by_business(business_id) == []

    @pytest.mark.asyncio
    async def test_ambiguous_rules(
        self, engine, config_store, rule, business_id, candidates
    ) -> None:
        """Two active rules are a configuration error."""
        await config_store.save_combination_rule(
            CombinationRuleFactory.create(business_id=business_id)
        )

        with pytest.raises(AmbiguousCombinationRuleError) as exc_info:
            await engine.select(
                RequestFactory.create(business_id=business_id, candidates=candidates)
            )

        assert len(exc_info.value.rule_ids) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "constraints",
        [
            SelectionConstraints(max_duration_seconds=0),
            SelectionConstraints(max_duration_seconds=301),
            SelectionConstraints(min_questions=3, max_questions=2),
            SelectionConstraints(priority_threshold=-1.0),
        ],
    )
    async def test_invalid_constraints(
        self, engine, rule, business_id, candidates, constraints
    ) -> None:
        """Out-of-range constraints are rejected before any work."""
        request = RequestFactory.create(
            business_id=business_id, candidates=candidates, constraints=constraints
        )

        with pytest.raises(InvalidConstraintsError):
            await engine.select(request)


class TestProcessingModes:
    """Tests for processing modes and stage flags."""

    @pytest.mark.asyncio
    async def test_fast_mode_skips_optional_stages(
        self, engine, rule, business_id, candidates
    ) -> None:
        """Fast mode skips grouping and harmonization and prefers speed."""
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            options=SelectionOptions(processing_mode=ProcessingMode.FAST),
        )

        result = await engine.select(request)

        skipped = {t.stage for t in result.metadata.stage_timings if t.skipped}
        assert skipped == {PipelineStage.TOPIC_GROUPING, PipelineStage.FREQUENCY_HARMONIZATION}
        assert result.algorithm == OptimizationAlgorithm.GREEDY
        assert result.metadata.processing_mode == ProcessingMode.FAST
        assert result.selected_ids == ["A", "B"]

    @pytest.mark.asyncio
    async def test_comprehensive_mode_groups_by_similarity(
        self, engine, rule, business_id
    ) -> None:
        """Comprehensive mode splits a topic into similarity clusters."""
        candidates = [
            CandidateFactory.create(
                id="a", text="How fresh was the bread", keywords=["bread"], duration=15.0
            ),
            CandidateFactory.create(
                id="b", text="Was checkout quick", keywords=["checkout"], duration=15.0
            ),
            CandidateFactory.create(
                id="c", text="How fresh was the bread roll", keywords=["bread"], duration=15.0
            ),
        ]

        results = {}
        for mode in (ProcessingMode.BALANCED, ProcessingMode.COMPREHENSIVE):
            results[mode] = await engine.select(
                RequestFactory.create(
                    business_id=business_id,
                    candidates=candidates,
                    options=SelectionOptions(processing_mode=mode),
                )
            )

        def groups(result):
            return {q.question_id: q.group_name for q in result.selected_questions}

        assert groups(results[ProcessingMode.BALANCED]) == {
            "a": "general",
            "b": "general",
            "c": "general",
        }
        assert groups(results[ProcessingMode.COMPREHENSIVE]) == {
            "a": "general - Group 1",
            "b": "general - Group 2",
            "c": "general - Group 1",
        }

    @pytest.mark.asyncio
    async def test_explicit_stage_flag_beats_mode(
        self, engine, rule, business_id, candidates
    ) -> None:
        """A request flag overrides the mode default."""
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            options=SelectionOptions(processing_mode=ProcessingMode.FAST, topic_grouping=True),
        )

        result = await engine.select(request)

        grouping = next(
            t for t in result.metadata.stage_timings if t.stage == PipelineStage.TOPIC_GROUPING
        )
        assert grouping.skipped is False

    @pytest.mark.asyncio
    async def test_rule_algorithm_used(
        self, engine, config_store, business_id, candidates
    ) -> None:
        """The rule's algorithm applies when the request names none."""
        await config_store.save_combination_rule(
            CombinationRuleFactory.create(
                business_id=business_id, algorithm=OptimizationAlgorithm.TIME_BALANCED
            )
        )

        result = await engine.select(
            RequestFactory.create(business_id=business_id, candidates=candidates)
        )

        assert result.algorithm == OptimizationAlgorithm.TIME_BALANCED

    @pytest.mark.asyncio
    async def test_request_algorithm_beats_rule(
        self, engine, config_store, business_id, candidates
    ) -> None:
        """An explicit request algorithm overrides the rule."""
        await config_store.save_combination_rule(
            CombinationRuleFactory.create(
                business_id=business_id, algorithm=OptimizationAlgorithm.TIME_BALANCED
            )
        )
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            options=SelectionOptions(algorithm=OptimizationAlgorithm.EFFICIENCY_RANKED),
        )

        result = await engine.select(request)

        assert result.algorithm == OptimizationAlgorithm.EFFICIENCY_RANKED


    @pytest.mark.asyncio
    async def test_configured_preference_applies(
        self, config_store, rule, business_id, candidates
    ) -> None:
        """Rules without a preference use the configured default."""
        config = PipelineConfig()
        config.optimization.default_preference = AlgorithmPreference.SPEED
        engine = SelectionEngine(config_store, pipeline_config=config)

        result = await engine.select(
            RequestFactory.create(business_id=business_id, candidates=candidates)
        )

        assert result.algorithm == OptimizationAlgorithm.GREEDY


class TestCombination:
    """Tests for question count limits."""

    @pytest.mark.asyncio
    async def test_max_questions_keeps_highest_priority(
        self, engine, rule, business_id, candidates
    ) -> None:
        """The cap drops the lowest priority picks."""
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            constraints=SelectionConstraints(max_questions=1),
        )

        result = await engine.select(request)

        assert result.selected_ids == ["A"]
        assert result.total_estimated_duration == 22.0

    @pytest.mark.asyncio
    async def test_min_questions_warns(self, engine, rule, business_id, candidates) -> None:
        """Falling short of min_questions is a warning, not an error."""
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            constraints=SelectionConstraints(min_questions=3),
        )

        result = await engine.select(request)

        assert len(result.selected_questions) == 2
        assert result.has_warning("below_min_questions")

    @pytest.mark.asyncio
    async def test_frequency_conflicts_warn(self, engine, rule, business_id) -> None:
        """Same-topic questions on nearly equal cycles are flagged."""
        candidates = [
            CandidateFactory.create(id="A", repeat_frequency=10),
            CandidateFactory.create(id="B", repeat_frequency=12),
        ]

        result = await engine.select(
            RequestFactory.create(business_id=business_id, candidates=candidates)
        )

        assert result.has_warning("frequency_conflicts")

    @pytest.mark.asyncio
    async def test_demoted_question_follows_its_topic(
        self, engine, rule, business_id
    ) -> None:
        """Questions not yet due are ordered after fresher ones of the topic."""
        candidates = [
            CandidateFactory.create(
                id="stale", base_priority=3, repeat_frequency=5, interactions_since_presented=1
            ),
            CandidateFactory.create(id="fresh", base_priority=2),
        ]

        result = await engine.select(
            RequestFactory.create(business_id=business_id, candidates=candidates)
        )

        assert [(q.question_id, q.priority) for q in result.selected_questions] == [
            ("fresh", pytest.approx(3.0)),
            ("stale", pytest.approx(2.0)),
        ]


class TestDegradation:
    """Tests for graceful degradation of optional stages."""

    @pytest.mark.asyncio
    async def test_topic_metadata_failure(
        self, engine, config_store, rule, business_id, candidates
    ) -> None:
        """Topic failures fall back to a pure priority order."""
        with patch.object(
            config_store,
            "get_topic_groups",
            AsyncMock(side_effect=RuntimeError("topic service down")),
        ):
            result = await engine.select(
                RequestFactory.create(business_id=business_id, candidates=candidates)
            )

        assert result.has_warning("topic_metadata_unavailable")
        assert "topic service down" in result.errors
        assert result.selected_ids == ["A", "B"]

    @pytest.mark.asyncio
    async def test_topic_grouping_failure_warns_without_balancing(
        self, engine, config_store, rule, business_id, candidates
    ) -> None:
        """A failed grouping stage warns even when balancing is off."""
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            options=SelectionOptions(priority_balancing=False),
        )
        with patch.object(
            config_store,
            "get_topic_groups",
            AsyncMock(side_effect=RuntimeError("topic store down")),
        ):
            result = await engine.select(request)

        assert result.has_warning("topic_grouping_failed")
        assert "topic store down" in result.errors
        assert result.selected_ids == ["A", "B"]

    @pytest.mark.asyncio
    async def test_priority_weights_failure(
        self, engine, config_store, rule, business_id, candidates
    ) -> None:
        """Weight failures pass questions through unbalanced."""
        with patch.object(
            config_store,
            "get_priority_weights",
            AsyncMock(side_effect=RuntimeError("weights unavailable")),
        ):
            result = await engine.select(
                RequestFactory.create(business_id=business_id, candidates=candidates)
            )

        assert result.has_warning("priority_balancing_failed")
        assert result.selected_questions[0].priority == 5.0
        assert result.selected_ids == ["A", "B"]

    @pytest.mark.asyncio
    async def test_trigger_store_failure(
        self, engine, config_store, rule, business_id, candidates
    ) -> None:
        """Trigger failures leave questions unboosted."""
        with patch.object(
            config_store,
            "get_triggers",
            AsyncMock(side_effect=RuntimeError("triggers unavailable")),
        ):
            result = await engine.select(
                RequestFactory.create(business_id=business_id, candidates=candidates)
            )

        assert result.has_warning("trigger_evaluation_failed")
        assert result.selected_ids == ["A", "B"]

    @pytest.mark.asyncio
    async def test_strategy_failure_falls_back_to_greedy(
        self, config_store, audit_store, rule, business_id, candidates
    ) -> None:
        """A crashing strategy degrades to greedy."""
        engine = SelectionEngine(config_store, audit_store, optimizer=FailingOptimizer())

        result = await engine.select(
            RequestFactory.create(business_id=business_id, candidates=candidates)
        )

        assert result.has_warning("optimizer_strategy_failed")
        assert result.algorithm == OptimizationAlgorithm.GREEDY
        assert result.selected_ids == ["A", "B"]

    @pytest.mark.asyncio
    async def test_greedy_failure_fails_run(
        self, config_store, audit_store, rule, business_id, candidates
    ) -> None:
        """If even greedy fails the run fails and is audited."""
        engine = SelectionEngine(
            config_store, audit_store, optimizer=FailingOptimizer(fail_greedy=True)
        )

        with pytest.raises(StageFailedError) as exc_info:
            await engine.select(
                RequestFactory.create(business_id=business_id, candidates=candidates)
            )

        assert exc_info.value.stage == PipelineStage.TIME_OPTIMIZATION
        records = await audit_store.list_selections_by_business(business_id)
        assert [r.final_state for r in records] == [PipelineStage.FAILED]

    @pytest.mark.asyncio
    async def test_deadline_falls_back_to_greedy(
        self, config_store, rule, business_id, candidates
    ) -> None:
        """A strategy outlasting the latency budget is abandoned for greedy."""
        engine = SelectionEngine(
            config_store,
            pipeline_config=PipelineConfig(latency_budget_ms=100),
            optimizer=SlowOptimizer(),
        )

        result = await engine.select(
            RequestFactory.create(business_id=business_id, candidates=candidates)
        )

        assert result.has_warning("optimizer_deadline_exceeded")
        assert result.algorithm == OptimizationAlgorithm.GREEDY
        assert result.selected_ids == ["A", "B"]

    @pytest.mark.asyncio
    async def test_exhausted_budget_reported(
        self, config_store, rule, business_id, candidates
    ) -> None:
        """An exhausted budget still yields a selection, flagged as late."""
        engine = SelectionEngine(
            config_store, pipeline_config=PipelineConfig(latency_budget_ms=0.001)
        )

        result = await engine.select(
            RequestFactory.create(business_id=business_id, candidates=candidates)
        )

        assert result.has_warning("optimizer_latency_budget_exhausted")
        assert result.has_warning("latency_budget_exceeded")
        assert result.metadata.met_latency_requirement is False
        assert result.selected_ids == ["A", "B"]

    @pytest.mark.asyncio
    async def test_deadline_not_enforced(
        self, config_store, rule, business_id, candidates
    ) -> None:
        """With enforcement off the configured strategy always runs."""
        engine = SelectionEngine(
            config_store, pipeline_config=PipelineConfig(latency_budget_ms=0.001)
        )
        request = RequestFactory.create(
            business_id=business_id,
            candidates=candidates,
            options=SelectionOptions(enforce_deadline=False),
        )

        result = await engine.select(request)

        assert result.algorithm == OptimizationAlgorithm.DYNAMIC_PROGRAMMING
        assert not result.has_warning("optimizer_latency_budget_exhausted")

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_run(
        self, engine, audit_store, rule, business_id, candidates
    ) -> None:
        """Audit write errors are logged, never raised."""
        with patch.object(
            audit_store, "save_selection", AsyncMock(side_effect=RuntimeError("disk full"))
        ):
            result = await engine.select(
                RequestFactory.create(business_id=business_id, candidates=candidates)
            )

        assert result.selected_ids == ["A", "B"]


class TestConcurrency:
    """Tests for concurrent runs on one engine."""

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_isolated(
        self, engine, rule, business_id, candidates
    ) -> None:
        """Concurrent runs do not share state."""
        requests = [
            RequestFactory.create(
                business_id=business_id,
                candidates=candidates,
                constraints=SelectionConstraints(max_duration_seconds=duration),
            )
            for duration in (30, 60, 10, 60)
        ]

        results = await asyncio.gather(*(engine.select(r) for r in requests))

        assert [r.interaction_id for r in results] == [r.interaction_id for r in requests]
        assert [r.selected_ids for r in results] == [["A"], ["A", "B"], [], ["A", "B"]]
