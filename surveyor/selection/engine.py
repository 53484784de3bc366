"""Selection Engine - Main pipeline orchestrator.

Coordinates the stages that turn a customer context and a set of
candidate questions into the ordered questions to ask:
trigger evaluation, topic grouping, priority balancing, frequency
harmonization, time optimization and combination.

Handles the complete run lifecycle including:
- Loading business configuration (via SelectionConfigStore)
- Degrading gracefully when optional stages fail
- Enforcing the end-to-end latency budget
- Writing a selection record for the audit trail (via SelectionAuditStore)
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime

from surveyor.audit.models import SelectionRecord
from surveyor.audit.store import SelectionAuditStore
from surveyor.config.models.pipeline import PipelineConfig
from surveyor.observability.logging import (
    bind_selection_context,
    clear_selection_context,
    get_logger,
)
from surveyor.observability.metrics import (
    LATENCY_BUDGET_EXCEEDED,
    OPTIMIZER_FALLBACKS,
    QUESTIONS_SELECTED,
    SELECTION_LATENCY,
    SELECTION_RUNS,
    STAGE_LATENCY,
)
from surveyor.selection.exceptions import (
    AmbiguousCombinationRuleError,
    NoActiveCombinationRuleError,
    SelectionError,
    StageFailedError,
)
from surveyor.selection.models import (
    AlgorithmPreference,
    CandidateQuestion,
    CombinationRule,
    OptimizationAlgorithm,
    PipelineStage,
    ProcessingMode,
    ReasonCode,
    ScoredQuestion,
    utc_now,
)
from surveyor.selection.optimization import (
    DurationEstimator,
    OptimizationResult,
    TimeBudget,
    TimeConstraintOptimizer,
)
from surveyor.selection.prioritization import (
    BusinessContext,
    FrequencyHarmonizer,
    PriorityAdjuster,
    TopicGrouper,
    TopicGroupingResult,
)
from surveyor.selection.request import SelectionRequest
from surveyor.selection.result import (
    SelectedQuestion,
    SelectionMetadata,
    SelectionResult,
    SelectionWarning,
    StageTiming,
    TriggerSummary,
)
from surveyor.selection.stores import SelectionConfigStore
from surveyor.selection.triggers import TriggerEvaluationResult, TriggerEvaluator

logger = get_logger(__name__)


@dataclass
class _Run:
    """Mutable bookkeeping of one run; never shared between runs."""

    request: SelectionRequest
    mode: ProcessingMode
    now: datetime
    start_time: float
    timings: list[StageTiming] = field(default_factory=list)
    warnings: list[SelectionWarning] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    rule: CombinationRule | None = None
    triggers: TriggerEvaluationResult = field(default_factory=TriggerEvaluationResult)
    optimization: OptimizationResult | None = None
    stage: PipelineStage = PipelineStage.INIT

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.start_time) * 1000

    def warn(self, code: str, stage: PipelineStage, message: str) -> None:
        self.warnings.append(SelectionWarning(code=code, stage=stage, message=message))


class SelectionEngine:
    """Orchestrate the question selection pipeline.

    The SelectionEngine coordinates all pipeline stages:
    1. Trigger evaluation - Boost and force questions from context
    2. Topic grouping - (Optional) Group questions by conversation topic
    3. Priority balancing - (Optional) Weights, topic boosts and fairness
    4. Frequency harmonization - (Optional) Demote questions not yet due
    5. Time optimization - Fit questions into the time budget
    6. Combination - Compose the final ordered selection

    Optional stages follow the processing mode unless the request sets
    them explicitly. The engine holds no per-run state, so one instance
    serves concurrent runs.
    """

    def __init__(
        self,
        config_store: SelectionConfigStore,
        audit_store: SelectionAuditStore | None = None,
        pipeline_config: PipelineConfig | None = None,
        trigger_evaluator: TriggerEvaluator | None = None,
        optimizer: TimeConstraintOptimizer | None = None,
    ) -> None:
        """Initialize the selection engine.

        Args:
            config_store: Store for triggers, rules, topic groups and weights
            audit_store: Store for selection records (optional, enables audit trail)
            pipeline_config: Pipeline configuration
            trigger_evaluator: Evaluator override (defaults from config)
            optimizer: Optimizer override (defaults from config)
        """
        self._config_store = config_store
        self._audit_store = audit_store
        self._config = pipeline_config or PipelineConfig()

        self._trigger_evaluator = trigger_evaluator or TriggerEvaluator(
            high_confidence=self._config.trigger_evaluation.high_confidence,
        )
        self._topic_grouper = TopicGrouper(
            max_group_size=self._config.topic_grouping.max_group_size,
            min_similarity=self._config.topic_grouping.min_similarity,
        )
        self._adjuster = PriorityAdjuster(
            fairness_weight=self._config.prioritization.fairness_weight,
        )
        harmonization = self._config.harmonization
        self._harmonizer = FrequencyHarmonizer(
            penalty=harmonization.penalty,
            preserve_high_priority=harmonization.preserve_high_priority,
            high_priority_level=harmonization.high_priority_level,
            overlap_ratio=harmonization.overlap_ratio,
        )
        optimization = self._config.optimization
        self._optimizer = optimizer or TimeConstraintOptimizer(
            estimator=DurationEstimator(category_multipliers=optimization.category_multipliers),
            max_dp_cells=optimization.max_dp_cells,
        )

    async def select(self, request: SelectionRequest) -> SelectionResult:
        """Select the questions to ask in one interaction.

        Args:
            request: Context, candidates, constraints and options

        Returns:
            SelectionResult with the ordered questions and run metadata

        Raises:
            InvalidConstraintsError: If request constraints are out of range
            ConfigurationError: If the business has no single active rule
            StageFailedError: If a mandatory stage cannot complete
        """
        bind_selection_context(request.business_id, request.interaction_id)
        run = _Run(
            request=request,
            mode=request.options.processing_mode or self._config.processing_mode,
            now=request.now or utc_now(),
            start_time=time.perf_counter(),
        )
        try:
            result = await self._select_impl(run)
        except SelectionError as e:
            SELECTION_RUNS.labels(outcome="failed").inc()
            logger.error(
                "selection_failed",
                error_code=e.error_code,
                error=e.message,
                stage=run.stage.value,
                elapsed_ms=run.elapsed_ms(),
            )
            if isinstance(e, StageFailedError):
                await self._persist_record(self._failure_record(run))
            raise
        finally:
            clear_selection_context()

        await self._persist_record(self._success_record(run, result))
        return result

    async def _select_impl(self, run: _Run) -> SelectionResult:
        """Internal implementation of select."""
        request = run.request
        logger.info(
            "selecting_questions",
            num_candidates=len(request.candidates),
            processing_mode=run.mode.value,
        )

        # Init: validate and load the combination rule
        stage_start = datetime.now(UTC)
        start = time.perf_counter()
        request.constraints.validate_bounds()
        rule = await self._load_rule(request)
        run.rule = rule
        self._record(run, PipelineStage.INIT, stage_start, start)

        candidates = [c for c in request.candidates if c.is_active]
        if not candidates:
            return self._empty(run, ReasonCode.NO_ACTIVE_QUESTIONS)

        # Stage 1: trigger evaluation
        scored = await self._evaluate_triggers(run, candidates)
        if request.constraints.include_triggered_only:
            scored = [q for q in scored if q.is_triggered]
            if not scored:
                return self._empty(run, ReasonCode.NO_TRIGGERED_QUESTIONS)

        # Stage 2: topic grouping
        grouping = await self._group_topics(run, scored)

        # Stage 3: priority balancing
        scored = await self._balance_priorities(run, scored, grouping)

        # Stage 4: frequency harmonization
        scored = self._harmonize(run, scored)

        threshold = max(
            request.constraints.priority_threshold,
            rule.priority_thresholds.low,
        )
        eligible = [q for q in scored if q.adjusted_priority >= threshold]
        if not eligible:
            return self._empty(run, ReasonCode.BELOW_PRIORITY_THRESHOLD)

        # Stage 5: time optimization
        budget = self._budget(run, rule)
        optimization = await self._optimize(run, rule, eligible, budget)
        run.optimization = optimization

        # Stage 6: combination
        return self._combine(run, rule, optimization, eligible, budget)

    async def _load_rule(self, request: SelectionRequest) -> CombinationRule:
        rules = await self._config_store.get_combination_rules(request.business_id)
        if not rules:
            raise NoActiveCombinationRuleError(request.business_id)
        if len(rules) > 1:
            raise AmbiguousCombinationRuleError(request.business_id, [r.id for r in rules])
        return rules[0]

    async def _evaluate_triggers(
        self,
        run: _Run,
        candidates: list[CandidateQuestion],
    ) -> list[ScoredQuestion]:
        """Evaluate triggers and seed scores with their boosts."""
        run.stage = PipelineStage.TRIGGER_EVALUATION
        stage_start = datetime.now(UTC)
        start = time.perf_counter()

        if not self._config.trigger_evaluation.enabled:
            self._record(run, run.stage, stage_start, start, skip_reason="Trigger evaluation disabled")
        else:
            try:
                triggers = await self._config_store.get_triggers(run.request.business_id)
                run.triggers = self._trigger_evaluator.evaluate(run.request.context, triggers)
            except Exception as e:  # noqa: BLE001
                logger.warning("trigger_evaluation_failed", error=str(e))
                run.warn("trigger_evaluation_failed", run.stage, f"Triggers not applied: {e}")
                run.errors.append(str(e))
                run.triggers = TriggerEvaluationResult()
            run.errors.extend(run.triggers.metadata.errors)
            self._record(run, run.stage, stage_start, start)

        boosts = run.triggers.question_boosts
        triggered = set(run.triggers.triggered_question_ids)
        scored = []
        for candidate in candidates:
            boost = boosts[candidate.id].boost if candidate.id in boosts else 0.0
            scored.append(
                ScoredQuestion(
                    question=candidate,
                    trigger_boost=boost,
                    adjusted_priority=candidate.base_priority + boost,
                    is_triggered=candidate.id in triggered,
                    trigger_reasons=run.triggers.reasons_for(candidate.id),
                )
            )
        return scored

    async def _group_topics(
        self,
        run: _Run,
        scored: list[ScoredQuestion],
    ) -> TopicGroupingResult | None:
        """Group questions by topic; None when topic metadata failed to load."""
        run.stage = PipelineStage.TOPIC_GROUPING
        stage_start = datetime.now(UTC)
        start = time.perf_counter()

        enabled = run.request.options.topic_grouping
        if enabled is None:
            enabled = self._config.topic_grouping.enabled and run.mode != ProcessingMode.FAST
        if not enabled:
            self._record(run, run.stage, stage_start, start, skip_reason="Topic grouping disabled")
            return TopicGroupingResult()

        try:
            topic_groups = await self._config_store.get_topic_groups(run.request.business_id)
            grouping = self._topic_grouper.group(
                scored,
                topic_groups,
                use_similarity=run.mode == ProcessingMode.COMPREHENSIVE,
            )
        except Exception as e:  # noqa: BLE001
            logger.warning("topic_grouping_failed", error=str(e))
            run.warn("topic_grouping_failed", run.stage, f"Topics not grouped: {e}")
            run.errors.append(str(e))
            grouping = None

        self._record(run, run.stage, stage_start, start)
        return grouping

    async def _balance_priorities(
        self,
        run: _Run,
        scored: list[ScoredQuestion],
        grouping: TopicGroupingResult | None,
    ) -> list[ScoredQuestion]:
        run.stage = PipelineStage.PRIORITY_BALANCING
        stage_start = datetime.now(UTC)
        start = time.perf_counter()

        enabled = run.request.options.priority_balancing
        if enabled is None:
            enabled = self._config.prioritization.enabled
        if not enabled:
            self._record(run, run.stage, stage_start, start, skip_reason="Priority balancing disabled")
            return scored

        try:
            weights = await self._config_store.get_priority_weights(run.request.business_id)
            adjustment = self._adjuster.adjust(
                scored,
                grouping,
                BusinessContext(now=run.now, category_weights=weights),
            )
        except Exception as e:  # noqa: BLE001
            logger.warning("priority_balancing_failed", error=str(e))
            run.warn("priority_balancing_failed", run.stage, f"Priorities not balanced: {e}")
            run.errors.append(str(e))
            self._record(run, run.stage, stage_start, start)
            return scored

        if not adjustment.topic_metadata_available:
            run.warn(
                "topic_metadata_unavailable",
                run.stage,
                "Topic metadata unavailable; ordered by priority only",
            )

        self._record(run, run.stage, stage_start, start)
        return adjustment.questions

    def _harmonize(self, run: _Run, scored: list[ScoredQuestion]) -> list[ScoredQuestion]:
        run.stage = PipelineStage.FREQUENCY_HARMONIZATION
        stage_start = datetime.now(UTC)
        start = time.perf_counter()

        enabled = run.request.options.frequency_harmonization
        if enabled is None:
            enabled = self._config.harmonization.enabled and run.mode != ProcessingMode.FAST
        if not enabled:
            self._record(run, run.stage, stage_start, start, skip_reason="Frequency harmonization disabled")
            return scored

        try:
            harmonized = self._harmonizer.harmonize(scored)
        except Exception as e:  # noqa: BLE001
            logger.warning("frequency_harmonization_failed", error=str(e))
            run.warn("frequency_harmonization_failed", run.stage, f"Frequencies not harmonized: {e}")
            run.errors.append(str(e))
            self._record(run, run.stage, stage_start, start)
            return scored

        if harmonized.conflicts:
            run.warn(
                "frequency_conflicts",
                run.stage,
                f"{len(harmonized.conflicts)} same-topic questions share a repeat cycle",
            )

        self._record(run, run.stage, stage_start, start)
        return harmonized.questions

    def _budget(self, run: _Run, rule: CombinationRule) -> TimeBudget:
        """Effective budget: the tighter of request and rule limits."""
        max_duration = rule.max_duration_seconds
        requested = run.request.constraints.max_duration_seconds
        if requested is not None:
            max_duration = min(max_duration, requested)
        return TimeBudget(
            max_duration_seconds=max_duration,
            buffer_percentage=self._config.optimization.buffer_percentage,
            transition_seconds=self._config.optimization.transition_seconds,
        )

    def _strategy_choice(
        self,
        run: _Run,
        rule: CombinationRule,
    ) -> tuple[OptimizationAlgorithm | None, AlgorithmPreference]:
        algorithm = (
            run.request.options.algorithm
            or rule.algorithm
            or self._config.optimization.default_algorithm
        )
        preference = run.request.constraints.algorithm_preference
        if preference is None:
            if run.mode == ProcessingMode.FAST:
                preference = AlgorithmPreference.SPEED
            else:
                preference = (
                    rule.algorithm_preference
                    or self._config.optimization.default_preference
                )
        return algorithm, preference

    async def _optimize(
        self,
        run: _Run,
        rule: CombinationRule,
        questions: list[ScoredQuestion],
        budget: TimeBudget,
    ) -> OptimizationResult:
        """Run the configured strategy, degrading to greedy on failure."""
        run.stage = PipelineStage.TIME_OPTIMIZATION
        stage_start = datetime.now(UTC)
        start = time.perf_counter()

        algorithm, preference = self._strategy_choice(run, rule)
        enforce = run.request.options.enforce_deadline
        if enforce is None:
            enforce = self._config.enforce_deadline
        remaining_ms = self._config.latency_budget_ms - run.elapsed_ms()

        fallback_reason: str | None = None
        result: OptimizationResult | None = None
        if enforce and remaining_ms <= 0:
            fallback_reason = "latency_budget_exhausted"
        else:
            try:
                if enforce:
                    result = await asyncio.wait_for(
                        asyncio.to_thread(
                            self._optimizer.optimize, questions, budget, algorithm, preference
                        ),
                        timeout=remaining_ms / 1000,
                    )
                else:
                    result = self._optimizer.optimize(questions, budget, algorithm, preference)
            except TimeoutError:
                fallback_reason = "deadline_exceeded"
            except Exception as e:  # noqa: BLE001
                fallback_reason = "strategy_failed"
                run.errors.append(str(e))
                logger.warning("optimizer_failed", algorithm=str(algorithm), error=str(e))

        if result is None:
            OPTIMIZER_FALLBACKS.labels(reason=fallback_reason).inc()
            run.warn(
                f"optimizer_{fallback_reason}",
                run.stage,
                "Time optimization degraded to greedy selection",
            )
            try:
                result = self._optimizer.optimize(
                    questions, budget, OptimizationAlgorithm.GREEDY, preference
                )
            except Exception as e:
                self._record(run, run.stage, stage_start, start)
                raise StageFailedError(f"Greedy selection failed: {e}", run.stage) from e
        elif result.requested_algorithm is not None:
            OPTIMIZER_FALLBACKS.labels(reason="strategy_limit").inc()
            for message in result.warnings:
                run.warn("optimizer_strategy_limit", run.stage, message)

        self._record(run, run.stage, stage_start, start)
        return result

    def _combine(
        self,
        run: _Run,
        rule: CombinationRule,
        optimization: OptimizationResult,
        questions: list[ScoredQuestion],
        budget: TimeBudget,
    ) -> SelectionResult:
        """Compose the selection in conversational order."""
        run.stage = PipelineStage.COMBINATION
        stage_start = datetime.now(UTC)
        start = time.perf_counter()
        constraints = run.request.constraints

        try:
            picked = {item.question_id: item for item in optimization.selected}
            position = {q.id: i for i, q in enumerate(questions)}
            chosen = [q for q in questions if q.id in picked]

            if constraints.max_questions is not None and len(chosen) > constraints.max_questions:
                keep = sorted(
                    chosen,
                    key=lambda q: (-q.adjusted_priority, position[q.id]),
                )[: constraints.max_questions]
                keep_ids = {q.id for q in keep}
                chosen = [q for q in chosen if q.id in keep_ids]

            selected = [
                SelectedQuestion(
                    question_id=q.id,
                    text=q.question.text,
                    reason=picked[q.id].reason,
                    priority=q.adjusted_priority,
                    priority_tier=rule.priority_thresholds.tier_for(q.adjusted_priority),
                    estimated_duration=picked[q.id].estimated_duration,
                    time_allocation_seconds=picked[q.id].time_allocation_seconds,
                    time_allocation_percent=picked[q.id].time_allocation_percent,
                    confidence=picked[q.id].confidence,
                    topic_category=q.topic_category,
                    group_name=q.group_name,
                    trigger_reasons=q.trigger_reasons,
                    is_triggered=q.is_triggered,
                )
                for q in chosen
            ]
        except Exception as e:
            self._record(run, run.stage, stage_start, start)
            raise StageFailedError(f"Combination failed: {e}", run.stage) from e

        if len(selected) < constraints.min_questions:
            run.warn(
                "below_min_questions",
                run.stage,
                f"Selected {len(selected)} questions; at least {constraints.min_questions} requested",
            )

        self._record(run, run.stage, stage_start, start)

        total = float(sum(q.time_allocation_seconds for q in selected))
        tokens = sum(q.question.token_count for q in chosen)
        return self._finish(
            run,
            selected=selected,
            reason_code=None if selected else ReasonCode.NO_QUESTIONS_FIT_BUDGET,
            total_duration=total,
            total_tokens=tokens,
            utilization=total / budget.max_duration_seconds * 100,
            max_duration=budget.max_duration_seconds,
        )

    def _empty(self, run: _Run, reason: ReasonCode) -> SelectionResult:
        logger.info("selection_empty", reason_code=reason.value, stage=run.stage.value)
        return self._finish(run, selected=[], reason_code=reason)

    def _finish(
        self,
        run: _Run,
        selected: list[SelectedQuestion],
        reason_code: ReasonCode | None,
        total_duration: float = 0.0,
        total_tokens: int = 0,
        utilization: float = 0.0,
        max_duration: float | None = None,
    ) -> SelectionResult:
        run.stage = PipelineStage.DONE
        total_ms = run.elapsed_ms()
        budget_ms = self._config.latency_budget_ms
        met = total_ms <= budget_ms

        if not met:
            LATENCY_BUDGET_EXCEEDED.inc()
            logger.warning("latency_budget_exceeded", total_time_ms=total_ms, budget_ms=budget_ms)
            run.warn(
                "latency_budget_exceeded",
                PipelineStage.DONE,
                f"Selection took {total_ms:.1f} ms; budget is {budget_ms:.0f} ms",
            )

        algorithm = run.optimization.algorithm if run.optimization else None
        SELECTION_RUNS.labels(outcome="selected" if selected else "empty").inc()
        SELECTION_LATENCY.labels(processing_mode=run.mode.value).observe(total_ms / 1000)
        QUESTIONS_SELECTED.labels(algorithm=algorithm.value if algorithm else "none").observe(
            len(selected)
        )

        logger.info(
            "selection_completed",
            selected=len(selected),
            reason_code=reason_code.value if reason_code else None,
            algorithm=algorithm.value if algorithm else None,
            total_duration=total_duration,
            warnings=len(run.warnings),
            total_time_ms=total_ms,
        )

        triggers = run.triggers
        return SelectionResult(
            business_id=run.request.business_id,
            interaction_id=run.request.interaction_id,
            selected_questions=selected,
            reason_code=reason_code,
            total_estimated_duration=total_duration,
            total_token_count=total_tokens,
            time_utilization=utilization,
            algorithm=algorithm,
            metadata=SelectionMetadata(
                processing_mode=run.mode,
                rule_id=run.rule.id if run.rule else None,
                effective_max_duration=max_duration,
                stage_timings=run.timings,
                total_time_ms=total_ms,
                latency_budget_ms=budget_ms,
                met_latency_requirement=met,
                final_state=PipelineStage.DONE,
                triggers=TriggerSummary(
                    fired_trigger_ids=[a.trigger_id for a in triggers.fired_triggers],
                    triggered_question_ids=triggers.triggered_question_ids,
                    priority_boosts=triggers.priority_boosts,
                    evaluation=triggers.metadata,
                ),
                optimization=run.optimization,
            ),
            warnings=run.warnings,
            errors=run.errors,
        )

    def _record(
        self,
        run: _Run,
        stage: PipelineStage,
        stage_start: datetime,
        start: float,
        skip_reason: str | None = None,
    ) -> None:
        elapsed_ms = (time.perf_counter() - start) * 1000
        run.timings.append(
            StageTiming(
                stage=stage,
                started_at=stage_start,
                ended_at=datetime.now(UTC),
                duration_ms=elapsed_ms,
                skipped=skip_reason is not None,
                skip_reason=skip_reason,
            )
        )
        if skip_reason is None:
            STAGE_LATENCY.labels(stage=stage.value).observe(elapsed_ms / 1000)

    def _success_record(self, run: _Run, result: SelectionResult) -> SelectionRecord:
        return SelectionRecord(
            business_id=result.business_id,
            interaction_id=result.interaction_id,
            rule_id=result.metadata.rule_id,
            algorithm=result.algorithm,
            processing_mode=run.mode,
            final_state=PipelineStage.DONE,
            reason_code=result.reason_code,
            selected_question_ids=result.selected_ids,
            triggered_question_ids=run.triggers.triggered_question_ids,
            fired_trigger_ids=result.metadata.triggers.fired_trigger_ids,
            total_estimated_duration=result.total_estimated_duration,
            max_duration_seconds=result.metadata.effective_max_duration or 0.0,
            time_utilization=result.time_utilization,
            stage_timings_ms={t.stage.value: t.duration_ms for t in run.timings},
            total_time_ms=result.metadata.total_time_ms,
            met_latency_requirement=result.metadata.met_latency_requirement,
            warning_count=len(result.warnings),
            timestamp=run.now,
        )

    def _failure_record(self, run: _Run) -> SelectionRecord:
        return SelectionRecord(
            business_id=run.request.business_id,
            interaction_id=run.request.interaction_id,
            rule_id=run.rule.id if run.rule else None,
            processing_mode=run.mode,
            final_state=PipelineStage.FAILED,
            triggered_question_ids=run.triggers.triggered_question_ids,
            fired_trigger_ids=[a.trigger_id for a in run.triggers.fired_triggers],
            stage_timings_ms={t.stage.value: t.duration_ms for t in run.timings},
            total_time_ms=run.elapsed_ms(),
            met_latency_requirement=run.elapsed_ms() <= self._config.latency_budget_ms,
            warning_count=len(run.warnings),
            timestamp=run.now,
        )

    async def _persist_record(self, record: SelectionRecord) -> None:
        """Write the audit record; failures are logged, never raised."""
        if not self._audit_store:
            return
        try:
            await self._audit_store.save_selection(record)
        except Exception as e:  # noqa: BLE001
            logger.error("selection_audit_failed", record_id=str(record.record_id), error=str(e))
