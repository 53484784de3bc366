"""Bootstrap module for quick Surveyor setup.

Initializes the selection stack from configuration, primarily for
notebooks, local runs and tests. Handles:
- Loading configuration from TOML files and SURVEYOR_* variables
- Configuring structured logging
- Creating in-memory configuration and audit stores
- Creating the SelectionEngine

Example usage:

    from surveyor.bootstrap import bootstrap

    engine, ctx = bootstrap()
    await ctx.config_store.save_combination_rule(
        CombinationRule(business_id=ctx.business_id, max_duration_seconds=60)
    )
    result = await engine.select(SelectionRequest(...))
"""

from dataclasses import dataclass
from uuid import UUID, uuid4

from surveyor.audit.stores.inmemory import InMemorySelectionAuditStore
from surveyor.config import Settings, get_settings
from surveyor.observability.logging import get_logger, setup_logging
from surveyor.observability.metrics import setup_metrics
from surveyor.selection.engine import SelectionEngine
from surveyor.selection.stores.inmemory import InMemorySelectionConfigStore

logger = get_logger(__name__)


@dataclass
class BootstrapContext:
    """IDs, stores and settings created by bootstrap."""

    business_id: UUID
    config_store: InMemorySelectionConfigStore
    audit_store: InMemorySelectionAuditStore
    settings: Settings


def bootstrap(
    business_id: UUID | None = None,
    settings: Settings | None = None,
    serve_metrics: bool = False,
) -> tuple[SelectionEngine, BootstrapContext]:
    """Create a SelectionEngine backed by in-memory stores.

    Args:
        business_id: Override business ID (default: random UUID)
        settings: Settings to use (default: loaded from config files)
        serve_metrics: Start the Prometheus scrape endpoint on the
            configured port

    Returns:
        Tuple of (SelectionEngine, BootstrapContext)
    """
    settings = settings or get_settings()
    logging_config = settings.observability.logging
    setup_logging(
        level=logging_config.level,
        format=logging_config.format,
        redact_pii=logging_config.redact_pii,
    )
    if serve_metrics:
        metrics_config = settings.observability.metrics
        setup_metrics(enabled=metrics_config.enabled, port=metrics_config.port)

    config_store = InMemorySelectionConfigStore()
    audit_store = InMemorySelectionAuditStore()
    engine = SelectionEngine(
        config_store=config_store,
        audit_store=audit_store,
        pipeline_config=settings.pipeline,
    )

    ctx = BootstrapContext(
        business_id=business_id or uuid4(),
        config_store=config_store,
        audit_store=audit_store,
        settings=settings,
    )
    logger.info(
        "surveyor_bootstrapped",
        business_id=str(ctx.business_id),
        processing_mode=settings.pipeline.processing_mode.value,
    )
    return engine, ctx
