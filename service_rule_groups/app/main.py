"""
Wiring for the rule group reconciler.
"""

from typing import Optional

from shared.config import ReconcilerConfig, get_config
from shared.logging import configure_logging, get_logger
from shared.metrics import get_metrics_collector
from shared.retry import RetryConfig
from .adapters.api import RuleGroupApi
from .reconciler import RuleGroupReconciler
from .tokens.retryer import ChangeTokenRetryer


def build_reconciler(api: RuleGroupApi,
                     config: Optional[ReconcilerConfig] = None,
                     serve_metrics: bool = False) -> RuleGroupReconciler:
    """Configure logging and metrics and assemble a reconciler for ``api``."""
    config = config or get_config()
    configure_logging(config.service_name, config.log_level)
    logger = get_logger(config.service_name)

    metrics = get_metrics_collector(config.service_name)
    if serve_metrics and config.metrics_enabled:
        metrics.start_metrics_server(config.metrics_port)
        logger.info("Metrics server started", port=config.metrics_port)

    retryer = ChangeTokenRetryer(
        api,
        scope=config.change_token_scope,
        config=RetryConfig.from_settings(config),
        metrics=metrics
    )

    logger.info(
        "Rule group reconciler ready",
        env=config.env,
        scope=config.change_token_scope,
        retry_timeout_seconds=config.retry_timeout_seconds
    )
    return RuleGroupReconciler(api, retryer=retryer, config=config, metrics=metrics)
