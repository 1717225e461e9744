"""
SLA External Service Integrations
==================================

External services for SLA monitoring:
- SLA policy loading (settings, optionally overridden by a YAML file)
- APScheduler for periodic evaluation cycles
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import yaml
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from sla_escalator.config import Settings
from sla_escalator.core import InvalidPolicy
from sla_escalator.shared.infrastructure.logging import get_logger
from sla_escalator.sla.domain import SLAPolicy

logger = get_logger(__name__)


def policy_options_from_settings(config: Settings) -> Dict[str, Any]:
    return {
        "critical": config.critical_sla_hours,
        "high": config.high_sla_hours,
        "medium": config.medium_sla_hours,
        "low": config.low_sla_hours,
        "default": config.default_sla_hours,
        "warning_fraction": config.warning_threshold,
        "critical_fraction": config.critical_threshold,
    }


def read_policy_file(path: Path) -> Dict[str, Any]:
    """
    Read policy overrides from YAML.

    The file may either hold the options at top level or nest hours under
    ``sla_hours`` and fractions under ``escalation_thresholds``
    (``warning``/``critical``).
    """
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise InvalidPolicy(f"SLA config file {path} must contain a mapping")

    options = {
        key: value for key, value in data.items()
        if key not in ("sla_hours", "escalation_thresholds")
    }
    hours = data.get("sla_hours") or {}
    thresholds = data.get("escalation_thresholds") or {}
    if not isinstance(hours, dict) or not isinstance(thresholds, dict):
        raise InvalidPolicy(
            f"SLA config file {path}: sla_hours and escalation_thresholds must be mappings"
        )

    options.update(hours)
    if "warning" in thresholds:
        options["warning_fraction"] = thresholds["warning"]
    if "critical" in thresholds:
        options["critical_fraction"] = thresholds["critical"]
    return options


def load_policy(config: Settings) -> SLAPolicy:
    """
    Build the SLA policy for this process.

    Raises:
        InvalidPolicy: any option is out of range; startup must abort
    """
    options = policy_options_from_settings(config)

    path = Path(config.sla_config_path)
    if path.exists():
        try:
            overrides = read_policy_file(path)
        except yaml.YAMLError as e:
            raise InvalidPolicy(f"SLA config file {path} is not valid YAML: {e}") from e
        options.update(overrides)
        logger.info(f"Loaded SLA policy overrides from {path}")
    else:
        logger.info(f"SLA config file not found: {path}, using settings")

    policy = SLAPolicy.from_options(options)
    logger.info("SLA policy ready", extra=policy.to_dict())
    return policy


class SLAScheduler:
    """
    Periodic trigger for the cycle runner.

    Fires the cycle job every ``interval_minutes`` on the application's
    event loop. A tick that lands while a cycle is still running reaches
    the runner and is dropped there; APScheduler itself never holds more
    than one pending tick (``coalesce``/``max_instances=1``).
    """

    JOB_ID = "sla_cycle"

    def __init__(self, interval_minutes: int = 5):
        if interval_minutes < 1:
            raise ValueError("interval_minutes must be at least 1")
        self.interval_minutes = interval_minutes
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def next_trigger_at(self) -> Optional[datetime]:
        """When the next cycle fires, or None while stopped."""
        if not self.is_running:
            return None
        job = self._scheduler.get_job(self.JOB_ID)
        return job.next_run_time if job else None

    async def start(self, trigger_cycle: Callable[[], Awaitable[Any]]) -> None:
        """Register ``trigger_cycle`` as the interval job and start ticking."""
        if self.is_running:
            logger.warning("Cycle trigger already started, ignoring")
            return

        scheduler = AsyncIOScheduler(timezone=timezone.utc)
        scheduler.add_job(
            trigger_cycle,
            "interval",
            minutes=self.interval_minutes,
            id=self.JOB_ID,
            name="SLA evaluation cycle",
            misfire_grace_time=60,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info(
            f"SLA cycles scheduled every {self.interval_minutes} minutes",
            extra={"interval_minutes": self.interval_minutes}
        )

    async def stop(self) -> None:
        """Stop ticking; a cycle already in flight finishes on its own."""
        if not self.is_running:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("SLA cycle trigger stopped")
