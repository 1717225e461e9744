"""Tests for policy loading and the periodic scheduler."""

import asyncio

import pytest

from sla_escalator.config import Settings
from sla_escalator.core import InvalidPolicy
from sla_escalator.sla.infrastructure import SLAScheduler, load_policy, read_policy_file


def _settings(tmp_path, **overrides) -> Settings:
    overrides.setdefault("sla_config_path", tmp_path / "sla_config.yaml")
    return Settings(_env_file=None, **overrides)


def _write_yaml(tmp_path, content: str):
    path = tmp_path / "sla_config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


def test_policy_from_settings_when_no_file(tmp_path):
    policy = load_policy(_settings(tmp_path, high_sla_hours=6, warning_threshold=0.7))

    assert policy.hours_for("high") == 6
    assert policy.hours_for("critical") == 4
    assert policy.thresholds == {"warning": 0.7, "critical": 0.95}


def test_yaml_nested_sections_override_settings(tmp_path):
    _write_yaml(tmp_path, (
        "sla_hours:\n"
        "  critical: 2\n"
        "  low: 96\n"
        "  default: 48\n"
        "escalation_thresholds:\n"
        "  warning: 0.6\n"
        "  critical: 0.9\n"
    ))

    policy = load_policy(_settings(tmp_path, high_sla_hours=6))

    assert policy.hours_by_priority == {"critical": 2, "high": 6, "medium": 24, "low": 96}
    assert policy.default_hours == 48
    assert policy.thresholds == {"warning": 0.6, "critical": 0.9}


def test_yaml_top_level_options(tmp_path):
    path = _write_yaml(tmp_path, "medium: 12\nwarningFraction: 0.5\n")

    assert read_policy_file(path) == {"medium": 12, "warningFraction": 0.5}
    assert load_policy(_settings(tmp_path)).hours_for("medium") == 12


def test_out_of_range_thresholds_abort(tmp_path):
    with pytest.raises(InvalidPolicy):
        load_policy(_settings(tmp_path, warning_threshold=0.96, critical_threshold=0.95))


def test_out_of_range_hours_in_file_abort(tmp_path):
    _write_yaml(tmp_path, "sla_hours:\n  high: 0\n")

    with pytest.raises(InvalidPolicy):
        load_policy(_settings(tmp_path))


def test_unknown_option_in_file_aborts(tmp_path):
    _write_yaml(tmp_path, "sla_hours:\n  urgent: 1\n")

    with pytest.raises(InvalidPolicy):
        load_policy(_settings(tmp_path))


@pytest.mark.parametrize("content", [
    "- 1\n- 2\n",
    "sla_hours: [1, 2]\n",
])
def test_file_with_wrong_shape_aborts(tmp_path, content):
    _write_yaml(tmp_path, content)

    with pytest.raises(InvalidPolicy):
        load_policy(_settings(tmp_path))


def test_malformed_yaml_aborts(tmp_path):
    _write_yaml(tmp_path, "sla_hours: {critical: 4\n")

    with pytest.raises(InvalidPolicy, match="not valid YAML"):
        load_policy(_settings(tmp_path))


def test_empty_file_keeps_settings(tmp_path):
    _write_yaml(tmp_path, "")

    assert load_policy(_settings(tmp_path)).hours_for("low") == 72


def test_scheduler_registers_single_interval_job():
    async def job():
        return None

    async def scenario():
        scheduler = SLAScheduler(interval_minutes=7)
        assert scheduler.next_trigger_at is None

        await scheduler.start(job)
        running = scheduler.is_running
        registered = scheduler._scheduler.get_job(SLAScheduler.JOB_ID)
        next_trigger = scheduler.next_trigger_at

        await scheduler.start(job)
        jobs = scheduler._scheduler.get_jobs()

        await scheduler.stop()
        await scheduler.stop()
        return running, registered, next_trigger, jobs, scheduler

    running, registered, next_trigger, jobs, scheduler = asyncio.run(scenario())

    assert running is True
    assert registered.max_instances == 1
    assert registered.coalesce is True
    assert registered.trigger.interval.total_seconds() == 7 * 60
    assert next_trigger is not None and next_trigger.tzinfo is not None
    assert len(jobs) == 1
    assert scheduler.is_running is False
    assert scheduler.next_trigger_at is None


def test_scheduler_rejects_zero_interval():
    with pytest.raises(ValueError):
        SLAScheduler(interval_minutes=0)
