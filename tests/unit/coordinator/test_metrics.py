"""
Unit tests for export metrics (light sanity checks).
"""

import pytest
from prometheus_client import REGISTRY

from health_export.coordinator import QueueProcessor
from health_export.export.service import add_to_export_queue
from health_export.models import ExportConfig, ExportFormat


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.mark.asyncio
async def test_drain_updates_job_and_format_metrics(ctx, health_data):
    jobs_before = sample("health_export_jobs_total", outcome="success")
    csv_before = sample("health_export_format_total", format="csv", outcome="success")

    await add_to_export_queue(ctx, health_data, config=ExportConfig(formats=[ExportFormat.CSV]))
    assert sample("health_export_queue_depth") == 1

    await QueueProcessor(ctx).process_queue()

    assert sample("health_export_jobs_total", outcome="success") == jobs_before + 1
    assert sample("health_export_format_total", format="csv", outcome="success") == csv_before + 1
    assert sample("health_export_queue_depth") == 0
    assert sample("health_export_attempt_seconds_count") >= 1
