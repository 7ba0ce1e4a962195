"""BDD step definitions for metric ingestion scenarios."""

import pytest
from pytest_bdd import given, parsers, then, when

from metricgate.core.errors import MetricValidationError
from tests.fakes import RecordingCollector, metric_payload
from tests.features.ingest.steps_helpers import (
    IngestScenarioContext,
    read_records,
    run_async,
    submit,
)


@pytest.fixture
def ctx() -> IngestScenarioContext:
    """Fresh scenario context for each test."""
    return IngestScenarioContext()


def _parse_tags(raw: str) -> dict[str, str]:
    return dict(pair.split("=", 1) for pair in raw.split(","))


# === Background Steps ===
@given("in-memory record storage")
def step_storage(ctx: IngestScenarioContext) -> None:
    assert run_async(ctx.storage.count()) == 0


@given("a collector that accepts every batch")
def step_collector(ctx: IngestScenarioContext) -> None:
    ctx.collector = RecordingCollector()


@given(parsers.parse("a dedup window of {hours:d} hour"))
def step_window(ctx: IngestScenarioContext, hours: int) -> None:
    ctx.window_hours = hours


@given("the collector is unreachable")
def step_collector_down(ctx: IngestScenarioContext) -> None:
    ctx.collector = RecordingCollector(fail=True)


# === Submission Steps ===
@when("the default metric is submitted")
def step_submit_default(ctx: IngestScenarioContext) -> None:
    submit(ctx, {"metrics": [metric_payload()]})


@when(parsers.parse('a batch of metrics "{names}" is submitted'))
def step_submit_batch(ctx: IngestScenarioContext, names: str) -> None:
    submit(ctx, {"metrics": [metric_payload(name=n) for n in names.split(",")]})


@when("an empty batch is submitted")
def step_submit_empty(ctx: IngestScenarioContext) -> None:
    submit(ctx, {"metrics": []})


@when("a metric without value, tags and type is submitted")
def step_submit_incomplete(ctx: IngestScenarioContext) -> None:
    submit(ctx, {"metrics": [{"metric_name": "incomplete", "page_path": "/test"}]})


@when(parsers.parse('a metric with tags "{tags}" is submitted'))
def step_submit_tags(ctx: IngestScenarioContext, tags: str) -> None:
    submit(ctx, {"metrics": [metric_payload(tags=_parse_tags(tags))]})


@when(parsers.parse("{hours:d} hours pass"))
def step_time_passes(ctx: IngestScenarioContext, hours: int) -> None:
    ctx.clock.advance(hours * 3600)


# === Outcome Steps ===
@then(
    parsers.parse(
        "the result is {processed:d} processed, {stored:d} stored, "
        "{skipped:d} skipped"
    )
)
def step_result(
    ctx: IngestScenarioContext, processed: int, stored: int, skipped: int
) -> None:
    assert ctx.error is None
    assert ctx.result is not None
    assert ctx.result.to_dict() == {
        "processed": processed,
        "stored": stored,
        "skipped": skipped,
    }


@then(
    parsers.parse(
        "the collector received {batches:d} batch with {count:d} metrics"
    )
)
def step_collector_received(
    ctx: IngestScenarioContext, batches: int, count: int
) -> None:
    assert len(ctx.collector.batches) == batches
    assert sum(len(batch) for batch in ctx.collector.batches) == count


@then(parsers.parse('the request fails with code "{code}"'))
def step_fails_with_code(ctx: IngestScenarioContext, code: str) -> None:
    assert ctx.error is not None
    assert ctx.error.code == code


@then(parsers.parse('the error message is "{message}"'))
def step_error_message(ctx: IngestScenarioContext, message: str) -> None:
    assert ctx.error is not None
    assert ctx.error.message == message


@then(parsers.parse('the error details list paths "{paths}"'))
def step_error_paths(ctx: IngestScenarioContext, paths: str) -> None:
    assert isinstance(ctx.error, MetricValidationError)
    assert {d["path"] for d in ctx.error.details} == set(paths.split(","))


@then("no records are stored")
def step_nothing_stored(ctx: IngestScenarioContext) -> None:
    assert run_async(ctx.storage.count()) == 0


@then(parsers.parse("{count:d} record is stored but not forwarded"))
def step_stored_not_forwarded(ctx: IngestScenarioContext, count: int) -> None:
    records = run_async(read_records(ctx.storage))
    assert len(records) == count
    assert not any(record.forwarded for record in records)
