"""Tests for logging context, error mapping and Prometheus metrics."""

import io
import json

import pytest
from sqlalchemy.exc import SQLAlchemyError

from blogdb.errors import InputValidationError, NotFoundError, StorageError
from blogdb.interfaces import IPostEngine
from blogdb.logging import get_request_context, set_request_context, setup_logging
from blogdb.metrics import generate_metrics_output, registry


def sample(name: str, **labels: str) -> float:
    return registry.get_sample_value(name, labels) or 0.0


def operations(operation: str, status: str) -> float:
    return sample("blogdb_operations_total", operation=operation, status=status)


class TestOperationMetrics:
    """Counters recorded around every engine operation."""

    def test_success_counted(self, engine):
        """Test a successful operation increments the success series."""
        before = operations("list_posts", "success")

        engine.list_posts()

        assert operations("list_posts", "success") == before + 1

    def test_duration_observed(self, engine):
        """Test the latency histogram receives an observation."""
        before = sample("blogdb_operation_duration_seconds_count", operation="list_tags")

        engine.list_tags()

        assert sample("blogdb_operation_duration_seconds_count", operation="list_tags") == before + 1

    def test_validation_error_counted(self, engine):
        """Test input errors are labelled validation_error."""
        before = operations("add_clap", "validation_error")

        with pytest.raises(InputValidationError):
            engine.add_clap("bob", "p1", increment=0)

        assert operations("add_clap", "validation_error") == before + 1

    def test_not_found_counted(self, engine, users):
        """Test missing entities are labelled not_found."""
        before = operations("get_post", "not_found")

        with pytest.raises(NotFoundError):
            engine.get_post("missing")

        assert operations("get_post", "not_found") == before + 1

    def test_claps_total_counts_increments(self, engine, make_post):
        """Test the clap counter adds the increment, not the call count."""
        make_post("p1")
        before = sample("blogdb_claps_total")

        engine.add_clap("bob", "p1", increment=4)

        assert sample("blogdb_claps_total") == before + 4

    def test_disabled_metrics_not_recorded(self, engine, monkeypatch):
        """Test metrics_enabled=False suppresses recording."""
        monkeypatch.setattr("blogdb.metrics.settings.metrics_enabled", False)
        before = operations("list_posts", "success")

        engine.list_posts()

        assert operations("list_posts", "success") == before

    def test_exposition_output(self, engine):
        """Test the exposition text names the BlogDB series."""
        engine.list_posts()

        output = generate_metrics_output().decode("utf-8")

        assert "blogdb_operations_total" in output
        assert "blogdb_operation_duration_seconds_bucket" in output
        assert "process_cpu_seconds_total" not in output


class TestStorageErrors:
    """Mapping of storage engine failures."""

    def test_storage_failure_wrapped(self, engine, mocker):
        """Test SQLAlchemy errors surface as StorageError with the cause chained."""
        cause = SQLAlchemyError("disk I/O error")
        mocker.patch.object(engine.db, "run_in_transaction", side_effect=cause)

        with pytest.raises(StorageError) as exc_info:
            engine.list_posts()

        assert exc_info.value.operation == "list_posts"
        assert exc_info.value.__cause__ is cause
        assert "disk I/O" not in str(exc_info.value)

    def test_storage_failure_counted(self, engine, mocker):
        """Test storage failures hit both the outcome and the error counters."""
        mocker.patch.object(engine.db, "run_in_transaction", side_effect=SQLAlchemyError("boom"))
        before_ops = operations("list_tags", "storage_error")
        before_errors = sample("blogdb_storage_errors_total", operation="list_tags")

        with pytest.raises(StorageError):
            engine.list_tags()

        assert operations("list_tags", "storage_error") == before_ops + 1
        assert sample("blogdb_storage_errors_total", operation="list_tags") == before_errors + 1

    def test_unexpected_error_propagates(self, engine, mocker):
        """Test non-storage bugs are not disguised as StorageError."""
        mocker.patch.object(engine.db, "run_in_transaction", side_effect=KeyError("oops"))
        before = operations("list_posts", "error")

        with pytest.raises(KeyError):
            engine.list_posts()

        assert operations("list_posts", "error") == before + 1


class TestRequestContext:
    """Context variables set for the duration of an operation."""

    def test_context_set_during_operation(self, engine, mocker, bob):
        """Test the operation name, actor and a request id are visible inside."""
        seen = []
        mocker.patch.object(
            engine.db,
            "run_in_transaction",
            side_effect=lambda work: seen.append(get_request_context()) or 0,
        )

        engine.add_bookmark("bob", "p1")

        assert seen[0]["operation"] == "add_bookmark"
        assert seen[0]["user_id"] == "bob"
        assert seen[0]["request_id"]

    def test_context_cleared_after_operation(self, engine):
        """Test nothing leaks into the caller's context."""
        engine.list_posts()

        assert get_request_context() == {"request_id": None, "user_id": None, "operation": None}

    def test_context_cleared_after_failure(self, engine):
        """Test context is cleared when the operation raises."""
        with pytest.raises(InputValidationError):
            engine.set_post_tags("", ["t1"])

        assert get_request_context()["operation"] is None

    def test_engine_satisfies_protocol(self, engine):
        """Test PostEngine implements IPostEngine."""
        assert isinstance(engine, IPostEngine)


class TestJsonLogging:
    """Structured log output."""

    def test_json_line_includes_context(self):
        """Test JSON records carry context variables and bound fields."""
        buffer = io.StringIO()
        log = setup_logging(level="INFO", json_logs=True, stream=buffer)

        set_request_context(request_id="req-1", operation="list_posts")
        log.bind(page=2).info("Listing posts")

        record = json.loads(buffer.getvalue().strip().splitlines()[-1])
        assert record["message"] == "Listing posts"
        assert record["level"] == "INFO"
        assert record["request_id"] == "req-1"
        assert record["operation"] == "list_posts"
        assert record["page"] == 2
        assert "json" not in record

    def test_exception_serialized(self):
        """Test exceptions are rendered with type and message."""
        buffer = io.StringIO()
        log = setup_logging(level="INFO", json_logs=True, stream=buffer)

        try:
            raise ValueError("bad input")
        except ValueError:
            log.exception("Failed")

        record = json.loads(buffer.getvalue().strip().splitlines()[-1])
        assert record["exception"]["type"] == "ValueError"
        assert record["exception"]["value"] == "bad input"

    def test_level_filters_records(self):
        """Test records below the configured level are dropped."""
        buffer = io.StringIO()
        log = setup_logging(level="WARNING", json_logs=True, stream=buffer)

        log.info("quiet")

        assert buffer.getvalue() == ""

    def test_engine_records_carry_operation(self, engine):
        """Test engine logs become JSON lines tagged with their operation."""
        buffer = io.StringIO()
        setup_logging(level="INFO", json_logs=True, stream=buffer)

        engine.create_tag("python", uid="t-python")

        records = [json.loads(line) for line in buffer.getvalue().splitlines()]
        created = [r for r in records if "Created tag" in r["message"]]
        assert created[0]["operation"] == "create_tag"
        assert created[0]["request_id"]
