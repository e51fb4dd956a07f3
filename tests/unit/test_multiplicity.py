"""
Unit Tests for Multiplicity Sampling
"""
import pytest
from unittest.mock import MagicMock
import sys
import os
import threading

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from relationship_engine.adapters import BaseQueryExecutor, QueryResult
from relationship_engine.config import DatabaseType
from relationship_engine.relationships import (
    ExplicitOrigin,
    Multiplicity,
    MultiplicityCalculator,
    MultiplicityRefiner,
    MultiplicitySample,
    Relationship,
    classify_multiplicity,
)
from relationship_engine.utils import get_metrics_collector


def make_relationship(rel_id="posts.fk_posts_user", from_column="user_id"):
    return Relationship(
        id=rel_id,
        origin=ExplicitOrigin("fk_posts_user"),
        from_table="posts",
        from_column=from_column,
        to_table="users",
        to_column="id",
    )


def sample_result(unique_from, unique_to, total_rows):
    return QueryResult(
        success=True,
        columns=["UNIQUE_FROM", "UNIQUE_TO", "TOTAL_ROWS"],
        rows=[(unique_from, unique_to, total_rows)],
        row_count=1,
    )


def mock_executor(result=None, side_effect=None, db_type=DatabaseType.POSTGRESQL):
    executor = MagicMock(spec=BaseQueryExecutor)
    executor.database_type = db_type
    executor.quote_identifier.side_effect = lambda name: f'"{name}"'
    executor.placeholder.side_effect = lambda name: f"%({name})s"
    executor.limit_clause.side_effect = lambda placeholder: f"LIMIT {placeholder}"
    if side_effect is not None:
        executor.execute_query.side_effect = side_effect
    else:
        executor.execute_query.return_value = result
    return executor


class TestClassifyMultiplicity:
    """Tests for ratio classification"""

    def test_one_to_many(self):
        sample = MultiplicitySample(unique_from=100, unique_to=10, total_rows=100)
        assert classify_multiplicity(sample) == Multiplicity.ONE_TO_MANY

    def test_many_to_one(self):
        sample = MultiplicitySample(unique_from=10, unique_to=100, total_rows=100)
        assert classify_multiplicity(sample) == Multiplicity.MANY_TO_ONE

    def test_one_to_one(self):
        sample = MultiplicitySample(unique_from=100, unique_to=100, total_rows=100)
        assert classify_multiplicity(sample) == Multiplicity.ONE_TO_ONE

    def test_many_to_many(self):
        sample = MultiplicitySample(unique_from=10, unique_to=10, total_rows=100)
        assert classify_multiplicity(sample) == Multiplicity.MANY_TO_MANY

    def test_tolerance_absorbs_noise(self):
        sample = MultiplicitySample(unique_from=95, unique_to=100, total_rows=100)
        assert classify_multiplicity(sample) == Multiplicity.ONE_TO_ONE

    def test_empty_sample(self):
        assert classify_multiplicity(MultiplicitySample(0, 0, 0)) is None


class TestMultiplicityCalculator:
    """Tests for MultiplicityCalculator"""

    def test_query_is_parameterized_and_bounded(self):
        executor = mock_executor(sample_result(100, 10, 100))
        calculator = MultiplicityCalculator(executor, sample_size=500, query_timeout=2.0)

        calculator.calculate(make_relationship())

        sql, params = executor.execute_query.call_args.args
        assert 'FROM "posts"' in sql
        assert '"user_id" IS NOT NULL' in sql
        assert "LIMIT %(sample_size)s" in sql
        assert params == {"sample_size": 500}
        assert executor.execute_query.call_args.kwargs == {"timeout": 2.0}

    def test_refines_multiplicity(self):
        executor = mock_executor(sample_result(100, 10, 100))

        result = MultiplicityCalculator(executor).calculate(make_relationship())

        assert result == Multiplicity.ONE_TO_MANY

    def test_failed_query_keeps_prior(self):
        executor = mock_executor(QueryResult(success=False, error_message="no such table"))

        result = MultiplicityCalculator(executor).calculate(make_relationship())

        assert result == Multiplicity.MANY_TO_ONE

    def test_timeout_keeps_prior(self):
        executor = mock_executor(QueryResult(success=False, timed_out=True))

        assert MultiplicityCalculator(executor).calculate(make_relationship()) == Multiplicity.MANY_TO_ONE

    def test_exception_keeps_prior(self):
        executor = mock_executor(side_effect=RuntimeError("connection reset"))

        result = MultiplicityCalculator(executor).calculate(make_relationship())

        assert result == Multiplicity.MANY_TO_ONE
        collector = get_metrics_collector()
        assert collector.get_counter("multiplicity_samples_total", {"outcome": "failed"}) == 1

    def test_empty_rows_keep_prior(self):
        executor = mock_executor(QueryResult(success=True, columns=["unique_from"], rows=[]))

        assert MultiplicityCalculator(executor).calculate(make_relationship()) == Multiplicity.MANY_TO_ONE

    def test_zero_counts_keep_prior(self):
        executor = mock_executor(sample_result(0, 0, 0))

        assert MultiplicityCalculator(executor).calculate(make_relationship()) == Multiplicity.MANY_TO_ONE

    def test_malformed_row_keeps_prior(self):
        executor = mock_executor(sample_result(None, 10, 100))

        assert MultiplicityCalculator(executor).calculate(make_relationship()) == Multiplicity.MANY_TO_ONE

    def test_missing_result_keeps_prior(self):
        executor = mock_executor(result=None)

        assert MultiplicityCalculator(executor).calculate(make_relationship()) == Multiplicity.MANY_TO_ONE

    def test_query_building_error_keeps_prior(self):
        executor = mock_executor(sample_result(100, 100, 100))
        executor.quote_identifier.side_effect = ValueError("unsupported identifier")

        assert MultiplicityCalculator(executor).calculate(make_relationship()) == Multiplicity.MANY_TO_ONE
        executor.execute_query.assert_not_called()


class TestMultiplicityRefiner:
    """Tests for batch refinement"""

    def test_preserves_input_order(self):
        def respond(sql, params, timeout=None):
            if '"a_id"' in sql:
                return sample_result(100, 100, 100)
            return sample_result(100, 10, 100)

        executor = mock_executor(side_effect=respond)
        relationships = [
            make_relationship("r1", "a_id"),
            make_relationship("r2", "b_id"),
            make_relationship("r3", "c_id"),
        ]

        refined = MultiplicityRefiner(MultiplicityCalculator(executor), max_workers=3).refine(relationships)

        assert [r.id for r in refined] == ["r1", "r2", "r3"]
        assert [r.multiplicity for r in refined] == [
            Multiplicity.ONE_TO_ONE,
            Multiplicity.ONE_TO_MANY,
            Multiplicity.ONE_TO_MANY,
        ]
        # input objects are never modified
        assert all(r.multiplicity == Multiplicity.MANY_TO_ONE for r in relationships)

    def test_one_failure_does_not_abort_batch(self):
        def respond(sql, params, timeout=None):
            if '"a_id"' in sql:
                raise RuntimeError("canceling statement due to statement timeout")
            return sample_result(100, 100, 100)

        executor = mock_executor(side_effect=respond)
        relationships = [make_relationship("r1", "a_id"), make_relationship("r2", "b_id")]

        refined = MultiplicityRefiner(MultiplicityCalculator(executor), max_workers=2).refine(relationships)

        assert refined[0] is relationships[0]
        assert refined[1].multiplicity == Multiplicity.ONE_TO_ONE

    def test_calculator_error_does_not_abort_batch(self):
        calculator = MagicMock(spec=MultiplicityCalculator)
        calculator.calculate.side_effect = [RuntimeError("driver bug"), Multiplicity.ONE_TO_ONE]
        relationships = [make_relationship("r1", "a_id"), make_relationship("r2", "b_id")]

        refined = MultiplicityRefiner(calculator, max_workers=1).refine(relationships)

        assert refined[0] is relationships[0]
        assert refined[1].multiplicity == Multiplicity.ONE_TO_ONE
        collector = get_metrics_collector()
        assert collector.get_counter("multiplicity_samples_total", {"outcome": "failed"}) == 1

    def test_cancel_leaves_remaining_unchanged(self):
        started = threading.Event()
        release = threading.Event()

        def respond(sql, params, timeout=None):
            started.set()
            release.wait(timeout=5)
            return sample_result(100, 100, 100)

        executor = mock_executor(side_effect=respond)
        refiner = MultiplicityRefiner(MultiplicityCalculator(executor), max_workers=1)
        relationships = [make_relationship(f"r{i}", f"c{i}_id") for i in range(5)]

        def cancel_when_started():
            started.wait(timeout=5)
            refiner.cancel()
            release.set()

        canceller = threading.Thread(target=cancel_when_started)
        canceller.start()
        refined = refiner.refine(relationships)
        canceller.join()

        assert refined[0].multiplicity == Multiplicity.ONE_TO_ONE
        assert refined[1:] == relationships[1:]
        assert executor.execute_query.call_count == 1

    def test_empty_batch(self):
        refiner = MultiplicityRefiner(MultiplicityCalculator(mock_executor()))
        assert refiner.refine([]) == []

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            MultiplicityRefiner(MultiplicityCalculator(mock_executor()), max_workers=0)
