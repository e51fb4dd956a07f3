"""
Multiplicity Calculation

Refines a relationship's cardinality by sampling the source table through a
read-only query executor. Best effort: any failure keeps the multiplicity the
relationship already had, and a batch never aborts because of one table.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, List, Optional

from ..adapters.base import BaseQueryExecutor
from ..utils import EngineMetrics, classify_database_error, get_logger
from .models import Multiplicity, MultiplicitySample, Relationship

logger = get_logger(__name__)

DEFAULT_SAMPLE_SIZE = 10000
DEFAULT_TOLERANCE = 1.1  # ratio still treated as "one", absorbs sampling noise


def classify_multiplicity(
    sample: MultiplicitySample,
    tolerance: float = DEFAULT_TOLERANCE,
) -> Optional[Multiplicity]:
    """
    Classify a sample by its duplication ratios.

    Returns None when the sample carries no information (no rows, or a zero
    distinct count).
    """
    if sample.total_rows <= 0 or sample.unique_from <= 0 or sample.unique_to <= 0:
        return None

    from_ratio = sample.total_rows / sample.unique_from
    to_ratio = sample.total_rows / sample.unique_to

    from_single = from_ratio <= tolerance
    to_single = to_ratio <= tolerance

    if from_single and to_single:
        return Multiplicity.ONE_TO_ONE
    if not from_single and to_single:
        return Multiplicity.MANY_TO_ONE
    if from_single and not to_single:
        return Multiplicity.ONE_TO_MANY
    return Multiplicity.MANY_TO_MANY


class MultiplicityCalculator:
    """
    Samples one relationship at a time

    Usage:
        calculator = MultiplicityCalculator(executor, sample_size=5000)
        multiplicity = calculator.calculate(relationship)
    """

    def __init__(
        self,
        executor: BaseQueryExecutor,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        query_timeout: Optional[float] = None,
        tolerance: float = DEFAULT_TOLERANCE,
    ):
        self.executor = executor
        self.sample_size = sample_size
        self.query_timeout = query_timeout
        self.tolerance = tolerance

    def build_query(self, relationship: Relationship) -> str:
        """Aggregate query over a bounded sample of non-null source rows"""
        q = self.executor.quote_identifier
        from_col = q(relationship.from_column)
        to_col = q(relationship.to_column)
        limit = self.executor.limit_clause(self.executor.placeholder("sample_size"))

        return (
            "SELECT COUNT(DISTINCT sample_from) AS unique_from, "
            "COUNT(DISTINCT sample_to) AS unique_to, "
            "COUNT(*) AS total_rows "
            f"FROM (SELECT {from_col} AS sample_from, {to_col} AS sample_to "
            f"FROM {q(relationship.from_table)} "
            f"WHERE {from_col} IS NOT NULL {limit}) sampled"
        )

    def sample(self, relationship: Relationship) -> Optional[MultiplicitySample]:
        """Run the sampling query; None on any failure"""
        sql = None
        try:
            sql = self.build_query(relationship)
            result = self.executor.execute_query(
                sql,
                {"sample_size": self.sample_size},
                timeout=self.query_timeout,
            )
        except Exception as e:
            error = classify_database_error(e, relationship_id=relationship.id, sql_query=sql)
            logger.warning(f"Sampling {relationship.id} failed: {error}")
            return None

        if result is None:
            logger.warning(f"Sampling {relationship.id} failed: executor returned no result")
            return None

        if not result.success:
            reason = "timed out" if result.timed_out else result.error_message
            logger.warning(f"Sampling {relationship.id} failed: {reason}")
            return None

        row = result.first_row_as_dict()
        if row is None:
            logger.warning(f"Sampling {relationship.id} returned no rows")
            return None

        try:
            return MultiplicitySample(
                unique_from=int(row["unique_from"]),
                unique_to=int(row["unique_to"]),
                total_rows=int(row["total_rows"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Sampling {relationship.id} returned an unexpected row {row}: {e}")
            return None

    def calculate(self, relationship: Relationship) -> Multiplicity:
        """Sampled multiplicity, or the relationship's current one if sampling fails"""
        start = time.time()
        sample = self.sample(relationship)
        multiplicity = classify_multiplicity(sample, self.tolerance) if sample else None
        duration = time.time() - start

        if multiplicity is None:
            EngineMetrics.record_sample(duration, "failed" if sample is None else "kept")
            return relationship.multiplicity

        EngineMetrics.record_sample(
            duration,
            "kept" if multiplicity == relationship.multiplicity else "refined",
        )
        return multiplicity


class MultiplicityRefiner:
    """
    Refines a batch of relationships over a bounded worker pool

    Each query carries the calculator's own timeout, so one locked table
    cannot stall the batch. cancel() stops sampling the rest of the running
    batch; relationships not yet sampled keep their multiplicity.
    """

    def __init__(self, calculator: MultiplicityCalculator, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.calculator = calculator
        self.max_workers = max_workers
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop sampling the remainder of the running batch"""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def refine(self, relationships: Iterable[Relationship]) -> List[Relationship]:
        """New relationship list in input order with refined multiplicities"""
        relationships = list(relationships)
        self._cancelled.clear()
        if not relationships:
            return []

        results = list(relationships)

        with ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="multiplicity",
        ) as pool:
            futures = {
                pool.submit(self._refine_one, rel): index
                for index, rel in enumerate(relationships)
            }

            for future in as_completed(futures):
                results[futures[future]] = future.result()

        refined = sum(1 for old, new in zip(relationships, results) if old is not new)
        logger.info(f"Refined multiplicity of {refined}/{len(relationships)} relationships")
        return results

    def _refine_one(self, relationship: Relationship) -> Relationship:
        if self._cancelled.is_set():
            EngineMetrics.record_sample(0.0, "skipped")
            return relationship
        try:
            return relationship.with_multiplicity(self.calculator.calculate(relationship))
        except Exception as e:
            logger.error(f"Refining {relationship.id} failed, keeping {relationship.multiplicity.value}: {e}")
            EngineMetrics.record_sample(0.0, "failed")
            return relationship
