"""
Relationship Analyzer

The main entry point. Runs discovery, inference, junction detection and
(optionally) multiplicity sampling over one schema snapshot, then builds the
relationship graph used for join path queries.

Usage:
    # Metadata only
    analyzer = RelationshipAnalyzer()
    analysis = analyzer.analyze(schema)
    result = analyzer.find_join_path("users", "tags")

    # With multiplicity sampling through a read-only executor
    config = EngineConfig.from_dict({"sampling": {"enabled": True}})
    analyzer = RelationshipAnalyzer(config=config, executor=SQLiteQueryExecutor("shop.db"))
    analysis = analyzer.analyze(schema)
"""
from __future__ import annotations

import uuid
from typing import List, Optional

from ..adapters.base import BaseQueryExecutor
from ..config import EngineConfig, get_config
from ..schema import DatabaseSchema
from ..utils import (
    ConfigurationError,
    EngineMetrics,
    GraphNotBuiltError,
    get_logger,
    log_context,
    log_operation,
)
from .discovery import (
    ExplicitRelationshipDiscoverer,
    ImplicitRelationshipInferrer,
    merge_relationships,
)
from .export import export_graphviz, export_mermaid_er
from .graph import GraphBuilder, RelationshipGraph
from .inflection import InflectInflector, Inflector
from .join_paths import JoinPathFinder
from .junctions import JunctionTableDetector
from .models import (
    JoinPathResult,
    JunctionTable,
    Multiplicity,
    RelatedTable,
    Relationship,
    RelationshipAnalysis,
)
from .multiplicity import MultiplicityCalculator, MultiplicityRefiner

logger = get_logger(__name__)


class RelationshipAnalyzer:
    """
    Relationship analysis pipeline for one database

    Handles the complete flow of:
    1. Explicit foreign-key discovery
    2. Naming-convention inference (filtered by confidence threshold)
    3. Junction table detection
    4. Multiplicity sampling, when enabled and an executor is available
    5. Graph construction for join path search
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        executor: Optional[BaseQueryExecutor] = None,
        inflector: Optional[Inflector] = None,
    ):
        self.config = config or get_config()
        self.executor = executor
        self.inflector = inflector or InflectInflector(self.config.relationships.plural_overrides)

        self._graph: Optional[RelationshipGraph] = None
        self._refiner: Optional[MultiplicityRefiner] = None

    # -- individual stages --------------------------------------------------

    def discover_explicit(self, schema: DatabaseSchema) -> List[Relationship]:
        return ExplicitRelationshipDiscoverer(schema).discover()

    def infer_implicit(
        self,
        schema: DatabaseSchema,
        explicit: Optional[List[Relationship]] = None,
    ) -> List[Relationship]:
        """Inferred relationships at or above the configured confidence threshold"""
        if explicit is None:
            explicit = self.discover_explicit(schema)

        threshold = self.config.relationships.inference_confidence_threshold
        inferred = ImplicitRelationshipInferrer(schema, explicit, self.inflector).infer()
        kept = [r for r in inferred if r.confidence >= threshold]

        if len(kept) < len(inferred):
            logger.debug(f"Dropped {len(inferred) - len(kept)} inferred relationships below {threshold}")
        return kept

    def detect_junction_tables(
        self,
        schema: DatabaseSchema,
        relationships: List[Relationship],
    ) -> List[JunctionTable]:
        return JunctionTableDetector(schema).detect(relationships)

    def _sampling_calculator(self) -> MultiplicityCalculator:
        if self.executor is None:
            raise ConfigurationError(
                "Multiplicity sampling requires a query executor",
                config_key="executor",
            )
        sampling = self.config.sampling
        return MultiplicityCalculator(
            self.executor,
            sample_size=sampling.sample_size,
            query_timeout=sampling.query_timeout,
            tolerance=sampling.tolerance,
        )

    def calculate_multiplicity(self, relationship: Relationship) -> Multiplicity:
        """Sampled multiplicity of one relationship"""
        return self._sampling_calculator().calculate(relationship)

    def analyze_multiplicities(self, relationships: List[Relationship]) -> List[Relationship]:
        """Refine a batch of relationships concurrently, keeping input order"""
        self._refiner = MultiplicityRefiner(
            self._sampling_calculator(),
            max_workers=self.config.sampling.max_workers,
        )
        return self._refiner.refine(relationships)

    def cancel_sampling(self) -> None:
        """Stop the running multiplicity batch, if any"""
        if self._refiner is not None:
            self._refiner.cancel()

    def build_graph(self, schema: DatabaseSchema, relationships: List[Relationship]) -> RelationshipGraph:
        self._graph = GraphBuilder().build(schema, relationships)
        return self._graph

    # -- full pipeline ------------------------------------------------------

    def analyze(
        self,
        schema: DatabaseSchema,
        refine_multiplicity: Optional[bool] = None,
    ) -> RelationshipAnalysis:
        """
        Run every stage over a schema snapshot and rebuild the graph.

        ``refine_multiplicity`` overrides ``sampling.enabled``; sampling also
        needs an executor.
        """
        if refine_multiplicity is None:
            refine_multiplicity = self.config.sampling.enabled

        with log_context(
            correlation_id=uuid.uuid4().hex[:12],
            database_name=schema.database_name,
            stage="analyze",
        ):
            with log_operation(logger, "schema_validation", tables=len(schema.tables)):
                schema.validate()

            with log_operation(logger, "explicit_discovery") as ctx:
                explicit = self.discover_explicit(schema)
                ctx['relationships'] = len(explicit)

            inferred: List[Relationship] = []
            if self.config.relationships.include_inferred:
                with log_operation(logger, "implicit_inference") as ctx:
                    inferred = self.infer_implicit(schema, explicit)
                    ctx['relationships'] = len(inferred)

            relationships = merge_relationships(explicit, inferred)

            junctions: List[JunctionTable] = []
            if self.config.relationships.auto_detect_junctions:
                with log_operation(logger, "junction_detection") as ctx:
                    junctions = self.detect_junction_tables(schema, relationships)
                    ctx['junction_tables'] = len(junctions)

            sampled = False
            if refine_multiplicity:
                if self.executor is None:
                    logger.warning("Multiplicity sampling requested without an executor; skipping")
                else:
                    with log_operation(logger, "multiplicity_sampling", relationships=len(relationships)):
                        relationships = self.analyze_multiplicities(relationships)
                    sampled = True

            with log_operation(logger, "graph_build"):
                self.build_graph(schema, relationships)

            EngineMetrics.record_discovery(
                explicit=sum(1 for r in relationships if r.is_explicit),
                inferred=sum(1 for r in relationships if not r.is_explicit),
                junctions=len(junctions),
            )

        return RelationshipAnalysis(
            database_name=schema.database_name,
            relationships=relationships,
            junction_tables=junctions,
            sampled=sampled,
        )

    # -- graph queries ------------------------------------------------------

    @property
    def graph(self) -> RelationshipGraph:
        if self._graph is None:
            raise GraphNotBuiltError("Graph not built. Call analyze() or build_graph() first.")
        return self._graph

    def find_join_path(
        self,
        from_table: str,
        to_table: str,
        max_hops: Optional[int] = None,
    ) -> JoinPathResult:
        if max_hops is None:
            max_hops = self.config.graph.max_hops
        return JoinPathFinder(self.graph).find_join_path(from_table, to_table, max_hops)

    def get_related_tables(self, table_name: str, max_depth: int = 2) -> List[RelatedTable]:
        return self.graph.get_related_tables(table_name, max_depth)

    def export_mermaid(self) -> str:
        return export_mermaid_er(self.graph)

    def export_graphviz(self) -> str:
        return export_graphviz(self.graph)
