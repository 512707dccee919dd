"""
Execution of optimized aggregation pipelines with performance reporting.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from inspi_db.database.store import AggregationStore
from inspi_db.models.performance import AggregationPerformance
from inspi_db.models.pipeline import parse_pipeline, pipeline_to_mongo
from inspi_db.services.pipeline_optimizer import PipelineOptimizer
from inspi_db.utils.serialization import pipeline_to_json

logger = logging.getLogger(__name__)


class AggregationService:
    """Runs pipelines through the optimizer and then against a store."""

    def __init__(
        self,
        store: AggregationStore,
        optimizer: Optional[PipelineOptimizer] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.store = store
        self.optimizer = optimizer or PipelineOptimizer()
        self.logger = logger or logging.getLogger(__name__)

    async def execute_optimized(
        self,
        collection: str,
        pipeline: List[Any],
        **options: Any
    ) -> Tuple[List[Dict[str, Any]], AggregationPerformance]:
        """
        Optimize a pipeline and run it.

        Args:
            collection: Target collection name
            pipeline: Stage models or raw stage documents
            **options: Passed through to the store (e.g. allowDiskUse)

        Returns:
            tuple: (result documents, performance report)

        Raises:
            InvalidPipelineStageError: If a raw stage cannot be parsed
            Exception: Any store error, unchanged, after it has been logged
        """
        original = parse_pipeline(pipeline)
        optimized = self.optimizer.optimize(original)
        optimized_documents = pipeline_to_mongo(optimized)

        start_time = time.perf_counter()
        try:
            results = await self.store.run(collection, optimized_documents, **options)
        except Exception as e:
            self.logger.error(
                f"[Aggregation] Execution failed on {collection}: {e}",
                extra={"collection": collection, "pipeline": pipeline_to_json(original)},
                exc_info=True
            )
            raise
        execution_time_ms = (time.perf_counter() - start_time) * 1000

        performance = AggregationPerformance(
            collection=collection,
            pipeline=optimized_documents,
            execution_time_ms=execution_time_ms,
            documents_returned=len(results),
            optimizations=self.optimizer.get_optimization_messages(original, optimized)
        )

        self.logger.debug(
            f"[Aggregation] {collection}: {len(results)} documents in {execution_time_ms:.1f}ms",
            extra={"collection": collection, "execution_time_ms": execution_time_ms}
        )
        return results, performance

    async def explain_aggregation(self, collection: str, pipeline: List[Any]) -> Any:
        """
        Ask the store for the execution plan of a pipeline, unmodified.

        Raises:
            Exception: Any store error, unchanged, after it has been logged
        """
        documents = pipeline_to_mongo(parse_pipeline(pipeline))
        try:
            return await self.store.explain(collection, documents)
        except Exception as e:
            self.logger.error(
                f"[Aggregation] Explain failed on {collection}: {e}",
                extra={"collection": collection, "pipeline": pipeline_to_json(documents)},
                exc_info=True
            )
            raise
