"""
SPARQL Benchmark Runner.

Executes query sets against a SPARQL endpoint, times every query, scores
the traversal of each result set and averages everything over replication
runs.

Queries are never executed concurrently: timings must not be skewed by
contention between queries.
"""

import asyncio
import time
from collections.abc import Awaitable
from contextlib import aclosing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import structlog

from sparql_benchmark.benchmark.results import ResultRecord
from sparql_benchmark.config.settings import Settings
from sparql_benchmark.observability.logging import LogContext
from sparql_benchmark.topology.evaluator import METRIC_NOT_COMPUTABLE, OptimalTraversalMetric
from sparql_benchmark.topology.models import SearchStrategy, TopologyWeighting, TraversalTopology
from sparql_benchmark.transport.sparql_client import (
    MetadataEvent,
    QueryTransport,
    SparqlEndpointTransport,
    TopologyRow,
    TransportError,
)

logger = structlog.get_logger(__name__)

RunHook = Callable[[], Awaitable[None]]


class RunState(str, Enum):
    """Lifecycle of a benchmark run."""

    NOT_STARTED = "not_started"
    WAITING_FOR_ENDPOINT = "waiting_for_endpoint"
    WARMING_UP = "warming_up"
    RUNNING = "running"
    STOPPED = "stopped"
    AVERAGED = "averaged"


@dataclass
class BenchmarkConfig:
    """Configuration for benchmark execution."""

    endpoint: str
    replication: int = 5
    warmup: int = 1
    record_timestamps: bool = True

    # Fallback timeout for one query; the endpoint should enforce its own
    timeout_ms: int | None = None

    # Liveness
    up_query: str = "SELECT * WHERE { ?s ?p ?o } LIMIT 1"
    additional_url_params_init: dict[str, str] = field(default_factory=dict)
    additional_url_params_run: dict[str, str] = field(default_factory=dict)

    # Delays (seconds)
    liveness_probe_interval: float = 1.0
    liveness_probe_timeout: float = 10.0
    settle_delay: float = 5.0
    error_recovery_delay: float = 3.0
    inter_query_delay: float = 5.0

    # Traversal metric
    k_values: list[int] = field(default_factory=lambda: [1, 2, 4])
    weighting: TopologyWeighting = TopologyWeighting.UNWEIGHTED
    search_strategy: SearchStrategy = SearchStrategy.FULL
    solver_input_path: str | None = None
    batch_size: int | None = 5_000
    allow_random_sampling: bool | None = True
    sample_count: int | None = 1_000_000

    @classmethod
    def from_settings(cls, settings: Settings) -> "BenchmarkConfig":
        return cls(
            endpoint=settings.endpoint.url,
            replication=settings.runner.replication,
            warmup=settings.runner.warmup,
            record_timestamps=settings.runner.record_timestamps,
            timeout_ms=settings.runner.timeout_ms,
            up_query=settings.endpoint.up_query,
            additional_url_params_init=dict(settings.endpoint.additional_url_params_init),
            additional_url_params_run=dict(settings.endpoint.additional_url_params_run),
            liveness_probe_interval=settings.runner.liveness_probe_interval,
            liveness_probe_timeout=settings.runner.liveness_probe_timeout,
            settle_delay=settings.runner.settle_delay,
            error_recovery_delay=settings.runner.error_recovery_delay,
            inter_query_delay=settings.runner.inter_query_delay,
            k_values=list(settings.metric.k_values),
            weighting=TopologyWeighting(settings.metric.weighting),
            search_strategy=SearchStrategy(settings.metric.search_strategy),
            solver_input_path=settings.metric.solver_input_path,
            batch_size=settings.metric.batch_size,
            allow_random_sampling=settings.metric.allow_random_sampling,
            sample_count=settings.metric.sample_count,
        )


@dataclass
class PartialOutput:
    """What was measured before a query stream failed."""

    count: int = 0
    time: float = 0.0
    timestamps: list[float] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class QueryOutput(PartialOutput):
    """Measurements of a query whose stream ended normally."""

    topology: TraversalTopology = field(default_factory=TraversalTopology)
    contributing_documents: list[list[str]] = field(default_factory=list)

    @classmethod
    def from_partial(cls, partial: PartialOutput) -> "QueryOutput":
        return cls(
            count=partial.count,
            time=partial.time,
            timestamps=list(partial.timestamps),
            metadata=dict(partial.metadata),
        )


class QueryTimeoutError(Exception):
    """Raised when a query exceeds the overall timeout. Carries no data."""

    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"Timeout for running query after {timeout_ms} ms")


class QueryExecutionError(Exception):
    """Raised when a query stream fails; carries the partial measurement."""

    def __init__(self, message: str, partial: PartialOutput):
        self.partial = partial
        super().__init__(message)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class SparqlBenchmarkRunner:
    """
    Runs query sets against a SPARQL endpoint and collects measurements.

    Features:
    - Liveness polling before and after failures
    - Warmup iterations
    - Replicated, strictly sequential execution
    - Traversal metric scoring of each result set
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        query_sets: dict[str, list[str]],
        transport: QueryTransport | None = None,
        metric: OptimalTraversalMetric | None = None,
        query_metadata: dict[str, list[dict[str, Any]]] | None = None,
    ):
        self.config = config
        self.query_sets = query_sets
        self.transport = transport or SparqlEndpointTransport()
        self.metric = metric
        self.query_metadata = query_metadata or {}
        self.state = RunState.NOT_STARTED

        if self.metric is None:
            logger.warning("No traversal metric evaluator configured, metrics will be recorded as -1")

    async def run(
        self,
        on_start: RunHook | None = None,
        on_stop: RunHook | None = None,
    ) -> dict[str, ResultRecord]:
        """
        Wait for the endpoint, warm up, execute all query sets and average.

        Args:
            on_start: Awaited right before the measured iterations
            on_stop: Awaited right after the measured iterations

        Returns:
            Averaged results keyed by query set name + query id
        """
        self.state = RunState.WAITING_FOR_ENDPOINT
        await self.wait_until_up()

        self.state = RunState.WARMING_UP
        logger.info("Warming up", rounds=self.config.warmup)
        await self.execute_queries({}, self.config.warmup)

        results: dict[str, ResultRecord] = {}
        logger.info(
            "Executing query sets",
            query_sets=len(self.query_sets),
            replication=self.config.replication,
        )
        self.state = RunState.RUNNING
        if on_start:
            await on_start()
        await self.execute_queries(results, self.config.replication)
        if on_stop:
            await on_stop()
        self.state = RunState.STOPPED

        for record in results.values():
            record.average(self.config.replication)
        self.state = RunState.AVERAGED

        return results

    async def execute_queries(self, results: dict[str, ResultRecord], iterations: int) -> None:
        """
        Execute every query of every query set ``iterations`` times.

        Order: iteration, then query set (insertion order), then query.
        Measurements are merged into ``results`` in place.
        """
        for iteration in range(iterations):
            for name, queries in self.query_sets.items():
                for index, query in enumerate(queries):
                    query_id = str(index)
                    with LogContext(query_set=name, query_id=query_id, iteration=f"{iteration + 1}/{iterations}"):
                        await self._execute_and_record(results, name, query_id, query)

        logger.info("Executed all queries", iterations=iterations)

    async def _execute_and_record(
        self,
        results: dict[str, ResultRecord],
        name: str,
        query_id: str,
        query: str,
    ) -> None:
        logger.debug("Executing query")
        error: Exception | None = None
        try:
            output = await self.execute_query(query)
        except QueryExecutionError as e:
            error = e
            output = QueryOutput.from_partial(e.partial)
        except QueryTimeoutError as e:
            error = e
            output = QueryOutput()

        record = results.get(ResultRecord.make_key(name, query_id))
        if record is None:
            record = self._create_record(name, query_id, output, error)
            record.metrics_calculated = await self._calculate_metrics(output)
            results[record.key] = record
        else:
            record.add_measurement(
                output.time,
                output.timestamps,
                str(error) if error else None,
            )

        if error:
            logger.warning("Query failed", error=str(error), results=output.count)

            # Wait until the endpoint is properly live again
            await asyncio.sleep(self.config.error_recovery_delay)
            await self.wait_until_up()

        await asyncio.sleep(self.config.inter_query_delay)

    def _create_record(
        self,
        name: str,
        query_id: str,
        output: QueryOutput,
        error: Exception | None,
    ) -> ResultRecord:
        query_metadata: dict[str, Any] = {}
        entries = self.query_metadata.get(name, [])
        if int(query_id) < len(entries):
            query_metadata = dict(entries[int(query_id)])

        return ResultRecord(
            name=name,
            id=query_id,
            count=output.count,
            time=output.time,
            timestamps=list(output.timestamps),
            error=error is not None,
            error_message=str(error) if error else None,
            k_values=list(self.config.k_values),
            metadata=dict(output.metadata),
            template=_find_template(query_metadata),
            query_metadata=query_metadata,
        )

    async def _calculate_metrics(self, output: QueryOutput) -> list[float]:
        """Score the result set, or mark every slot as not computable."""
        slots = 1 + len(self.config.k_values)
        if self.metric is None or output.count == 0 or not output.contributing_documents:
            return [METRIC_NOT_COMPUTABLE] * slots

        try:
            metric_all = await self.metric.calculate_metric_all_results(
                output.topology,
                output.contributing_documents,
                self.config.weighting,
            )
            metrics_first_k = await self.metric.calculate_metric_first_k_results(
                self.config.k_values,
                output.topology,
                output.contributing_documents,
                self.config.weighting,
                self.config.search_strategy,
                self.config.solver_input_path,
                self.config.batch_size,
                self.config.allow_random_sampling,
                self.config.sample_count,
            )
        except Exception as e:
            # A failing evaluation degrades this query only
            logger.warning(
                "Traversal metric evaluation failed",
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )
            return [METRIC_NOT_COMPUTABLE] * slots

        return [metric_all, *metrics_first_k]

    async def execute_query(self, query: str) -> QueryOutput:
        """
        Execute a single query.

        Raises:
            QueryTimeoutError: The overall timeout elapsed first
            QueryExecutionError: The stream failed; partial output attached
        """
        consumption = self._consume(query)
        if not self.config.timeout_ms:
            return await consumption

        try:
            return await asyncio.wait_for(consumption, timeout=self.config.timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise QueryTimeoutError(self.config.timeout_ms) from None

    async def _consume(self, query: str) -> QueryOutput:
        output = QueryOutput()
        start = time.perf_counter()

        try:
            events = self.transport.stream(
                self.config.endpoint,
                query,
                self.config.additional_url_params_run,
            )
            async with aclosing(events):
                async for event in events:
                    if isinstance(event, MetadataEvent):
                        output.metadata = event.metadata
                        continue

                    if isinstance(event, TopologyRow):
                        output.topology = event.topology
                        output.contributing_documents.append(event.source_attribution)

                    output.count += 1
                    if self.config.record_timestamps:
                        output.timestamps.append(_elapsed_ms(start))

        except TransportError as e:
            raise QueryExecutionError(
                str(e),
                PartialOutput(
                    count=output.count,
                    time=_elapsed_ms(start),
                    timestamps=output.timestamps,
                    metadata=output.metadata,
                ),
            ) from e

        output.time = _elapsed_ms(start)
        return output

    async def is_up(self) -> bool:
        """Check if the endpoint answers the liveness query in time."""
        try:
            await asyncio.wait_for(self._probe(), timeout=self.config.liveness_probe_timeout)
            return True
        except Exception as e:
            logger.debug("Liveness probe failed", error=str(e) or type(e).__name__)
            return False

    async def _probe(self) -> None:
        events = self.transport.stream(
            self.config.endpoint,
            self.config.up_query,
            self.config.additional_url_params_init,
        )
        async with aclosing(events):
            async for _ in events:
                pass

    async def wait_until_up(self) -> None:
        """Block until the endpoint is available, then let it settle."""
        start = time.perf_counter()
        attempts = 1
        while not await self.is_up():
            await asyncio.sleep(self.config.liveness_probe_interval)
            logger.info(
                "Endpoint not available yet",
                waited_seconds=round(time.perf_counter() - start, 1),
            )
            attempts += 1

        logger.info(
            "Endpoint available",
            waited_seconds=round(time.perf_counter() - start, 1),
            attempts=attempts,
        )
        await asyncio.sleep(self.config.settle_delay)


def _find_template(query_metadata: dict[str, Any]) -> str | None:
    """Template name from query metadata: the sequence element's, else the top level one."""
    for value in query_metadata.values():
        if isinstance(value, dict) and value.get("template") is not None:
            return str(value["template"])
    template = query_metadata.get("template")
    if template is not None:
        return str(template)
    return None
