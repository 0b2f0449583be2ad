"""
Command line entry points.

    sparql-benchmark run --endpoint http://localhost:3000/sparql --queries queries/ --output out.csv
    sparql-benchmark aggregate run1.json run2.json --output aggregate.csv
"""

import asyncio
from dataclasses import replace
from pathlib import Path

import click
import structlog

from sparql_benchmark.aggregation import (
    ResultAggregator,
    ResultAggregatorComunica,
    ResultAggregatorQuerySequence,
)
from sparql_benchmark.benchmark import BenchmarkConfig, ResultRecord, SparqlBenchmarkRunner
from sparql_benchmark.config import Settings, get_settings
from sparql_benchmark.io import (
    MalformedMetadataError,
    QueryLoaderFile,
    ResultSerializer,
    ResultSerializerCsv,
    ResultSerializerRaw,
    load_result_records,
)
from sparql_benchmark.observability import configure_logging
from sparql_benchmark.topology import OptimalTraversalMetric, load_evaluator
from sparql_benchmark.transport import SparqlEndpointTransport

logger = structlog.get_logger(__name__)

AGGREGATORS: dict[str, type[ResultAggregator]] = {
    "basic": ResultAggregator,
    "comunica": ResultAggregatorComunica,
    "sequence": ResultAggregatorQuerySequence,
}


def _serializer_for(path: Path) -> ResultSerializer:
    if path.suffix == ".csv":
        return ResultSerializerCsv()
    return ResultSerializerRaw()


def _write_outputs(
    records: list[ResultRecord],
    output: Path,
    output_raw: Path | None,
    aggregate: str,
) -> None:
    if output_raw:
        ResultSerializerRaw().serialize(output_raw, records)

    aggregates = AGGREGATORS[aggregate]().aggregate_results(records)
    _serializer_for(output).serialize(output, aggregates)


async def _run(
    settings: Settings,
    config: BenchmarkConfig,
    queries: Path,
    evaluator_path: str | None,
) -> list[ResultRecord]:
    loader = QueryLoaderFile(queries)
    query_sets = await loader.load_queries()
    query_metadata = await loader.load_queries_metadata()

    metric = OptimalTraversalMetric(load_evaluator(evaluator_path)) if evaluator_path else None
    transport = SparqlEndpointTransport(timeout=settings.endpoint.request_timeout_seconds)
    runner = SparqlBenchmarkRunner(
        config,
        query_sets,
        transport=transport,
        metric=metric,
        query_metadata=query_metadata,
    )
    try:
        results = await runner.run()
    finally:
        await transport.close()

    logger.info(
        "Benchmark finished",
        results=len(results),
        failed=sum(1 for record in results.values() if record.error),
    )
    return list(results.values())


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (default: LOG_LEVEL or INFO)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "console"]),
    default=None,
    help="Log format (default: OBSERVABILITY_LOG_FORMAT or console)",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None, log_format: str | None) -> None:
    """Benchmark SPARQL endpoints."""
    settings = get_settings()
    configure_logging(
        level=log_level or settings.log_level,
        format=log_format or settings.observability.log_format,
    )
    ctx.obj = settings


@main.command()
@click.option("--endpoint", "-e", default=None, help="SPARQL endpoint URL (default: ENDPOINT_URL)")
@click.option(
    "--queries",
    "-q",
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory of query files",
)
@click.option("--replication", "-r", type=click.IntRange(min=1), default=None, help="Number of replication runs")
@click.option("--warmup", "-w", type=click.IntRange(min=0), default=None, help="Number of warmup runs")
@click.option("--timeout", "-t", "timeout_ms", type=int, default=None, help="Query timeout in milliseconds")
@click.option("--timestamps/--no-timestamps", default=None, help="Record result arrival times")
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Aggregate output file (.csv for a table, otherwise JSON)",
)
@click.option(
    "--output-raw",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write non-aggregated results as JSON",
)
@click.option(
    "--metric-evaluator",
    default=None,
    help="Traversal metric evaluator as 'module:attribute' (default: METRIC_EVALUATOR)",
)
@click.option(
    "--aggregate",
    type=click.Choice(sorted(AGGREGATORS)),
    default="comunica",
    show_default=True,
    help="How results are grouped",
)
@click.pass_obj
def run(
    settings: Settings,
    endpoint: str | None,
    queries: Path,
    replication: int | None,
    warmup: int | None,
    timeout_ms: int | None,
    timestamps: bool | None,
    output: Path,
    output_raw: Path | None,
    metric_evaluator: str | None,
    aggregate: str,
) -> None:
    """Execute query sets against an endpoint and write the results."""
    config = BenchmarkConfig.from_settings(settings)
    overrides = {
        "endpoint": endpoint,
        "replication": replication,
        "warmup": warmup,
        "timeout_ms": timeout_ms,
        "record_timestamps": timestamps,
    }
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})

    try:
        records = asyncio.run(
            _run(settings, config, queries, metric_evaluator or settings.metric.evaluator)
        )
    except MalformedMetadataError as e:
        raise click.ClickException(str(e)) from e

    _write_outputs(records, output, output_raw, aggregate)
    click.echo(f"Wrote {len(records)} results to {output}")


@main.command(name="aggregate")
@click.argument(
    "raw_results",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Aggregate output file (.csv for a table, otherwise JSON)",
)
@click.option(
    "--aggregate",
    type=click.Choice(sorted(AGGREGATORS)),
    default="comunica",
    show_default=True,
    help="How results are grouped",
)
def aggregate_command(raw_results: tuple[Path, ...], output: Path, aggregate: str) -> None:
    """Aggregate raw results of one or more earlier runs."""
    records = [record for path in raw_results for record in load_result_records(path)]
    _write_outputs(records, output, None, aggregate)
    click.echo(f"Aggregated {len(records)} results into {output}")


if __name__ == "__main__":
    main()
