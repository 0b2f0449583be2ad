"""Loading queries and persisting results."""

from sparql_benchmark.io.query_loader import MalformedMetadataError, QueryLoaderFile
from sparql_benchmark.io.serializers import (
    ResultSerializer,
    ResultSerializerCsv,
    ResultSerializerRaw,
    load_result_records,
    read_raw_results,
)

__all__ = [
    "MalformedMetadataError",
    "QueryLoaderFile",
    "ResultSerializer",
    "ResultSerializerCsv",
    "ResultSerializerRaw",
    "load_result_records",
    "read_raw_results",
]
