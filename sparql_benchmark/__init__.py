"""
SPARQL Benchmark Runner.

Benchmarks SPARQL endpoints backed by link-traversal query engines:
- Replicated, sequential execution of query sets
- Traversal metric scoring from the topology reported per query
- Aggregation of results per query or per query template
"""

__version__ = "0.1.0"
