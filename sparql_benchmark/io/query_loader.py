"""
Query Loader.

Loads query sets from a directory tree. Every query file is one query set;
queries inside a file are separated by a blank line. Query sets in
subdirectories are prefixed with their relative directory.

Metadata files (``<name>.metadata.json``) describe the queries of the query
set with the same name. They contain any number of scalar top-level fields,
which apply to every query of the set, and exactly one array field with one
element per query:

    {
      "template": "interactive-discover-3",
      "sequenceElements": [{"session": "a"}, {"session": "b"}]
    }

loads as

    [
      {"template": "interactive-discover-3", "sequenceElement": {"session": "a"}},
      {"template": "interactive-discover-3", "sequenceElement": {"session": "b"}}
    ]
"""

import asyncio
import json
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

QUERY_SEPARATOR = "\n\n"


class MalformedMetadataError(Exception):
    """Raised when a query metadata file does not have exactly one array field."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class QueryLoaderFile:
    """
    Loads queries and query metadata from disk.

    Args:
        path: Root directory of the query files
        extensions: Extensions of query files
        metadata_extensions: Extensions of metadata files
        metadata_indicators: Name parts that mark a metadata file, removed to
            find the query set it belongs to
    """

    DEFAULT_EXTENSIONS = (".txt", ".sparql", ".rq")
    DEFAULT_METADATA_EXTENSIONS = (".json",)
    DEFAULT_METADATA_INDICATORS = (".metadata",)

    def __init__(
        self,
        path: str | Path,
        extensions: tuple[str, ...] | list[str] | None = None,
        metadata_extensions: tuple[str, ...] | list[str] | None = None,
        metadata_indicators: tuple[str, ...] | list[str] | None = None,
    ) -> None:
        self.path = Path(path).resolve()
        self.extensions = set(extensions or self.DEFAULT_EXTENSIONS)
        self.metadata_extensions = set(metadata_extensions or self.DEFAULT_METADATA_EXTENSIONS)
        self.metadata_indicators = list(metadata_indicators or self.DEFAULT_METADATA_INDICATORS)

    async def load_queries(self) -> dict[str, list[str]]:
        """Load all query sets, keyed by query set name."""
        query_sets: dict[str, list[str]] = {}
        for file, name in self._walk(self.path, self.extensions):
            contents = await asyncio.to_thread(file.read_text, encoding="utf-8")
            query_sets[name] = [
                query.strip()
                for query in contents.split(QUERY_SEPARATOR)
                if query.strip()
            ]

        logger.info(
            "Loaded query sets",
            path=str(self.path),
            query_sets=len(query_sets),
            queries=sum(len(queries) for queries in query_sets.values()),
        )
        return query_sets

    async def load_queries_metadata(self) -> dict[str, list[dict[str, Any]]]:
        """
        Load per-query metadata, keyed by query set name.

        Raises:
            MalformedMetadataError: A metadata file has zero or several array fields
        """
        metadata: dict[str, list[dict[str, Any]]] = {}
        for file, name in self._walk(self.path, self.metadata_extensions):
            parsed = json.loads(await asyncio.to_thread(file.read_text, encoding="utf-8"))
            if not isinstance(parsed, dict):
                raise MalformedMetadataError(file, "queries metadata must be a JSON object")

            array_keys = [key for key, value in parsed.items() if isinstance(value, list)]
            if len(array_keys) != 1:
                raise MalformedMetadataError(
                    file,
                    f"queries metadata must have exactly one array entry, found {len(array_keys)}",
                )

            array_key = array_keys[0]
            base_fields = {k: v for k, v in parsed.items() if k != array_key}
            element_key = array_key[:-1]
            metadata.setdefault(self._strip_indicators(name), []).extend(
                {**base_fields, element_key: element}
                for element in parsed[array_key]
            )

        logger.info("Loaded query metadata", path=str(self.path), query_sets=len(metadata))
        return metadata

    def _strip_indicators(self, name: str) -> str:
        for indicator in self.metadata_indicators:
            name = name.replace(indicator, "", 1)
        return name

    def _walk(self, directory: Path, extensions: set[str], prefix: str = ""):
        """Yield (file, query set name) for matching files, depth first."""
        for entry in sorted(directory.iterdir()):
            if entry.is_file() and entry.suffix in extensions:
                yield entry, prefix + entry.name[: -len(entry.suffix)]
            elif entry.is_dir():
                yield from self._walk(entry, extensions, f"{prefix}{entry.name}/")
