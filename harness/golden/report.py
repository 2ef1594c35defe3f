"""
harness/golden/report.py

Golden markdown reports for aggregation pipelines and distinct queries.

Each render call runs the query, runs explain for the same query in
allPlansExecution mode, and writes a fixed sequence of sub-sections through
the report's MarkdownWriter:

  render_aggregation                 render_distinct
  ------------------                 ---------------
  ### Pipeline                       ### Distinct on "<key>", with filter: <filter>
  ### Results                        ### Expected results
  ### Summarized explain             ### Distinct results
  <blank line>                       ### Summarized explain
                                     <blank line>

"Expected results" for a distinct query are computed by unique_values(), a
plain find() scan deduplicated in Python.  It deliberately does not reuse
the server's distinct logic: the two sub-sections are meant to be compared,
and a bug in the server's distinct must not be able to agree with itself.

Failures from aggregate / distinct / find / explain propagate unchanged.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from harness.golden import explain as explain_mod
from harness.config import settings
from harness.golden.markdown import MarkdownWriter
from harness.golden.serialize import normalize_array, to_json_multi_line, to_json_one_line

logger = structlog.get_logger(__name__)

_MISSING = object()


def _lookup(doc: Any, path: str) -> Any:
    """Read a dotted *path* from *doc*, returning _MISSING when absent."""
    value = doc
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _sort_key(item: tuple[str, Any]) -> tuple[str, str]:
    canonical, value = item
    return (value if isinstance(value, str) else canonical, canonical)


def unique_values(collection: Any, key: str, filter: dict[str, Any] | None = None) -> list[Any]:
    """Compute the distinct values of *key* with a find() scan.

    Missing values and nulls map to None.  Values are deduplicated by their
    canonical one-line text, so unhashable values (arrays, sub-documents) are
    handled.  Ordering compares strings by their raw text and every other
    value by its canonical text, the way the shell's default sort compares
    String() forms.
    """
    seen: dict[str, Any] = {}
    for doc in collection.find(filter or {}, {key: 1, "_id": 0}):
        value = _lookup(doc, key) if doc else None
        if value is _MISSING:
            value = None
        seen.setdefault(to_json_one_line(value), value)
    return [value for _, value in sorted(seen.items(), key=_sort_key)]


class GoldenReport:
    """Render query results and plan summaries as golden markdown."""

    def __init__(
        self,
        writer: MarkdownWriter,
        verbosity: str | None = None,
        fmt: str | None = None,
    ) -> None:
        self.writer = writer
        self.verbosity = verbosity or settings.golden_verbosity
        self.fmt = fmt or settings.golden_format

    def render_aggregation(
        self,
        collection: Any,
        pipeline: list[dict[str, Any]],
        sort_results: bool = True,
    ) -> None:
        """Write the pipeline, its results and its summarized explain.

        Results are sorted into canonical order unless *sort_results* is
        false, in which case the server's order is kept (use it for
        pipelines that end in a ``$sort``).
        """
        results = list(collection.aggregate(pipeline))
        raw = explain_mod.explain_aggregate(collection, pipeline, self.verbosity)
        flat_plan = explain_mod.summarize_explain(raw)

        self.writer.sub_section("Pipeline")
        self.writer.code(to_json_multi_line(pipeline, sort_keys=False), self.fmt)

        self.writer.sub_section("Results")
        self.writer.code(normalize_array(results, sort_results), self.fmt)

        self.writer.sub_section("Summarized explain")
        self.writer.code(to_json_multi_line(flat_plan), self.fmt)

        self.writer.linebreak()
        logger.debug(
            "golden_aggregation_rendered",
            collection=collection.name,
            stages=len(pipeline),
            results=len(results),
            sorted=sort_results,
        )

    def render_distinct(
        self,
        collection: Any,
        key: str,
        filter: dict[str, Any] | None = None,
    ) -> None:
        """Write expected and actual distinct values and the summarized explain."""
        filter = filter or {}
        results = collection.distinct(key, filter)
        raw = explain_mod.explain_distinct(collection, key, filter, self.verbosity)
        flat_plan = explain_mod.summarize_explain(raw)

        self.writer.sub_section(
            f'Distinct on "{key}", with filter: {to_json_one_line(filter)}'
        )

        self.writer.sub_section("Expected results")
        self.writer.code_one_line(unique_values(collection, key, filter))

        self.writer.sub_section("Distinct results")
        self.writer.code_one_line(results)

        self.writer.sub_section("Summarized explain")
        self.writer.code(to_json_multi_line(flat_plan), self.fmt)

        self.writer.linebreak()
        logger.debug(
            "golden_distinct_rendered",
            collection=collection.name,
            key=key,
            results=len(results),
        )
