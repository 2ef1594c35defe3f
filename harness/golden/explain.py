"""
harness/golden/explain.py

Explain command execution and plan summarization.

Raw explain output is unfit for golden files: it carries timings, work
counters, server info and candidate plans in whatever order the planner
produced them.  summarize_explain() projects an explain document onto a
small, order-stable structure:

  find / distinct / pushed-down aggregate
      {"winningPlan": [stage, ...], "rejectedPlans": [[stage, ...], ...]}

  aggregate with pipeline stages
      {"stages": [{"$cursor": {...planner summary...}}, {"$group": {...}}, ...]}

  sharded (find shape or split aggregate)
      {"mergerPart": [...], "shardsPart": {shardName: summary, ...}}

A plan tree is flattened root-to-leaf into a list of stage dicts keeping only
the attributes in _PLAN_FIELDS.  Rejected plans are sorted by their canonical
text and shards by name, so neither candidate order nor shard reply order
reaches the output.  An explain matching none of these shapes raises
ExplainFormatError.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from harness.errors import ExplainFormatError
from harness.golden.serialize import to_json_one_line

logger = structlog.get_logger(__name__)

ALL_PLANS_EXECUTION = "allPlansExecution"

# Stage attributes that describe *what* the plan does, not how long it took.
_PLAN_FIELDS: tuple[str, ...] = (
    "stage",
    "filter",
    "keyPattern",
    "indexName",
    "isMultiKey",
    "isUnique",
    "isSparse",
    "direction",
    "indexBounds",
    "sortPattern",
    "limitAmount",
    "skipAmount",
    "transformBy",
    "type",
)

# Child links of a plan node that hold a single subtree.
_NESTED_CHILDREN: tuple[str, ...] = ("outerStage", "innerStage", "thenStage", "elseStage")


# ---------------------------------------------------------------------------
# Explain commands
# ---------------------------------------------------------------------------

def explain_aggregate(
    collection: Any,
    pipeline: list[dict[str, Any]],
    verbosity: str = ALL_PLANS_EXECUTION,
) -> dict[str, Any]:
    """Run ``explain`` for an aggregate on *collection*.

    Server errors surface as pymongo ``OperationFailure`` unchanged.
    """
    command = {
        "explain": {"aggregate": collection.name, "pipeline": pipeline, "cursor": {}},
        "verbosity": verbosity,
    }
    return collection.database.command(command)


def explain_distinct(
    collection: Any,
    key: str,
    filter: dict[str, Any] | None = None,
    verbosity: str = ALL_PLANS_EXECUTION,
) -> dict[str, Any]:
    """Run ``explain`` for a distinct on *collection*."""
    command = {
        "explain": {"distinct": collection.name, "key": key, "query": filter or {}},
        "verbosity": verbosity,
    }
    return collection.database.command(command)


# ---------------------------------------------------------------------------
# Plan flattening
# ---------------------------------------------------------------------------

def _unwrap(plan: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the stage tree of a classic or SBE plan."""
    if "queryPlan" in plan:
        return plan["queryPlan"]
    return plan


def flatten_plan(plan: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Flatten a plan tree root-to-leaf into a list of stage summaries.

    Single-child chains (``inputStage``) become consecutive list entries.
    Multi-child stages keep their children as nested lists under the same
    key the explain used (``inputStages``, ``outerStage``, …).
    """
    stages: list[dict[str, Any]] = []
    node: Mapping[str, Any] | None = plan
    while node is not None:
        entry = {name: node[name] for name in _PLAN_FIELDS if name in node}
        if "inputStages" in node:
            entry["inputStages"] = [flatten_plan(child) for child in node["inputStages"]]
        for link in _NESTED_CHILDREN:
            if link in node:
                entry[link] = flatten_plan(node[link])
        stages.append(entry)
        node = node.get("inputStage")
    return stages


def _canonical(value: Any) -> str:
    return to_json_one_line(value, sort_keys=True)


def summarize_planner(query_planner: Mapping[str, Any]) -> dict[str, Any]:
    """Summarize a ``queryPlanner`` section (or one shard's copy of it)."""
    if "winningPlan" not in query_planner:
        raise ExplainFormatError("queryPlanner section has no winningPlan")
    winning = flatten_plan(_unwrap(query_planner["winningPlan"]))
    rejected = [flatten_plan(_unwrap(p)) for p in query_planner.get("rejectedPlans", [])]
    return {
        "winningPlan": winning,
        "rejectedPlans": sorted(rejected, key=_canonical),
    }


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------

def _stage_name(stage: Mapping[str, Any]) -> str | None:
    for name in stage:
        if name.startswith("$"):
            return name
    return None


def summarize_stage(stage: Mapping[str, Any]) -> dict[str, Any]:
    """Keep a pipeline stage's name and definition, drop its statistics."""
    name = _stage_name(stage)
    if name is None:
        raise ExplainFormatError(f"pipeline stage has no $-prefixed name: {list(stage)}")
    if name == "$cursor":
        return {name: summarize_explain(stage[name])}
    return {name: stage[name]}


def _summarize_pipeline(stages: list[Mapping[str, Any]] | None) -> list[dict[str, Any]]:
    return [summarize_stage(stage) for stage in stages or []]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _summarize_sharded_find(winning: Mapping[str, Any]) -> dict[str, Any]:
    shards = {
        shard["shardName"]: summarize_planner(shard)
        for shard in winning["shards"]
    }
    return {
        "mergerPart": [{"stage": winning.get("stage")}],
        "shardsPart": {name: shards[name] for name in sorted(shards)},
    }


def _summarize_sharded_aggregate(explain: Mapping[str, Any]) -> dict[str, Any]:
    split = explain.get("splitPipeline") or {}
    shards = explain["shards"]
    return {
        "mergerPart": _summarize_pipeline(split.get("mergerPart")),
        "shardsPart": {name: summarize_explain(shards[name]) for name in sorted(shards)},
    }


def summarize_explain(explain: Mapping[str, Any]) -> dict[str, Any]:
    """Project a raw explain document onto an order-stable summary."""
    if isinstance(explain.get("shards"), Mapping):
        return _summarize_sharded_aggregate(explain)

    if "queryPlanner" in explain:
        planner = explain["queryPlanner"]
        winning = planner.get("winningPlan", {})
        if "shards" in winning:
            return _summarize_sharded_find(winning)
        return summarize_planner(planner)

    if "stages" in explain:
        return {"stages": _summarize_pipeline(explain["stages"])}

    logger.error("explain_format_unrecognised", keys=sorted(explain))
    raise ExplainFormatError(f"Unrecognised explain shape with keys {sorted(explain)}")
