#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ****************************************************************************************************************************************************
# * BSD 3-Clause License
# *
# * Copyright (c) 2025, Mana Battery
# * All rights reserved.
# *
# * Redistribution and use in source and binary forms, with or without modification, are permitted provided that the following conditions are met:
# *
# * 1. Redistributions of source code must retain the above copyright notice, this list of conditions and the following disclaimer.
# * 2. Redistributions in binary form must reproduce the above copyright notice, this list of conditions and the following disclaimer in the
# *    documentation and/or other materials provided with the distribution.
# * 3. Neither the name of the copyright holder nor the names of its contributors may be used to endorse or promote products derived from this
# *    software without specific prior written permission.
# *
# * THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO,
# * THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR
# * CONTRIBUTORS BE LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO,
# * PROCUREMENT OF SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF
# * LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE,
# * EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
# ****************************************************************************************************************************************************
"""Modularity scoring, project filtering and deterministic sorting."""

import logging
from typing import Dict, Iterable, List, Optional, Set
from dataclasses import dataclass, field

from pkggraph.constants import SCORE_PRECISION, TAG_JOIN_SEPARATOR
from pkggraph.graph_model import ProjectGraph
from pkggraph.metrics_engine import GraphMetrics

logger = logging.getLogger(__name__)


@dataclass
class FilterCriteria:
    """Operator-controlled filter settings.

    An upper bound of None means unbounded.

    Attributes:
        min_dependencies: Minimum outgoing edge count (inclusive)
        max_dependencies: Maximum outgoing edge count (inclusive) or None
        min_dependents: Minimum dependents count (inclusive)
        max_dependents: Maximum dependents count (inclusive) or None
        selected_tags: Keep projects carrying at least one of these tags (empty = all)
        show_cycles_only: Keep only projects that are part of a recorded cycle
        selected_project: Project highlighted by the operator, if any
    """

    min_dependencies: int = 0
    max_dependencies: Optional[int] = None
    min_dependents: int = 0
    max_dependents: Optional[int] = None
    selected_tags: Set[str] = field(default_factory=set)
    show_cycles_only: bool = False
    selected_project: Optional[str] = None


@dataclass
class ResultsSummary:
    """Headline numbers for a filtered project list.

    Attributes:
        total: Number of projects in the list
        no_dependencies: Projects without outgoing edges
        avg_dependencies: Mean outgoing edge count
        no_dependents: Projects that are never an edge target
        avg_dependents: Mean dependents count
    """

    total: int
    no_dependencies: int
    avg_dependencies: float
    no_dependents: int
    avg_dependents: float


def _within(value: int, minimum: int, maximum: Optional[int]) -> bool:
    return value >= minimum and (maximum is None or value <= maximum)


def modularity_score(project_id: str, graph: ProjectGraph, dependents_count: Dict[str, int]) -> float:
    """Coupling indicator: (outgoing edges + dependents) / total project count.

    Not bounded above by 1. An empty graph scores 0.0.
    """
    total = graph.project_count
    if total == 0:
        return 0.0
    return (graph.outgoing_count(project_id) + dependents_count.get(project_id, 0)) / total


def format_score(score: float) -> str:
    return f"{score:.{SCORE_PRECISION}f}"


def tag_sort_key(project_id: str, graph: ProjectGraph) -> str:
    """Comma-joined visible tags used as the last sort key."""
    return TAG_JOIN_SEPARATOR.join(graph.visible_tags(project_id))


def matches_filters(project_id: str, graph: ProjectGraph, metrics: GraphMetrics, criteria: FilterCriteria) -> bool:
    """Check a single project against the filter criteria.

    A minimum above the maximum simply matches nothing.
    """
    if not _within(graph.outgoing_count(project_id), criteria.min_dependencies, criteria.max_dependencies):
        return False
    if not _within(metrics.dependents_count.get(project_id, 0), criteria.min_dependents, criteria.max_dependents):
        return False
    if criteria.selected_tags and not any(tag in criteria.selected_tags for tag in graph.tags(project_id)):
        return False
    if criteria.show_cycles_only and not metrics.is_in_cycle(project_id):
        return False
    return True


def filter_projects(graph: ProjectGraph, metrics: GraphMetrics, criteria: FilterCriteria) -> List[str]:
    """Known projects passing the filter, in document order."""
    return [project_id for project_id in graph.project_ids if matches_filters(project_id, graph, metrics, criteria)]


def sort_projects(projects: Iterable[str], graph: ProjectGraph, metrics: GraphMetrics) -> List[str]:
    """Sort by outgoing edges, then dependents, then joined tag list (all ascending).

    sorted() is stable, so projects with equal keys keep their input order.
    """
    return sorted(
        projects,
        key=lambda p: (graph.outgoing_count(p), metrics.dependents_count.get(p, 0), tag_sort_key(p, graph)),
    )


def filter_and_sort_projects(graph: ProjectGraph, metrics: GraphMetrics, criteria: FilterCriteria) -> List[str]:
    """The displayed project list for the given criteria."""
    projects = sort_projects(filter_projects(graph, metrics, criteria), graph, metrics)
    logger.debug("%s of %s projects match the current filters", len(projects), graph.project_count)
    return projects


def collect_visible_tags(graph: ProjectGraph) -> List[str]:
    """Unique non-npm tags in order of first appearance (the tag filter population)."""
    tags: Dict[str, None] = {}
    for project_id in graph.project_ids:
        for tag in graph.visible_tags(project_id):
            tags.setdefault(tag, None)
    return list(tags)


def summarize_projects(projects: List[str], graph: ProjectGraph, metrics: GraphMetrics) -> ResultsSummary:
    """Headline numbers for the given project list."""
    targets = {edge.target for edge in graph.edges()}
    divisor = len(projects) or 1

    total_dependencies = sum(graph.outgoing_count(p) for p in projects)
    total_dependents = sum(metrics.dependents_count.get(p, 0) for p in projects)

    return ResultsSummary(
        total=len(projects),
        no_dependencies=sum(1 for p in projects if graph.outgoing_count(p) == 0),
        avg_dependencies=round(total_dependencies / divisor, SCORE_PRECISION),
        no_dependents=sum(1 for p in projects if p not in targets),
        avg_dependents=round(total_dependents / divisor, SCORE_PRECISION),
    )
