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
"""Layer classification and cycle-break suggestions.

Projects are classified into one architectural layer from their tags:

    app     - applications (top)
    shared  - code shared between applications
    lib     - libraries (bottom)
    unknown - no layer tag

The layering policy only lets dependencies flow downwards. A shared or lib
project must not depend on an app, and a lib project must not depend on an app
or a shared project.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from dataclasses import dataclass

from pkggraph.constants import (
    LAYER_APP,
    LAYER_LIB,
    LAYER_PRIORITY,
    LAYER_SHARED,
    LAYER_UNKNOWN,
    REASON_LEAST_DEPENDENTS,
    REASON_LIB_TO_APP_SHARED,
    REASON_SHARED_LIB_TO_APP,
    EmptyCycleQueryError,
)
from pkggraph.graph_model import ProjectGraph
from pkggraph.metrics_engine import cycle_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkSuggestion:
    """Edge proposed for removal to break a cycle.

    Attributes:
        source: Project the edge starts at
        target: Project the edge points to
        reason: Human-readable explanation (violated rule or fallback)
        is_violation: True when the edge breaks a layering rule
    """

    source: str
    target: str
    reason: str
    is_violation: bool = False

    def describe(self) -> str:
        return f"{self.source} -> {self.target} ({self.reason})"


def classify_layer(tags: Iterable[str]) -> str:
    """Classify a tag set into app / shared / lib / unknown by priority."""
    tag_set = set(tags)
    for layer in LAYER_PRIORITY:
        if layer in tag_set:
            return layer
    return LAYER_UNKNOWN


def layering_violation(source_layer: str, target_layer: str) -> Optional[str]:
    """Return the violated rule for a source->target layer pair, or None."""
    if source_layer in (LAYER_SHARED, LAYER_LIB) and target_layer == LAYER_APP:
        return REASON_SHARED_LIB_TO_APP
    if source_layer == LAYER_LIB and target_layer in (LAYER_APP, LAYER_SHARED):
        return REASON_LIB_TO_APP_SHARED
    return None


def cycle_edges(cycle: Sequence[str]) -> List[Tuple[str, str]]:
    """Edges of a cycle in order, wrapping from the last member to the first."""
    return [(cycle[i], cycle[(i + 1) % len(cycle)]) for i in range(len(cycle))]


def suggest_link_to_break(cycle: Sequence[str], graph: ProjectGraph, dependents_count: Mapping[str, int]) -> LinkSuggestion:
    """Propose the edge to remove in order to break a cycle.

    The first edge in cycle order that violates the layering policy wins.
    Without violations the edge whose target has the fewest dependents is
    chosen, ties going to the earliest edge.

    Args:
        cycle: Cycle members in discovery order
        graph: Project graph the cycle came from (for tags)
        dependents_count: Dependents count per project

    Returns:
        LinkSuggestion for the cycle

    Raises:
        EmptyCycleQueryError: If the cycle is empty
    """
    if not cycle:
        raise EmptyCycleQueryError("Cannot suggest a link to break for an empty cycle")

    edges = cycle_edges(cycle)

    for source, target in edges:
        reason = layering_violation(classify_layer(graph.tags(source)), classify_layer(graph.tags(target)))
        if reason is not None:
            return LinkSuggestion(source=source, target=target, reason=reason, is_violation=True)

    best_source, best_target = edges[0]
    best_count = dependents_count.get(best_target, 0)
    for source, target in edges[1:]:
        count = dependents_count.get(target, 0)
        if count < best_count:
            best_source, best_target, best_count = source, target, count

    return LinkSuggestion(source=best_source, target=best_target, reason=REASON_LEAST_DEPENDENTS.format(count=best_count))


def suggest_links_for_cycles(cycles: Iterable[Sequence[str]], graph: ProjectGraph, dependents_count: Mapping[str, int]) -> Dict[str, LinkSuggestion]:
    """Suggest a link to break for every cycle, keyed by cycle identity key."""
    suggestions: Dict[str, LinkSuggestion] = {}
    for cycle in cycles:
        if not cycle:
            logger.warning("Skipping empty cycle")
            continue
        suggestions[cycle_key(cycle)] = suggest_link_to_break(cycle, graph, dependents_count)
    return suggestions


@dataclass(frozen=True)
class LayerViolation:
    """A dependency edge that breaks the layering policy."""

    source: str
    target: str
    source_layer: str
    target_layer: str
    reason: str


def find_layer_violations(graph: ProjectGraph) -> List[LayerViolation]:
    """List every edge (cyclic or not) between known projects that breaks the layering policy.

    Duplicate edges are reported once.
    """
    violations: List[LayerViolation] = []
    seen = set()
    for edge in graph.edges():
        if not graph.has_project(edge.target) or (edge.source, edge.target) in seen:
            continue
        source_layer = classify_layer(graph.tags(edge.source))
        target_layer = classify_layer(graph.tags(edge.target))
        reason = layering_violation(source_layer, target_layer)
        if reason is not None:
            seen.add((edge.source, edge.target))
            violations.append(LayerViolation(edge.source, edge.target, source_layer, target_layer, reason))

    logger.debug("Found %s layering violations", len(violations))
    return violations


def count_projects_by_layer(graph: ProjectGraph) -> Dict[str, int]:
    """Number of projects per layer, every layer present."""
    counts = {layer: 0 for layer in LAYER_PRIORITY + (LAYER_UNKNOWN,)}
    for project_id in graph.project_ids:
        counts[classify_layer(graph.tags(project_id))] += 1
    return counts
