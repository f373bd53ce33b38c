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
"""One-hop neighborhood view around a selected project.

The view contains the selected project, its direct dependencies and its
direct dependents, with display attributes (color, shape, size, tooltip)
and de-duplicated edges.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Tuple
from dataclasses import dataclass, field

import networkx as nx

from pkggraph.constants import (
    DEFAULT_NODE_SHAPE,
    DEFAULT_NODE_SIZE,
    DEPENDENCY_NODE_COLOR,
    DEPENDENT_NODE_COLOR,
    MISSING_NODE_LABEL,
    SELECTED_NODE_COLOR,
    SELECTED_NODE_SHAPE,
    SELECTED_NODE_SIZE,
    TAG_JOIN_SEPARATOR,
)
from pkggraph.graph_model import ProjectGraph
from pkggraph.metrics_engine import GraphMetrics

logger = logging.getLogger(__name__)


@dataclass
class NeighborNode:
    node_id: str
    label: str
    title: str
    color: str
    shape: str = DEFAULT_NODE_SHAPE
    size: int = DEFAULT_NODE_SIZE


@dataclass
class Neighborhood:
    """Nodes and edges of a neighborhood view (both empty when nothing is selected)."""

    nodes: List[NeighborNode] = field(default_factory=list)
    edges: List[Tuple[str, str]] = field(default_factory=list)

    def node_ids(self) -> List[str]:
        return [node.node_id for node in self.nodes]


def _join_or_none(items: List[str]) -> str:
    return TAG_JOIN_SEPARATOR.join(items) or "None"


def _describe(project_id: str, graph: ProjectGraph, metrics: GraphMetrics) -> str:
    targets = [edge.target for edge in graph.outgoing(project_id)]
    return f"{project_id}\nDependencies: {_join_or_none(targets)}\nDependents: {metrics.dependents_count.get(project_id, 0)}"


class _Builder:
    def __init__(self) -> None:
        self.result = Neighborhood()
        self.node_ids: Set[str] = set()
        self.edge_keys: Set[Tuple[str, str]] = set()

    def add_node(self, node: NeighborNode) -> None:
        if node.node_id in self.node_ids:
            logger.warning("Duplicate node ID detected: %s", node.node_id)
            return
        self.node_ids.add(node.node_id)
        self.result.nodes.append(node)

    def add_edge(self, source: str, target: str) -> None:
        if (source, target) in self.edge_keys:
            logger.warning("Duplicate edge detected: %s->%s", source, target)
            return
        self.edge_keys.add((source, target))
        self.result.edges.append((source, target))


def build_neighborhood(selected: Optional[str], graph: ProjectGraph, metrics: GraphMetrics) -> Neighborhood:
    """Build the neighborhood view for the selected project.

    A project that is both a dependency and a dependent of the selection is
    drawn once (as a dependency) with edges in both directions.

    Args:
        selected: Selected project id, or None
        graph: Project graph
        metrics: Metrics for the graph

    Returns:
        Neighborhood (empty when nothing is selected)
    """
    if not selected:
        return Neighborhood()

    builder = _Builder()
    targets = [edge.target for edge in graph.outgoing(selected)]
    dependents = graph.dependents_of(selected)

    builder.add_node(
        NeighborNode(
            node_id=selected,
            label=selected,
            title=f"{selected}\nDependencies: {_join_or_none(targets)}\nDependents: {_join_or_none(dependents)}",
            color=SELECTED_NODE_COLOR,
            shape=SELECTED_NODE_SHAPE,
            size=SELECTED_NODE_SIZE,
        )
    )

    for target in targets:
        title = _describe(target, graph, metrics) if graph.has_project(target) else f"{target}\n{MISSING_NODE_LABEL}"
        builder.add_node(NeighborNode(node_id=target, label=target, title=title, color=DEPENDENCY_NODE_COLOR))
        builder.add_edge(selected, target)

    for dependent in dependents:
        builder.add_node(NeighborNode(node_id=dependent, label=dependent, title=_describe(dependent, graph, metrics), color=DEPENDENT_NODE_COLOR))
        builder.add_edge(dependent, selected)

    logger.debug("Neighborhood of %s: %s nodes, %s edges", selected, len(builder.result.nodes), len(builder.result.edges))
    return builder.result


def neighborhood_to_networkx(neighborhood: Neighborhood) -> "nx.DiGraph[Any]":
    """Convert a neighborhood view to a DiGraph carrying the display attributes."""
    G: nx.DiGraph[str] = nx.DiGraph()
    for node in neighborhood.nodes:
        attrs: Dict[str, Any] = {"label": node.label, "title": node.title, "color": node.color, "shape": node.shape, "size": node.size}
        G.add_node(node.node_id, **attrs)
    G.add_edges_from(neighborhood.edges)
    return G
