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
"""Dependents count, depth and cycle detection over a project graph.

A single depth-first traversal computes depth and cycles together. The
traversal uses an explicit work stack so pathological graphs cannot exhaust
the interpreter's recursion limit. Three pieces of state drive it:

- processed: projects whose depth is final (memoized, computed exactly once)
- on_path:   projects on the active traversal path
- path:      the ordered active path, used to cut cycles out of it

An edge whose target is on the active path is a back-edge. The cycle is the
suffix of the path starting at that target; it is recorded once per identity
key and contributes nothing to depth. An edge between members of a discovered
cycle adds no step of its own but still carries the target's depth, so every
node of a pure cycle has depth 0 while a path leaving the cycle raises the
depth of every member that reaches it.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
from dataclasses import dataclass, field

import networkx as nx

from pkggraph.constants import CYCLE_SEPARATOR
from pkggraph.graph_model import ProjectGraph

logger = logging.getLogger(__name__)

Cycle = Tuple[str, ...]


def cycle_key(cycle: Sequence[str]) -> str:
    """Identity key of a cycle: its members joined in discovery order."""
    return CYCLE_SEPARATOR.join(cycle)


def format_cycle_path(cycle: Sequence[str]) -> str:
    """Human-readable closed path, e.g. "a -> b -> c -> a"."""
    if not cycle:
        return ""
    return CYCLE_SEPARATOR.join(list(cycle) + [cycle[0]])


def normalize_cycle_rotation(cycle: Sequence[str]) -> Cycle:
    """Rotate a cycle so it starts at its lexicographically smallest member.

    Two discoveries of the same structural cycle from different entry points
    normalize to the same tuple.
    """
    if not cycle:
        return ()
    start = min(range(len(cycle)), key=lambda i: cycle[i])
    return tuple(cycle[start:]) + tuple(cycle[:start])


@dataclass
class GraphMetrics:
    """Derived metrics for one analysis pass.

    Attributes:
        dependents_count: Project -> number of edges targeting it (multiplicity)
        depth: Project -> longest path length following outgoing edges
        cycles: Unique cycles in discovery order
        cycle_paths: Back-edge target -> path string of the cycle first found through it
        projects_in_cycles: Every project that is a member of at least one cycle
    """

    dependents_count: Dict[str, int] = field(default_factory=dict)
    depth: Dict[str, int] = field(default_factory=dict)
    cycles: List[Cycle] = field(default_factory=list)
    cycle_paths: Dict[str, str] = field(default_factory=dict)
    projects_in_cycles: Set[str] = field(default_factory=set)

    def is_in_cycle(self, project_id: str) -> bool:
        return project_id in self.projects_in_cycles

    def cycle_path_for(self, project_id: str) -> str:
        """Path string for a project, empty when it is not part of any cycle.

        Back-edge targets report the path recorded for them; other members
        report the first cycle they belong to.
        """
        if project_id in self.cycle_paths:
            return self.cycle_paths[project_id]
        for cycle in self.cycles:
            if project_id in cycle:
                return format_cycle_path(cycle)
        return ""

    def cycles_containing(self, project_id: str) -> List[Cycle]:
        return [cycle for cycle in self.cycles if project_id in cycle]


@dataclass
class _Frame:
    """Work-stack entry: a project and how far its edge list has been walked."""

    node: str
    index: int = 0
    best: int = 0


def compute_dependents_count(graph: ProjectGraph) -> Dict[str, int]:
    """Count incoming edges per project.

    Every known project starts at 0. Duplicate edges are counted individually
    and missing targets receive counts as well.
    """
    dependents_count: Dict[str, int] = {project_id: 0 for project_id in graph.project_ids}
    for edge in graph.edges():
        dependents_count[edge.target] = dependents_count.get(edge.target, 0) + 1
    return dependents_count


def compute_depth_and_cycles(graph: ProjectGraph) -> Tuple[Dict[str, int], List[Cycle], Dict[str, str]]:
    """Compute per-project depth and discover cycles in one traversal.

    Args:
        graph: Project graph (not modified)

    Returns:
        Tuple of (depth, cycles, cycle_paths)
    """
    depth: Dict[str, int] = {}
    cycles: List[Cycle] = []
    cycle_index: Dict[str, int] = {}
    cycle_paths: Dict[str, str] = {}
    membership: Dict[str, Set[int]] = defaultdict(set)

    processed: Set[str] = set()
    on_path: Set[str] = set()
    path: List[str] = []

    def contribution(source: str, target: str) -> int:
        # Edges inside a discovered cycle add no step
        if membership[source] & membership[target]:
            return depth[target]
        return 1 + depth[target]

    def record_cycle(target: str) -> None:
        cycle: Cycle = tuple(path[path.index(target) :])
        key = cycle_key(cycle)
        if key not in cycle_index:
            cycle_index[key] = len(cycles)
            cycles.append(cycle)
            cycle_paths.setdefault(target, format_cycle_path(cycle))
            logger.debug("Found cycle: %s", cycle_paths.get(target))
        for member in cycle:
            membership[member].add(cycle_index[key])

    for root in graph.project_ids:
        if root in processed:
            continue

        stack = [_Frame(root)]
        on_path.add(root)
        path.append(root)

        while stack:
            frame = stack[-1]
            edges = graph.outgoing(frame.node)

            if frame.index < len(edges):
                target = edges[frame.index].target
                frame.index += 1

                if not graph.has_project(target):
                    # External/missing reference: never visited
                    continue
                if target in on_path:
                    record_cycle(target)
                    continue
                if target in processed:
                    frame.best = max(frame.best, contribution(frame.node, target))
                    continue

                on_path.add(target)
                path.append(target)
                stack.append(_Frame(target))
                continue

            stack.pop()
            on_path.discard(frame.node)
            path.pop()
            processed.add(frame.node)
            depth[frame.node] = frame.best

            if stack:
                parent = stack[-1]
                parent.best = max(parent.best, contribution(parent.node, frame.node))

    return depth, cycles, cycle_paths


def analyze_graph(graph: ProjectGraph) -> GraphMetrics:
    """Run the full metrics pass over a graph.

    Args:
        graph: Project graph (not modified)

    Returns:
        GraphMetrics with a defined value for every known project
    """
    dependents_count = compute_dependents_count(graph)
    depth, cycles, cycle_paths = compute_depth_and_cycles(graph)
    # Traversal finishes projects in post-order; report them in document order
    depth = {project_id: depth[project_id] for project_id in graph.project_ids}

    projects_in_cycles: Set[str] = set()
    for cycle in cycles:
        projects_in_cycles.update(cycle)

    logger.debug("Analyzed %s projects: %s cycles, %s projects in cycles", graph.project_count, len(cycles), len(projects_in_cycles))

    return GraphMetrics(
        dependents_count=dependents_count,
        depth=depth,
        cycles=cycles,
        cycle_paths=cycle_paths,
        projects_in_cycles=projects_in_cycles,
    )


def find_cycle_components(graph: ProjectGraph) -> Tuple[List[Set[str]], List[str]]:
    """Find strongly connected components (cyclic groups) and self-loops.

    Missing targets are left out since they have no outgoing edges.

    Args:
        graph: Project graph

    Returns:
        Tuple of (components, self_loops) where components holds groups of
        more than one project and self_loops the projects depending on themselves
    """
    G: nx.DiGraph[str] = nx.DiGraph()
    G.add_nodes_from(graph.project_ids)
    G.add_edges_from((edge.source, edge.target) for edge in graph.edges() if graph.has_project(edge.source) and graph.has_project(edge.target))

    components: List[Set[str]] = []
    self_loops: List[str] = []
    for scc in nx.strongly_connected_components(G):
        if len(scc) > 1:
            components.append(set(scc))
        else:
            node = next(iter(scc))
            if G.has_edge(node, node):
                self_loops.append(node)

    return components, self_loops


def unique_structural_cycles(cycles: Iterable[Sequence[str]]) -> List[Cycle]:
    """Collapse rotations of the same cycle, keeping first-seen order."""
    seen: Set[Cycle] = set()
    result: List[Cycle] = []
    for cycle in cycles:
        normalized = normalize_cycle_rotation(cycle)
        if normalized not in seen:
            seen.add(normalized)
            result.append(tuple(cycle))
    return result


def longest_depth(metrics: GraphMetrics) -> Optional[Tuple[str, int]]:
    """Project with the greatest depth (first in project order on ties), or None for an empty graph."""
    if not metrics.depth:
        return None
    project_id = max(metrics.depth, key=lambda p: metrics.depth[p])
    return project_id, metrics.depth[project_id]
