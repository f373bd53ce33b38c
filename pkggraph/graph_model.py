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
"""Normalized in-memory model of a project dependency graph.

The raw document handed over by the loader has two top-level collections:

    {
        "nodes": {"app-shell": {"data": {"tags": ["app", "npm:react"]}}, ...},
        "dependencies": {"app-shell": [{"target": "ui-kit"}, ...], ...}
    }

load_graph_document() validates that shape and freezes it into a ProjectGraph.
Edges may point at ids that are not in the project collection; those are kept
as external/missing references and are never treated as errors.
"""

import json
import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple
from dataclasses import dataclass, field

import networkx as nx

from pkggraph.constants import DEPENDENCIES_KEY, EXTERNAL_TAG_PREFIX, NODES_KEY, TAG_JOIN_SEPARATOR, TARGET_KEY, MalformedInputError

logger = logging.getLogger(__name__)


def is_external_tag(tag: str) -> bool:
    """Return True for tags that describe external npm packages."""
    return tag.startswith(EXTERNAL_TAG_PREFIX)


@dataclass(frozen=True)
class Project:
    """A single project node.

    Attributes:
        project_id: Unique identifier of the project
        tags: Tags in document order (including external npm: tags)
    """

    project_id: str
    tags: Tuple[str, ...] = ()

    @property
    def visible_tags(self) -> Tuple[str, ...]:
        """Tags without the external npm: noise."""
        return tuple(tag for tag in self.tags if not is_external_tag(tag))


@dataclass(frozen=True)
class DependencyEdge:
    """Directed "depends on" relation from source to target."""

    source: str
    target: str


@dataclass(frozen=True)
class ProjectGraph:
    """Immutable (projects, edges) pair used for one analysis pass.

    Attributes:
        projects: Project id -> Project, in document order
        dependencies: Source id -> ordered edges (duplicates preserved)
    """

    projects: Mapping[str, Project] = field(default_factory=lambda: MappingProxyType({}))
    dependencies: Mapping[str, Tuple[DependencyEdge, ...]] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def project_ids(self) -> List[str]:
        return list(self.projects.keys())

    @property
    def project_count(self) -> int:
        return len(self.projects)

    def has_project(self, project_id: str) -> bool:
        return project_id in self.projects

    def outgoing(self, project_id: str) -> Tuple[DependencyEdge, ...]:
        return self.dependencies.get(project_id, ())

    def outgoing_count(self, project_id: str) -> int:
        return len(self.outgoing(project_id))

    def edges(self) -> List[DependencyEdge]:
        """All edges in source order, then insertion order."""
        return [edge for edges in self.dependencies.values() for edge in edges]

    def tags(self, project_id: str) -> Tuple[str, ...]:
        project = self.projects.get(project_id)
        return project.tags if project is not None else ()

    def visible_tags(self, project_id: str) -> Tuple[str, ...]:
        project = self.projects.get(project_id)
        return project.visible_tags if project is not None else ()

    def dependents_of(self, project_id: str) -> List[str]:
        """Source ids with at least one edge to project_id, in source order."""
        return [source for source, edges in self.dependencies.items() if any(edge.target == project_id for edge in edges)]

    def missing_targets(self) -> List[str]:
        """Edge targets that are not part of the project set, in first-seen order."""
        seen: Dict[str, None] = {}
        for edge in self.edges():
            if edge.target not in self.projects:
                seen.setdefault(edge.target, None)
        return list(seen)

    def to_networkx(self) -> "nx.MultiDiGraph[str]":
        """Convert to a NetworkX MultiDiGraph.

        Duplicate edges are kept as parallel edges. Nodes that only appear as
        edge targets carry missing=True.
        """
        G: nx.MultiDiGraph[str] = nx.MultiDiGraph()

        for project_id, project in self.projects.items():
            G.add_node(project_id, tags=TAG_JOIN_SEPARATOR.join(project.visible_tags), missing=False)

        for edge in self.edges():
            for node in (edge.source, edge.target):
                if node not in G:
                    G.add_node(node, tags="", missing=True)
            G.add_edge(edge.source, edge.target)

        logger.debug("Built graph with %s nodes and %s edges", G.number_of_nodes(), G.number_of_edges())
        return G


def _extract_tags(project_id: str, node: Any) -> Tuple[str, ...]:
    """Read the tag list of a node definition (data.tags or tags)."""
    if not isinstance(node, Mapping):
        raise MalformedInputError(f"Project '{project_id}' definition must be an object, got {type(node).__name__}")

    data = node.get("data")
    if isinstance(data, Mapping) and "tags" in data:
        raw_tags = data.get("tags")
    else:
        raw_tags = node.get("tags")

    if raw_tags is None:
        return ()
    if not isinstance(raw_tags, (list, tuple)):
        raise MalformedInputError(f"Tags of project '{project_id}' must be a list")
    return tuple(str(tag) for tag in raw_tags)


def _extract_edges(source: str, records: Any) -> Tuple[DependencyEdge, ...]:
    """Read the ordered dependency records of one source."""
    if records is None:
        return ()
    if not isinstance(records, (list, tuple)):
        raise MalformedInputError(f"Dependencies of '{source}' must be a list")

    edges: List[DependencyEdge] = []
    for index, record in enumerate(records):
        if not isinstance(record, Mapping) or TARGET_KEY not in record:
            raise MalformedInputError(f"Dependency #{index} of '{source}' has no '{TARGET_KEY}' field")
        edges.append(DependencyEdge(source=source, target=str(record[TARGET_KEY])))
    return tuple(edges)


def load_graph_document(document: Any) -> ProjectGraph:
    """Validate a raw graph document and normalize it into a ProjectGraph.

    Args:
        document: Parsed JSON object with "nodes" and "dependencies" collections

    Returns:
        Frozen ProjectGraph

    Raises:
        MalformedInputError: If the document or either top-level collection is missing or malformed
    """
    if not isinstance(document, Mapping):
        raise MalformedInputError("Invalid project graph data format: expected an object")

    for key in (NODES_KEY, DEPENDENCIES_KEY):
        if key not in document or document[key] is None:
            raise MalformedInputError(f"Invalid project graph data format: missing '{key}'")
        if not isinstance(document[key], Mapping):
            raise MalformedInputError(f"Invalid project graph data format: '{key}' must be an object")

    projects: Dict[str, Project] = {}
    for project_id, node in document[NODES_KEY].items():
        project_id = str(project_id)
        projects[project_id] = Project(project_id=project_id, tags=_extract_tags(project_id, node))

    dependencies: Dict[str, Tuple[DependencyEdge, ...]] = {}
    for source, records in document[DEPENDENCIES_KEY].items():
        source = str(source)
        dependencies[source] = _extract_edges(source, records)

    graph = ProjectGraph(projects=MappingProxyType(projects), dependencies=MappingProxyType(dependencies))

    missing = graph.missing_targets()
    if missing:
        logger.info("Graph references %s external/missing project(s)", len(missing))
    logger.debug("Loaded %s projects and %s edges", graph.project_count, len(graph.edges()))
    return graph


def load_graph_file(path: str) -> ProjectGraph:
    """Load a graph document from a UTF-8 JSON file.

    Raises:
        MalformedInputError: If the file cannot be read or parsed, or has the wrong shape
    """
    logger.info("Loading project graph from %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except (IOError, OSError) as e:
        raise MalformedInputError(f"Failed to load project graph data from '{path}': {e}") from e
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"Project graph '{path}' is not valid JSON: {e}") from e

    return load_graph_document(document)
