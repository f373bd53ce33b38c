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
"""Pytest configuration and shared fixtures for packageGraphCheck tests.

Graph fixtures come in two flavours:
- *_document: raw graph documents as handed over by the loader
- *_graph: the same documents normalized through load_graph_document()

Fixture Complexity Levels:
- small: 3-5 projects, hand-checkable metrics
- workspace: ~10 projects with tags, npm noise, a missing target and two cycles
"""

import os
import sys
import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional, Sequence, Tuple

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pkggraph.graph_model import ProjectGraph, load_graph_document  # noqa: E402
from pkggraph.metrics_engine import GraphMetrics, analyze_graph  # noqa: E402

Document = Dict[str, Any]


def make_document(edges: Sequence[Tuple[str, str]], tags: Optional[Dict[str, List[str]]] = None, projects: Optional[Sequence[str]] = None) -> Document:
    """Build a graph document from an edge list.

    Args:
        edges: (source, target) pairs in insertion order (duplicates kept)
        tags: Optional tags per project
        projects: Project ids; defaults to every id mentioned in edges and tags

    Returns:
        Document in the {"nodes": ..., "dependencies": ...} shape
    """
    tags = tags or {}
    if projects is None:
        ordered: Dict[str, None] = {}
        for source, target in edges:
            ordered.setdefault(source, None)
            ordered.setdefault(target, None)
        for project_id in tags:
            ordered.setdefault(project_id, None)
        projects = list(ordered)

    dependencies: Dict[str, List[Dict[str, str]]] = {}
    for source, target in edges:
        dependencies.setdefault(source, []).append({"target": target})

    return {
        "nodes": {p: {"name": p, "data": {"tags": list(tags.get(p, []))}} for p in projects},
        "dependencies": dependencies,
    }


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for tests.

    Scope: function (default)
    Use for: File I/O operations that need isolation
    """
    tmpdir = tempfile.mkdtemp(prefix="pkggraph_test_")
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def build_graph() -> Callable[..., ProjectGraph]:
    """Factory fixture: build_graph(edges, tags=None, projects=None) -> ProjectGraph."""

    def _build(edges: Sequence[Tuple[str, str]], tags: Optional[Dict[str, List[str]]] = None, projects: Optional[Sequence[str]] = None) -> ProjectGraph:
        return load_graph_document(make_document(edges, tags, projects))

    return _build


@pytest.fixture
def triangle_cycle_graph() -> ProjectGraph:
    """A -> B -> C -> A."""
    return load_graph_document(make_document([("A", "B"), ("B", "C"), ("C", "A")]))


@pytest.fixture
def diamond_graph() -> ProjectGraph:
    """Acyclic diamond: A -> B, A -> C, B -> D, C -> D."""
    return load_graph_document(make_document([("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")]))


@pytest.fixture
def chain_graph() -> ProjectGraph:
    """Linear chain: A -> B -> C -> D."""
    return load_graph_document(make_document([("A", "B"), ("B", "C"), ("C", "D")]))


@pytest.fixture(scope="module")
def workspace_document() -> Document:
    """Realistic workspace graph.

    Structure:
        shell-app [app]       -> ui-kit, auth, npm-only
        admin-app [app]       -> ui-kit, data-access
        ui-kit [shared]       -> design-tokens, utils
        auth [shared]         -> utils, session
        session [shared]      -> auth                    (cycle auth <-> session)
        data-access [lib]     -> utils, admin-app        (lib -> app violation, cycle)
        utils [lib]           -> left-pad                (missing target)
        design-tokens [lib]
        npm-only [npm:react]
        docs []               -> utils, utils            (duplicate edge)

    Cycles:
        admin-app -> data-access -> admin-app
        auth -> session -> auth
    """
    return {
        "nodes": {
            "shell-app": {"data": {"tags": ["app", "npm:react"]}},
            "admin-app": {"data": {"tags": ["app"]}},
            "ui-kit": {"data": {"tags": ["shared", "npm:react"]}},
            "auth": {"data": {"tags": ["shared", "scope:security"]}},
            "session": {"data": {"tags": ["shared", "scope:security"]}},
            "data-access": {"data": {"tags": ["lib"]}},
            "utils": {"data": {"tags": ["lib"]}},
            "design-tokens": {"data": {"tags": ["lib", "type:style"]}},
            "npm-only": {"data": {"tags": ["npm:react"]}},
            "docs": {"data": {}},
        },
        "dependencies": {
            "shell-app": [{"target": "ui-kit"}, {"target": "auth"}, {"target": "npm-only"}],
            "admin-app": [{"target": "ui-kit"}, {"target": "data-access"}],
            "ui-kit": [{"target": "design-tokens"}, {"target": "utils"}],
            "auth": [{"target": "utils"}, {"target": "session"}],
            "session": [{"target": "auth"}],
            "data-access": [{"target": "utils"}, {"target": "admin-app"}],
            "utils": [{"target": "left-pad"}],
            "design-tokens": [],
            "npm-only": [],
            "docs": [{"target": "utils"}, {"target": "utils"}],
        },
    }


@pytest.fixture
def workspace_graph(workspace_document: Document) -> ProjectGraph:
    return load_graph_document(workspace_document)


@pytest.fixture
def workspace_metrics(workspace_graph: ProjectGraph) -> GraphMetrics:
    return analyze_graph(workspace_graph)


@pytest.fixture
def workspace_file(temp_dir: str, workspace_document: Document) -> str:
    """Workspace document written to a JSON file."""
    path = os.path.join(temp_dir, "project-graph.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(workspace_document, f, indent=2)
    return path
