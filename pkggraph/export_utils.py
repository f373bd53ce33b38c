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
"""Export utilities for writing the analyzed project view to files."""

import io
import os
import csv
import json
import logging
from typing import Any, Dict, List, Sequence
from dataclasses import dataclass

import networkx as nx
from networkx.readwrite import json_graph

from pkggraph.color_utils import print_error, print_success
from pkggraph.constants import CSV_EXPORT_HEADER, CSV_NO, CSV_YES, DEFAULT_GRAPH_FORMAT, SUPPORTED_GRAPH_FORMATS, TAG_JOIN_SEPARATOR
from pkggraph.graph_model import ProjectGraph
from pkggraph.metrics_engine import GraphMetrics
from pkggraph.policy_advisor import classify_layer
from pkggraph.scoring import format_score, modularity_score

logger = logging.getLogger(__name__)


@dataclass
class ExportRow:
    """One exported project.

    Attributes:
        package: Project id
        dependencies: Outgoing edge count
        dependents: Dependents count
        depth: Project depth
        in_cycle: Whether the project is part of a recorded cycle
        cycle_path: Cycle path string, empty when not in a cycle
        modularity: Modularity score rendered with two decimals
        tags: Comma-joined visible tags
    """

    package: str
    dependencies: int
    dependents: int
    depth: int
    in_cycle: bool
    cycle_path: str
    modularity: str
    tags: str


def build_export_rows(projects: Sequence[str], graph: ProjectGraph, metrics: GraphMetrics) -> List[ExportRow]:
    """Build export rows for an already filtered and sorted project list."""
    rows: List[ExportRow] = []
    for project_id in projects:
        rows.append(
            ExportRow(
                package=project_id,
                dependencies=graph.outgoing_count(project_id),
                dependents=metrics.dependents_count.get(project_id, 0),
                depth=metrics.depth.get(project_id, 0),
                in_cycle=metrics.is_in_cycle(project_id),
                cycle_path=metrics.cycle_path_for(project_id),
                modularity=format_score(modularity_score(project_id, graph, metrics.dependents_count)),
                tags=TAG_JOIN_SEPARATOR.join(graph.visible_tags(project_id)),
            )
        )
    return rows


def _quoted(value: str) -> str:
    # The tag column is always quoted, embedded quotes doubled
    return '"' + value.replace('"', '""') + '"'


def format_projects_csv(rows: Sequence[ExportRow]) -> str:
    """Render export rows as comma-separated text.

    The header row is written unquoted, the Tags column is always quoted and
    every other column is quoted only when needed.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="")

    writer.writerow(CSV_EXPORT_HEADER)
    for row in rows:
        buffer.write("\n")
        writer.writerow(
            [
                row.package,
                row.dependencies,
                row.dependents,
                row.depth,
                CSV_YES if row.in_cycle else CSV_NO,
                row.cycle_path,
                row.modularity,
            ]
        )
        buffer.write(",")
        buffer.write(_quoted(row.tags))
    buffer.write("\n")

    return buffer.getvalue()


def export_projects_to_csv(filename: str, projects: Sequence[str], graph: ProjectGraph, metrics: GraphMetrics) -> bool:
    """Write the project view to a UTF-8 CSV file.

    Args:
        filename: Output CSV filename
        projects: Filtered and sorted project ids
        graph: Project graph
        metrics: Metrics for the graph

    Returns:
        True if successful
    """
    content = format_projects_csv(build_export_rows(projects, graph, metrics))
    try:
        with open(filename, "w", newline="", encoding="utf-8") as f:
            f.write(content)
    except IOError as e:
        logger.error("Failed to export CSV: %s", e)
        print_error(f"Failed to export CSV: {e}")
        return False

    logger.info("Exported %s projects to %s", len(projects), filename)
    print_success(f"Exported {len(projects)} projects to {filename}")
    return True


def annotate_graph(graph: ProjectGraph, metrics: GraphMetrics) -> "nx.MultiDiGraph[Any]":
    """NetworkX view of the graph with metrics as node attributes.

    Node attributes:
        - dependencies, dependents, depth: Counts from the metrics pass
        - in_cycle: Whether the node is part of a recorded cycle
        - modularity: Modularity score
        - layer: app / shared / lib / unknown
        - tags: Comma-joined visible tags
        - missing: True for external/missing targets
    """
    G = graph.to_networkx()
    for node in G.nodes():
        attrs: Dict[str, Any] = G.nodes[node]
        attrs["dependencies"] = graph.outgoing_count(node)
        attrs["dependents"] = metrics.dependents_count.get(node, 0)
        attrs["depth"] = metrics.depth.get(node, 0)
        attrs["in_cycle"] = metrics.is_in_cycle(node)
        attrs["modularity"] = round(modularity_score(node, graph, metrics.dependents_count), 4)
        attrs["layer"] = classify_layer(graph.tags(node))
    return G


def export_graph(filename: str, graph: ProjectGraph, metrics: GraphMetrics) -> bool:
    """Export the annotated dependency graph.

    Supports: GraphML (.graphml), GEXF (.gexf), JSON node-link (.json).
    Unknown extensions fall back to GraphML with the extension appended.

    Returns:
        True if successful
    """
    ext = os.path.splitext(filename)[1].lower()
    if ext not in SUPPORTED_GRAPH_FORMATS:
        logger.warning("Unsupported graph format: %s. Defaulting to GraphML.", ext)
        filename = filename + DEFAULT_GRAPH_FORMAT
        ext = DEFAULT_GRAPH_FORMAT

    G = annotate_graph(graph, metrics)

    try:
        if ext == ".graphml":
            nx.write_graphml(G, filename)
        elif ext == ".gexf":
            nx.write_gexf(G, filename)
        else:
            data = json_graph.node_link_data(G)
            with open(filename, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
    except (IOError, nx.NetworkXError) as e:
        logger.error("Failed to export graph: %s", e)
        print_error(f"Failed to export graph: {e}")
        return False

    logger.info("Exported dependency graph to %s", filename)
    print_success(f"Exported dependency graph to {filename}")
    return True
