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
"""
Package Graph Analyzer

Analyzes a workspace project graph (projects tagged with categories and their
"depends on" edges) to surface circular dependencies, layering-policy
violations and per-project coupling metrics.

USAGE:
    python3 packageGraphCheck.py <project-graph.json> [options]

EXAMPLES:
    # Show the full report
    python3 packageGraphCheck.py project-graph.json

    # Only projects with 2-5 dependencies tagged 'shared'
    python3 packageGraphCheck.py project-graph.json --min-deps 2 --max-deps 5 --tag shared

    # Only projects that take part in a cycle
    python3 packageGraphCheck.py project-graph.json --cycles-only

    # Show the neighborhood of one project
    python3 packageGraphCheck.py project-graph.json --select ui-kit

    # Export the filtered view to CSV and the whole graph to GraphML
    python3 packageGraphCheck.py project-graph.json --export packages.csv --export-graph graph.graphml

INPUT:
    JSON object with two collections:
    - nodes:        project id -> {"data": {"tags": [...]}}
    - dependencies: project id -> [{"target": project id}, ...]

METHOD:
    - Dependents: number of edges targeting each project
    - Depth: longest path following outgoing edges (cycle edges count 0)
    - Cycles: one representative cycle per back-edge of a depth-first traversal
    - Layers: app > shared > lib > unknown, from project tags
    - Break suggestion: first layering violation in a cycle, otherwise the
      edge whose target has the fewest dependents
    - Modularity: (dependencies + dependents) / total projects
"""

import sys
import logging
import argparse
from typing import List, Optional

from pkggraph.color_utils import Colors, format_table_row, layer_color, print_error, print_section, print_success, print_warning, should_use_color
from pkggraph.constants import (
    DEFAULT_TOP_N,
    EXIT_INVALID_ARGS,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    MAX_CYCLES_DISPLAY,
    MAX_VIOLATIONS_DISPLAY,
    TAG_JOIN_SEPARATOR,
)
from pkggraph.export_utils import export_graph, export_projects_to_csv
from pkggraph.graph_model import load_graph_file
from pkggraph.metrics_engine import find_cycle_components, format_cycle_path, longest_depth, unique_structural_cycles
from pkggraph.neighborhood import build_neighborhood
from pkggraph.package_verification import check_all_packages, require_package
from pkggraph.policy_advisor import classify_layer, count_projects_by_layer, find_layer_violations, suggest_link_to_break
from pkggraph.scoring import collect_visible_tags, format_score, modularity_score, summarize_projects
from pkggraph.session import AnalysisSession

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Analyze a workspace project dependency graph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s project-graph.json
  %(prog)s project-graph.json --cycles-only
  %(prog)s project-graph.json --tag shared --tag lib --max-deps 3
  %(prog)s project-graph.json --select ui-kit
  %(prog)s project-graph.json --export packages.csv
        """,
    )

    parser.add_argument("graph_file", nargs="?", help="Path to the project graph JSON document")
    parser.add_argument("--min-deps", type=int, default=0, help="Minimum number of dependencies (default: 0)")
    parser.add_argument("--max-deps", type=int, default=None, help="Maximum number of dependencies (default: unbounded)")
    parser.add_argument("--min-dependents", type=int, default=0, help="Minimum number of dependents (default: 0)")
    parser.add_argument("--max-dependents", type=int, default=None, help="Maximum number of dependents (default: unbounded)")
    parser.add_argument("--tag", action="append", default=[], metavar="TAG", help="Keep projects carrying this tag (can be used multiple times)")
    parser.add_argument("--cycles-only", action="store_true", help="Only show projects that are part of a cycle")
    parser.add_argument("--select", metavar="PROJECT", help="Show the dependency neighborhood of a project")
    parser.add_argument("--resolve", type=int, default=0, metavar="N", help="Mark the first N cycles as resolved before reporting")
    parser.add_argument("--top", type=int, default=DEFAULT_TOP_N, help=f"Number of projects to display (default: {DEFAULT_TOP_N})")
    parser.add_argument("--export", metavar="FILE", help="Export the filtered project list to CSV")
    parser.add_argument("--export-graph", metavar="FILE", help="Export the annotated graph (.graphml, .gexf or .json)")
    parser.add_argument("--check-packages", action="store_true", help="Verify required Python packages and exit")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging output")
    return parser


def print_summary(session: AnalysisSession, projects: List[str]) -> None:
    """Print the results header: counts and averages for the filtered list."""
    summary = summarize_projects(projects, session.graph, session.metrics)
    graph = session.graph

    print_section(f"RESULTS ({summary.total} of {graph.project_count} packages)")
    print(f"  No dependencies: {summary.no_dependencies}")
    print(f"  Avg dependencies: {summary.avg_dependencies:.2f}")
    print(f"  No dependents: {summary.no_dependents}")
    print(f"  Avg dependents: {summary.avg_dependents:.2f}")

    deepest = longest_depth(session.metrics)
    if deepest is not None:
        print(f"  Deepest package: {deepest[0]} (depth {deepest[1]})")

    layers = count_projects_by_layer(graph)
    print("  Layers: " + ", ".join(f"{layer_color(name)}{name}{Colors.RESET}={count}" for name, count in layers.items()))

    tags = collect_visible_tags(graph)
    if tags:
        print(f"  {Colors.DIM}Tags: {TAG_JOIN_SEPARATOR.join(tags)}{Colors.RESET}")

    missing = graph.missing_targets()
    if missing:
        print(f"  {Colors.YELLOW}External/missing references: {len(missing)}{Colors.RESET}")


def print_project_table(session: AnalysisSession, projects: List[str], top_n: int) -> None:
    """Print the filtered and sorted project table."""
    graph = session.graph
    metrics = session.metrics

    if not projects:
        print_warning("No packages match the current filters", prefix=False)
        return

    widths = [max(len("Package"), *(len(p) for p in projects[:top_n])), 5, 10, 5, 6, 10, 7]
    print()
    print(f"{Colors.BRIGHT}{format_table_row(['Package', 'Deps', 'Dependents', 'Depth', 'Cycle', 'Modularity', 'Layer', 'Tags'], widths + [0])}{Colors.RESET}")

    for project_id in projects[:top_n]:
        in_cycle = metrics.is_in_cycle(project_id)
        layer = classify_layer(graph.tags(project_id))
        selected = project_id == session.criteria.selected_project
        row = [
            project_id,
            graph.outgoing_count(project_id),
            metrics.dependents_count.get(project_id, 0),
            metrics.depth.get(project_id, 0),
            "yes" if in_cycle else "",
            format_score(modularity_score(project_id, graph, metrics.dependents_count)),
            layer,
            TAG_JOIN_SEPARATOR.join(graph.visible_tags(project_id)),
        ]
        colors = [Colors.CYAN if selected else "", "", "", "", Colors.RED if in_cycle else "", "", layer_color(layer), Colors.DIM]
        print(format_table_row(row, widths + [0], colors))

    if len(projects) > top_n:
        print(f"\n{Colors.DIM}Showing {top_n} of {len(projects)} packages{Colors.RESET}")


def print_cycle_report(session: AnalysisSession) -> None:
    """Print unresolved cycles with their break suggestions."""
    graph = session.graph
    metrics = session.metrics
    components, self_loops = find_cycle_components(graph)
    unresolved = session.unresolved_cycles()

    print_section("CIRCULAR DEPENDENCIES")

    if not metrics.cycles:
        print(f"\n{Colors.GREEN}✓ No circular dependencies found{Colors.RESET}")
        return

    print(
        f"\n{Colors.RED}Found {len(metrics.cycles)} cycles in {len(components)} cyclic groups"
        f" ({len(self_loops)} self-dependencies), {len(unresolved)} unresolved{Colors.RESET}\n"
    )
    print(f"{Colors.DIM}Structurally unique cycles: {len(unique_structural_cycles(metrics.cycles))}{Colors.RESET}\n")

    current = session.current_cycle()
    for i, cycle in enumerate(unresolved[:MAX_CYCLES_DISPLAY], 1):
        suggestion = suggest_link_to_break(cycle, graph, metrics.dependents_count)
        marker = "▶" if cycle == current else " "
        print(f"{marker} {Colors.RED}Cycle {i}:{Colors.RESET} {format_cycle_path(cycle)}")
        color = Colors.RED if suggestion.is_violation else Colors.YELLOW
        print(f"    Suggested link to break: {color}{suggestion.describe()}{Colors.RESET}")

    if len(unresolved) > MAX_CYCLES_DISPLAY:
        print(f"\n{Colors.DIM}... and {len(unresolved) - MAX_CYCLES_DISPLAY} more cycles{Colors.RESET}")

    if session.resolved_cycles:
        print(f"\n{Colors.DIM}{len(session.resolved_cycles)} cycles marked resolved{Colors.RESET}")


def print_policy_report(session: AnalysisSession) -> None:
    """Print every layering-policy violation in the graph."""
    violations = find_layer_violations(session.graph)

    print_section("LAYERING POLICY")
    if not violations:
        print(f"\n{Colors.GREEN}✓ No layering violations found{Colors.RESET}")
        return

    print(f"\n{Colors.YELLOW}Found {len(violations)} layering violations:{Colors.RESET}\n")
    for violation in violations[:MAX_VIOLATIONS_DISPLAY]:
        print(
            f"  • {violation.source} [{layer_color(violation.source_layer)}{violation.source_layer}{Colors.RESET}]"
            f" -> {violation.target} [{layer_color(violation.target_layer)}{violation.target_layer}{Colors.RESET}]"
            f" {Colors.DIM}({violation.reason}){Colors.RESET}"
        )
    if len(violations) > MAX_VIOLATIONS_DISPLAY:
        print(f"  {Colors.DIM}... and {len(violations) - MAX_VIOLATIONS_DISPLAY} more{Colors.RESET}")


def print_neighborhood(session: AnalysisSession) -> None:
    """Print the dependency neighborhood of the selected project."""
    selected = session.criteria.selected_project
    neighborhood = build_neighborhood(selected, session.graph, session.metrics)

    print_section(f"NEIGHBORHOOD: {selected}")
    if selected:
        for cycle in session.metrics.cycles_containing(selected):
            print(f"{Colors.RED}In cycle:{Colors.RESET} {format_cycle_path(cycle)}")
    for node in neighborhood.nodes:
        print(f"\n{node.title}")
    print(f"\n{Colors.DIM}{len(neighborhood.nodes)} nodes, {len(neighborhood.edges)} edges{Colors.RESET}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    if args.no_color or not should_use_color():
        Colors.disable()

    if args.check_packages:
        return EXIT_SUCCESS if check_all_packages() else EXIT_RUNTIME_ERROR

    if not args.graph_file:
        parser.print_usage(sys.stderr)
        print_error("the graph_file argument is required")
        return EXIT_INVALID_ARGS

    if args.top <= 0:
        print_error(f"--top must be positive (got {args.top})")
        return EXIT_INVALID_ARGS

    require_package("networkx", "dependency graph analysis")

    graph = load_graph_file(args.graph_file)
    session = AnalysisSession(graph)
    session.update_filter(
        min_dependencies=args.min_deps,
        max_dependencies=args.max_deps,
        min_dependents=args.min_dependents,
        max_dependents=args.max_dependents,
        selected_tags=args.tag,
        show_cycles_only=args.cycles_only,
    )

    if args.select:
        if not graph.has_project(args.select):
            print_error(f"Project '{args.select}' not found")
            return EXIT_INVALID_ARGS
        session.select_project(args.select)

    for _ in range(max(0, args.resolve)):
        if session.mark_current_resolved() is None:
            break

    projects = session.visible_projects()

    print_summary(session, projects)
    print_project_table(session, projects, args.top)
    print_cycle_report(session)
    print_policy_report(session)

    if session.criteria.selected_project:
        print_neighborhood(session)

    exit_code = EXIT_SUCCESS
    if args.export and not export_projects_to_csv(args.export, projects, graph, session.metrics):
        exit_code = EXIT_RUNTIME_ERROR
    if args.export_graph and not export_graph(args.export_graph, graph, session.metrics):
        exit_code = EXIT_RUNTIME_ERROR

    if exit_code == EXIT_SUCCESS and not session.unresolved_cycles():
        print_success("\nNo unresolved circular dependencies")

    return exit_code


if __name__ == "__main__":
    from pkggraph.constants import EXIT_KEYBOARD_INTERRUPT, PackageGraphError

    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user", prefix=False)
        sys.exit(EXIT_KEYBOARD_INTERRUPT)
    except PackageGraphError as e:
        logging.error(str(e))
        sys.exit(e.exit_code)
    except Exception as e:
        logging.error("Unexpected error: %s", e)
        if logging.getLogger().level == logging.DEBUG:
            import traceback

            traceback.print_exc()
        sys.exit(EXIT_RUNTIME_ERROR)
