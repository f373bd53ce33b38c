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
"""Tests for pkggraph.policy_advisor."""

from typing import Callable

import pytest

from pkggraph.constants import (
    REASON_LIB_TO_APP_SHARED,
    REASON_SHARED_LIB_TO_APP,
    EmptyCycleQueryError,
    PackageGraphError,
)
from pkggraph.graph_model import ProjectGraph
from pkggraph.metrics_engine import analyze_graph
from pkggraph.policy_advisor import (
    LinkSuggestion,
    classify_layer,
    count_projects_by_layer,
    cycle_edges,
    find_layer_violations,
    layering_violation,
    suggest_link_to_break,
    suggest_links_for_cycles,
)


class TestClassifyLayer:
    """Layer classification by tag priority."""

    @pytest.mark.parametrize(
        "tags, expected",
        [
            (["app"], "app"),
            (["lib", "app"], "app"),
            (["lib", "shared"], "shared"),
            (["type:util", "lib"], "lib"),
            (["npm:react"], "unknown"),
            ([], "unknown"),
        ],
    )
    def test_priority(self, tags: list, expected: str) -> None:
        assert classify_layer(tags) == expected


class TestLayeringViolation:
    """Rules for downward-only dependencies."""

    @pytest.mark.parametrize(
        "source, target, expected",
        [
            ("shared", "app", REASON_SHARED_LIB_TO_APP),
            ("lib", "app", REASON_SHARED_LIB_TO_APP),
            ("lib", "shared", REASON_LIB_TO_APP_SHARED),
            ("app", "lib", None),
            ("app", "app", None),
            ("shared", "lib", None),
            ("unknown", "app", None),
            ("lib", "unknown", None),
        ],
    )
    def test_rules(self, source: str, target: str, expected: object) -> None:
        assert layering_violation(source, target) == expected


class TestSuggestLinkToBreak:
    """Tests for suggest_link_to_break."""

    def test_cycle_edges_wrap_around(self) -> None:
        assert cycle_edges(("a", "b", "c")) == [("a", "b"), ("b", "c"), ("c", "a")]
        assert cycle_edges(("a",)) == [("a", "a")]

    def test_violation_wins(self, build_graph: Callable[..., ProjectGraph]) -> None:
        """lib -> app closes the cycle and is reported as a violation."""
        graph = build_graph([("web", "core"), ("core", "web")], tags={"web": ["app"], "core": ["lib"]})
        metrics = analyze_graph(graph)

        suggestion = suggest_link_to_break(("web", "core"), graph, metrics.dependents_count)

        assert suggestion == LinkSuggestion("core", "web", REASON_SHARED_LIB_TO_APP, is_violation=True)

    def test_lib_to_shared_violation(self, build_graph: Callable[..., ProjectGraph]) -> None:
        graph = build_graph([("ui", "util"), ("util", "ui")], tags={"ui": ["shared"], "util": ["lib"]})
        metrics = analyze_graph(graph)

        suggestion = suggest_link_to_break(("ui", "util"), graph, metrics.dependents_count)

        assert (suggestion.source, suggestion.target) == ("util", "ui")
        assert suggestion.reason == REASON_LIB_TO_APP_SHARED

    def test_first_violation_in_cycle_order(self, build_graph: Callable[..., ProjectGraph]) -> None:
        graph = build_graph(
            [("a", "b"), ("b", "c"), ("c", "a")],
            tags={"a": ["lib"], "b": ["shared"], "c": ["app"]},
        )
        metrics = analyze_graph(graph)

        suggestion = suggest_link_to_break(("a", "b", "c"), graph, metrics.dependents_count)

        # a(lib) -> b(shared) is the first violating edge
        assert (suggestion.source, suggestion.target) == ("a", "b")
        assert suggestion.reason == REASON_LIB_TO_APP_SHARED

    def test_least_dependents_fallback(self, workspace_graph: ProjectGraph) -> None:
        metrics = analyze_graph(workspace_graph)

        suggestion = suggest_link_to_break(("auth", "session"), workspace_graph, metrics.dependents_count)

        assert suggestion == LinkSuggestion("auth", "session", "least dependents (1)")
        assert not suggestion.is_violation

    def test_tie_goes_to_first_edge(self, triangle_cycle_graph: ProjectGraph) -> None:
        metrics = analyze_graph(triangle_cycle_graph)

        suggestion = suggest_link_to_break(("A", "B", "C"), triangle_cycle_graph, metrics.dependents_count)

        assert (suggestion.source, suggestion.target) == ("A", "B")
        assert suggestion.reason == "least dependents (1)"

    def test_unknown_dependents_count_as_zero(self, triangle_cycle_graph: ProjectGraph) -> None:
        suggestion = suggest_link_to_break(("A", "B", "C"), triangle_cycle_graph, {"B": 3, "C": 1})
        assert (suggestion.source, suggestion.target) == ("C", "A")
        assert suggestion.reason == "least dependents (0)"

    def test_suggested_edge_is_in_cycle(self, workspace_graph: ProjectGraph) -> None:
        metrics = analyze_graph(workspace_graph)
        for cycle in metrics.cycles:
            suggestion = suggest_link_to_break(cycle, workspace_graph, metrics.dependents_count)
            assert (suggestion.source, suggestion.target) in cycle_edges(cycle)

    def test_empty_cycle_raises(self, triangle_cycle_graph: ProjectGraph) -> None:
        with pytest.raises(EmptyCycleQueryError):
            suggest_link_to_break((), triangle_cycle_graph, {})

    def test_empty_cycle_error_hierarchy(self) -> None:
        assert issubclass(EmptyCycleQueryError, PackageGraphError)
        assert issubclass(EmptyCycleQueryError, ValueError)

    def test_describe(self) -> None:
        assert LinkSuggestion("a", "b", "least dependents (0)").describe() == "a -> b (least dependents (0))"


class TestSuggestLinksForCycles:
    """Tests for suggest_links_for_cycles."""

    def test_keyed_by_identity(self, workspace_graph: ProjectGraph) -> None:
        metrics = analyze_graph(workspace_graph)

        suggestions = suggest_links_for_cycles(metrics.cycles, workspace_graph, metrics.dependents_count)

        assert list(suggestions) == ["auth -> session", "admin-app -> data-access"]
        admin = suggestions["admin-app -> data-access"]
        assert (admin.source, admin.target) == ("data-access", "admin-app")
        assert admin.is_violation

    def test_skips_empty_cycles(self, triangle_cycle_graph: ProjectGraph) -> None:
        suggestions = suggest_links_for_cycles([(), ("A", "B", "C")], triangle_cycle_graph, {})
        assert list(suggestions) == ["A -> B -> C"]


class TestLayerReport:
    """Tests for find_layer_violations and count_projects_by_layer."""

    def test_workspace_violations(self, workspace_graph: ProjectGraph) -> None:
        violations = find_layer_violations(workspace_graph)

        assert len(violations) == 1
        violation = violations[0]
        assert (violation.source, violation.target) == ("data-access", "admin-app")
        assert (violation.source_layer, violation.target_layer) == ("lib", "app")
        assert violation.reason == REASON_SHARED_LIB_TO_APP

    def test_duplicate_and_missing_edges(self, build_graph: Callable[..., ProjectGraph]) -> None:
        graph = build_graph(
            [("core", "web"), ("core", "web"), ("core", "ghost")],
            tags={"core": ["lib"], "web": ["app"]},
            projects=["core", "web"],
        )
        violations = find_layer_violations(graph)
        assert [(v.source, v.target) for v in violations] == [("core", "web")]

    def test_count_by_layer(self, workspace_graph: ProjectGraph) -> None:
        assert count_projects_by_layer(workspace_graph) == {"app": 2, "shared": 3, "lib": 3, "unknown": 2}
