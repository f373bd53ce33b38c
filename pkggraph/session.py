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
"""Session state: filter criteria, resolved cycles and cycle navigation.

An AnalysisSession owns everything the operator mutates during one run.
The graph and its metrics never change, so the metrics are computed once
when the session is created.
"""

import logging
from dataclasses import fields
from typing import Any, List, Optional, Set

from pkggraph.constants import FilterError
from pkggraph.graph_model import ProjectGraph
from pkggraph.metrics_engine import Cycle, GraphMetrics, analyze_graph, cycle_key
from pkggraph.policy_advisor import LinkSuggestion, suggest_link_to_break
from pkggraph.scoring import FilterCriteria, filter_and_sort_projects

logger = logging.getLogger(__name__)

_BOUND_FIELDS = ("min_dependencies", "max_dependencies", "min_dependents", "max_dependents")


class AnalysisSession:
    """Operator session over one immutable graph."""

    def __init__(self, graph: ProjectGraph, metrics: Optional[GraphMetrics] = None, criteria: Optional[FilterCriteria] = None):
        self.graph = graph
        self.metrics = metrics if metrics is not None else analyze_graph(graph)
        self.criteria = criteria if criteria is not None else FilterCriteria()
        self.resolved_cycles: Set[str] = set()
        self.current_index = 0

    # -------------------------------------------------------------------------
    # Cycle navigation
    # -------------------------------------------------------------------------

    def unresolved_cycles(self) -> List[Cycle]:
        return [cycle for cycle in self.metrics.cycles if cycle_key(cycle) not in self.resolved_cycles]

    def current_cycle(self) -> Optional[Cycle]:
        """The cycle the operator is looking at, or None when everything is resolved."""
        unresolved = self.unresolved_cycles()
        if not unresolved:
            return None
        self.current_index = max(0, min(self.current_index, len(unresolved) - 1))
        return unresolved[self.current_index]

    def current_suggestion(self) -> Optional[LinkSuggestion]:
        cycle = self.current_cycle()
        if cycle is None:
            return None
        return suggest_link_to_break(cycle, self.graph, self.metrics.dependents_count)

    def next_cycle(self) -> Optional[Cycle]:
        """Advance to the next unresolved cycle, staying on the last one at the end."""
        unresolved = self.unresolved_cycles()
        self.current_index = max(0, min(self.current_index + 1, len(unresolved) - 1))
        return self.current_cycle()

    def previous_cycle(self) -> Optional[Cycle]:
        """Step back to the previous unresolved cycle, staying on the first one."""
        self.current_index = max(0, self.current_index - 1)
        return self.current_cycle()

    def mark_current_resolved(self) -> Optional[str]:
        """Mark the current cycle resolved.

        The index is re-clamped so it keeps pointing at a neighbouring cycle
        of the now shorter unresolved list.

        Returns:
            The identity key that was resolved, or None when nothing was left
        """
        cycle = self.current_cycle()
        if cycle is None:
            return None

        key = cycle_key(cycle)
        self.resolved_cycles.add(key)
        remaining = len(self.unresolved_cycles())
        self.current_index = max(0, min(self.current_index, remaining - 1))
        logger.info("Marked cycle resolved: %s (%s remaining)", key, remaining)
        return key

    def is_resolved(self, cycle: Cycle) -> bool:
        return cycle_key(cycle) in self.resolved_cycles

    # -------------------------------------------------------------------------
    # Filtering
    # -------------------------------------------------------------------------

    def update_filter(self, **changes: Any) -> FilterCriteria:
        """Update filter fields by name.

        Raises:
            FilterError: On unknown fields or negative bounds
        """
        known = {f.name for f in fields(FilterCriteria)}
        for name, value in changes.items():
            if name not in known:
                raise FilterError(f"Unknown filter field '{name}'")
            if name in _BOUND_FIELDS and value is not None and value < 0:
                raise FilterError(f"Filter bound '{name}' must not be negative (got {value})")
            if name == "selected_tags":
                value = set(value or ())
            setattr(self.criteria, name, value)
        return self.criteria

    def select_project(self, project_id: Optional[str]) -> None:
        if project_id is not None and not self.graph.has_project(project_id):
            logger.warning("Selected project '%s' is not part of the graph", project_id)
        self.criteria.selected_project = project_id

    def visible_projects(self) -> List[str]:
        """Filtered and sorted project list for the current criteria."""
        return filter_and_sort_projects(self.graph, self.metrics, self.criteria)
