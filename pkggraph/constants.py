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
"""Shared constants for packageGraphCheck.

This module provides centralized constants used across the package graph
analysis modules so thresholds, labels and export formats stay consistent.
"""

from typing import List, Tuple

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS = 0
EXIT_INVALID_ARGS = 1
EXIT_RUNTIME_ERROR = 2
EXIT_INVALID_INPUT = 3
EXIT_KEYBOARD_INTERRUPT = 130

# =============================================================================
# Graph Document
# =============================================================================

NODES_KEY = "nodes"  # Project definitions keyed by id
DEPENDENCIES_KEY = "dependencies"  # Dependency lists keyed by source id
TARGET_KEY = "target"  # Target id inside a dependency record

# Tags with this prefix describe external npm packages and are hidden from display
EXTERNAL_TAG_PREFIX = "npm:"

# =============================================================================
# Layering Policy
# =============================================================================

LAYER_APP = "app"
LAYER_SHARED = "shared"
LAYER_LIB = "lib"
LAYER_UNKNOWN = "unknown"

# Classification priority: first match wins
LAYER_PRIORITY: Tuple[str, ...] = (LAYER_APP, LAYER_SHARED, LAYER_LIB)

REASON_SHARED_LIB_TO_APP = "shared/lib -> app violation"
REASON_LIB_TO_APP_SHARED = "lib -> app/shared violation"
REASON_LEAST_DEPENDENTS = "least dependents ({count})"

# =============================================================================
# Cycles
# =============================================================================

CYCLE_SEPARATOR = " -> "  # Joins cycle members into an identity key / path string

# =============================================================================
# Scoring & Display
# =============================================================================

SCORE_PRECISION = 2  # Decimal places for modularity scores and averages
TAG_JOIN_SEPARATOR = ", "  # Separator for displayed / sorted tag lists
DEFAULT_TOP_N = 25  # Default number of projects to show in the CLI table
MAX_CYCLES_DISPLAY = 20  # Maximum cycles to list in the CLI report
MAX_VIOLATIONS_DISPLAY = 20  # Maximum layering violations to list

# Neighborhood view colors (kept from the original graph panel)
SELECTED_NODE_COLOR = "#00d1b2"
DEPENDENCY_NODE_COLOR = "#ff3860"
DEPENDENT_NODE_COLOR = "#3273dc"
SELECTED_NODE_SHAPE = "diamond"
DEFAULT_NODE_SHAPE = "dot"
SELECTED_NODE_SIZE = 30
DEFAULT_NODE_SIZE = 20
MISSING_NODE_LABEL = "[External or Missing Node]"

# =============================================================================
# Export
# =============================================================================

CSV_EXPORT_HEADER: List[str] = ["Package", "Dependencies", "Dependents", "Depth", "In Cycle", "Cycle Path", "Modularity", "Tags"]
CSV_YES = "Yes"
CSV_NO = "No"

SUPPORTED_GRAPH_FORMATS = [".graphml", ".gexf", ".json"]
DEFAULT_GRAPH_FORMAT = ".graphml"

# =============================================================================
# Exception Classes
# =============================================================================


class PackageGraphError(Exception):
    """Base exception for all packageGraphCheck errors.

    Every exception carries an exit_code attribute that indicates what exit
    code the program should use when this error reaches the main entry point.
    """

    def __init__(self, message: str, exit_code: int = EXIT_RUNTIME_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class MalformedInputError(PackageGraphError):
    """Raised when the graph document is missing required collections or is unreadable.

    Fatal for the current load; the operator recovers by fixing the input and retrying.
    """

    def __init__(self, message: str):
        super().__init__(message, EXIT_INVALID_INPUT)


class EmptyCycleQueryError(PackageGraphError, ValueError):
    """Raised when the policy advisor is asked about an empty cycle."""


class FilterError(PackageGraphError, ValueError):
    """Raised when filter criteria are updated with unknown fields or invalid bounds."""

    def __init__(self, message: str):
        super().__init__(message, EXIT_INVALID_ARGS)
