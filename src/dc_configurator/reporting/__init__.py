# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Terminal, chart and PDF output for calculation results."""

from dc_configurator.reporting.terminal import TerminalRenderer

__all__ = ["TerminalRenderer"]
