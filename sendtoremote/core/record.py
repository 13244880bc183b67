#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Execution record written by the remote executor.

Layout of one target's result directory::

    <state_dir>/<target_dir>/
        transcript.txt   captured output, appended while the target runs
        output.pkl       pickled ExecutionRecord, written once at the end
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .targets import InvocationStyle

OUTPUT_FILENAME = "output.pkl"
TRANSCRIPT_FILENAME = "transcript.txt"


@dataclass
class ExecutionRecord:
    """Outcome of one remote run: payload plus transcript."""

    target: str
    style: InvocationStyle
    bindings: Dict[str, Any] = field(default_factory=OrderedDict)
    results: List[Any] = field(default_factory=list)
    transcript: str = ""
    failed: bool = False
    error: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    @property
    def payload(self) -> Any:
        """Created bindings for scripts, result values for functions."""
        if self.style is InvocationStyle.SCRIPT:
            return self.bindings
        return self.results


__all__ = ["ExecutionRecord", "OUTPUT_FILENAME", "TRANSCRIPT_FILENAME"]
