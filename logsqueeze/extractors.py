# SPDX-License-Identifier: MIT
# This file implements hooks that attach auxiliary metadata to clusters as lines are matched.

import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from logsqueeze.cluster import Cluster

logger = logging.getLogger(__name__)


class ClusterHook(ABC):
    """
    Called by the engine right after a line created a cluster or was merged into one.
    Hooks only write to ``cluster.metadata``; they take no part in matching.
    """

    @abstractmethod
    def on_match(self, cluster: "Cluster", tokens: Sequence[str], line: str, line_index: int,
                 created: bool) -> None:
        ...


SEVERITY_ORDER = {"info": 0, "warning": 1, "error": 2}

SEVERITY_PATTERNS = (
    ("error", re.compile(r"\b(?:ERROR|FATAL|CRITICAL|SEVERE|PANIC|Exception|Traceback|failed|failure)\b",
                         re.IGNORECASE)),
    ("warning", re.compile(r"\b(?:WARN|WARNING|deprecated)\b", re.IGNORECASE)),
)


def detect_severity(line: str) -> str:
    for severity, pattern in SEVERITY_PATTERNS:
        if pattern.search(line):
            return severity
    return "info"


class SeverityExtractor(ClusterHook):
    """Keeps the most severe level seen among the lines of a cluster under ``metadata["severity"]``."""

    def on_match(self, cluster, tokens, line, line_index, created):
        severity = detect_severity(line)
        current = cluster.metadata.get("severity", "info")
        if created or SEVERITY_ORDER[severity] > SEVERITY_ORDER[current]:
            cluster.metadata["severity"] = severity


DURATION_PATTERN = re.compile(r"\b\d+(?:\.\d+)?\s?(?:ns|us|µs|ms|s|sec|secs|seconds|min|m|h)\b")


class DurationExtractor(ClusterHook):
    """Collects up to ``max_samples`` distinct timing values (``80ms``, ``1.5 s``) per cluster."""

    def __init__(self, max_samples: int = 3) -> None:
        self.max_samples = max_samples

    def on_match(self, cluster, tokens, line, line_index, created):
        samples = cluster.metadata.setdefault("duration_samples", [])
        for match in DURATION_PATTERN.finditer(line):
            if len(samples) >= self.max_samples:
                break
            value = match.group(0)
            if value not in samples:
                samples.append(value)
                logger.debug("cluster %s: duration sample %s", cluster.cluster_id, value)
