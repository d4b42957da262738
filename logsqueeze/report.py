# SPDX-License-Identifier: MIT
# This file turns the engine state into a compression report and renders it.

import json
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, NamedTuple, Optional

import pandas as pd
from tabulate import tabulate

from logsqueeze.cluster import Cluster

if TYPE_CHECKING:
    from logsqueeze.drain import Drain

OUTPUT_FORMATS = ("summary", "detailed", "json")

# tokens spent on the "[Nx] " marker printed in front of every template
COUNT_MARKER_TOKENS = 1
TOP_TEMPLATES = 20
RARE_OCCURRENCES = 5


class Template(NamedTuple):
    id: int
    pattern: str
    occurrences: int
    sample_variables: List[List[str]]
    first_seen: int
    last_seen: int
    metadata: Dict[str, Any]

    @classmethod
    def from_cluster(cls, cluster: Cluster) -> "Template":
        return cls(cluster.cluster_id,
                   cluster.get_template(),
                   cluster.size,
                   [list(sample) for sample in cluster.sample_variables],
                   cluster.first_seen,
                   cluster.last_seen,
                   dict(cluster.metadata))


class Statistics(NamedTuple):
    input_lines: int
    unique_templates: int
    compression_ratio: float
    estimated_token_reduction: float
    degraded_lines: int = 0
    unparsable_lines: int = 0
    overflow_routes: int = 0
    processing_time_ms: Optional[int] = None


def compression_ratio(input_lines: int, unique_templates: int) -> float:
    if input_lines == 0:
        return 0.0
    return max(0.0, min(1.0, 1.0 - unique_templates / input_lines))


def estimate_token_reduction(clusters: Iterable[Cluster]) -> float:
    """
    Heuristic share of whitespace tokens saved by printing each template once.

    For a cluster with pattern length L, W wildcard positions and N occurrences,
    the original lines cost L * N tokens. Printing the template once saves the
    literal positions of the N - 1 repeated lines, (L - W) * (N - 1), minus the
    count marker. Wildcard positions are treated as never saved since they stand
    for content that differs from line to line. The result is the saved share of
    the original total, clamped to [0, 1]. It is an estimate over whitespace tokens,
    not a figure for any particular model tokenizer.
    """
    original = 0
    saved = 0
    for cluster in clusters:
        length = len(cluster)
        original += length * cluster.size
        saved += (length - cluster.wildcard_count()) * (cluster.size - 1) - COUNT_MARKER_TOKENS
    if original == 0:
        return 0.0
    return max(0.0, min(1.0, saved / original))


class CompressionReport:
    def __init__(self, templates: List[Template], all_templates: List[Template], stats: Statistics,
                 formatted: str = "") -> None:
        self.templates = templates
        self.all_templates = all_templates
        self.stats = stats
        self.formatted = formatted

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stats": self.stats._asdict(),
            "templates": [template._asdict() for template in self.templates],
        }

    def to_dataframe(self) -> pd.DataFrame:
        """One row per template, in creation order."""
        rows = [{
            "EventId": template.id,
            "EventTemplate": template.pattern,
            "Occurrences": template.occurrences,
            "FirstSeen": template.first_seen,
            "LastSeen": template.last_seen,
        } for template in self.all_templates]
        return pd.DataFrame(rows, columns=["EventId", "EventTemplate", "Occurrences", "FirstSeen", "LastSeen"])

    def __str__(self) -> str:
        return self.formatted


def _header(stats: Statistics) -> str:
    return (f"Input: {stats.input_lines:,} lines -> {stats.unique_templates} templates "
            f"({stats.compression_ratio * 100:.1f}% reduction)")


def format_summary(templates: List[Template], stats: Statistics) -> str:
    lines = ["=== Log Compression Summary ===", _header(stats), ""]

    if not templates:
        lines.append("No templates discovered.")
        return "\n".join(lines)

    lines.append("Top templates by frequency:")
    rows = [(index + 1, f"{template.occurrences:,}x", template.pattern)
            for index, template in enumerate(templates[:TOP_TEMPLATES])]
    lines.append(tabulate(rows, headers=["#", "Count", "Template"], tablefmt="simple"))
    if len(templates) > TOP_TEMPLATES:
        lines.append(f"... and {len(templates) - TOP_TEMPLATES} more templates")

    rare = [template for template in templates if template.occurrences <= RARE_OCCURRENCES]
    if rare:
        lines.append("")
        lines.append(f"Rare events (<={RARE_OCCURRENCES} occurrences): {len(rare)} templates")
        for template in rare[:5]:
            lines.append(f"- [{template.occurrences}x] {template.pattern}")
        if len(rare) > 5:
            lines.append(f"... and {len(rare) - 5} more rare templates")

    if stats.degraded_lines or stats.unparsable_lines:
        lines.append("")
        lines.append(f"Degraded matches: {stats.degraded_lines}, unparsable lines: {stats.unparsable_lines}")

    return "\n".join(lines)


def format_detailed(templates: List[Template], stats: Statistics) -> str:
    lines = ["=== Log Compression Details ===",
             _header(stats),
             f"Estimated token reduction: {stats.estimated_token_reduction * 100:.1f}%",
             ""]

    if not templates:
        lines.append("No templates discovered.")
        return "\n".join(lines)

    for template in templates:
        lines.append(f"=== Template {template.id} ({template.occurrences:,} occurrences) ===")
        lines.append(f"Pattern: {template.pattern}")
        if "severity" in template.metadata:
            lines.append(f"Severity: {template.metadata['severity']}")
        # line numbers are shown 1-based
        lines.append(f"First seen: line {template.first_seen + 1}")
        lines.append(f"Last seen: line {template.last_seen + 1}")
        durations = template.metadata.get("duration_samples")
        if durations:
            lines.append(f"Durations: {', '.join(durations)}")
        if template.sample_variables:
            lines.append("Sample variables:")
            for variables in template.sample_variables:
                if variables:
                    lines.append(f"  - {', '.join(variables)}")
        lines.append("")

    return "\n".join(lines)


def format_json(templates: List[Template], stats: Statistics) -> str:
    output = {
        "stats": {
            "inputLines": stats.input_lines,
            "uniqueTemplates": stats.unique_templates,
            "compressionRatio": round(stats.compression_ratio, 3),
            "estimatedTokenReduction": round(stats.estimated_token_reduction, 3),
            "degradedLines": stats.degraded_lines,
            "unparsableLines": stats.unparsable_lines,
        },
        "templates": [{
            "id": template.id,
            "pattern": template.pattern,
            "occurrences": template.occurrences,
            "samples": template.sample_variables,
            "firstSeen": template.first_seen,
            "lastSeen": template.last_seen,
            "metadata": template.metadata,
        } for template in templates],
    }
    return json.dumps(output, indent=2)


FORMATTERS = {
    "summary": format_summary,
    "detailed": format_detailed,
    "json": format_json,
}


def build_report(drain: "Drain", format: str = "summary", max_templates: int = 50,
                 processing_time_ms: Optional[int] = None) -> CompressionReport:
    """
    Snapshot the engine into a report. Can be called at any time, the engine
    keeps accepting lines afterwards.

    :param format: "summary", "detailed" or "json"
    :param max_templates: max number of (most frequent) templates in ``templates`` and the rendered text
    """
    if format not in FORMATTERS:
        raise ValueError(f"unknown output format {format!r}, expected one of {OUTPUT_FORMATS}")

    clusters = drain.clusters
    all_templates = [Template.from_cluster(cluster) for cluster in clusters]
    top = sorted(all_templates, key=lambda it: it.occurrences, reverse=True)[:max(0, max_templates)]

    stats = Statistics(input_lines=drain.line_count,
                       unique_templates=len(all_templates),
                       compression_ratio=compression_ratio(drain.line_count, len(all_templates)),
                       estimated_token_reduction=estimate_token_reduction(clusters),
                       degraded_lines=drain.degraded_lines,
                       unparsable_lines=drain.unparsable_lines,
                       overflow_routes=drain.overflow_routes,
                       processing_time_ms=processing_time_ms)

    return CompressionReport(top, all_templates, stats, FORMATTERS[format](top, stats))
