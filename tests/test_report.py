# SPDX-License-Identifier: MIT

import json

import pytest

from logsqueeze import Cluster, Drain, WILDCARD
from logsqueeze.report import compression_ratio, estimate_token_reduction


@pytest.fixture
def drain():
    drain = Drain()
    drain.add_log_messages(["Common message"] * 4 + ["Rare one here"])
    return drain


def test_compression_ratio():
    assert compression_ratio(0, 0) == 0.0
    assert compression_ratio(4, 1) == 0.75
    assert compression_ratio(3, 3) == 0.0


def test_estimate_token_reduction():
    cluster = Cluster(1, ["a", "b", "c"], 0)
    cluster.pattern[2] = WILDCARD
    cluster.size = 2
    # saved (3 - 1) * (2 - 1) - 1 = 1 of 3 * 2 = 6 tokens
    assert estimate_token_reduction([cluster]) == pytest.approx(1 / 6)
    assert estimate_token_reduction([]) == 0.0
    assert estimate_token_reduction([Cluster(2, ["single"], 0)]) == 0.0


def test_statistics(drain):
    stats = drain.get_report().stats

    assert stats.input_lines == 5
    assert stats.unique_templates == 2
    assert stats.compression_ratio == pytest.approx(0.6)
    assert 0.0 <= stats.estimated_token_reduction <= 1.0
    assert stats.degraded_lines == 0
    assert stats.unparsable_lines == 0


def test_empty_report():
    report = Drain().get_report()

    assert report.stats.input_lines == 0
    assert report.stats.compression_ratio == 0.0
    assert report.templates == []
    assert "No templates discovered." in str(report)


def test_summary_format(drain):
    text = str(drain.get_report("summary"))

    assert text.startswith("=== Log Compression Summary ===")
    assert "5 lines -> 2 templates (60.0% reduction)" in text
    assert "4x" in text
    assert "Common message" in text
    assert "Rare events" in text


def test_detailed_format(drain):
    text = drain.get_report("detailed").formatted

    assert text.startswith("=== Log Compression Details ===")
    assert "=== Template 1 (4 occurrences) ===" in text
    assert "Pattern: Rare one here" in text
    assert "First seen: line 5" in text


def test_json_format(drain):
    output = json.loads(drain.get_report("json").formatted)

    assert output["stats"]["inputLines"] == 5
    assert output["stats"]["uniqueTemplates"] == 2
    assert output["stats"]["compressionRatio"] == 0.6
    assert [t["occurrences"] for t in output["templates"]] == [4, 1]
    assert output["templates"][0]["pattern"] == "Common message"


def test_max_templates(drain):
    report = drain.get_report(max_templates=1)

    assert [t.pattern for t in report.templates] == ["Common message"]
    assert len(report.all_templates) == 2
    assert report.stats.unique_templates == 2
    assert drain.get_report(max_templates=0).templates == []


def test_templates_are_a_snapshot(drain):
    report = drain.get_report()
    drain.add_log_message("Common message")

    assert report.templates[0].occurrences == 4
    assert drain.get_report().templates[0].occurrences == 5


def test_to_dataframe(drain):
    df = drain.get_report().to_dataframe()

    assert df.shape == (2, 5)
    assert df["EventTemplate"].tolist() == ["Common message", "Rare one here"]
    assert df["Occurrences"].sum() == 5


def test_to_dict(drain):
    output = drain.get_report(max_templates=1).to_dict()

    assert output["stats"]["input_lines"] == 5
    assert len(output["templates"]) == 1


def test_unknown_format(drain):
    with pytest.raises(ValueError):
        drain.get_report("xml")
