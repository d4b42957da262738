# SPDX-License-Identifier: MIT

import pytest

from logsqueeze import (CompressorConfig, DurationExtractor, SeverityExtractor, StrategyError, TemplateMiner,
                        compress, compress_text)
from logsqueeze.extractors import detect_severity

from tests.test_drain import FailingStrategy


def test_add_log_message():
    template_miner = TemplateMiner()

    first = template_miner.add_log_message("a b c d")
    second = template_miner.add_log_message("a b c e")

    assert first["change_type"] == "cluster_created"
    assert second["change_type"] == "cluster_template_changed"
    assert second["template_mined"] == "a b c <*>"
    assert second["cluster_id"] == first["cluster_id"]
    assert second["cluster_size"] == 2
    assert second["cluster_count"] == 1


def test_config_drives_engine():
    config = CompressorConfig()
    config.drain_max_clusters = 1
    config.output_format = "json"
    config.profiling_enabled = True

    template_miner = TemplateMiner(config)
    template_miner.add_log_message("one two")
    result = template_miner.add_log_message("three four five")

    assert result["change_type"] == "degraded"
    assert template_miner.drain.max_clusters == 1
    assert template_miner.get_report().formatted.lstrip().startswith("{")


def test_strategy_error_propagates_through_miner():
    config = CompressorConfig()
    config.on_error = "raise"
    template_miner = TemplateMiner(config, strategy=FailingStrategy())

    with pytest.raises(StrategyError):
        template_miner.add_log_message("boom")


def test_compress():
    report = compress(["Connection from 10.0.0.1 established",
                       "Connection from 10.0.0.2 established",
                       "Disk full"])

    assert report.templates[0].pattern == "Connection from <*> established"
    assert report.templates[0].occurrences == 2
    assert report.stats.input_lines == 3
    assert report.stats.processing_time_ms is not None
    assert report.formatted.startswith("=== Log Compression Summary ===")


def test_compress_options():
    events = []
    report = compress(["x 1", "x 2", "y"], format="detailed", max_templates=1, on_progress=events.append)

    assert len(report.templates) == 1
    assert report.formatted.startswith("=== Log Compression Details ===")
    assert events[-1].phase == "finalizing"


def test_compress_text():
    report = compress_text("GET /a 200\nGET /b 404\n\nGET /c 500\n", format="json")

    assert report.stats.input_lines == 4
    assert report.stats.unique_templates == 2
    assert report.templates[0].occurrences == 3


@pytest.mark.parametrize("line, severity", [
    ("ERROR disk is broken", "error"),
    ("upload failed for user", "error"),
    ("WARN cache almost full", "warning"),
    ("this API is deprecated", "warning"),
    ("INFO all good", "info"),
])
def test_detect_severity(line, severity):
    assert detect_severity(line) == severity


def test_severity_escalates():
    report = compress(["job 1 finished", "job 2 failed", "job 3 finished"], hooks=[SeverityExtractor()])

    assert len(report.templates) == 1
    assert report.templates[0].metadata["severity"] == "error"


def test_duration_samples():
    report = compress(["request done in 80ms", "request done in 1.5s", "request done in 80ms",
                       "request done in 3s", "request done in 4s"],
                      hooks=[DurationExtractor(max_samples=3)])

    assert report.templates[0].metadata["duration_samples"] == ["80ms", "1.5s", "3s"]


def test_compress_text_splits_on_newlines_only():
    report = compress_text("page one\x0cstill line one\r\nline two\n")

    assert report.stats.input_lines == 2
    assert compress_text("").stats.input_lines == 0
