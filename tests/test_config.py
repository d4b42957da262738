# SPDX-License-Identifier: MIT

from logsqueeze import CompressorConfig
from logsqueeze.template_miner import strategy_from_config

CONFIG = """
[DRAIN]
depth = 5
sim_th = 0.6
max_children = 10
max_clusters = 20
max_samples = 1
extra_delimiters = ["_"]
on_error = raise
depth_thresholds = {"1": 1.0}

[MASKING]
use_default_masking = false
cache_size = 100
masking = [
          {"regex_pattern": "user=\\\\S+", "mask_with": "user=<*>", "name": "kv_user"}
          ]

[PROFILING]
enabled = true
report_sec = 30

[OUTPUT]
format = json
max_templates = 7
"""


def test_defaults():
    config = CompressorConfig()

    assert config.drain_depth == 4
    assert config.drain_sim_th == 0.4
    assert config.drain_max_clusters == 1000
    assert config.on_error == "skip"
    assert config.output_format == "summary"


def test_load(tmp_path):
    path = tmp_path / "logsqueeze.ini"
    path.write_text(CONFIG)
    config = CompressorConfig()

    config.load(str(path))

    assert config.drain_depth == 5
    assert config.drain_sim_th == 0.6
    assert config.drain_max_children == 10
    assert config.drain_max_clusters == 20
    assert config.drain_max_samples == 1
    assert config.drain_extra_delimiters == ["_"]
    assert config.on_error == "raise"
    assert config.depth_thresholds == {1: 1.0}
    assert config.use_default_masking is False
    assert config.masking_cache_size == 100
    assert [mi.name for mi in config.masking_instructions] == ["kv_user"]
    assert config.profiling_enabled is True
    assert config.profiling_report_sec == 30
    assert config.output_format == "json"
    assert config.output_max_templates == 7


def test_loaded_masking_is_used(tmp_path):
    path = tmp_path / "logsqueeze.ini"
    path.write_text(CONFIG)
    config = CompressorConfig()
    config.load(str(path))

    strategy = strategy_from_config(config)

    assert strategy.preprocess("login user=bob took 5ms") == "login user=<*> took 5ms"
    assert strategy.tokenize("a_b") == ["a", "b"]
    assert strategy.get_sim_threshold(1) == 1.0
    assert strategy.get_sim_threshold(2) == 0.6


def test_missing_file_keeps_defaults(tmp_path, caplog):
    config = CompressorConfig()

    config.load(str(tmp_path / "missing.ini"))

    assert config.drain_depth == 4
    assert config.masking_instructions == []
    assert "config file not found" in caplog.text
