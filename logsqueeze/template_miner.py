# SPDX-License-Identifier: MIT
# This file wires configuration, parsing strategy, profiler and engine together.

import logging
import re
import time
from typing import Any, Dict, Iterable, Optional, Sequence

from drain3.simple_profiler import NullProfiler, Profiler, SimpleProfiler

from logsqueeze.config import CompressorConfig
from logsqueeze.drain import Drain, ProgressCallback
from logsqueeze.extractors import ClusterHook
from logsqueeze.report import CompressionReport
from logsqueeze.strategy import MaskingStrategy, ParsingStrategy

logger = logging.getLogger(__name__)

LINE_SEPARATOR = re.compile(r"\r?\n")


def strategy_from_config(config: CompressorConfig) -> MaskingStrategy:
    return MaskingStrategy(sim_th=config.drain_sim_th,
                           depth_thresholds=config.depth_thresholds,
                           instructions=None if config.use_default_masking else [],
                           extra_instructions=config.masking_instructions,
                           extra_delimiters=config.drain_extra_delimiters,
                           cache_size=config.masking_cache_size)


class TemplateMiner:

    def __init__(self,
                 config: Optional[CompressorConfig] = None,
                 strategy: Optional[ParsingStrategy] = None,
                 hooks: Sequence[ClusterHook] = ()) -> None:
        """
        :param config: settings for this run, defaults when omitted
        :param strategy: overrides the masking strategy built from the config
        :param hooks: per-match metadata extractors
        """
        if config is None:
            config = CompressorConfig()
        self.config = config

        self.profiler: Profiler = NullProfiler()
        if self.config.profiling_enabled:
            self.profiler = SimpleProfiler(report_sec=self.config.profiling_report_sec)

        self.strategy = strategy if strategy is not None else strategy_from_config(config)
        self.drain = Drain(depth=config.drain_depth,
                           sim_th=config.drain_sim_th,
                           max_children=config.drain_max_children,
                           max_clusters=config.drain_max_clusters,
                           max_samples=config.drain_max_samples,
                           strategy=self.strategy,
                           max_token_count=config.drain_max_token_count,
                           parametrize_numeric_tokens=config.parametrize_numeric_tokens,
                           on_error=config.on_error,
                           hooks=hooks,
                           profiler=self.profiler)
        logger.debug("template miner created with %s", config.as_dict())

    def add_log_message(self, log_message: str) -> Dict[str, Any]:
        self.profiler.start_section("total")
        try:
            cluster, change_type = self.drain.add_log_message(log_message)
        finally:
            self.profiler.end_section("total")
        self.profiler.report(self.config.profiling_report_sec)

        return {
            "change_type": change_type,
            "cluster_id": cluster.cluster_id,
            "cluster_size": cluster.size,
            "template_mined": cluster.get_template(),
            "cluster_count": len(self.drain.clusters),
        }

    def get_report(self, format: Optional[str] = None, max_templates: Optional[int] = None,
                   processing_time_ms: Optional[int] = None) -> CompressionReport:
        return self.drain.get_report(format or self.config.output_format,
                                     self.config.output_max_templates if max_templates is None else max_templates,
                                     processing_time_ms)


def compress(lines: Iterable[str],
             config: Optional[CompressorConfig] = None,
             format: Optional[str] = None,
             max_templates: Optional[int] = None,
             strategy: Optional[ParsingStrategy] = None,
             hooks: Sequence[ClusterHook] = (),
             on_progress: Optional[ProgressCallback] = None) -> CompressionReport:
    """
    Compress log lines by mining their templates.

    >>> report = compress(["Connection from 10.0.0.1 established",
    ...                    "Connection from 10.0.0.2 established"])
    >>> report.templates[0].pattern
    'Connection from <*> established'
    """
    template_miner = TemplateMiner(config, strategy, hooks)
    start_time = time.time()
    template_miner.drain.add_log_messages(lines, on_progress)
    processing_time_ms = round((time.time() - start_time) * 1000)
    return template_miner.get_report(format, max_templates, processing_time_ms)


def compress_text(text: str, **kwargs) -> CompressionReport:
    """
    Compress a block of text holding one log line per line.
    Lines are separated by "\\n" or "\\r\\n" only, a single trailing newline
    does not start an extra empty line.
    """
    lines = LINE_SEPARATOR.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return compress(lines, **kwargs)
