# SPDX-License-Identifier: MIT

from logsqueeze.cluster import Cluster, WILDCARD
from logsqueeze.config import CompressorConfig
from logsqueeze.drain import Drain, ProgressEvent
from logsqueeze.exceptions import ConfigurationError, LogSqueezeError, StrategyError
from logsqueeze.extractors import ClusterHook, DurationExtractor, SeverityExtractor
from logsqueeze.report import CompressionReport, Statistics, Template
from logsqueeze.strategy import MaskingInstruction, MaskingStrategy, ParsingStrategy, PARAM_STR
from logsqueeze.template_miner import TemplateMiner, compress, compress_text
