# SPDX-License-Identifier: MIT
# This file implements the ini-backed configuration of the template miner.

import ast
import configparser
import json
import logging
from typing import Any, Dict, List

from logsqueeze.strategy import MaskingInstruction, PARAM_STR

logger = logging.getLogger(__name__)


class CompressorConfig:
    """
    Frozen-at-construction settings for one run. Defaults can be overridden
    attribute by attribute or from an ini file with :meth:`load`::

        [DRAIN]
        depth = 4
        sim_th = 0.4
        max_children = 100
        max_clusters = 1000
        max_samples = 3
        extra_delimiters = ["_"]

        [MASKING]
        masking = [{"regex_pattern": "user=\\S+", "mask_with": "<*>"}]
    """

    def __init__(self) -> None:
        self.drain_depth = 4
        self.drain_sim_th = 0.4
        self.drain_max_children = 100
        self.drain_max_clusters = 1000
        self.drain_max_samples = 3
        self.drain_max_token_count = 256
        self.drain_extra_delimiters: List[str] = []
        self.parametrize_numeric_tokens = False
        self.on_error = "skip"
        self.depth_thresholds: Dict[int, float] = {}
        self.masking_instructions: List[MaskingInstruction] = []
        self.use_default_masking = True
        self.masking_cache_size = 0
        self.profiling_enabled = False
        self.profiling_report_sec = 60
        self.output_format = "summary"
        self.output_max_templates = 50

    def load(self, config_filename: str) -> None:
        parser = configparser.ConfigParser()
        read_files = parser.read(config_filename)
        if len(read_files) == 0:
            logger.warning("config file not found: %s", config_filename)

        section_drain = "DRAIN"
        section_masking = "MASKING"
        section_profiling = "PROFILING"
        section_output = "OUTPUT"

        self.drain_depth = parser.getint(section_drain, "depth", fallback=self.drain_depth)
        self.drain_sim_th = parser.getfloat(section_drain, "sim_th", fallback=self.drain_sim_th)
        self.drain_max_children = parser.getint(section_drain, "max_children", fallback=self.drain_max_children)
        self.drain_max_clusters = parser.getint(section_drain, "max_clusters", fallback=self.drain_max_clusters)
        self.drain_max_samples = parser.getint(section_drain, "max_samples", fallback=self.drain_max_samples)
        self.drain_max_token_count = parser.getint(section_drain, "max_token_count",
                                                   fallback=self.drain_max_token_count)
        self.parametrize_numeric_tokens = parser.getboolean(section_drain, "parametrize_numeric_tokens",
                                                            fallback=self.parametrize_numeric_tokens)
        self.on_error = parser.get(section_drain, "on_error", fallback=self.on_error)

        drain_extra_delimiters_str = parser.get(section_drain, "extra_delimiters",
                                                fallback=str(self.drain_extra_delimiters))
        self.drain_extra_delimiters = ast.literal_eval(drain_extra_delimiters_str)

        depth_thresholds_str = parser.get(section_drain, "depth_thresholds", fallback="")
        if depth_thresholds_str:
            self.depth_thresholds = {int(depth): float(th) for depth, th in json.loads(depth_thresholds_str).items()}

        self.use_default_masking = parser.getboolean(section_masking, "use_default_masking",
                                                     fallback=self.use_default_masking)
        self.masking_cache_size = parser.getint(section_masking, "cache_size", fallback=self.masking_cache_size)
        if parser.has_option(section_masking, "masking"):
            masking_instructions = []
            masking_list = json.loads(parser.get(section_masking, "masking"))
            for mi in masking_list:
                instruction = MaskingInstruction(mi["regex_pattern"], mi.get("mask_with", PARAM_STR),
                                                 mi.get("name", ""))
                masking_instructions.append(instruction)
            self.masking_instructions = masking_instructions

        self.profiling_enabled = parser.getboolean(section_profiling, "enabled", fallback=self.profiling_enabled)
        self.profiling_report_sec = parser.getint(section_profiling, "report_sec", fallback=self.profiling_report_sec)

        self.output_format = parser.get(section_output, "format", fallback=self.output_format)
        self.output_max_templates = parser.getint(section_output, "max_templates",
                                                  fallback=self.output_max_templates)

    def as_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in vars(self).items() if key != "masking_instructions"}
