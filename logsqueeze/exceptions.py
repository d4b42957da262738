# SPDX-License-Identifier: MIT
# This file defines the errors raised by the template miner.

from typing import Optional


class LogSqueezeError(Exception):
    """Base class for every error raised by logsqueeze."""


class ConfigurationError(LogSqueezeError, ValueError):
    """Invalid engine configuration. Raised at construction, never recovered."""


class StrategyError(LogSqueezeError):
    """
    The parsing strategy failed while handling one specific line.

    :param line_index: zero-based index of the offending line
    :param stage: which strategy call failed (preprocess, tokenize or get_sim_threshold)
    """

    def __init__(self, line_index: int, stage: str, cause: Optional[BaseException] = None) -> None:
        self.line_index = line_index
        self.stage = stage
        self.cause = cause
        super().__init__(f"strategy failed in {stage}() at line {line_index}: {cause!r}")
