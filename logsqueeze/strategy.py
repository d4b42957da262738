# SPDX-License-Identifier: MIT
# This file implements the parsing strategies used to turn raw lines into token sequences.

import logging
import re
from abc import ABC, abstractmethod
from typing import Iterable, List, Mapping, Optional, Sequence

from cachetools import LRUCache

logger = logging.getLogger(__name__)

PARAM_STR = "<*>"


class ParsingStrategy(ABC):
    """
    Capability set the engine depends on. Called once per line, in this order:
    preprocess, tokenize, then get_sim_threshold for the leaf that was reached.
    """

    @abstractmethod
    def preprocess(self, line: str) -> str:
        ...

    @abstractmethod
    def tokenize(self, line: str) -> List[str]:
        ...

    @abstractmethod
    def get_sim_threshold(self, depth: int) -> float:
        ...


class MaskingInstruction:
    def __init__(self, pattern: str, mask_with: str = PARAM_STR, name: str = "") -> None:
        self.pattern = pattern
        self.mask_with = mask_with
        self.name = name or pattern
        self.regex = re.compile(pattern)

    def mask(self, content: str) -> str:
        return self.regex.sub(self.mask_with, content)

    def __repr__(self) -> str:
        return f"MaskingInstruction(name={self.name!r}, pattern={self.pattern!r})"


# Applied in order; the most aggressive (bare numbers) goes last.
DEFAULT_MASKING = (
    ("url", r"https?://[^\s]+"),
    ("uuid", r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\b"),
    ("iso_timestamp", r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?"),
    ("ipv4", r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}(?::\d{1,5})?\b"),
    ("ipv6", r"\b(?:[0-9a-fA-F]{1,4}:){2,7}[0-9a-fA-F]{1,4}\b"),
    ("hex_id", r"\b0[xX][0-9a-fA-F]+\b"),
    ("block_id", r"\bblk_-?\d+\b"),
    ("unix_timestamp", r"\b\d{10,13}\b"),
    ("file_path", r"(?:/[\w.-]+)+"),
    ("number", r"\b\d+(?:\.\d+)?[a-zA-Z]*\b"),
)


def default_masking_instructions() -> List[MaskingInstruction]:
    return [MaskingInstruction(pattern, PARAM_STR, name) for name, pattern in DEFAULT_MASKING]


class MaskingStrategy(ParsingStrategy):
    """
    Default strategy: regex masking of common variable values (IPs, UUIDs,
    timestamps, paths, numbers...), whitespace tokenization and a similarity
    threshold that is constant unless per-depth overrides are given.

    Compiled patterns belong to the instance; two strategies never share state.

    :param sim_th: threshold returned for every depth without an override.
    :param depth_thresholds: optional {depth: threshold} overrides.
    :param instructions: masking instructions to use instead of the defaults.
    :param extra_instructions: instructions applied before the defaults.
    :param extra_delimiters: characters treated as whitespace when tokenizing.
    :param cache_size: size of the LRU memo of preprocessed lines, 0 disables it.
    """

    def __init__(self,
                 sim_th: float = 0.4,
                 depth_thresholds: Optional[Mapping[int, float]] = None,
                 instructions: Optional[Iterable[MaskingInstruction]] = None,
                 extra_instructions: Iterable[MaskingInstruction] = (),
                 extra_delimiters: Sequence[str] = (),
                 cache_size: int = 0) -> None:
        self.sim_th = sim_th
        self.depth_thresholds = dict(depth_thresholds or {})
        base = list(instructions) if instructions is not None else default_masking_instructions()
        self.instructions = tuple(list(extra_instructions) + base)
        self.extra_delimiters = tuple(extra_delimiters)
        self.cache: Optional[LRUCache] = LRUCache(maxsize=cache_size) if cache_size > 0 else None

    def preprocess(self, line: str) -> str:
        if self.cache is not None:
            cached = self.cache.get(line)
            if cached is not None:
                return cached
        content = line
        for instruction in self.instructions:
            content = instruction.mask(content)
        if self.cache is not None:
            self.cache[line] = content
        return content

    def tokenize(self, line: str) -> List[str]:
        for delimiter in self.extra_delimiters:
            line = line.replace(delimiter, " ")
        return line.split()

    def get_sim_threshold(self, depth: int) -> float:
        return self.depth_thresholds.get(depth, self.sim_th)
