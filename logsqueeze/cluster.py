# SPDX-License-Identifier: MIT
# This file implements the clusters (templates) mined by the engine.

from typing import Any, Dict, Iterable, List, MutableSequence, Sequence, Union

from logsqueeze.strategy import PARAM_STR


class _Wildcard:
    """Singleton marking a generalized pattern position."""

    __slots__ = ()
    _instance = None

    def __new__(cls) -> "_Wildcard":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "WILDCARD"

    def __reduce__(self) -> str:
        return "WILDCARD"


WILDCARD = _Wildcard()

PatternToken = Union[str, _Wildcard]


class Cluster:
    __slots__ = ["cluster_id", "pattern", "size", "sample_variables", "first_seen", "last_seen",
                 "max_samples", "metadata", "synthetic"]

    def __init__(self,
                 cluster_id: int,
                 tokens: Iterable[str],
                 line_index: int,
                 max_samples: int = 3,
                 synthetic: bool = False) -> None:
        self.cluster_id = cluster_id
        self.pattern: List[PatternToken] = list(tokens)
        self.size = 1
        self.sample_variables: List[List[str]] = []
        self.first_seen = line_index
        self.last_seen = line_index
        self.max_samples = max_samples
        self.metadata: Dict[str, Any] = {}
        self.synthetic = synthetic

    def __len__(self) -> int:
        return len(self.pattern)

    def get_template(self, param_str: str = PARAM_STR) -> str:
        return ' '.join(param_str if token is WILDCARD else token for token in self.pattern)

    def wildcard_count(self) -> int:
        return sum(1 for token in self.pattern if token is WILDCARD)

    def update(self, tokens: Sequence[str], line_index: int) -> bool:
        """
        Merge a matched line into the cluster: positions whose literal
        disagrees with the line become wildcards for good, then the
        occurrence counters move and a sample of the variable values is
        kept while there is room for one.

        :return: True if the pattern changed.
        """
        changed = merge_into_pattern(self.pattern, tokens)
        self.size += 1
        self.last_seen = line_index

        variables = [token for template_token, token in zip(self.pattern, tokens) if template_token is WILDCARD]
        if variables and len(self.sample_variables) < self.max_samples:
            self.sample_variables.append(variables)
        return changed

    def absorb(self, line_index: int) -> None:
        """Count a line without comparing it position by position."""
        self.size += 1
        self.last_seen = line_index

    def __str__(self) -> str:
        return f"ID={str(self.cluster_id).ljust(5)} : size={str(self.size).ljust(10)}: {self.get_template()}"


def merge_into_pattern(pattern: MutableSequence[PatternToken], tokens: Sequence[str]) -> bool:
    """
    Replace every literal of ``pattern`` that differs from ``tokens`` with WILDCARD, in place.
    Wildcards are never turned back into literals.
    """
    assert len(pattern) == len(tokens)
    changed = False
    for index, (template_token, token) in enumerate(zip(pattern, tokens)):
        if template_token is not WILDCARD and template_token != token:
            pattern[index] = WILDCARD
            changed = True
    return changed
