# SPDX-License-Identifier: MIT
# This file implements the token-wise similarity used to match lines against templates.

from typing import Iterable, Optional, Sequence, Tuple

from logsqueeze.cluster import Cluster, PatternToken, WILDCARD


def count_matching_literals(pattern: Sequence[PatternToken], tokens: Sequence[str]) -> int:
    """Number of positions where the pattern holds a literal equal to the candidate token."""
    return sum(1 for template_token, token in zip(pattern, tokens)
               if template_token is not WILDCARD and template_token == token)


def get_seq_distance(pattern: Sequence[PatternToken], tokens: Sequence[str]) -> Tuple[float, int]:
    """
    Similarity between a template and a candidate of the same length.
    Wildcard positions neither add to nor subtract from the matched count.

    :return: (matched / token count, number of wildcard positions)
    """
    assert len(pattern) == len(tokens)

    # sequences are empty - full match
    if len(pattern) == 0:
        return 1.0, 0

    param_count = sum(1 for template_token in pattern if template_token is WILDCARD)
    sim_tokens = count_matching_literals(pattern, tokens)
    return float(sim_tokens) / len(pattern), param_count


def best_match(clusters: Iterable[Cluster], tokens: Sequence[str]) -> Tuple[Optional[Cluster], float]:
    """
    Highest-scoring cluster of the same length as ``tokens``, ignoring any threshold.
    Clusters are visited in creation order and only a strictly better score
    replaces the current best, so ties go to the earliest cluster.
    """
    max_sim = -1.0
    max_cluster = None
    for cluster in clusters:
        if len(cluster.pattern) != len(tokens):
            continue
        cur_sim, _ = get_seq_distance(cluster.pattern, tokens)
        if cur_sim > max_sim:
            max_sim = cur_sim
            max_cluster = cluster
    return max_cluster, max_sim


def fast_match(clusters: Iterable[Cluster], tokens: Sequence[str], sim_th: float) -> Optional[Cluster]:
    """
    Find the best match for a log message (represented as tokens) versus a list of clusters.

    :param clusters: candidate clusters, in creation order
    :param tokens: the log message, separated to tokens
    :param sim_th: minimum required similarity (None is returned if no cluster reaches it)
    :return: best match cluster or None
    """
    match_cluster, max_sim = best_match(clusters, tokens)
    if match_cluster is not None and max_sim >= sim_th:
        return match_cluster
    return None
