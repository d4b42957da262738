# SPDX-License-Identifier: MIT

from logsqueeze.cluster import Cluster, WILDCARD, merge_into_pattern
from logsqueeze.matcher import best_match, count_matching_literals, fast_match, get_seq_distance


def test_new_cluster_is_verbatim_copy_of_tokens():
    cluster = Cluster(1, ["ERROR", "Connection", "failed"], 5)

    assert cluster.pattern == ["ERROR", "Connection", "failed"]
    assert cluster.size == 1
    assert cluster.first_seen == 5
    assert cluster.last_seen == 5
    assert cluster.sample_variables == []


def test_update_wildcards_differing_positions_and_moves_counters():
    cluster = Cluster(1, ["ERROR", "timeout", "on", "port", "8080"], 0)

    changed = cluster.update(["ERROR", "connection", "on", "port", "9090"], 10)

    assert changed
    assert cluster.pattern == ["ERROR", WILDCARD, "on", "port", WILDCARD]
    assert cluster.get_template() == "ERROR <*> on port <*>"
    assert cluster.size == 2
    assert cluster.first_seen == 0
    assert cluster.last_seen == 10
    assert cluster.sample_variables == [["connection", "9090"]]


def test_wildcard_never_reverts_to_literal():
    cluster = Cluster(1, ["a", "b", "c"], 0)
    cluster.update(["a", "x", "c"], 1)

    changed = cluster.update(["a", "b", "c"], 2)

    assert not changed
    assert cluster.pattern == ["a", WILDCARD, "c"]


def test_samples_are_bounded():
    cluster = Cluster(1, ["IP:", "first"], 0, max_samples=2)

    cluster.update(["IP:", "1.1.1.1"], 1)
    cluster.update(["IP:", "2.2.2.2"], 2)
    cluster.update(["IP:", "3.3.3.3"], 3)

    assert cluster.sample_variables == [["1.1.1.1"], ["2.2.2.2"]]
    assert cluster.size == 4


def test_no_samples_without_wildcards():
    cluster = Cluster(1, ["same", "line"], 0)
    cluster.update(["same", "line"], 1)
    assert cluster.sample_variables == []


def test_zero_max_samples_keeps_nothing():
    cluster = Cluster(1, ["a", "b"], 0, max_samples=0)
    cluster.update(["a", "c"], 1)
    assert cluster.sample_variables == []


def test_masked_placeholder_is_a_literal():
    cluster = Cluster(1, ["from", "<*>"], 0)
    assert cluster.wildcard_count() == 0
    assert get_seq_distance(cluster.pattern, ["from", "<*>"]) == (1.0, 0)


def test_merge_into_pattern_in_place():
    pattern = ["a", WILDCARD, "c"]
    assert merge_into_pattern(pattern, ["a", "b", "d"])
    assert pattern == ["a", WILDCARD, WILDCARD]


def test_similarity_ignores_wildcard_positions():
    pattern = ["ERROR", WILDCARD, "failed", "now"]

    assert count_matching_literals(pattern, ["ERROR", "x", "failed", "later"]) == 2
    assert get_seq_distance(pattern, ["ERROR", "x", "failed", "later"]) == (0.5, 1)
    assert get_seq_distance(["A", "B", "C", "D"], ["A", "B", "X", "Y"]) == (0.5, 0)


def test_empty_sequences_are_a_full_match():
    assert get_seq_distance([], []) == (1.0, 0)


def test_best_match_prefers_earliest_on_ties():
    first = Cluster(1, ["a", "b", "x"], 0)
    second = Cluster(2, ["a", "b", "y"], 1)

    cluster, sim = best_match([first, second], ["a", "b", "z"])

    assert cluster is first
    assert sim == 2 / 3


def test_best_match_skips_other_lengths():
    short = Cluster(1, ["a"], 0)
    assert best_match([short], ["a", "b"]) == (None, -1.0)


def test_fast_match_applies_threshold():
    cluster = Cluster(1, ["a", "b", "c", "d"], 0)

    assert fast_match([cluster], ["a", "x", "y", "z"], 0.4) is None
    assert fast_match([cluster], ["a", "b", "y", "z"], 0.4) is cluster
    assert fast_match([cluster], ["a", "b", "c", "z"], 1.0) is None
