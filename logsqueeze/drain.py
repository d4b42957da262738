# SPDX-License-Identifier: MIT
# This file implements the bounded Drain engine: tree descent, match-or-create and the global bounds.

import logging
from typing import Callable, Collection, IO, Iterable, List, MutableMapping, NamedTuple, Optional, Sequence, Tuple

from drain3.simple_profiler import NullProfiler, Profiler

from logsqueeze.cluster import Cluster
from logsqueeze.exceptions import ConfigurationError, StrategyError
from logsqueeze.extractors import ClusterHook
from logsqueeze.matcher import best_match, count_matching_literals, fast_match
from logsqueeze.report import CompressionReport, build_report
from logsqueeze.strategy import MaskingStrategy, ParsingStrategy
from logsqueeze.tree import ParseTree

logger = logging.getLogger(__name__)

UNPARSABLE_TEMPLATE = "<unparsable>"

ON_ERROR_POLICIES = ("skip", "raise")

FULL_SEARCH_STRATEGIES = ("never", "fallback", "always")


class ProgressEvent(NamedTuple):
    processed_lines: int
    total_lines: Optional[int]
    phase: str
    percent_complete: Optional[int]


ProgressCallback = Callable[[ProgressEvent], None]


class Drain:
    def __init__(self,
                 depth: int = 4,
                 sim_th: float = 0.4,
                 max_children: int = 100,
                 max_clusters: int = 1000,
                 max_samples: int = 3,
                 strategy: Optional[ParsingStrategy] = None,
                 max_token_count: int = 256,
                 parametrize_numeric_tokens: bool = False,
                 on_error: str = "skip",
                 hooks: Sequence[ClusterHook] = (),
                 profiler: Profiler = NullProfiler()) -> None:
        """
        Create a new Drain instance.

        :param depth: number of tree levels excluding the length bucket and the leaf. Minimum is 2.
            For depth==4, lines are bucketed by token count, then by their first
            two tokens, and the node reached holds the candidate clusters.
        :param sim_th: similarity threshold of the default strategy - if the share of
            agreeing literal tokens is below this number, a new cluster is created.
            Ignored when a custom strategy is given.
        :param max_children: max number of distinct token branches of an internal node.
        :param max_clusters: max number of clusters. When reached, unmatched lines are
            absorbed into the closest existing cluster instead (degraded matching).
        :param max_samples: max number of variable samples kept per cluster.
        :param strategy: preprocessing/tokenizing/threshold strategy, MaskingStrategy by default.
        :param max_token_count: lines with more tokens share a single length bucket.
        :param parametrize_numeric_tokens: tokens containing digits never get their own branch.
        :param on_error: "skip" absorbs lines the strategy fails on into an unparsable
            cluster, "raise" aborts with StrategyError.
        :param hooks: called whenever a line is merged into or creates a cluster.
        """
        if not isinstance(depth, int) or depth < 2:
            raise ConfigurationError("depth argument must be at least 2")
        if not isinstance(max_children, int) or max_children < 1:
            raise ConfigurationError("max_children argument must be at least 1")
        if not isinstance(max_clusters, int) or max_clusters < 1:
            raise ConfigurationError("max_clusters argument must be at least 1")
        if not isinstance(max_samples, int) or max_samples < 0:
            raise ConfigurationError("max_samples argument must not be negative")
        if not isinstance(max_token_count, int) or max_token_count < 0:
            raise ConfigurationError("max_token_count argument must not be negative")
        if not 0.0 <= sim_th <= 1.0:
            raise ConfigurationError("sim_th argument must be between 0.0 and 1.0")
        if on_error not in ON_ERROR_POLICIES:
            raise ConfigurationError(f"on_error argument must be one of {ON_ERROR_POLICIES}")

        self.depth = depth
        self.sim_th = sim_th
        self.max_children = max_children
        self.max_clusters = max_clusters
        self.max_samples = max_samples
        self.strategy = strategy if strategy is not None else MaskingStrategy(sim_th=sim_th)
        self.on_error = on_error
        self.hooks = tuple(hooks)
        self.profiler = profiler
        self.tree = ParseTree(depth, max_children, max_token_count, parametrize_numeric_tokens)

        self.id_to_cluster: MutableMapping[int, Cluster] = {}
        self.clusters_counter = 0
        self.line_count = 0
        self.degraded_lines = 0
        self.unparsable_lines = 0
        self.unparsable_cluster_id: Optional[int] = None

    @property
    def clusters(self) -> Collection[Cluster]:
        """All clusters in creation order."""
        return list(self.id_to_cluster.values())

    def sorted_clusters(self) -> List[Cluster]:
        """Clusters by descending occurrences, ties in creation order."""
        return sorted(self.id_to_cluster.values(), key=lambda it: it.size, reverse=True)

    @property
    def overflow_routes(self) -> int:
        return self.tree.overflow_routes

    def _call_strategy(self, stage: str, func: Callable, arg, line_index: int):
        try:
            return func(arg)
        except Exception as e:
            raise StrategyError(line_index, stage, e) from e

    def get_content_as_tokens(self, content: str, line_index: int) -> List[str]:
        preprocessed = self._call_strategy("preprocess", self.strategy.preprocess, content, line_index)
        tokens = self._call_strategy("tokenize", self.strategy.tokenize, preprocessed, line_index)
        return list(tokens)

    def add_log_message(self, content: str) -> Tuple[Cluster, str]:
        """
        Feed one line to the engine.

        :return: the cluster that now accounts for the line and the change type:
            "cluster_created", "cluster_template_changed", "none", "degraded" or "unparsable".
        """
        line_index = self.line_count
        try:
            content_tokens = self.get_content_as_tokens(content, line_index)
            if self.profiler:
                self.profiler.start_section("tree_search")
            try:
                leaf_index = self.tree.descend(content_tokens)
                leaf = self.tree.nodes[leaf_index]
                sim_th = self._call_strategy("get_sim_threshold", self.strategy.get_sim_threshold,
                                             leaf.depth, line_index)
                candidates = [self.id_to_cluster[cid] for cid in leaf.cluster_ids]
                match_cluster = fast_match(candidates, content_tokens, sim_th)
            finally:
                if self.profiler:
                    self.profiler.end_section()
        except StrategyError as e:
            if self.on_error == "raise":
                raise
            self.line_count = line_index + 1
            return self._absorb_unparsable(content, line_index, e), "unparsable"

        self.line_count = line_index + 1

        if match_cluster is not None:
            changed = match_cluster.update(content_tokens, line_index)
            self._run_hooks(match_cluster, content_tokens, content, line_index, False)
            return match_cluster, "cluster_template_changed" if changed else "none"

        if len(self.id_to_cluster) < self.max_clusters:
            if self.profiler:
                self.profiler.start_section("create_cluster")
            cluster = self._create_cluster(content_tokens, line_index)
            leaf.cluster_ids.append(cluster.cluster_id)
            if self.profiler:
                self.profiler.end_section()
            self._run_hooks(cluster, content_tokens, content, line_index, True)
            return cluster, "cluster_created"

        cluster = self._absorb_degraded(leaf_index, content_tokens, line_index)
        self._run_hooks(cluster, content_tokens, content, line_index, False)
        return cluster, "degraded"

    def add_log_messages(self, lines: Iterable[str],
                         on_progress: Optional[ProgressCallback] = None) -> List[Tuple[Cluster, str]]:
        """
        Feed lines in order. At most about a hundred progress events are emitted
        when the total is known, one per thousand lines otherwise.
        """
        total = len(lines) if isinstance(lines, Sequence) else None
        report_interval = max(1, total // 100) if total else 1000
        results = []

        if on_progress is not None and total:
            on_progress(ProgressEvent(0, total, "parsing", 0))

        processed = 0
        for line in lines:
            results.append(self.add_log_message(line))
            processed += 1
            if on_progress is not None and (processed - 1) % report_interval == 0:
                percent = round(processed * 100 / total) if total else None
                on_progress(ProgressEvent(processed, total, "clustering", percent))

        if on_progress is not None and processed > 0:
            on_progress(ProgressEvent(processed, total, "finalizing", 100))
        return results

    def _new_cluster_id(self) -> int:
        self.clusters_counter += 1
        return self.clusters_counter

    def _create_cluster(self, tokens: Sequence[str], line_index: int) -> Cluster:
        cluster = Cluster(self._new_cluster_id(), tokens, line_index, self.max_samples)
        self.id_to_cluster[cluster.cluster_id] = cluster
        logger.debug("create cluster %s at line %s: %s", cluster.cluster_id, line_index, tokens)
        return cluster

    def _absorb_degraded(self, leaf_index: int, tokens: Sequence[str], line_index: int) -> Cluster:
        """
        max_clusters is reached: pick the best existing cluster regardless of the threshold.
        Leaf first, then the whole length bucket, then the cluster of closest length.
        """
        self.degraded_lines += 1
        leaf = self.tree.nodes[leaf_index]
        cluster, _ = best_match((self.id_to_cluster[cid] for cid in leaf.cluster_ids), tokens)

        if cluster is None:
            bucket_index = self.tree.length_bucket(len(tokens))
            if bucket_index is not None:
                cluster, _ = best_match((self.id_to_cluster[cid] for cid in self.tree.iter_cluster_ids(bucket_index)),
                                        tokens)

        if cluster is not None:
            cluster.update(tokens, line_index)
            logger.debug("max_clusters reached, line %s merged into cluster %s", line_index, cluster.cluster_id)
            return cluster

        cluster = self._closest_length_cluster(len(tokens))
        cluster.absorb(line_index)
        logger.debug("max_clusters reached, line %s of length %s absorbed by cluster %s of length %s",
                     line_index, len(tokens), cluster.cluster_id, len(cluster))
        return cluster

    def _closest_length_cluster(self, token_count: int) -> Cluster:
        candidates = [c for c in self.id_to_cluster.values() if not c.synthetic]
        if not candidates:
            candidates = list(self.id_to_cluster.values())
        return min(candidates, key=lambda c: (abs(len(c) - token_count), c.cluster_id))

    def _absorb_unparsable(self, content, line_index: int, error: StrategyError) -> Cluster:
        self.unparsable_lines += 1
        logger.warning("line %s could not be parsed, absorbing it as unparsable: %s", line_index, error)

        if self.unparsable_cluster_id is not None:
            cluster = self.id_to_cluster[self.unparsable_cluster_id]
            cluster.absorb(line_index)
        elif len(self.id_to_cluster) < self.max_clusters:
            cluster = Cluster(self._new_cluster_id(), [UNPARSABLE_TEMPLATE], line_index, self.max_samples,
                              synthetic=True)
            self.id_to_cluster[cluster.cluster_id] = cluster
            self.unparsable_cluster_id = cluster.cluster_id
        else:
            # no room for the synthetic cluster, the earliest cluster takes the line
            self.degraded_lines += 1
            cluster = self.id_to_cluster[min(self.id_to_cluster)]
            cluster.absorb(line_index)
            return cluster

        if len(cluster.sample_variables) < self.max_samples:
            cluster.sample_variables.append([str(content)])
        return cluster

    def _run_hooks(self, cluster: Cluster, tokens: Sequence[str], line: str, line_index: int, created: bool) -> None:
        for hook in self.hooks:
            hook.on_match(cluster, tokens, line, line_index, created)

    def find_leaf(self, tokens: Sequence[str]) -> Optional[int]:
        """Read-only descent: follow existing branches, overflow children for unknown tokens."""
        node_index = self.tree.length_bucket(len(tokens))
        if node_index is None:
            return None
        for token in tokens[:self.tree.token_levels(len(tokens))]:
            node = self.tree.nodes[node_index]
            child_index = node.key_to_child_node.get(token)
            if child_index is None:
                child_index = node.overflow_child
            if child_index is None:
                return None
            node_index = child_index
        return node_index

    def match(self, content: str, full_search_strategy: str = "never") -> Optional[Cluster]:
        """
        Match log message against an already existing cluster.
        Every literal position of the template must agree with the line.
        New cluster will not be created as a result of this call, nor any cluster modifications.

        :param content: log message to match
        :param full_search_strategy: when to perform full cluster search.
            (1) "never" is the fastest, will only look at the leaf the line descends to;
            (2) "fallback" will search all clusters with the same token count, but only in
            case the leaf has no match;
            (3) "always" will always evaluate all clusters with the same token count.
        :return: Matched cluster or None if no match found.
        """
        if full_search_strategy not in FULL_SEARCH_STRATEGIES:
            raise ValueError(f"unknown full_search_strategy {full_search_strategy!r}, "
                             f"expected one of {FULL_SEARCH_STRATEGIES}")

        content_tokens = self.get_content_as_tokens(content, self.line_count)

        def exact_match(cluster_ids: Iterable[int]) -> Optional[Cluster]:
            for cluster_id in cluster_ids:
                cluster = self.id_to_cluster[cluster_id]
                if len(cluster) != len(content_tokens):
                    continue
                literal_count = len(cluster) - cluster.wildcard_count()
                if count_matching_literals(cluster.pattern, content_tokens) == literal_count:
                    return cluster
            return None

        def full_search() -> Optional[Cluster]:
            bucket_index = self.tree.length_bucket(len(content_tokens))
            if bucket_index is None:
                return None
            return exact_match(self.tree.iter_cluster_ids(bucket_index))

        if full_search_strategy == "always":
            return full_search()

        leaf_index = self.find_leaf(content_tokens)
        if leaf_index is not None:
            match_cluster = exact_match(self.tree.nodes[leaf_index].cluster_ids)
            if match_cluster is not None:
                return match_cluster

        if full_search_strategy == "never":
            return None

        return full_search()

    def get_report(self, format: str = "summary", max_templates: int = 50,
                   processing_time_ms: Optional[int] = None) -> CompressionReport:
        return build_report(self, format=format, max_templates=max_templates, processing_time_ms=processing_time_ms)

    def print_tree(self, file: Optional[IO[str]] = None, max_clusters: int = 5) -> None:
        self.tree.print_tree(lambda cid: str(self.id_to_cluster[cid]), file, max_clusters)
