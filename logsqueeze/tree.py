# SPDX-License-Identifier: MIT
# This file implements the bounded prefix tree used to find candidate clusters for a line.

import logging
from enum import Enum
from typing import Callable, Dict, IO, Iterator, List, MutableMapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)

OVERFLOW_LABEL = "*"

BranchKey = Union[int, str]


class NodeType(Enum):
    ROOT = 1
    LENGTH = 2
    TOKEN = 3
    LEAF = 4


class Node:
    __slots__ = ["node_type", "depth", "key_to_child_node", "overflow_child", "cluster_ids"]

    def __init__(self, node_type: NodeType, depth: int) -> None:
        self.node_type: NodeType = node_type
        self.depth = depth
        self.key_to_child_node: MutableMapping[BranchKey, int] = {}
        self.overflow_child: Optional[int] = None
        self.cluster_ids: List[int] = []

    @property
    def child_count(self) -> int:
        return len(self.key_to_child_node)


def has_numbers(s: str) -> bool:
    return any(char.isdigit() for char in s)


class ParseTree:
    """
    Fixed-depth prefix tree stored as an arena of nodes addressed by index.

    Root (depth 0) branches on token count, every length bucket (depth 1)
    then branches on the literal token at position 0, 1, ... for at most
    ``depth - 2`` levels. The last node reached is the leaf holding cluster ids.
    Nodes are created lazily and never removed.

    :param depth: number of levels excluding the length bucket and the leaf. Minimum is 2.
    :param max_children: max number of distinct literal keys under a node. Further keys
        share one overflow child.
    :param max_token_count: sequences longer than this share one overflow length bucket.
    :param parametrize_numeric_tokens: route tokens containing digits to the overflow child.
    """

    def __init__(self,
                 depth: int = 4,
                 max_children: int = 100,
                 max_token_count: int = 256,
                 parametrize_numeric_tokens: bool = False) -> None:
        self.depth = depth
        self.max_node_depth = depth - 2  # number of token levels below a length bucket
        self.max_children = max_children
        self.max_token_count = max_token_count
        self.parametrize_numeric_tokens = parametrize_numeric_tokens
        self.nodes: List[Node] = [Node(NodeType.ROOT, 0)]
        self.overflow_routes = 0

    @property
    def root(self) -> Node:
        return self.nodes[0]

    def _new_node(self, node_type: NodeType, depth: int) -> int:
        self.nodes.append(Node(node_type, depth))
        return len(self.nodes) - 1

    def length_bucket(self, token_count: int, create: bool = False) -> Optional[int]:
        root = self.root
        if token_count > self.max_token_count:
            if root.overflow_child is None and create:
                root.overflow_child = self._new_node(NodeType.LENGTH, 1)
                logger.debug("create overflow LENGTH node for sequences longer than %s", self.max_token_count)
            return root.overflow_child

        node_index = root.key_to_child_node.get(token_count)
        if node_index is None and create:
            node_index = self._new_node(NodeType.LENGTH, 1)
            root.key_to_child_node[token_count] = node_index
            logger.debug("create LENGTH node: %s", token_count)
        return node_index

    def token_levels(self, token_count: int) -> int:
        if token_count > self.max_token_count:
            # every sequence in the overflow bucket walks the same number of levels
            return min(self.max_node_depth, self.max_token_count + 1)
        return min(self.max_node_depth, token_count)

    def _child_for(self, node: Node, token: str) -> int:
        child_index = node.key_to_child_node.get(token)
        if child_index is not None:
            return child_index

        parametrize = self.parametrize_numeric_tokens and has_numbers(token)
        if not parametrize and node.child_count < self.max_children:
            child_index = self._new_node(NodeType.TOKEN, node.depth + 1)
            node.key_to_child_node[token] = child_index
            return child_index

        if node.overflow_child is None:
            node.overflow_child = self._new_node(NodeType.TOKEN, node.depth + 1)
        if not parametrize:
            self.overflow_routes += 1
            logger.debug("node at depth %s is full (%s children), routing %r to overflow child",
                         node.depth, node.child_count, token)
        return node.overflow_child

    def descend(self, tokens: Sequence[str]) -> int:
        """Walk (and lazily build) the path for ``tokens``, returning the leaf node index."""
        node_index = self.length_bucket(len(tokens), create=True)
        assert node_index is not None
        for token in tokens[:self.token_levels(len(tokens))]:
            node_index = self._child_for(self.nodes[node_index], token)
        leaf = self.nodes[node_index]
        if leaf.node_type is not NodeType.LENGTH:
            leaf.node_type = NodeType.LEAF
        return node_index

    def iter_cluster_ids(self, node_index: int) -> Iterator[int]:
        """Depth-first cluster ids below a node, in node creation order."""
        node = self.nodes[node_index]
        yield from node.cluster_ids
        children = list(node.key_to_child_node.values())
        if node.overflow_child is not None:
            children.append(node.overflow_child)
        for child_index in sorted(children):
            yield from self.iter_cluster_ids(child_index)

    def print_tree(self,
                   describe_cluster: Optional[Callable[[int], str]] = None,
                   file: Optional[IO[str]] = None,
                   max_clusters: int = 5) -> None:
        self.print_node("root", 0, 0, describe_cluster, file, max_clusters)

    def print_node(self,
                   token: str,
                   node_index: int,
                   depth: int,
                   describe_cluster: Optional[Callable[[int], str]],
                   file: Optional[IO[str]],
                   max_clusters: int) -> None:
        node = self.nodes[node_index]
        out_str = '\t' * depth

        if depth == 0:
            out_str += f'<{token}>'
        elif depth == 1:
            out_str += f'<L={token}>'
        else:
            out_str += f'"{token}"'

        if len(node.cluster_ids) > 0:
            out_str += f" (cluster_count={len(node.cluster_ids)})"

        print(out_str, file=file)

        children: Dict[str, int] = {str(key): index for key, index in node.key_to_child_node.items()}
        for key, child_index in children.items():
            self.print_node(key, child_index, depth + 1, describe_cluster, file, max_clusters)
        if node.overflow_child is not None:
            label = f">{self.max_token_count}" if depth == 0 else OVERFLOW_LABEL
            self.print_node(label, node.overflow_child, depth + 1, describe_cluster, file, max_clusters)

        if describe_cluster is not None:
            for cid in node.cluster_ids[:max_clusters]:
                print('\t' * (depth + 1) + describe_cluster(cid), file=file)
