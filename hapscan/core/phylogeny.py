"""Perfect phylogeny tree model and Newick conversion."""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Set

from .intervals import BasePairInterval

__all__ = [
    "NoValidPhylogenyError",
    "NewickFormatError",
    "PhylogenyTreeEdge",
    "PhylogenyTreeNode",
    "PhylogenyInterval",
]

STRAIN_SEPARATOR = "|"
CHILD_SEPARATOR = ","

_OUTER_PATTERN = re.compile(r"^(.*);$", re.DOTALL)
# group 2: edge list (absent for leaves), group 3: node name
_NODE_PATTERN = re.compile(r"^(\((.+)\))?([^()]*)$", re.DOTALL)
_EDGE_PATTERN = re.compile(r"^(.*):(.*)$", re.DOTALL)


class NoValidPhylogenyError(Exception):
    """Raised when a set of SDPs cannot be arranged into a perfect phylogeny."""

    pass


class NewickFormatError(ValueError):
    """Raised when tree text does not follow the Newick grammar."""

    pass


@dataclass
class PhylogenyTreeEdge:
    """Edge pointing from a parent node to ``node``.

    Attributes:
        sdp: Strains below the edge as an SDP bit set. ``0`` marks an edge added
            to give a strain its own leaf; ``None`` means unknown (parsed trees)
        node: Child node
        length: Branch length
    """

    sdp: Optional[int]
    node: "PhylogenyTreeNode"
    length: float = 1.0


@dataclass
class PhylogenyTreeNode:
    """Tree node holding the strains that live at it and its child edges.

    Example:
        >>> leaf_a = PhylogenyTreeNode(strains=["A"])
        >>> leaf_b = PhylogenyTreeNode(strains=["B"])
        >>> root = PhylogenyTreeNode([
        ...     PhylogenyTreeEdge(0b01, leaf_a),
        ...     PhylogenyTreeEdge(0b10, leaf_b),
        ... ])
        >>> root.to_newick()
        '(A:1.0,B:1.0);'
    """

    child_edges: List[PhylogenyTreeEdge] = field(default_factory=list)
    strains: List[str] = field(default_factory=list)

    def is_leaf(self) -> bool:
        return not self.child_edges

    def all_strains(self) -> List[str]:
        """Strains at or below this node, parent before children."""
        found = list(self.strains)
        for edge in self.child_edges:
            found.extend(edge.node.all_strains())
        return found

    def leaf_nodes(self) -> List["PhylogenyTreeNode"]:
        if self.is_leaf():
            return [self]
        leaves: List[PhylogenyTreeNode] = []
        for edge in self.child_edges:
            leaves.extend(edge.node.leaf_nodes())
        return leaves

    def edge_sdps(self) -> List[int]:
        """SDPs of every edge below this node in depth first order."""
        sdps: List[int] = []
        for edge in self.child_edges:
            if edge.sdp is not None:
                sdps.append(edge.sdp)
            sdps.extend(edge.node.edge_sdps())
        return sdps

    def copy(self) -> "PhylogenyTreeNode":
        return PhylogenyTreeNode(
            [
                PhylogenyTreeEdge(edge.sdp, edge.node.copy(), edge.length)
                for edge in self.child_edges
            ],
            list(self.strains),
        )

    def to_newick(self) -> str:
        """Serialize the tree, naming each node by its ``|`` joined strains."""
        return self._to_newick_recursive() + ";"

    def _to_newick_recursive(self) -> str:
        text = ""
        if not self.is_leaf():
            children = CHILD_SEPARATOR.join(
                f"{edge.node._to_newick_recursive()}:{edge.length!r}"
                for edge in self.child_edges
            )
            text = f"({children})"
        return text + STRAIN_SEPARATOR.join(self.strains)

    @classmethod
    def from_newick(cls, text: str) -> "PhylogenyTreeNode":
        """Parse Newick text written by ``to_newick``.

        Edge SDPs are not part of the text and come back as ``None``.

        Raises:
            NewickFormatError: If the text is malformed
        """
        match = _OUTER_PATTERN.match(text.strip())
        if not match:
            raise NewickFormatError(f"can't convert {text!r} to a phylogeny tree")
        return cls._node_from_newick(match.group(1))

    @classmethod
    def _node_from_newick(cls, text: str) -> "PhylogenyTreeNode":
        match = _NODE_PATTERN.match(text)
        if not match:
            raise NewickFormatError(f"failed to parse {text!r} as a node")
        edge_list, name = match.group(2), match.group(3)
        node = cls()
        if name:
            node.strains = name.split(STRAIN_SEPARATOR)
        if edge_list:
            node.child_edges = cls._edges_from_newick(edge_list)
        return node

    @classmethod
    def _edges_from_newick(cls, text: str) -> List[PhylogenyTreeEdge]:
        edges: List[PhylogenyTreeEdge] = []
        depth = 0
        edge_start = 0
        for i, char in enumerate(text):
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth < 0:
                    break
            elif depth == 0 and char == CHILD_SEPARATOR:
                edges.append(cls._edge_from_newick(text[edge_start:i]))
                edge_start = i + 1
        if depth != 0:
            raise NewickFormatError(f"unbalanced parentheses in edge list: {text!r}")
        edges.append(cls._edge_from_newick(text[edge_start:]))
        return edges

    @classmethod
    def _edge_from_newick(cls, text: str) -> PhylogenyTreeEdge:
        match = _EDGE_PATTERN.match(text)
        if not match:
            raise NewickFormatError(f"edge {text!r} has no length")
        try:
            length = float(match.group(2))
        except ValueError as e:
            raise NewickFormatError(
                f"bad edge length {match.group(2)!r} in {text!r}"
            ) from e
        return PhylogenyTreeEdge(None, cls._node_from_newick(match.group(1)), length)

    def resolve_to_single_strain_leaf_nodes(
        self, epsilon: float
    ) -> "PhylogenyTreeNode":
        """Give every strain its own leaf.

        Strains sitting on an interior node, or sharing a leaf with other
        strains, move to new leaves hanging from ``epsilon`` length edges with
        an empty SDP.
        """
        new_edges = [
            PhylogenyTreeEdge(
                edge.sdp,
                edge.node.resolve_to_single_strain_leaf_nodes(epsilon),
                edge.length,
            )
            for edge in self.child_edges
        ]
        strain_count = len(self.strains)
        if strain_count >= 2 or (not self.is_leaf() and strain_count >= 1):
            for strain in self.strains:
                new_edges.append(
                    PhylogenyTreeEdge(0, PhylogenyTreeNode(strains=[strain]), epsilon)
                )
        if new_edges:
            return PhylogenyTreeNode(new_edges, [])
        return PhylogenyTreeNode([], list(self.strains))

    def remove_non_branching_interior_nodes(self) -> "PhylogenyTreeNode":
        """Splice out children that have exactly one child of their own.

        The spliced edge keeps the upper edge SDP and sums both lengths.
        """
        new_edges: List[PhylogenyTreeEdge] = []
        for edge in self.child_edges:
            child = edge.node.remove_non_branching_interior_nodes()
            new_edge = PhylogenyTreeEdge(edge.sdp, child, edge.length)
            if len(child.child_edges) == 1 and not child.strains:
                grandchild_edge = child.child_edges[0]
                new_edge = PhylogenyTreeEdge(
                    edge.sdp,
                    grandchild_edge.node,
                    edge.length + grandchild_edge.length,
                )
            new_edges.append(new_edge)
        return PhylogenyTreeNode(new_edges, list(self.strains))

    def collapse_short_edges(self, epsilon: float) -> "PhylogenyTreeNode":
        """Merge interior children reached through edges shorter than ``epsilon``.

        The merged child's strains and edges move up to this node. Leaf
        children are never merged.
        """
        new_edges: List[PhylogenyTreeEdge] = []
        strains = list(self.strains)
        for edge in self.child_edges:
            child = edge.node.collapse_short_edges(epsilon)
            if edge.length < epsilon and not child.is_leaf():
                new_edges.extend(child.child_edges)
                strains.extend(child.strains)
            else:
                new_edges.append(PhylogenyTreeEdge(edge.sdp, child, edge.length))
        return PhylogenyTreeNode(new_edges, strains)

    def pruned_to_strains(self, strains_to_retain: Set[str]) -> "PhylogenyTreeNode":
        """Return a copy without the strains (and emptied subtrees) not retained."""
        pruned = self.copy()
        pruned._prune(strains_to_retain)
        return pruned

    def _prune(self, strains_to_retain: Set[str]) -> bool:
        self.child_edges = [
            edge for edge in self.child_edges if edge.node._prune(strains_to_retain)
        ]
        self.strains = [s for s in self.strains if s in strains_to_retain]
        return bool(self.child_edges) or bool(self.strains)


@dataclass
class PhylogenyInterval:
    """A perfect phylogeny together with the physical interval it describes."""

    phylogeny: PhylogenyTreeNode
    interval: BasePairInterval
