"""Perfect phylogeny inference over compatible SNP intervals."""

import logging
from typing import Callable, Iterable, List, Optional, Sequence

from tqdm import tqdm

from .intervals import IndexedSnpInterval, SnpPositions
from .phylogeny import (
    NoValidPhylogenyError,
    PhylogenyInterval,
    PhylogenyTreeEdge,
    PhylogenyTreeNode,
)
from .sdp import (
    SdpStream,
    StreamDirection,
    are_compatible,
    full_mask,
    is_subset,
    minority_normalize,
    sdp_to_indices,
)
from .interval_scanner import IntervalScanner

__all__ = ["PhylogenyScanner", "build_perfect_phylogeny", "LEAF_EDGE_LENGTH"]

LEAF_EDGE_LENGTH = 0.00001
SDP_EDGE_LENGTH = 1.0


def _sdp_text(sdp: int, strain_count: int) -> str:
    return "".join("1" if sdp >> i & 1 else "0" for i in range(strain_count))


def build_perfect_phylogeny(
    sdps: Iterable[int], strain_names: Sequence[str]
) -> PhylogenyTreeNode:
    """Build the perfect phylogeny of a set of SNP columns.

    Each distinct minority normalized SDP becomes one edge; an edge hangs
    below the smallest SDP that properly contains it. Strains covered by no
    SDP at a level become leaf children of that level's node through edges
    with an empty SDP.

    Args:
        sdps: SDP columns of the interval, in any normalization
        strain_names: Strain names indexed by bit position (at least two)

    Returns:
        Root node whose scope is every strain

    Raises:
        ValueError: If fewer than two strains are given
        NoValidPhylogenyError: If two SDPs are incompatible

    Example:
        >>> tree = build_perfect_phylogeny([0b0011, 0b0001], ["A", "B", "C", "D"])
        >>> tree.to_newick()
        '((A:1.0,B:1e-05):1.0,C:1e-05,D:1e-05);'
    """
    strain_count = len(strain_names)
    if strain_count < 2:
        raise ValueError(
            f"a phylogeny needs at least 2 strains, got {strain_count}"
        )

    distinct: List[int] = []
    seen = set()
    for sdp in sdps:
        normalized = minority_normalize(sdp, strain_count)
        if normalized and normalized not in seen:
            seen.add(normalized)
            distinct.append(normalized)

    for i, sdp in enumerate(distinct):
        for other in distinct[i + 1:]:
            if not are_compatible(sdp, other):
                raise NoValidPhylogenyError(
                    "cannot build a perfect phylogeny with the following SDPs: "
                    f"{_sdp_text(sdp, strain_count)} and "
                    f"{_sdp_text(other, strain_count)}"
                )

    tree = _build_node(full_mask(strain_count), distinct, strain_names)
    return tree.resolve_to_single_strain_leaf_nodes(LEAF_EDGE_LENGTH)


def _build_node(
    scope: int, nested_sdps: List[int], strain_names: Sequence[str]
) -> PhylogenyTreeNode:
    # nested_sdps are pairwise compatible, distinct and proper subsets of scope
    maximal = [
        sdp
        for sdp in nested_sdps
        if not any(other != sdp and is_subset(sdp, other) for other in nested_sdps)
    ]
    node = PhylogenyTreeNode()
    covered = 0
    for child_sdp in maximal:
        covered |= child_sdp
        below = [
            sdp for sdp in nested_sdps if sdp != child_sdp and is_subset(sdp, child_sdp)
        ]
        node.child_edges.append(
            PhylogenyTreeEdge(
                child_sdp,
                _build_node(child_sdp, below, strain_names),
                SDP_EDGE_LENGTH,
            )
        )
    node.strains = [strain_names[i] for i in sdp_to_indices(scope & ~covered)]
    return node


class PhylogenyScanner:
    """Infer one perfect phylogeny per SNP interval."""

    PROGRESS_THRESHOLD = 1000

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        show_progress: bool = False,
        shutdown_checker: Optional[Callable[[], bool]] = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.show_progress = show_progress
        self.shutdown_checker = shutdown_checker

    def infer_perfect_phylogenies(
        self, sdp_stream: SdpStream, intervals: List[IndexedSnpInterval]
    ) -> List[PhylogenyTreeNode]:
        """Build the tree of every interval, in the order given.

        Args:
            sdp_stream: Forward SDP columns of one chromosome
            intervals: Column intervals whose SDPs are pairwise compatible,
                such as max-k intervals

        Returns:
            One tree per interval; empty when there are fewer than two strains

        Raises:
            ValueError: If the stream is not forward or an interval falls
                outside the columns
            NoValidPhylogenyError: If an interval holds incompatible SDPs
        """
        if sdp_stream.direction != StreamDirection.FORWARD:
            raise ValueError("phylogeny inference requires a forward SDP stream")
        if sdp_stream.strain_count < 2:
            return []

        column_count = len(sdp_stream)
        iterator: Iterable[IndexedSnpInterval] = intervals
        if self.show_progress and len(intervals) > self.PROGRESS_THRESHOLD:
            iterator = tqdm(
                intervals, desc="Building phylogenies", unit="interval", leave=False
            )

        phylogenies: List[PhylogenyTreeNode] = []
        for interval in iterator:
            if self.shutdown_checker and self.shutdown_checker():
                if self.logger.isEnabledFor(logging.INFO):
                    self.logger.info(
                        "Graceful shutdown requested. Stopping phylogeny inference."
                    )
                break
            if interval.start_index < 0 or interval.end_index >= column_count:
                raise ValueError(
                    f"interval {interval.start_index}-{interval.end_index} is outside "
                    f"the {column_count} available SNP columns"
                )
            phylogenies.append(
                build_perfect_phylogeny(
                    sdp_stream.sdps[interval.start_index:interval.end_index + 1],
                    sdp_stream.strain_names,
                )
            )
        return phylogenies

    def infer_phylogeny_intervals(
        self,
        sdp_stream: SdpStream,
        positions: SnpPositions,
        intervals: List[IndexedSnpInterval],
    ) -> List[PhylogenyInterval]:
        """Pair each inferred tree with its base pair interval."""
        trees = self.infer_perfect_phylogenies(sdp_stream, intervals)
        physical = IntervalScanner.to_ordered_physical_intervals(
            intervals[:len(trees)], positions
        )
        return [
            PhylogenyInterval(tree, interval) for tree, interval in zip(trees, physical)
        ]
