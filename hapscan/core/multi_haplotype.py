"""Sliding window estimation of multi-group haplotype blocks."""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .intervals import MultiPartitionedInterval, SnpPositions
from .sdp import SdpStream

__all__ = ["SlidingWindowMultiHaplotypeEstimator"]


class SlidingWindowMultiHaplotypeEstimator:
    """Partition all strains into haplotype groups window by window.

    Within a window, strains are split into groups that carry identical
    alleles on every SNP of the window. Neighbouring windows with the same
    grouping are merged into a single block.
    """

    def __init__(
        self,
        window_size: int,
        step_by_snp: bool = False,
        logger: Optional[logging.Logger] = None,
        shutdown_checker: Optional[Callable[[], bool]] = None,
    ):
        """Initialize the estimator.

        Args:
            window_size: Number of SNPs per window (must be > 0)
            step_by_snp: Slide the window one SNP at a time instead of tiling
                the SNPs with disjoint windows
            logger: Logger instance for output
            shutdown_checker: Optional function to check if shutdown was requested

        Raises:
            ValueError: If ``window_size`` is not positive
        """
        if window_size <= 0:
            raise ValueError(f"window size must be greater than 0, got {window_size}")
        self.window_size = window_size
        self.step_by_snp = step_by_snp
        self.logger = logger or logging.getLogger(__name__)
        self.shutdown_checker = shutdown_checker

    def estimate_multi_haplotype_blocks(
        self, sdp_stream: SdpStream, positions: SnpPositions
    ) -> List[MultiPartitionedInterval]:
        """Return merged window blocks in position order.

        Without ``step_by_snp`` a trailing window with fewer than
        ``window_size`` SNPs is dropped.

        Raises:
            ValueError: If the SDP and position counts differ
        """
        if len(sdp_stream) != len(positions):
            raise ValueError(
                "The number of SDPs should match the number of positions: "
                f"{len(sdp_stream)} != {len(positions)}"
            )

        strain_count = sdp_stream.strain_count
        step = 1 if self.step_by_snp else self.window_size
        blocks: List[MultiPartitionedInterval] = []
        cumulative: Optional[MultiPartitionedInterval] = None

        for window_start in range(0, len(sdp_stream) - self.window_size + 1, step):
            if self.shutdown_checker and self.shutdown_checker():
                if self.logger.isEnabledFor(logging.INFO):
                    self.logger.info(
                        "Graceful shutdown requested. Stopping window scan."
                    )
                break
            window_end = window_start + self.window_size - 1
            groupings = self.group_strains(
                sdp_stream.sdps[window_start:window_end + 1], strain_count
            )
            start_bp = positions[window_start]
            end_bp = positions[window_end]
            current = MultiPartitionedInterval(
                positions.chromosome, start_bp, 1 + end_bp - start_bp, groupings
            )
            if cumulative is None:
                cumulative = current
            elif current.strain_groupings == cumulative.strain_groupings:
                cumulative = MultiPartitionedInterval(
                    positions.chromosome,
                    cumulative.start_bp,
                    1 + current.end_bp - cumulative.start_bp,
                    cumulative.strain_groupings,
                )
            else:
                blocks.append(cumulative)
                cumulative = current
        if cumulative is not None:
            blocks.append(cumulative)

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                f"Chromosome {positions.chromosome}: {len(blocks)} multi-haplotype "
                f"blocks (window={self.window_size}, step_by_snp={self.step_by_snp})"
            )
        return blocks

    @staticmethod
    def group_strains(window_sdps: Sequence[int], strain_count: int) -> Tuple[int, ...]:
        """Assign a group number to every strain for one window.

        Groups are split SNP by SNP: strains whose bit differs from the first
        member of their group leave it for a new group. Group numbers follow
        creation order, so strain 0 is always in group 0.

        Example:
            >>> SlidingWindowMultiHaplotypeEstimator.group_strains([0b0110, 0b0100], 4)
            (0, 1, 2, 0)
        """
        if strain_count == 0:
            return ()
        groups: List[List[int]] = [list(range(strain_count))]
        for sdp in window_sdps:
            divergent_groups: List[List[int]] = []
            for group in groups:
                reference_bit = sdp >> group[0] & 1
                kept = [group[0]]
                divergent = []
                for strain in group[1:]:
                    if sdp >> strain & 1 == reference_bit:
                        kept.append(strain)
                    else:
                        divergent.append(strain)
                group[:] = kept
                if divergent:
                    divergent_groups.append(divergent)
            groups.extend(divergent_groups)

        groupings = [0] * strain_count
        for group_number, members in enumerate(groups):
            for strain in members:
                groupings[strain] = group_number
        return tuple(groupings)
