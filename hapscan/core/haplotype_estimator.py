"""Interval scanning haplotype block estimation."""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from tqdm import tqdm

from .intervals import PartitionedInterval, SnpPositions
from .sdp import SdpStream, StreamDirection, cardinality, complement, is_subset

__all__ = ["HaplotypeCandidate", "HaplotypeEstimator"]


@dataclass(frozen=True)
class HaplotypeCandidate:
    """Strain group that has shared one allele on every SNP since ``start_index``."""

    start_index: int
    start_bp: int
    strain_group: int


class HaplotypeEstimator:
    """Stream SNP columns and emit haplotype blocks.

    A block is a run of consecutive SNPs over which a group of at least
    ``min_strains`` strains carries identical alleles. Runs shorter than
    ``min_snps`` columns are dropped.
    """

    PROGRESS_THRESHOLD = 10000

    def __init__(
        self,
        min_snps: int,
        min_strains: int,
        logger: Optional[logging.Logger] = None,
        show_progress: bool = False,
        shutdown_checker: Optional[Callable[[], bool]] = None,
    ):
        """Initialize the estimator with block size thresholds.

        Args:
            min_snps: Minimum number of consecutive SNPs a block must span
            min_strains: Minimum number of strains a block must contain
            logger: Logger instance for output
            show_progress: Whether to show a progress bar for long chromosomes
            shutdown_checker: Optional function to check if shutdown was requested

        Example:
            >>> estimator = HaplotypeEstimator(min_snps=3, min_strains=2)
            >>> blocks = estimator.estimate_haplotype_blocks(sdp_stream, positions)
        """
        if min_snps < 0:
            raise ValueError(f"min_snps must be >= 0, got {min_snps}")
        if min_strains < 1:
            raise ValueError(f"min_strains must be >= 1, got {min_strains}")
        self.min_snps = min_snps
        self.min_strains = min_strains
        self.logger = logger or logging.getLogger(__name__)
        self.show_progress = show_progress
        self.shutdown_checker = shutdown_checker

    def estimate_haplotype_blocks(
        self, sdp_stream: SdpStream, positions: SnpPositions
    ) -> List[PartitionedInterval]:
        """Scan the SDP columns once and return every haplotype block found.

        Args:
            sdp_stream: Forward SDP columns of one chromosome
            positions: Base pair position of every column

        Returns:
            Haplotype blocks in emission order (not sorted)

        Raises:
            ValueError: If the column and position counts differ or the
                stream is not read forward
        """
        if len(sdp_stream) != len(positions):
            raise ValueError(
                "The number of SDPs should match the number of positions: "
                f"{len(sdp_stream)} != {len(positions)}"
            )
        if sdp_stream.direction != StreamDirection.FORWARD:
            raise ValueError("haplotype estimation requires a forward SDP stream")

        strain_count = sdp_stream.strain_count
        if strain_count < 2:
            return []

        blocks: List[PartitionedInterval] = []
        candidates: Dict[int, HaplotypeCandidate] = {}
        prev_bp = -1
        curr_bp = -1

        columns: Iterable[Tuple[int, int]] = enumerate(sdp_stream.sdps)
        if self.show_progress and len(sdp_stream) > self.PROGRESS_THRESHOLD:
            columns = tqdm(
                columns,
                total=len(sdp_stream),
                desc=f"Scanning chromosome {positions.chromosome}",
                unit="snp",
                leave=False,
            )

        for snp_index, sdp in columns:
            if self.shutdown_checker and self.shutdown_checker():
                if self.logger.isEnabledFor(logging.INFO):
                    self.logger.info(
                        "Graceful shutdown requested. Stopping haplotype scan."
                    )
                break
            curr_bp = positions[snp_index]
            snp_groups = [
                group
                for group in (sdp, complement(sdp, strain_count))
                if group
            ]
            candidates, closed = self._advance(
                candidates, snp_groups, snp_index, curr_bp
            )
            for candidate in closed:
                if snp_index - candidate.start_index >= self.min_snps:
                    blocks.append(
                        self._to_block(positions.chromosome, candidate, prev_bp)
                    )
            prev_bp = curr_bp
        else:
            snp_count = len(sdp_stream)
            for candidate in candidates.values():
                if snp_count - candidate.start_index >= self.min_snps:
                    blocks.append(
                        self._to_block(positions.chromosome, candidate, curr_bp)
                    )

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                f"Chromosome {positions.chromosome}: {len(blocks)} haplotype blocks "
                f"from {len(sdp_stream)} SNPs (min_snps={self.min_snps}, "
                f"min_strains={self.min_strains})"
            )
        return blocks

    def _advance(
        self,
        candidates: Dict[int, HaplotypeCandidate],
        snp_groups: List[int],
        snp_index: int,
        position_bp: int,
    ) -> Tuple[Dict[int, HaplotypeCandidate], List[HaplotypeCandidate]]:
        """Derive the next open candidate set from the current SNP groups.

        Returns:
            Tuple of (open candidates keyed by strain group, terminated candidates)
        """
        survivors: Dict[int, HaplotypeCandidate] = {}
        spawned: List[HaplotypeCandidate] = []
        closed: List[HaplotypeCandidate] = []

        for candidate in candidates.values():
            group_bits = candidate.strain_group
            if any(is_subset(group_bits, group) for group in snp_groups):
                survivors[group_bits] = candidate
                continue

            closed.append(candidate)
            for group in snp_groups:
                intersection = group & group_bits
                if intersection and cardinality(intersection) >= self.min_strains:
                    spawned.append(
                        HaplotypeCandidate(
                            candidate.start_index, candidate.start_bp, intersection
                        )
                    )

        fresh = [
            HaplotypeCandidate(snp_index, position_bp, group)
            for group in snp_groups
            if cardinality(group) >= self.min_strains
        ]
        return self._filter_contained(survivors, spawned + fresh), closed

    @staticmethod
    def _filter_contained(
        survivors: Dict[int, HaplotypeCandidate],
        new_candidates: List[HaplotypeCandidate],
    ) -> Dict[int, HaplotypeCandidate]:
        """Merge new candidates into the survivors, dropping redundant ones.

        A new candidate is redundant when an accepted candidate with the same or
        an earlier start contains all of its strains. Survivors are accepted
        first; new candidates are considered from the earliest start and, for
        equal starts, from the largest group.
        """
        accepted = dict(survivors)
        ordered = sorted(
            new_candidates,
            key=lambda c: (c.start_index, -cardinality(c.strain_group)),
        )
        for candidate in ordered:
            group_bits = candidate.strain_group
            if group_bits in accepted:
                continue
            if any(
                other.start_index <= candidate.start_index
                and is_subset(group_bits, other.strain_group)
                for other in accepted.values()
            ):
                continue
            accepted[group_bits] = candidate
        return accepted

    @staticmethod
    def _to_block(
        chromosome: int, candidate: HaplotypeCandidate, last_bp: int
    ) -> PartitionedInterval:
        return PartitionedInterval(
            chromosome,
            candidate.start_bp,
            1 + last_bp - candidate.start_bp,
            candidate.strain_group,
        )
