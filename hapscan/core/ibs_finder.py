"""Identical-by-state region detection against a reference strain."""

import logging
from typing import Dict, List, Optional

import numpy as np
from numpy.typing import NDArray

from .intervals import BasePairInterval, SnpPositions

__all__ = ["IdenticalByStateFinder"]


class IdenticalByStateFinder:
    """Find runs of SNPs where a strain carries the reference strain's alleles."""

    def __init__(
        self,
        min_snps: int = 1,
        min_bp: int = 0,
        logger: Optional[logging.Logger] = None,
    ):
        if min_snps < 1:
            raise ValueError(f"min_snps must be >= 1, got {min_snps}")
        if min_bp < 0:
            raise ValueError(f"min_bp must be >= 0, got {min_bp}")
        self.min_snps = min_snps
        self.min_bp = min_bp
        self.logger = logger or logging.getLogger(__name__)

    def find_regions(
        self,
        reference_alleles: NDArray,
        comparison_alleles: NDArray,
        positions: SnpPositions,
    ) -> List[BasePairInterval]:
        """Return the IBS runs of one strain pair in position order.

        A run's extent is ``1 + last position - first position``; runs shorter
        than ``min_snps`` SNPs or ``min_bp`` base pairs are dropped.

        Raises:
            ValueError: If the allele vectors and positions differ in length
        """
        if not len(reference_alleles) == len(comparison_alleles) == len(positions):
            raise ValueError(
                "IBS comparison requires the same number of SNPs for both "
                f"strains and positions: {len(reference_alleles)}, "
                f"{len(comparison_alleles)}, {len(positions)}"
            )
        matches = np.asarray(reference_alleles) == np.asarray(comparison_alleles)
        if not matches.any():
            return []

        # run boundaries from the edges of the padded match mask
        padded = np.concatenate(([False], matches, [False])).astype(np.int8)
        edges = np.diff(padded)
        starts = np.flatnonzero(edges == 1)
        ends = np.flatnonzero(edges == -1) - 1

        regions: List[BasePairInterval] = []
        for start, end in zip(starts, ends):
            extent_snps = int(end - start + 1)
            start_bp = positions[int(start)]
            extent_bp = 1 + positions[int(end)] - start_bp
            if extent_snps >= self.min_snps and extent_bp >= self.min_bp:
                regions.append(
                    BasePairInterval(positions.chromosome, start_bp, extent_bp)
                )
        return regions

    def find_all_regions(
        self,
        strain_names: List[str],
        alleles: NDArray,
        positions: SnpPositions,
        reference_strain: str,
    ) -> Dict[str, List[BasePairInterval]]:
        """Compare every other strain with ``reference_strain``.

        Args:
            strain_names: Column names of ``alleles``
            alleles: Allele matrix of shape (num_snps, num_strains)
            positions: SNP positions of the chromosome
            reference_strain: Name of the strain to compare against

        Returns:
            Dictionary mapping each non-reference strain to its IBS regions

        Raises:
            ValueError: If the reference strain is unknown
        """
        if reference_strain not in strain_names:
            raise ValueError(f"unknown reference strain: {reference_strain}")
        ref_index = strain_names.index(reference_strain)
        reference = alleles[:, ref_index]

        regions: Dict[str, List[BasePairInterval]] = {}
        for index, name in enumerate(strain_names):
            if index == ref_index:
                continue
            regions[name] = self.find_regions(reference, alleles[:, index], positions)

        if self.logger.isEnabledFor(logging.DEBUG):
            total = sum(len(found) for found in regions.values())
            self.logger.debug(
                f"Chromosome {positions.chromosome}: {total} IBS regions against "
                f"{reference_strain}"
            )
        return regions
