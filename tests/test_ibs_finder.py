"""Tests for identical-by-state region finding."""

import numpy as np
import pytest

from hapscan.core.ibs_finder import IdenticalByStateFinder
from hapscan.core.intervals import BasePairInterval, SnpPositions

from .helpers import WORKED_STRAINS, worked_example


def test_runs_of_matching_alleles():
    positions = SnpPositions(2, np.array([100, 200, 300, 400, 500], dtype=np.int64))
    reference = np.array(list("AAGTC"))
    other = np.array(list("AAGCC"))
    regions = IdenticalByStateFinder().find_regions(reference, other, positions)
    assert regions == [BasePairInterval(2, 100, 201), BasePairInterval(2, 500, 1)]


def test_thresholds_drop_short_runs():
    positions = SnpPositions(2, np.array([100, 200, 300, 400, 500], dtype=np.int64))
    reference = np.array(list("AAGTC"))
    other = np.array(list("AAGCC"))
    assert IdenticalByStateFinder(min_snps=2).find_regions(
        reference, other, positions
    ) == [BasePairInterval(2, 100, 201)]
    assert IdenticalByStateFinder(min_bp=300).find_regions(
        reference, other, positions
    ) == []


def test_no_shared_alleles():
    positions = SnpPositions(1, np.array([1, 2], dtype=np.int64))
    finder = IdenticalByStateFinder()
    assert finder.find_regions(np.array(["A", "A"]), np.array(["T", "T"]), positions) == []


def test_all_strains_against_reference():
    chromosome = worked_example()
    regions = IdenticalByStateFinder(min_snps=3).find_all_regions(
        chromosome.strain_names,
        chromosome.alleles,
        chromosome.snp_positions(),
        "A",
    )
    assert list(regions) == WORKED_STRAINS[1:]
    # D matches A at SNPs 1-2 and 4-5 only
    assert regions["D"] == []
    # C matches A at SNPs 3-6 and 8
    assert regions["C"] == [BasePairInterval(1, 3, 4)]


def test_unknown_reference():
    chromosome = worked_example()
    with pytest.raises(ValueError, match="unknown reference"):
        IdenticalByStateFinder().find_all_regions(
            chromosome.strain_names,
            chromosome.alleles,
            chromosome.snp_positions(),
            "Z",
        )


def test_length_mismatch():
    positions = SnpPositions(1, np.array([1, 2], dtype=np.int64))
    with pytest.raises(ValueError):
        IdenticalByStateFinder().find_regions(
            np.array(["A"]), np.array(["A"]), positions
        )


@pytest.mark.parametrize("min_snps,min_bp", [(0, 0), (1, -1)])
def test_invalid_thresholds(min_snps, min_bp):
    with pytest.raises(ValueError):
        IdenticalByStateFinder(min_snps, min_bp)
