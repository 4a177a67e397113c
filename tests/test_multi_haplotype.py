"""Tests for sliding window multi-haplotype blocks."""

import numpy as np
import pytest

from hapscan.core.intervals import MultiPartitionedInterval, SnpPositions
from hapscan.core.multi_haplotype import SlidingWindowMultiHaplotypeEstimator
from hapscan.core.sdp import SdpStream


class TestGroupStrains:
    """Test cases for per window strain grouping."""

    def test_splits_by_first_member(self):
        assert SlidingWindowMultiHaplotypeEstimator.group_strains([0b0110, 0b0100], 4) == (
            0,
            1,
            2,
            0,
        )

    def test_monomorphic_window_is_one_group(self):
        assert SlidingWindowMultiHaplotypeEstimator.group_strains([0, 0], 3) == (0, 0, 0)

    def test_every_strain_separated(self):
        groupings = SlidingWindowMultiHaplotypeEstimator.group_strains(
            [0b1010, 0b0110], 4
        )
        assert sorted(set(groupings)) == [0, 1, 2, 3]
        assert groupings[0] == 0

    def test_no_strains(self):
        assert SlidingWindowMultiHaplotypeEstimator.group_strains([], 0) == ()


class TestWindowEstimation:
    """Test cases for window tiling and merging."""

    def _inputs(self):
        stream = SdpStream(
            ["A", "B", "C", "D"],
            [0b0011, 0b0011, 0b1100, 0b1100, 0b0110, 0b0110, 0b0001],
        )
        positions = SnpPositions(
            4, np.array([10, 20, 30, 40, 50, 60, 70], dtype=np.int64)
        )
        return stream, positions

    def test_tiled_windows_merge_equal_groupings(self):
        stream, positions = self._inputs()
        estimator = SlidingWindowMultiHaplotypeEstimator(2)
        blocks = estimator.estimate_multi_haplotype_blocks(stream, positions)
        # windows [10,20] and [30,40] share A B | C D; the tail SNP is dropped
        assert blocks == [
            MultiPartitionedInterval(4, 10, 31, (0, 0, 1, 1)),
            MultiPartitionedInterval(4, 50, 11, (0, 1, 1, 0)),
        ]
        assert blocks[0].group_count == 2

    def test_step_by_snp(self):
        stream, positions = self._inputs()
        estimator = SlidingWindowMultiHaplotypeEstimator(2, step_by_snp=True)
        blocks = estimator.estimate_multi_haplotype_blocks(stream, positions)
        assert [(b.start_bp, b.end_bp) for b in blocks] == [
            (10, 40),
            (40, 50),
            (50, 60),
            (60, 70),
        ]
        assert blocks[1].strain_groupings == (0, 2, 1, 3)

    def test_window_larger_than_chromosome(self):
        stream, positions = self._inputs()
        estimator = SlidingWindowMultiHaplotypeEstimator(10)
        assert estimator.estimate_multi_haplotype_blocks(stream, positions) == []

    def test_invalid_window_size(self):
        with pytest.raises(ValueError, match="greater than 0"):
            SlidingWindowMultiHaplotypeEstimator(0)

    def test_count_mismatch(self):
        stream, _ = self._inputs()
        positions = SnpPositions(4, np.array([10], dtype=np.int64))
        with pytest.raises(ValueError):
            SlidingWindowMultiHaplotypeEstimator(2).estimate_multi_haplotype_blocks(
                stream, positions
            )
