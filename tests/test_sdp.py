"""Tests for SDP bit set helpers and SDP streams."""

import numpy as np
import pytest

from hapscan.core.sdp import (
    SdpStream,
    StreamDirection,
    are_compatible,
    cardinality,
    check_same_universe,
    complement,
    minority_normalize,
    sdp_from_indices,
    sdp_to_indices,
    sdps_from_alleles,
)

from .helpers import WORKED_STRAINS, worked_example


class TestSdpHelpers:
    """Test cases for bit set operations."""

    def test_minority_normalize_flips_majority(self):
        assert minority_normalize(0b11110, 5) == 0b00001
        assert minority_normalize(0b00011, 5) == 0b00011

    def test_minority_normalize_keeps_exact_half(self):
        """A pattern covering half of the strains is not flipped."""
        assert minority_normalize(0b0011, 4) == 0b0011
        assert minority_normalize(0b1100, 4) == 0b1100

    def test_minority_normalize_is_idempotent(self):
        for sdp in range(1 << 5):
            once = minority_normalize(sdp, 5)
            assert minority_normalize(once, 5) == once
            assert cardinality(once) * 2 <= 5

    def test_compatibility(self):
        assert are_compatible(0b0011, 0b0001)
        assert are_compatible(0b0001, 0b0011)
        assert are_compatible(0b0011, 0b1100)
        assert are_compatible(0b0011, 0b0011)
        assert not are_compatible(0b0011, 0b0110)

    def test_index_conversion(self):
        assert sdp_to_indices(0) == []
        assert sdp_to_indices(0b10110) == [1, 2, 4]
        assert sdp_from_indices([4, 1, 2]) == 0b10110

    def test_complement(self):
        assert complement(0b00110, 5) == 0b11001


class TestSdpsFromAlleles:
    """Test cases for allele matrix conversion."""

    def test_worked_example_columns(self):
        chromosome = worked_example()
        # strains differing from strain A at each SNP
        expected = [
            0b00110,  # B C
            0b00100,  # C
            0b01000,  # D
            0b10000,  # E
            0b00010,  # B
            0b11000,  # D E
            0b11110,  # B C D E
            0b11010,  # B D E
        ]
        assert sdps_from_alleles(chromosome.alleles) == expected

    def test_more_than_eight_strains(self):
        alleles = np.array([["A"] * 9 + ["T"] * 3], dtype=str)
        assert sdps_from_alleles(alleles) == [0b111000000000]

    def test_rejects_one_dimensional_input(self):
        with pytest.raises(ValueError):
            sdps_from_alleles(np.array(["A", "T"]))


class TestSdpStream:
    """Test cases for SdpStream."""

    def test_reversed_stream_direction_and_order(self):
        stream = SdpStream(["A", "B", "C"], [0b001, 0b010, 0b100])
        reverse = stream.reversed()
        assert reverse.direction == StreamDirection.REVERSE
        assert reverse.sdps == [0b100, 0b010, 0b001]
        assert reverse.reversed().direction == StreamDirection.FORWARD

    def test_rejects_bits_outside_universe(self):
        with pytest.raises(ValueError, match="outside"):
            SdpStream(["A", "B"], [0b100])

    def test_strains_of(self):
        stream = SdpStream(list(WORKED_STRAINS), [])
        assert stream.strains_of(0b10010) == ["B", "E"]

    def test_check_same_universe(self):
        first = SdpStream(["A", "B"], [0b01])
        check_same_universe([first, first.reversed()])
        with pytest.raises(ValueError, match="universe"):
            check_same_universe([first, SdpStream(["A", "B", "C"], [0b01])])
