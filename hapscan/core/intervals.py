"""Interval value types over SNP indices and base pair coordinates."""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from numpy.typing import NDArray

from .sdp import StreamDirection, cardinality

__all__ = [
    "IndexedSnpInterval",
    "BasePairInterval",
    "PartitionedInterval",
    "MultiPartitionedInterval",
    "SnpPositions",
]


@dataclass(frozen=True, order=True)
class IndexedSnpInterval:
    """Closed range of SNP column indices.

    Attributes:
        start_index: First SNP index of the interval
        extent_in_indices: Number of SNP columns covered (>= 1)

    Example:
        >>> interval = IndexedSnpInterval.from_bounds(2, 5)
        >>> interval.extent_in_indices, interval.end_index
        (4, 5)
        >>> interval.contains(IndexedSnpInterval(3, 2))
        True
    """

    start_index: int
    extent_in_indices: int

    @classmethod
    def from_bounds(cls, start_index: int, end_index: int) -> "IndexedSnpInterval":
        return cls(start_index, 1 + end_index - start_index)

    @property
    def end_index(self) -> int:
        return self.start_index + self.extent_in_indices - 1

    def contains(self, other: "IndexedSnpInterval") -> bool:
        return (
            self.start_index <= other.start_index
            and self.end_index >= other.end_index
        )

    def intersects(self, other: "IndexedSnpInterval") -> bool:
        return (
            self.start_index <= other.end_index
            and other.start_index <= self.end_index
        )


@dataclass(frozen=True, order=True)
class BasePairInterval:
    """Physical interval on a chromosome in base pairs."""

    chromosome: int
    start_bp: int
    extent_bp: int

    @property
    def end_bp(self) -> int:
        return self.start_bp + self.extent_bp - 1

    def contains(self, other: "BasePairInterval") -> bool:
        return (
            self.chromosome == other.chromosome
            and self.start_bp <= other.start_bp
            and self.end_bp >= other.end_bp
        )

    def intersects(self, other: "BasePairInterval") -> bool:
        return (
            self.chromosome == other.chromosome
            and self.start_bp <= other.end_bp
            and other.start_bp <= self.end_bp
        )


@dataclass(frozen=True, order=True)
class PartitionedInterval(BasePairInterval):
    """Haplotype block: a physical interval shared by a group of strains."""

    strain_group: int = 0

    @property
    def strain_count(self) -> int:
        return cardinality(self.strain_group)


@dataclass(frozen=True, order=True)
class MultiPartitionedInterval(BasePairInterval):
    """Physical interval with every strain assigned to a haplotype group number."""

    strain_groupings: Tuple[int, ...] = ()

    @property
    def group_count(self) -> int:
        return len(set(self.strain_groupings))


@dataclass(frozen=True)
class SnpPositions:
    """Base pair positions of the SNP columns of one chromosome.

    Positions are stored in forward order; ``direction`` only records which
    order the matching SDP columns were read in.
    """

    chromosome: int
    positions: NDArray[np.int64]
    direction: StreamDirection = StreamDirection.FORWARD

    def __len__(self) -> int:
        return int(self.positions.shape[0])

    def __getitem__(self, index: int) -> int:
        return int(self.positions[index])

    def reversed(self) -> "SnpPositions":
        direction = (
            StreamDirection.REVERSE
            if self.direction == StreamDirection.FORWARD
            else StreamDirection.FORWARD
        )
        return SnpPositions(self.chromosome, self.positions, direction)
