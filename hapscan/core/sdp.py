"""Strain distribution pattern (SDP) helpers.

An SDP is stored as a Python ``int`` used as a bit set: bit ``i`` is set when
strain ``i`` belongs to the pattern. The strain universe size is carried
separately (see ``SdpStream``).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Sequence

import numpy as np
from numpy.typing import NDArray

__all__ = [
    "StreamDirection",
    "SdpStream",
    "cardinality",
    "full_mask",
    "complement",
    "minority_normalize",
    "are_compatible",
    "is_subset",
    "sdp_to_indices",
    "sdp_from_indices",
    "sdps_from_alleles",
    "check_same_universe",
]


class StreamDirection(Enum):
    """Order in which SDP columns are read."""

    FORWARD = "forward"
    REVERSE = "reverse"


def cardinality(sdp: int) -> int:
    """Return the number of strains in the pattern.

    Example:
        >>> cardinality(0b10110)
        3
    """
    return sdp.bit_count()


def full_mask(strain_count: int) -> int:
    """Return the SDP containing every strain of the universe."""
    return (1 << strain_count) - 1


def complement(sdp: int, strain_count: int) -> int:
    """Return the strains of the universe that are not in ``sdp``."""
    return sdp ^ full_mask(strain_count)


def minority_normalize(sdp: int, strain_count: int) -> int:
    """Flip the pattern when strictly more than half of the strains are set.

    A pattern covering exactly half of the strains is returned unchanged.

    Example:
        >>> bin(minority_normalize(0b1110, 4))
        '0b1'
        >>> bin(minority_normalize(0b0110, 4))
        '0b110'
    """
    if cardinality(sdp) * 2 > strain_count:
        return complement(sdp, strain_count)
    return sdp


def are_compatible(sdp1: int, sdp2: int) -> bool:
    """Perfect phylogeny compatibility of two minority normalized SDPs.

    Two patterns are compatible when they are disjoint or one contains the other.

    Example:
        >>> are_compatible(0b0011, 0b0001)
        True
        >>> are_compatible(0b0011, 0b0110)
        False
    """
    intersection = sdp1 & sdp2
    return intersection == 0 or intersection == sdp1 or intersection == sdp2


def is_subset(sdp: int, other: int) -> bool:
    """Return True when every strain of ``sdp`` is also in ``other``."""
    return sdp & other == sdp


def sdp_to_indices(sdp: int) -> List[int]:
    """Return the sorted strain indices set in ``sdp``.

    Example:
        >>> sdp_to_indices(0b10110)
        [1, 2, 4]
    """
    indices = []
    index = 0
    while sdp:
        if sdp & 1:
            indices.append(index)
        sdp >>= 1
        index += 1
    return indices


def sdp_from_indices(indices: Iterable[int]) -> int:
    """Build an SDP from strain indices."""
    sdp = 0
    for index in indices:
        sdp |= 1 << index
    return sdp


def sdps_from_alleles(alleles: NDArray) -> List[int]:
    """Convert an allele matrix into reference relative SDPs.

    Args:
        alleles: Array of shape (num_snps, num_strains) holding one allele
            symbol per strain and SNP

    Returns:
        One SDP per SNP row marking the strains whose allele differs from
        the allele of strain 0. The patterns are not minority normalized.
    """
    if alleles.ndim != 2:
        raise ValueError(f"allele matrix must be 2-dimensional, got {alleles.ndim}")
    if alleles.shape[0] == 0 or alleles.shape[1] == 0:
        return [0] * alleles.shape[0]
    differs = alleles != alleles[:, :1]
    packed = np.packbits(differs, axis=1, bitorder="little")
    return [int.from_bytes(row.tobytes(), "little") for row in packed]


@dataclass
class SdpStream:
    """Ordered SDP columns over a fixed strain universe.

    Attributes:
        strain_names: Strain names indexed by bit position
        sdps: One SDP per SNP column, in read order
        direction: Whether columns are in forward or reverse SNP order

    Example:
        >>> stream = SdpStream(["A", "B", "C"], [0b001, 0b110])
        >>> len(stream), stream.strain_count
        (2, 3)
        >>> stream.minority_normalized().sdps
        [1, 1]
    """

    strain_names: List[str]
    sdps: List[int]
    direction: StreamDirection = StreamDirection.FORWARD
    _universe: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._universe = full_mask(len(self.strain_names))
        for index, sdp in enumerate(self.sdps):
            if sdp < 0 or sdp & ~self._universe:
                raise ValueError(
                    f"SDP at column {index} has strains outside the "
                    f"{len(self.strain_names)}-strain universe"
                )

    @property
    def strain_count(self) -> int:
        return len(self.strain_names)

    def __len__(self) -> int:
        return len(self.sdps)

    def __iter__(self) -> Iterator[int]:
        return iter(self.sdps)

    def reversed(self) -> "SdpStream":
        """Return the same columns read from the last SNP to the first."""
        direction = (
            StreamDirection.REVERSE
            if self.direction == StreamDirection.FORWARD
            else StreamDirection.FORWARD
        )
        return SdpStream(list(self.strain_names), self.sdps[::-1], direction)

    def minority_normalized(self) -> "SdpStream":
        count = self.strain_count
        return SdpStream(
            list(self.strain_names),
            [minority_normalize(sdp, count) for sdp in self.sdps],
            self.direction,
        )

    def strains_of(self, sdp: int) -> List[str]:
        """Return the names of the strains set in ``sdp``."""
        return [self.strain_names[i] for i in sdp_to_indices(sdp)]


def check_same_universe(streams: Sequence[SdpStream]) -> None:
    """Raise ValueError if the streams do not share one strain universe."""
    if not streams:
        return
    names = streams[0].strain_names
    for stream in streams[1:]:
        if stream.strain_names != names:
            raise ValueError(
                "SDP streams must share the same strain universe: "
                f"{stream.strain_count} strains vs {len(names)}"
            )
