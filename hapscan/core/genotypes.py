"""In-memory genotype matrix of one chromosome."""

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np
from numpy.typing import NDArray

from .intervals import SnpPositions
from .sdp import SdpStream, sdps_from_alleles

__all__ = ["ChromosomeGenotypes", "chromosome_number", "chromosome_name"]

_SPECIAL_CHROMOSOMES = {"X": 20, "Y": 21, "M": 22, "MT": 22}
_SPECIAL_NUMBERS = {20: "X", 21: "Y", 22: "M"}


def chromosome_number(name: str) -> int:
    """Translate a chromosome name into its number.

    A leading ``chr`` prefix is ignored. Sex and mitochondrial chromosomes are
    numbered X=20, Y=21 and M=22.

    Raises:
        ValueError: If the name is not recognised

    Example:
        >>> chromosome_number("chr7"), chromosome_number("X")
        (7, 20)
    """
    text = name.strip()
    if text.lower().startswith("chr"):
        text = text[3:]
    if text.isdigit():
        return int(text)
    number = _SPECIAL_CHROMOSOMES.get(text.upper())
    if number is None:
        raise ValueError(f"unrecognised chromosome name: {name!r}")
    return number


def chromosome_name(number: int) -> str:
    """Inverse of ``chromosome_number`` without the ``chr`` prefix."""
    return _SPECIAL_NUMBERS.get(number, str(number))


@dataclass
class ChromosomeGenotypes:
    """Allele calls for every strain along one chromosome.

    Attributes:
        chromosome: Chromosome number
        strain_names: Strain names, one per allele matrix column
        positions: Strictly increasing SNP positions in base pairs
        alleles: Array of shape (num_snps, num_strains) with one allele symbol
            per strain and SNP
    """

    chromosome: int
    strain_names: List[str]
    positions: NDArray[np.int64]
    alleles: NDArray

    def __post_init__(self) -> None:
        if self.alleles.ndim != 2:
            raise ValueError(
                f"allele matrix must be 2-dimensional, got {self.alleles.ndim}"
            )
        snp_count, strain_count = self.alleles.shape
        if strain_count != len(self.strain_names):
            raise ValueError(
                f"allele matrix has {strain_count} strain columns but "
                f"{len(self.strain_names)} strain names were given"
            )
        if snp_count != len(self.positions):
            raise ValueError(
                f"allele matrix has {snp_count} SNP rows but "
                f"{len(self.positions)} positions were given"
            )
        if snp_count > 1 and not np.all(np.diff(self.positions) > 0):
            raise ValueError(
                f"SNP positions on chromosome {self.chromosome} must be "
                "strictly increasing"
            )

    @property
    def snp_count(self) -> int:
        return int(self.alleles.shape[0])

    @property
    def strain_count(self) -> int:
        return len(self.strain_names)

    def sdp_stream(self) -> SdpStream:
        """Forward SDP columns relative to the first strain's alleles."""
        return SdpStream(list(self.strain_names), sdps_from_alleles(self.alleles))

    def snp_positions(self) -> SnpPositions:
        return SnpPositions(self.chromosome, self.positions)

    def select_strains(self, strains: Sequence[str]) -> "ChromosomeGenotypes":
        """Return the genotypes of ``strains`` in the order given.

        Raises:
            ValueError: If a strain is unknown
        """
        missing = [s for s in strains if s not in self.strain_names]
        if missing:
            raise ValueError(f"unknown strains: {', '.join(missing)}")
        columns = [self.strain_names.index(s) for s in strains]
        return ChromosomeGenotypes(
            self.chromosome,
            list(strains),
            self.positions,
            self.alleles[:, columns],
        )
