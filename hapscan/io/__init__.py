"""Input/Output modules for file operations."""

from .genotype_parser import GenotypeParser, GenotypeData
from .block_writer import BlockWriter, read_haplotype_blocks
from .phylogeny_writer import PhylogenyWriter, read_phylogeny_intervals
from .run_info_writer import RunInfoWriter, RunSummary

__all__ = [
    "GenotypeParser",
    "GenotypeData",
    "BlockWriter",
    "read_haplotype_blocks",
    "PhylogenyWriter",
    "read_phylogeny_intervals",
    "RunInfoWriter",
    "RunSummary",
]
