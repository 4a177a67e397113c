"""Core haplotype and phylogeny algorithms for hapscan."""

from .sdp import SdpStream, StreamDirection, minority_normalize, are_compatible
from .intervals import (
    IndexedSnpInterval,
    BasePairInterval,
    PartitionedInterval,
    MultiPartitionedInterval,
    SnpPositions,
)
from .genotypes import ChromosomeGenotypes, chromosome_number, chromosome_name
from .haplotype_estimator import HaplotypeEstimator
from .interval_scanner import IntervalScanner
from .phylogeny import (
    NoValidPhylogenyError,
    NewickFormatError,
    PhylogenyTreeEdge,
    PhylogenyTreeNode,
    PhylogenyInterval,
)
from .phylogeny_scanner import PhylogenyScanner, build_perfect_phylogeny
from .equivalence import PartitionedIntervalSet, create_equivalence_classes
from .multi_haplotype import SlidingWindowMultiHaplotypeEstimator
from .ibs_finder import IdenticalByStateFinder

__all__ = [
    "SdpStream",
    "StreamDirection",
    "minority_normalize",
    "are_compatible",
    "IndexedSnpInterval",
    "BasePairInterval",
    "PartitionedInterval",
    "MultiPartitionedInterval",
    "SnpPositions",
    "ChromosomeGenotypes",
    "chromosome_number",
    "chromosome_name",
    "HaplotypeEstimator",
    "IntervalScanner",
    "NoValidPhylogenyError",
    "NewickFormatError",
    "PhylogenyTreeEdge",
    "PhylogenyTreeNode",
    "PhylogenyInterval",
    "PhylogenyScanner",
    "build_perfect_phylogeny",
    "PartitionedIntervalSet",
    "create_equivalence_classes",
    "SlidingWindowMultiHaplotypeEstimator",
    "IdenticalByStateFinder",
]
