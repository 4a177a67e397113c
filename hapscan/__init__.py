"""hapscan - haplotype blocks and perfect phylogenies from strain SNP genotypes.

Partitions the SNPs of each chromosome into maximal perfect phylogeny
compatible intervals, builds one perfect phylogeny per interval and estimates
haplotype blocks shared by groups of strains.
"""

from .version import __version__
from .app import HapScanApp, HapScanConfig
from .core.haplotype_estimator import HaplotypeEstimator
from .core.interval_scanner import IntervalScanner
from .core.phylogeny_scanner import PhylogenyScanner
from .io.genotype_parser import GenotypeParser
from .utils.memory_monitor import MemoryMonitor

__all__ = [
    "__version__",
    "HapScanApp",
    "HapScanConfig",
    "HaplotypeEstimator",
    "IntervalScanner",
    "PhylogenyScanner",
    "GenotypeParser",
    "MemoryMonitor",
]
