"""Main application coordinator for hapscan."""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional
from dataclasses import dataclass, asdict

from .core import (
    HaplotypeEstimator,
    IdenticalByStateFinder,
    IntervalScanner,
    NoValidPhylogenyError,
    PhylogenyScanner,
    SlidingWindowMultiHaplotypeEstimator,
    create_equivalence_classes,
)
from .core.genotypes import ChromosomeGenotypes
from .core.intervals import BasePairInterval, MultiPartitionedInterval, PartitionedInterval
from .core.phylogeny import PhylogenyInterval
from .io import BlockWriter, GenotypeParser, PhylogenyWriter, RunInfoWriter, RunSummary
from .io.run_info_writer import ChromosomeSummary
from .utils import MemoryMonitor, setup_logger, component_logger
from .version import __version__

__all__ = ["HapScanConfig", "HapScanApp", "HapScanResults"]


@dataclass
class HapScanConfig:
    """Configuration for the hapscan application.

    Attributes:
        input_path: Genotype file (comma separated flat file or VCF/BCF)
        output_dir: Output folder (will be created if absent)
        input_format: Input format identifier (auto, csv, v, z, u, b)
        strains: Strains to analyse in the given order, or None for all
        chromosomes: Chromosome names to analyse, or None for all
        annotation_columns: Leading annotation columns of a CSV genotype file
        exclude_imputed: Drop SNPs with imputed (lower case) calls
        min_snps: Minimum SNP span of a haplotype block
        min_strains: Minimum strain count of a haplotype block
        skip_blocks: Do not estimate haplotype blocks
        skip_phylogeny: Do not scan for max-k intervals and phylogenies
        simplify_trees: Write phylogenies with single strain leaves and no
            non-branching interior nodes
        window_size: SNPs per sliding window (0 disables window estimation)
        step_by_snp: Slide windows one SNP at a time
        ibs_reference: Reference strain for IBS regions, or None to skip
        ibs_min_snps: Minimum SNP count of an IBS region
        ibs_min_bp: Minimum base pair extent of an IBS region
        verbose: Whether to enable verbose logging
        log_level: Logging level override
        log_format: Logging format (text or json)

    Example:
        >>> from pathlib import Path
        >>> config = HapScanConfig(
        ...     input_path=Path("strains.csv"),
        ...     output_dir=Path("output"),
        ...     min_snps=5,
        ...     min_strains=3,
        ... )
        >>> print(f"Input: {config.input_path}, blocks >= {config.min_snps} SNPs")
        Input: strains.csv, blocks >= 5 SNPs
    """

    input_path: Path
    output_dir: Path
    input_format: str = "auto"  # one of: auto|csv|v|z|u|b
    strains: Optional[List[str]] = None
    chromosomes: Optional[List[str]] = None
    annotation_columns: int = 4
    exclude_imputed: bool = False
    min_snps: int = 3
    min_strains: int = 2
    skip_blocks: bool = False
    skip_phylogeny: bool = False
    simplify_trees: bool = False
    window_size: int = 0
    step_by_snp: bool = False
    ibs_reference: Optional[str] = None
    ibs_min_snps: int = 1
    ibs_min_bp: int = 0
    verbose: bool = True
    log_level: Optional[str] = None
    log_format: str = "text"


@dataclass
class HapScanResults:
    """Genome wide results of a run, in chromosome order."""

    phylogenies: List[PhylogenyInterval]
    haplotype_blocks: List[PartitionedInterval]
    multi_haplotype_blocks: List[MultiPartitionedInterval]
    ibs_regions: Dict[str, List[BasePairInterval]]


class HapScanApp:
    """Main application coordinator with separated concerns."""

    def __init__(
        self,
        config: HapScanConfig,
        shutdown_checker: Optional[Callable[[], bool]] = None,
    ):
        """Initialize hapscan with configuration.

        Args:
            config: Application configuration
            shutdown_checker: Optional function to check if shutdown was requested
        """
        self.config = config
        self.shutdown_checker = shutdown_checker
        self.logger = setup_logger(
            "hapscan", config.log_level, config.log_format, config.verbose
        )
        self.memory_monitor = MemoryMonitor(self.logger)
        show_progress = config.verbose

        self.genotype_parser = GenotypeParser(
            self.memory_monitor, self.logger, shutdown_checker
        )
        self.interval_scanner = IntervalScanner(
            component_logger(self.logger, "intervals")
        )
        self.phylogeny_scanner = PhylogenyScanner(
            component_logger(self.logger, "phylogeny"), show_progress, shutdown_checker
        )
        self.haplotype_estimator = HaplotypeEstimator(
            config.min_snps,
            config.min_strains,
            component_logger(self.logger, "blocks"),
            show_progress,
            shutdown_checker,
        )
        self.window_estimator = (
            SlidingWindowMultiHaplotypeEstimator(
                config.window_size,
                config.step_by_snp,
                component_logger(self.logger, "windows"),
                shutdown_checker,
            )
            if config.window_size > 0
            else None
        )
        self.ibs_finder = (
            IdenticalByStateFinder(
                config.ibs_min_snps, config.ibs_min_bp, component_logger(self.logger, "ibs")
            )
            if config.ibs_reference
            else None
        )
        self.phylogeny_writer = PhylogenyWriter(self.logger)
        self.run_info_writer = RunInfoWriter(self.memory_monitor)

        self.memory_monitor.check_memory_and_warn("initialization")

    def _shutdown_requested(self) -> bool:
        return bool(self.shutdown_checker and self.shutdown_checker())

    def run(self) -> HapScanResults:
        """Execute the complete hapscan pipeline.

        1. Genotype parsing (indexing compressed variant files first)
        2. Per chromosome: max-k interval scan and phylogenies, haplotype
           blocks, sliding window blocks and IBS regions as configured
        3. Genome wide equivalence classes of the haplotype blocks
        4. Output files and run information

        Returns:
            The genome wide results that were written
        """
        self.config.output_dir.mkdir(parents=True, exist_ok=True)

        # 1. Parse genotypes
        genotypes = self.genotype_parser.parse(
            self.config.input_path,
            self.config.input_format,
            self.config.strains,
            self.config.chromosomes,
            self.config.annotation_columns,
            self.config.exclude_imputed,
        )
        strain_names = genotypes.strain_names
        if self.config.ibs_reference and self.config.ibs_reference not in strain_names:
            raise ValueError(
                f"IBS reference strain {self.config.ibs_reference} is not in the input"
            )

        results = HapScanResults([], [], [], {})
        summary = RunSummary(
            strain_names=list(strain_names),
            dropped_snps={
                "missing": genotypes.dropped_missing,
                "imputed": genotypes.dropped_imputed,
                "heterozygous": genotypes.dropped_heterozygous,
            },
        )

        # 2. Scan each chromosome
        for chromosome in genotypes.chromosomes:
            if self._shutdown_requested():
                if self.logger.isEnabledFor(logging.INFO):
                    self.logger.info("Graceful shutdown requested. Skipping remaining chromosomes.")
                break
            summary.chromosomes.append(self._scan_chromosome(chromosome, results))
            self.memory_monitor.release_chromosome()

        # 3. Group blocks into equivalence classes
        equivalence_classes = create_equivalence_classes(results.haplotype_blocks)
        summary.equivalence_classes = len(equivalence_classes)

        # 4. Write outputs
        header_comment = f"hapscan {__version__}: {self.config.input_path.name}"
        out = self.config.output_dir
        block_writer = BlockWriter(strain_names, self.logger)
        if not self.config.skip_phylogeny:
            self.phylogeny_writer.write_phylogeny_intervals(
                out / "phylogenies.csv",
                results.phylogenies,
                header_comment,
                simplify_trees=self.config.simplify_trees,
            )
        if not self.config.skip_blocks:
            block_writer.write_haplotype_blocks(
                out / "haplotype_blocks.csv", results.haplotype_blocks, header_comment
            )
            block_writer.write_equivalence_classes(
                out / "equivalence_classes.csv", equivalence_classes, header_comment
            )
        if self.window_estimator is not None:
            block_writer.write_multi_haplotype_blocks(
                out / "multi_haplotype_blocks.csv",
                results.multi_haplotype_blocks,
                header_comment,
            )
        if self.ibs_finder is not None:
            block_writer.write_ibs_regions(
                out / "ibs_regions.csv",
                self.config.ibs_reference,
                results.ibs_regions,
                header_comment,
            )

        config_data = asdict(self.config)
        run_info_path = self.run_info_writer.write_run_info(out, summary, config_data)
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(f"Run information written: {run_info_path}")

        # Final memory usage summary
        self.memory_monitor.check_memory_and_warn("processing complete")
        if self.logger.isEnabledFor(logging.INFO):
            final_memory = self.memory_monitor.get_memory_usage_mb()
            self.logger.info(f"Final memory usage: {final_memory:.1f}MB")
        return results

    def _scan_chromosome(
        self, chromosome: ChromosomeGenotypes, results: HapScanResults
    ) -> ChromosomeSummary:
        """Run every enabled analysis on one chromosome and collect its results."""
        chrom_summary = ChromosomeSummary(chromosome.chromosome, chromosome.snp_count)
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(
                f"Chromosome {chromosome.chromosome}: {chromosome.snp_count} SNPs, "
                f"{chromosome.strain_count} strains"
            )
        stream = chromosome.sdp_stream()
        positions = chromosome.snp_positions()

        if not self.config.skip_phylogeny and chromosome.strain_count >= 2:
            max_k_intervals = self.interval_scanner.max_k_scan(
                stream, stream.reversed(), stream
            )
            try:
                phylogenies = self.phylogeny_scanner.infer_phylogeny_intervals(
                    stream, positions, max_k_intervals
                )
            except NoValidPhylogenyError as e:
                if self.logger.isEnabledFor(logging.ERROR):
                    self.logger.error(
                        f"Chromosome {chromosome.chromosome}: max-k interval without "
                        f"a perfect phylogeny: {e}"
                    )
                raise
            results.phylogenies.extend(phylogenies)
            chrom_summary.max_k_intervals = len(max_k_intervals)
            chrom_summary.phylogenies = len(phylogenies)

        if not self.config.skip_blocks:
            blocks = self.haplotype_estimator.estimate_haplotype_blocks(stream, positions)
            results.haplotype_blocks.extend(blocks)
            chrom_summary.haplotype_blocks = len(blocks)

        if self.window_estimator is not None:
            window_blocks = self.window_estimator.estimate_multi_haplotype_blocks(
                stream, positions
            )
            results.multi_haplotype_blocks.extend(window_blocks)
            chrom_summary.multi_haplotype_blocks = len(window_blocks)

        if self.ibs_finder is not None:
            regions = self.ibs_finder.find_all_regions(
                chromosome.strain_names,
                chromosome.alleles,
                positions,
                self.config.ibs_reference,
            )
            for strain, strain_regions in regions.items():
                results.ibs_regions.setdefault(strain, []).extend(strain_regions)
                chrom_summary.ibs_regions += len(strain_regions)

        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(
                f"Chromosome {chromosome.chromosome}: "
                f"{chrom_summary.max_k_intervals} max-k intervals, "
                f"{chrom_summary.haplotype_blocks} haplotype blocks"
            )
        return chrom_summary
