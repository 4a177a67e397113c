"""Run information file output operations."""

import datetime
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from ..utils.memory_monitor import MemoryMonitor
from ..version import __version__ as hapscan_version, get_git_commit

__all__ = ["RunSummary", "ChromosomeSummary", "RunInfoWriter"]


@dataclass
class ChromosomeSummary:
    """Result counts of one chromosome."""

    chromosome: int
    snp_count: int
    max_k_intervals: int = 0
    phylogenies: int = 0
    haplotype_blocks: int = 0
    multi_haplotype_blocks: int = 0
    ibs_regions: int = 0


@dataclass
class RunSummary:
    """Dataset and result summary of a finished run.

    Example:
        >>> summary = RunSummary(strain_names=["A", "B", "C"])
        >>> summary.chromosomes.append(ChromosomeSummary(1, 120, max_k_intervals=4))
        >>> summary.total("max_k_intervals")
        4
    """

    strain_names: List[str]
    chromosomes: List[ChromosomeSummary] = field(default_factory=list)
    equivalence_classes: int = 0
    dropped_snps: Dict[str, int] = field(default_factory=dict)

    def total(self, attribute: str) -> int:
        return sum(getattr(c, attribute) for c in self.chromosomes)


class RunInfoWriter:
    """Handles run information file output."""

    def __init__(self, memory_monitor: MemoryMonitor):
        self.memory_monitor = memory_monitor

    def write_run_info(
        self, output_dir: Path, summary: RunSummary, config_data: dict
    ) -> Path:
        """Write version, platform, configuration and result counts.

        Args:
            output_dir: Output directory
            summary: Dataset and result counts
            config_data: Configuration values keyed by option name

        Returns:
            Path of the written ``run_info.txt``
        """
        run_info_path = output_dir / "run_info.txt"
        timestamp = datetime.datetime.now(datetime.timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S UTC"
        )
        memory_summary = self.memory_monitor.get_memory_summary()
        total_snps = summary.total("snp_count")
        estimated_mb = self.memory_monitor.estimate_genotype_memory_mb(
            total_snps, len(summary.strain_names)
        )

        lines = [
            "hapscan Run Information",
            "=======================",
            "",
            f"Version: {hapscan_version}",
            f"Git commit: {get_git_commit()}",
            f"Python version: {platform.python_version()}",
            f"Platform: {platform.platform()}",
            "",
            f"Run timestamp: {timestamp}",
            "",
            "System Memory Information:",
            f"  Current process memory: {memory_summary['current_mb']:.1f} MB",
            f"  Peak process memory: {memory_summary['peak_mb']:.1f} MB",
            f"  Available system memory: {memory_summary['available_mb']:.1f} MB",
            f"  Total system memory: {memory_summary['total_mb']:.1f} MB",
            f"  Estimated genotype memory: {estimated_mb:.1f} MB",
            "",
            "Configuration:",
        ]
        lines.extend(f"  {key}: {value}" for key, value in config_data.items())
        lines.extend(
            [
                "",
                "Input Data Summary:",
                f"  Number of strains: {len(summary.strain_names)}",
                f"  Strains: {', '.join(summary.strain_names)}",
                f"  Number of SNPs: {total_snps}",
                f"  Chromosomes: {len(summary.chromosomes)}",
            ]
        )
        for reason, count in summary.dropped_snps.items():
            lines.append(f"  Dropped SNPs ({reason}): {count}")

        lines.extend(
            [
                "",
                "Output Summary:",
                f"  Max-k intervals: {summary.total('max_k_intervals')}",
                f"  Phylogenies: {summary.total('phylogenies')}",
                f"  Haplotype blocks: {summary.total('haplotype_blocks')}",
                f"  Equivalence classes: {summary.equivalence_classes}",
                f"  Multi-haplotype blocks: {summary.total('multi_haplotype_blocks')}",
                f"  IBS regions: {summary.total('ibs_regions')}",
            ]
        )
        for chrom in summary.chromosomes:
            lines.append(
                f"  Chromosome {chrom.chromosome}: {chrom.snp_count} SNPs, "
                f"{chrom.max_k_intervals} max-k intervals, "
                f"{chrom.haplotype_blocks} haplotype blocks"
            )

        with open(run_info_path, "w", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
        return run_info_path
