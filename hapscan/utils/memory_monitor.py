"""Memory usage monitoring and warning system."""

import logging
import gc
from typing import Dict

import psutil

__all__ = ["MemoryMonitor"]


class MemoryMonitor:
    """Track process memory while genotype matrices are loaded and scanned."""

    # Percentages of total system memory
    WARNING_THRESHOLD_PERCENT = 50.0
    CRITICAL_THRESHOLD_PERCENT = 90.0

    # numpy unicode allele cell (4 bytes per character) and the Python int SDP
    # of each column
    ALLELE_CELL_BYTES = 4
    SDP_BASE_BYTES = 28

    def __init__(self, logger: logging.Logger):
        """Initialize memory monitor with logger and dynamic thresholds.

        Args:
            logger: Logger instance for output

        Example:
            >>> monitor = MemoryMonitor(logging.getLogger("hapscan"))
            >>> monitor.warning_threshold_mb < monitor.critical_threshold_mb
            True
        """
        self.logger = logger
        self.process = psutil.Process()

        total_memory_mb = psutil.virtual_memory().total / 1024 / 1024
        self.warning_threshold_mb = total_memory_mb * (
            self.WARNING_THRESHOLD_PERCENT / 100
        )
        self.critical_threshold_mb = total_memory_mb * (
            self.CRITICAL_THRESHOLD_PERCENT / 100
        )
        self.logger.debug(
            f"Memory thresholds: Warning={self.warning_threshold_mb:.1f}MB, "
            f"Critical={self.critical_threshold_mb:.1f}MB of {total_memory_mb:.1f}MB total"
        )

    def get_memory_usage_mb(self) -> float:
        """Current resident memory of this process in MB."""
        rss: int = self.process.memory_info().rss
        return float(rss / 1024 / 1024)

    def get_peak_memory_usage_mb(self) -> float:
        """Peak resident memory in MB, or the current value where the OS has no peak."""
        memory_info = self.process.memory_info()
        peak_bytes = getattr(memory_info, "peak_rss", None)
        if peak_bytes is None:
            peak_bytes = memory_info.rss
        return float(peak_bytes / 1024 / 1024)

    def get_available_memory_mb(self) -> float:
        available: int = psutil.virtual_memory().available
        return float(available / 1024 / 1024)

    def check_memory_and_warn(self, operation: str = "operation") -> None:
        """Log a warning when usage crosses the warning or critical threshold.

        Args:
            operation: Name of operation being performed (for logging context)
        """
        current_mb = self.get_memory_usage_mb()
        available_mb = self.get_available_memory_mb()

        if current_mb > self.critical_threshold_mb:
            self.logger.warning(
                f"CRITICAL: High memory usage during {operation}: {current_mb:.1f}MB "
                f"(>{self.critical_threshold_mb:.1f}MB threshold). "
                f"Available: {available_mb:.1f}MB. Consider restricting the run "
                "to fewer chromosomes or strains."
            )
        elif current_mb > self.warning_threshold_mb:
            self.logger.warning(
                f"WARNING: Elevated memory usage during {operation}: {current_mb:.1f}MB "
                f"(>{self.warning_threshold_mb:.1f}MB threshold). "
                f"Available: {available_mb:.1f}MB."
            )
        else:
            self.logger.debug(f"Memory usage during {operation}: {current_mb:.1f}MB")

    def estimate_genotype_memory_mb(self, num_snps: int, num_strains: int) -> float:
        """Estimate the footprint of an allele matrix and its SDP columns in MB.

        Example:
            >>> monitor.estimate_genotype_memory_mb(1_000_000, 16) > 0
            True
        """
        allele_bytes = num_snps * num_strains * self.ALLELE_CELL_BYTES
        sdp_bytes = num_snps * (self.SDP_BASE_BYTES + (num_strains + 7) // 8)
        return (allele_bytes + sdp_bytes) / 1024 / 1024

    def warn_for_large_dataset(self, num_snps: int, num_strains: int) -> None:
        """Warn when a chromosome's genotypes may not fit comfortably in memory."""
        estimated_mb = self.estimate_genotype_memory_mb(num_snps, num_strains)
        available_mb = self.get_available_memory_mb()

        if estimated_mb > available_mb * 0.8:
            self.logger.warning(
                f"MEMORY WARNING: Genotypes ({num_snps} SNPs x {num_strains} strains) "
                f"may require ~{estimated_mb:.1f}MB memory, but only "
                f"{available_mb:.1f}MB available."
            )
        elif estimated_mb > self.warning_threshold_mb:
            self.logger.warning(
                f"Large dataset detected ({num_snps} SNPs x {num_strains} strains). "
                f"Estimated memory usage ~{estimated_mb:.1f}MB exceeds warning "
                f"threshold ({self.warning_threshold_mb:.1f}MB)."
            )
        elif self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                f"Estimated genotype memory for {num_snps} SNPs x {num_strains} "
                f"strains: ~{estimated_mb:.1f}MB"
            )

    def release_chromosome(self) -> None:
        """Run a garbage collection pass after a chromosome has been processed."""
        collected = gc.collect()
        if collected and self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(f"Garbage collection freed {collected} objects")

    def get_memory_summary(self) -> Dict[str, float]:
        return {
            "current_mb": self.get_memory_usage_mb(),
            "peak_mb": self.get_peak_memory_usage_mb(),
            "available_mb": self.get_available_memory_mb(),
            "total_mb": psutil.virtual_memory().total / 1024 / 1024,
            "warning_threshold_mb": self.warning_threshold_mb,
            "critical_threshold_mb": self.critical_threshold_mb,
        }
