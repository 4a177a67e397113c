"""Genotype file parsing for comma separated flat files and VCF/BCF."""

import csv
import re
import sys
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

import numpy as np
import pysam

from ..core.genotypes import ChromosomeGenotypes, chromosome_number
from ..utils.indexing import ensure_variant_index, infer_input_format
from ..utils.memory_monitor import MemoryMonitor

__all__ = ["GenotypeData", "GenotypeParser", "MISSING_CALLS"]

CHROMOSOME_HEADER_PATTERN = re.compile(r"^chr.*", re.IGNORECASE)
POSITION_HEADER_PATTERN = re.compile(r".*position.*", re.IGNORECASE)
CONFLICT_HEADER = "idx.validated.conflict.snp"
MISSING_CALLS = frozenset({"", "N", "-", "?", "."})

PROGRESS_INTERVAL = 10000


@dataclass
class GenotypeData:
    """Parsed genotypes of every selected chromosome.

    Attributes:
        source: File the genotypes were read from
        strain_names: Selected strains, in allele matrix column order
        chromosomes: Per chromosome genotypes in order of first appearance
        dropped_missing: SNPs dropped for a missing call
        dropped_imputed: SNPs dropped for an imputed call
        dropped_heterozygous: SNPs dropped for a heterozygous call (VCF only)
    """

    source: Path
    strain_names: List[str]
    chromosomes: List[ChromosomeGenotypes] = field(default_factory=list)
    dropped_missing: int = 0
    dropped_imputed: int = 0
    dropped_heterozygous: int = 0

    @property
    def snp_count(self) -> int:
        return sum(c.snp_count for c in self.chromosomes)


@dataclass
class _ChromosomeRows:
    positions: List[int] = field(default_factory=list)
    alleles: List[List[str]] = field(default_factory=list)


class GenotypeParser:
    """Read strain genotypes into per chromosome allele matrices."""

    def __init__(
        self,
        memory_monitor: MemoryMonitor,
        logger: logging.Logger,
        shutdown_checker: Optional[Callable[[], bool]] = None,
    ):
        self.memory_monitor = memory_monitor
        self.logger = logger
        self.shutdown_checker = shutdown_checker

    def parse(
        self,
        path: Path,
        input_format: str = "auto",
        strains: Optional[Sequence[str]] = None,
        chromosomes: Optional[Sequence[str]] = None,
        annotation_columns: int = 4,
        exclude_imputed: bool = False,
    ) -> GenotypeData:
        """Parse a genotype file in either supported format.

        Args:
            path: Genotype file
            input_format: ``auto``, ``csv`` or a bcftools format letter
            strains: Strains to keep, in the desired order; None keeps all
            chromosomes: Chromosome names to keep; None keeps all
            annotation_columns: Leading non-strain columns of a CSV file
            exclude_imputed: Drop CSV rows with imputed (lower case) calls

        Returns:
            GenotypeData with one entry per chromosome found

        Raises:
            SystemExit: If the file is malformed or a selection is unknown
        """
        fmt = infer_input_format(path) if input_format == "auto" else input_format
        chromosome_filter = self._chromosome_filter(chromosomes)

        if fmt == "csv":
            data = self.parse_csv(
                path, strains, chromosome_filter, annotation_columns, exclude_imputed
            )
        else:
            data = self.parse_vcf(path, fmt, strains, chromosome_filter)

        if not data.chromosomes:
            sys.exit(f"ERROR: No SNPs found in {path} for the selected chromosomes.")

        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(
                f"Loaded {data.snp_count} SNPs for {len(data.strain_names)} strains "
                f"on {len(data.chromosomes)} chromosome(s)"
            )
            dropped = data.dropped_missing + data.dropped_imputed + data.dropped_heterozygous
            if dropped:
                self.logger.info(
                    f"Dropped {dropped} SNPs (missing={data.dropped_missing}, "
                    f"imputed={data.dropped_imputed}, "
                    f"heterozygous={data.dropped_heterozygous})"
                )
        return data

    @staticmethod
    def _chromosome_filter(chromosomes: Optional[Sequence[str]]) -> Optional[Set[int]]:
        if chromosomes is None:
            return None
        numbers = set()
        for name in chromosomes:
            try:
                numbers.add(chromosome_number(name))
            except ValueError as e:
                sys.exit(f"ERROR: {e}")
        return numbers

    @staticmethod
    def _select_columns(
        available: List[str], strains: Optional[Sequence[str]], path: Path
    ) -> List[int]:
        if strains is None:
            return list(range(len(available)))
        missing = [s for s in strains if s not in available]
        if missing:
            sys.exit(
                f"ERROR: Strains not found in {path}: {', '.join(missing)}"
            )
        return [available.index(s) for s in strains]

    def parse_csv(
        self,
        path: Path,
        strains: Optional[Sequence[str]] = None,
        chromosome_filter: Optional[Set[int]] = None,
        annotation_columns: int = 4,
        exclude_imputed: bool = False,
    ) -> GenotypeData:
        """Parse a comma separated genotype flat file.

        The header names ``annotation_columns`` annotation columns followed by
        one column per strain and an optional trailing conflict column. Lower
        case calls are imputed calls.
        """
        try:
            handle = open(path, newline="", encoding="utf-8")
        except OSError as e:
            sys.exit(f"ERROR: Failed to open genotype file {path}: {e}")

        with handle:
            reader = csv.reader(
                row_text for row_text in handle
                if row_text.strip() and not row_text.startswith("#")
            )
            header = next(reader, None)
            if header is None:
                sys.exit(f"ERROR: Genotype file {path} has no header row.")
            header = [h.strip() for h in header]
            chrom_col, pos_col, strain_end = self._parse_header(
                header, annotation_columns, path
            )
            available = header[annotation_columns:strain_end]
            columns = self._select_columns(available, strains, path)
            strain_names = [available[c] for c in columns]
            if len(strain_names) < 1:
                sys.exit(f"ERROR: Genotype file {path} has no strain columns.")
            data_columns = [annotation_columns + c for c in columns]

            data = GenotypeData(source=path, strain_names=strain_names)
            rows_by_chromosome: Dict[int, _ChromosomeRows] = {}

            if self.logger.isEnabledFor(logging.INFO):
                self.logger.info(
                    f"Parsing genotype CSV with {len(strain_names)} of "
                    f"{len(available)} strains"
                )

            for row_number, row in enumerate(reader, start=2):
                if self.shutdown_checker and self.shutdown_checker():
                    if self.logger.isEnabledFor(logging.INFO):
                        self.logger.info(
                            "Graceful shutdown requested. Stopping genotype parsing."
                        )
                    break
                if len(row) != len(header):
                    sys.exit(
                        f"ERROR: Row {row_number}: Invalid number of columns. "
                        f"Expected {len(header)}, found {len(row)}."
                    )
                try:
                    chromosome = chromosome_number(row[chrom_col])
                except ValueError as e:
                    sys.exit(f"ERROR: Row {row_number}: {e}")
                if chromosome_filter is not None and chromosome not in chromosome_filter:
                    continue
                try:
                    position = int(row[pos_col].strip())
                except ValueError:
                    sys.exit(
                        f"ERROR: Row {row_number}: Invalid position '{row[pos_col]}'."
                    )

                calls = [row[c].strip() for c in data_columns]
                if any(call.upper() in MISSING_CALLS for call in calls):
                    data.dropped_missing += 1
                    continue
                if any(call.islower() for call in calls):
                    if exclude_imputed:
                        data.dropped_imputed += 1
                        continue
                    calls = [call.upper() for call in calls]
                if len(set(calls)) > 2:
                    sys.exit(
                        f"ERROR: Row {row_number}: More than two alleles "
                        f"({', '.join(sorted(set(calls)))}). Only bi-allelic SNPs "
                        "are supported."
                    )

                rows = rows_by_chromosome.setdefault(chromosome, _ChromosomeRows())
                if rows.positions and position <= rows.positions[-1]:
                    sys.exit(
                        f"ERROR: Row {row_number}: Position {position} on chromosome "
                        f"{row[chrom_col]} is not greater than the previous position "
                        f"{rows.positions[-1]}. Sort the file by position."
                    )
                rows.positions.append(position)
                rows.alleles.append(calls)

                if row_number % PROGRESS_INTERVAL == 0 and self.logger.isEnabledFor(
                    logging.INFO
                ):
                    self.logger.info(f"Processed {row_number} rows...")

        data.chromosomes = self._build_chromosomes(rows_by_chromosome, strain_names)
        return data

    @staticmethod
    def _parse_header(
        header: List[str], annotation_columns: int, path: Path
    ) -> Tuple[int, int, int]:
        """Locate the chromosome, position and last strain columns."""
        if len(header) <= annotation_columns:
            sys.exit(
                f"ERROR: Genotype header in {path} has {len(header)} columns; "
                f"expected {annotation_columns} annotation columns plus strains."
            )
        annotations = header[:annotation_columns]
        chrom_col = next(
            (i for i, h in enumerate(annotations) if CHROMOSOME_HEADER_PATTERN.match(h)),
            None,
        )
        pos_col = next(
            (i for i, h in enumerate(annotations) if POSITION_HEADER_PATTERN.match(h)),
            None,
        )
        if chrom_col is None:
            sys.exit(f"ERROR: No chromosome column (header 'chr...') found in {path}.")
        if pos_col is None:
            sys.exit(f"ERROR: No position column (header '...position...') found in {path}.")
        strain_end = len(header)
        if header[-1].lower() == CONFLICT_HEADER:
            strain_end -= 1
        return chrom_col, pos_col, strain_end

    def parse_vcf(
        self,
        path: Path,
        fmt: str,
        strains: Optional[Sequence[str]] = None,
        chromosome_filter: Optional[Set[int]] = None,
    ) -> GenotypeData:
        """Parse haplotype calls from a VCF/BCF file with pysam.

        Samples are strains. Records must be bi-allelic; missing or
        heterozygous calls drop the record. Allele symbols are the allele
        indices of the record.
        """
        indexed = ensure_variant_index(path, fmt, self.logger)
        try:
            vf = pysam.VariantFile(str(path))
        except (OSError, ValueError) as e:
            sys.exit(f"ERROR: Failed to read VCF/BCF via pysam: {e}")

        with vf:
            available = list(vf.header.samples)
            columns = self._select_columns(available, strains, path)
            strain_names = [available[c] for c in columns]
            if len(strain_names) < 1:
                sys.exit(f"ERROR: No samples found in {path}.")
            data = GenotypeData(source=path, strain_names=strain_names)
            rows_by_chromosome: Dict[int, _ChromosomeRows] = {}
            skipped_contigs: Set[str] = set()

            for contig, records in self._record_sources(
                vf, indexed, chromosome_filter, skipped_contigs
            ):
                self._read_records(
                    records, contig, strain_names, data, rows_by_chromosome,
                    chromosome_filter, skipped_contigs,
                )
                if self.shutdown_checker and self.shutdown_checker():
                    break

        if skipped_contigs and self.logger.isEnabledFor(logging.WARNING):
            self.logger.warning(
                "Skipped records on unrecognised contigs: "
                f"{', '.join(sorted(skipped_contigs))}"
            )
        data.chromosomes = self._build_chromosomes(rows_by_chromosome, strain_names)
        return data

    def _record_sources(self, vf, indexed, chromosome_filter, skipped_contigs):
        """Yield (contig, records) pairs, fetching by region when possible."""
        if not (indexed and chromosome_filter is not None):
            yield None, vf
            return
        for contig in vf.header.contigs:
            try:
                number = chromosome_number(contig)
            except ValueError:
                skipped_contigs.add(contig)
                continue
            if number in chromosome_filter:
                yield contig, vf.fetch(contig)

    def _read_records(
        self,
        records,
        contig: Optional[str],
        strain_names: List[str],
        data: GenotypeData,
        rows_by_chromosome: Dict[int, _ChromosomeRows],
        chromosome_filter: Optional[Set[int]],
        skipped_contigs: Set[str],
    ) -> None:
        record_count = 0
        for rec in records:
            record_count += 1
            if self.shutdown_checker and self.shutdown_checker():
                if self.logger.isEnabledFor(logging.INFO):
                    self.logger.info(
                        "Graceful shutdown requested. Stopping VCF parsing."
                    )
                return
            try:
                chromosome = chromosome_number(rec.chrom)
            except ValueError:
                skipped_contigs.add(rec.chrom)
                continue
            if chromosome_filter is not None and chromosome not in chromosome_filter:
                continue
            if rec.alts and len(rec.alts) > 1:
                sys.exit(
                    f"ERROR: {rec.chrom}:{rec.pos}: Multiallelic site detected "
                    f"(ALT='{','.join(rec.alts)}'). Filter or split multiallelic "
                    "sites before processing."
                )

            calls: List[str] = []
            for sample in strain_names:
                gt = rec.samples[sample].get("GT")
                if gt is None or any(g is None for g in gt):
                    data.dropped_missing += 1
                    break
                if len(set(gt)) > 1:
                    data.dropped_heterozygous += 1
                    break
                if gt[0] > 1:
                    sys.exit(
                        f"ERROR: {rec.chrom}:{rec.pos}, Sample {sample}: Multiallelic "
                        f"genotype detected (GT={gt}). Filter or split multiallelic "
                        "sites before processing."
                    )
                calls.append(str(gt[0]))
            else:
                rows = rows_by_chromosome.setdefault(chromosome, _ChromosomeRows())
                if rows.positions and rec.pos <= rows.positions[-1]:
                    sys.exit(
                        f"ERROR: {rec.chrom}:{rec.pos}: Records must be sorted by "
                        "position with one record per position."
                    )
                rows.positions.append(rec.pos)
                rows.alleles.append(calls)

            if record_count % PROGRESS_INTERVAL == 0 and self.logger.isEnabledFor(
                logging.INFO
            ):
                where = f" on {contig}" if contig else ""
                self.logger.info(f"Processed {record_count} variants{where}...")

    def _build_chromosomes(
        self, rows_by_chromosome: Dict[int, _ChromosomeRows], strain_names: List[str]
    ) -> List[ChromosomeGenotypes]:
        chromosomes: List[ChromosomeGenotypes] = []
        for number, rows in rows_by_chromosome.items():
            self.memory_monitor.warn_for_large_dataset(
                len(rows.positions), len(strain_names)
            )
            alleles = np.array(rows.alleles, dtype=str).reshape(
                len(rows.positions), len(strain_names)
            )
            chromosomes.append(
                ChromosomeGenotypes(
                    number,
                    list(strain_names),
                    np.array(rows.positions, dtype=np.int64),
                    alleles,
                )
            )
        self.memory_monitor.check_memory_and_warn("genotype parsing")
        return chromosomes
