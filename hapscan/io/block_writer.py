"""CSV output of haplotype blocks, equivalence classes and IBS regions."""

import csv
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..core.equivalence import PartitionedIntervalSet
from ..core.intervals import BasePairInterval, MultiPartitionedInterval, PartitionedInterval
from ..core.sdp import sdp_from_indices, sdp_to_indices

__all__ = ["BlockWriter", "read_haplotype_blocks", "STRAIN_SEPARATOR"]

STRAIN_SEPARATOR = "|"

HAPLOTYPE_BLOCK_HEADER = [
    "chromosomeNumber",
    "blockStartInBasePairs",
    "blockExtentInBasePairs",
    "strainCount",
    "strains",
]


def _write_header_comment(handle, comment: Optional[str]) -> None:
    if comment:
        for line in comment.splitlines():
            handle.write(f"# {line}\n")


def _uncommented(handle) -> Iterable[str]:
    return (line for line in handle if line.strip() and not line.startswith("#"))


class BlockWriter:
    """Write block-like results as comma separated files.

    Strain groups are stored as SDP bit sets and written as ``|`` joined
    strain names.
    """

    def __init__(self, strain_names: List[str], logger: Optional[logging.Logger] = None):
        self.strain_names = strain_names
        self.logger = logger or logging.getLogger(__name__)

    def _strains(self, strain_group: int) -> str:
        return STRAIN_SEPARATOR.join(
            self.strain_names[i] for i in sdp_to_indices(strain_group)
        )

    def write_haplotype_blocks(
        self,
        output_path: Path,
        blocks: Iterable[PartitionedInterval],
        header_comment: Optional[str] = None,
    ) -> int:
        """Write haplotype blocks sorted by chromosome, start and strain group.

        Returns:
            Number of blocks written
        """
        ordered = sorted(blocks)
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            _write_header_comment(f, header_comment)
            writer = csv.writer(f)
            writer.writerow(HAPLOTYPE_BLOCK_HEADER)
            for block in ordered:
                writer.writerow(
                    [
                        block.chromosome,
                        block.start_bp,
                        block.extent_bp,
                        block.strain_count,
                        self._strains(block.strain_group),
                    ]
                )
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(f"Wrote {len(ordered)} haplotype blocks to {output_path}")
        return len(ordered)

    def write_equivalence_classes(
        self,
        output_path: Path,
        classes: List[PartitionedIntervalSet],
        header_comment: Optional[str] = None,
    ) -> None:
        """Write one row per equivalence class with its member blocks.

        Members are written as ``chromosome:start-end`` separated by ``;``.
        """
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            _write_header_comment(f, header_comment)
            writer = csv.writer(f)
            writer.writerow(
                [
                    "classId",
                    "strainCount",
                    "strains",
                    "blockCount",
                    "totalExtentInBasePairs",
                    "blocks",
                ]
            )
            for class_id, eq_class in enumerate(classes, start=1):
                members = ";".join(
                    f"{b.chromosome}:{b.start_bp}-{b.end_bp}" for b in eq_class.intervals
                )
                writer.writerow(
                    [
                        class_id,
                        eq_class.strain_count,
                        self._strains(eq_class.strain_group),
                        len(eq_class.intervals),
                        eq_class.total_extent_bp,
                        members,
                    ]
                )
        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(
                f"Wrote {len(classes)} equivalence classes to {output_path}"
            )

    def write_multi_haplotype_blocks(
        self,
        output_path: Path,
        blocks: Iterable[MultiPartitionedInterval],
        header_comment: Optional[str] = None,
    ) -> None:
        """Write window blocks with one group number column per strain."""
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            _write_header_comment(f, header_comment)
            writer = csv.writer(f)
            writer.writerow(
                [
                    "chromosomeNumber",
                    "blockStartInBasePairs",
                    "blockExtentInBasePairs",
                    "groupCount",
                ]
                + list(self.strain_names)
            )
            for block in blocks:
                writer.writerow(
                    [block.chromosome, block.start_bp, block.extent_bp, block.group_count]
                    + list(block.strain_groupings)
                )

    def write_ibs_regions(
        self,
        output_path: Path,
        reference_strain: str,
        regions: Dict[str, List[BasePairInterval]],
        header_comment: Optional[str] = None,
    ) -> None:
        """Write IBS regions of every comparison strain against the reference."""
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            _write_header_comment(f, header_comment)
            writer = csv.writer(f)
            writer.writerow(
                [
                    "referenceStrain",
                    "comparisonStrain",
                    "chromosomeNumber",
                    "regionStartInBasePairs",
                    "regionExtentInBasePairs",
                ]
            )
            for strain, strain_regions in regions.items():
                for region in strain_regions:
                    writer.writerow(
                        [
                            reference_strain,
                            strain,
                            region.chromosome,
                            region.start_bp,
                            region.extent_bp,
                        ]
                    )


def read_haplotype_blocks(
    input_path: Path, strain_names: List[str]
) -> List[PartitionedInterval]:
    """Read blocks written by ``BlockWriter.write_haplotype_blocks``.

    Raises:
        SystemExit: If a row is malformed or names an unknown strain
    """
    index_of = {name: i for i, name in enumerate(strain_names)}
    blocks: List[PartitionedInterval] = []
    with open(input_path, newline="", encoding="utf-8") as f:
        reader = csv.reader(_uncommented(f))
        header = next(reader, None)
        if header != HAPLOTYPE_BLOCK_HEADER:
            sys.exit(f"ERROR: {input_path} is not a haplotype block file.")
        for row_number, row in enumerate(reader, start=2):
            if len(row) != len(HAPLOTYPE_BLOCK_HEADER):
                sys.exit(
                    f"ERROR: Row {row_number}: Expected "
                    f"{len(HAPLOTYPE_BLOCK_HEADER)} columns, found {len(row)}."
                )
            names = row[4].split(STRAIN_SEPARATOR) if row[4] else []
            unknown = [n for n in names if n not in index_of]
            if unknown:
                sys.exit(
                    f"ERROR: Row {row_number}: Unknown strains {', '.join(unknown)}."
                )
            try:
                blocks.append(
                    PartitionedInterval(
                        int(row[0]),
                        int(row[1]),
                        int(row[2]),
                        sdp_from_indices(index_of[n] for n in names),
                    )
                )
            except ValueError:
                sys.exit(f"ERROR: Row {row_number}: Invalid numeric field in {row}.")
    return blocks
