"""CSV output and input of perfect phylogeny intervals."""

import csv
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from ..core.intervals import BasePairInterval
from ..core.phylogeny import NewickFormatError, PhylogenyInterval, PhylogenyTreeNode
from ..core.phylogeny_scanner import LEAF_EDGE_LENGTH

__all__ = ["PhylogenyWriter", "read_phylogeny_intervals", "PHYLOGENY_HEADER"]

PHYLOGENY_HEADER = [
    "chromosomeNumber",
    "intervalStartInBasePairs",
    "intervalExtentInBasePairs",
    "newickPerfectPhylogeny",
]
P_VALUE_COLUMN = "treePValue"


class PhylogenyWriter:
    """Write phylogeny intervals, one Newick tree per row."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def write_phylogeny_intervals(
        self,
        output_path: Path,
        phylogenies: Iterable[PhylogenyInterval],
        header_comment: Optional[str] = None,
        simplify_trees: bool = False,
        p_values: Optional[Sequence[float]] = None,
    ) -> int:
        """Write phylogenies with an optional ``treePValue`` column.

        Args:
            output_path: CSV file to create
            phylogenies: Intervals to write, in output order
            header_comment: Optional ``#`` comment written before the header
            simplify_trees: Give every strain its own leaf and splice out
                non-branching interior nodes before writing
            p_values: One p-value per phylogeny; adds the p-value column

        Returns:
            Number of rows written

        Raises:
            ValueError: If the number of p-values differs from the number of
                phylogenies
        """
        rows = list(phylogenies)
        if p_values is not None and len(p_values) != len(rows):
            raise ValueError(
                f"got {len(p_values)} p-values for {len(rows)} phylogenies"
            )
        header = PHYLOGENY_HEADER + ([P_VALUE_COLUMN] if p_values is not None else [])

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            if header_comment:
                for line in header_comment.splitlines():
                    f.write(f"# {line}\n")
            writer = csv.writer(f)
            writer.writerow(header)
            for i, phylogeny_interval in enumerate(rows):
                tree = phylogeny_interval.phylogeny
                if simplify_trees:
                    tree = tree.resolve_to_single_strain_leaf_nodes(LEAF_EDGE_LENGTH)
                    tree = tree.remove_non_branching_interior_nodes()
                interval = phylogeny_interval.interval
                row = [
                    interval.chromosome,
                    interval.start_bp,
                    interval.extent_bp,
                    tree.to_newick(),
                ]
                if p_values is not None:
                    row.append(repr(float(p_values[i])))
                writer.writerow(row)

        if self.logger.isEnabledFor(logging.INFO):
            self.logger.info(f"Wrote {len(rows)} phylogenies to {output_path}")
        return len(rows)


def read_phylogeny_intervals(input_path: Path) -> Dict[int, List[PhylogenyInterval]]:
    """Read phylogenies grouped by chromosome number, keeping file order.

    Raises:
        SystemExit: If a row or its Newick tree is malformed
    """
    intervals: Dict[int, List[PhylogenyInterval]] = {}
    with open(input_path, newline="", encoding="utf-8") as f:
        reader = csv.reader(
            line for line in f if line.strip() and not line.startswith("#")
        )
        header = next(reader, None)
        if header is None:
            return intervals
        if header[: len(PHYLOGENY_HEADER)] != PHYLOGENY_HEADER:
            sys.exit(f"ERROR: {input_path} is not a phylogeny interval file.")
        for row_number, row in enumerate(reader, start=2):
            if len(row) < len(PHYLOGENY_HEADER):
                sys.exit(
                    f"ERROR: Row {row_number}: Expected at least "
                    f"{len(PHYLOGENY_HEADER)} columns, found {len(row)}."
                )
            try:
                chromosome = int(row[0])
                interval = BasePairInterval(chromosome, int(row[1]), int(row[2]))
                tree = PhylogenyTreeNode.from_newick(row[3])
            except NewickFormatError as e:
                sys.exit(f"ERROR: Row {row_number}: Bad tree format: {e}")
            except ValueError:
                sys.exit(f"ERROR: Row {row_number}: Invalid numeric field in {row}.")
            intervals.setdefault(chromosome, []).append(PhylogenyInterval(tree, interval))
    return intervals
