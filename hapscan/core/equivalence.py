"""Grouping of haplotype blocks into strain equivalence classes."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .intervals import PartitionedInterval
from .sdp import cardinality

__all__ = ["PartitionedIntervalSet", "create_equivalence_classes"]


@dataclass
class PartitionedIntervalSet:
    """Haplotype blocks that share exactly the same strain group."""

    strain_group: int
    intervals: List[PartitionedInterval] = field(default_factory=list)

    @property
    def strain_count(self) -> int:
        return cardinality(self.strain_group)

    @property
    def total_extent_bp(self) -> int:
        return sum(interval.extent_bp for interval in self.intervals)


def create_equivalence_classes(
    blocks: Iterable[PartitionedInterval],
) -> List[PartitionedIntervalSet]:
    """Group blocks by strain group.

    Classes come out in order of the first block seen for each group, and
    blocks keep their input order inside a class.

    Example:
        >>> blocks = [
        ...     PartitionedInterval(1, 10, 5, 0b011),
        ...     PartitionedInterval(1, 30, 5, 0b110),
        ...     PartitionedInterval(2, 50, 5, 0b011),
        ... ]
        >>> [(c.strain_group, len(c.intervals)) for c in create_equivalence_classes(blocks)]
        [(3, 2), (6, 1)]
    """
    classes: Dict[int, PartitionedIntervalSet] = {}
    for block in blocks:
        group = classes.get(block.strain_group)
        if group is None:
            group = PartitionedIntervalSet(block.strain_group)
            classes[block.strain_group] = group
        group.intervals.append(block)
    return list(classes.values())
