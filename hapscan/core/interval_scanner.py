"""Maximal compatibility interval scanning over SDP columns."""

import logging
from typing import List, Optional, Tuple

from .intervals import BasePairInterval, IndexedSnpInterval, SnpPositions
from .sdp import SdpStream, StreamDirection, are_compatible, check_same_universe

__all__ = ["IntervalScanner"]


class IntervalScanner:
    """Partition SNP columns into perfect phylogeny compatible intervals.

    All scans minority normalize their input before testing compatibility.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def are_compatible(sdp1: int, sdp2: int) -> bool:
        """Compatibility test for two minority normalized SDPs."""
        return are_compatible(sdp1, sdp2)

    def max_k_scan(
        self,
        forward_stream: SdpStream,
        reverse_stream: SdpStream,
        uber_stream: SdpStream,
    ) -> List[IndexedSnpInterval]:
        """Compose the greedy, uber and max-k steps into one call.

        Args:
            forward_stream: Columns read forward
            reverse_stream: The same columns read in reverse
            uber_stream: Columns read forward for the uber scan

        Returns:
            One max-k interval per core interval, sorted by start index

        Raises:
            ValueError: If a stream has the wrong direction or the streams
                disagree on strains or column count
        """
        if forward_stream.direction != StreamDirection.FORWARD:
            raise ValueError("forward_stream must read forward")
        if reverse_stream.direction != StreamDirection.REVERSE:
            raise ValueError("reverse_stream must read in reverse")
        check_same_universe([forward_stream, reverse_stream, uber_stream])
        if not len(forward_stream) == len(reverse_stream) == len(uber_stream):
            raise ValueError(
                "forward, reverse and uber streams must have the same column count"
            )

        forward_intervals = self.greedy_scan(forward_stream)
        reverse_intervals = self.greedy_scan(reverse_stream)
        uber_intervals = self.uber_scan(uber_stream)
        core_intervals = self.create_core_intervals(
            forward_intervals, reverse_intervals
        )
        uber_cores = self.create_uber_cores(uber_intervals, core_intervals)
        max_k_intervals = self.create_max_k_intervals(uber_cores)

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                f"Interval scan over {len(forward_stream)} SNPs: "
                f"{len(forward_intervals)} greedy, {len(uber_intervals)} uber, "
                f"{len(max_k_intervals)} max-k intervals"
            )
        return max_k_intervals

    def greedy_scan(self, sdp_stream: SdpStream) -> List[IndexedSnpInterval]:
        """Tile the columns with greedily extended compatible intervals.

        Each interval is extended until a column is incompatible with one of
        the SDPs already in it; that column starts the next interval. Reverse
        streams are scanned in their read order and the resulting intervals
        are re-expressed in forward index space.
        """
        normalized = sdp_stream.minority_normalized()
        intervals: List[IndexedSnpInterval] = []
        interval_sdps: List[int] = []
        start_index = 0

        for index, sdp in enumerate(normalized.sdps):
            if not self._check_compatibility_and_add(interval_sdps, sdp):
                intervals.append(IndexedSnpInterval.from_bounds(start_index, index - 1))
                interval_sdps = [sdp]
                start_index = index
        if len(normalized):
            intervals.append(
                IndexedSnpInterval.from_bounds(start_index, len(normalized) - 1)
            )

        if sdp_stream.direction == StreamDirection.REVERSE:
            total = len(normalized)
            intervals = [
                IndexedSnpInterval(
                    total - interval.start_index - interval.extent_in_indices,
                    interval.extent_in_indices,
                )
                for interval in reversed(intervals)
            ]
        return intervals

    @staticmethod
    def _check_compatibility_and_add(interval_sdps: List[int], sdp: int) -> bool:
        for interval_sdp in interval_sdps:
            if sdp == interval_sdp:
                return True
            if not are_compatible(sdp, interval_sdp):
                return False
        interval_sdps.append(sdp)
        return True

    def uber_scan(self, sdp_stream: SdpStream) -> List[IndexedSnpInterval]:
        """Find maximal compatible intervals without forcing a tiling.

        When column ``i`` conflicts with earlier columns, the current interval
        closes at ``i - 1`` and the next one starts just after the most recent
        conflicting column, so consecutive intervals may overlap.

        Raises:
            ValueError: If the stream is read in reverse
        """
        if sdp_stream.direction == StreamDirection.REVERSE:
            raise ValueError("uber scan only works on forward streams")

        normalized = sdp_stream.minority_normalized()
        intervals: List[IndexedSnpInterval] = []
        # (sdp, most recent column index), ordered by index
        interval_sdps: List[Tuple[int, int]] = []
        start_index = 0

        for index, sdp in enumerate(normalized.sdps):
            nearest_incompatible = self._test_compatible_and_uber_add(
                interval_sdps, sdp, index
            )
            if nearest_incompatible >= 0:
                intervals.append(IndexedSnpInterval.from_bounds(start_index, index - 1))
                start_index = nearest_incompatible + 1
        if len(normalized):
            intervals.append(
                IndexedSnpInterval.from_bounds(start_index, len(normalized) - 1)
            )
        return intervals

    @staticmethod
    def _test_compatible_and_uber_add(
        interval_sdps: List[Tuple[int, int]], sdp: int, index: int
    ) -> int:
        """Add ``sdp`` and return the index of the latest incompatible column, or -1."""
        for position in range(len(interval_sdps) - 1, -1, -1):
            other_sdp, other_index = interval_sdps[position]
            if sdp == other_sdp:
                del interval_sdps[position]
                interval_sdps.append((sdp, index))
                return -1
            if not are_compatible(sdp, other_sdp):
                del interval_sdps[: position + 1]
                interval_sdps.append((sdp, index))
                return other_index
        interval_sdps.append((sdp, index))
        return -1

    @staticmethod
    def create_core_intervals(
        forward_intervals: List[IndexedSnpInterval],
        reverse_intervals: List[IndexedSnpInterval],
    ) -> List[IndexedSnpInterval]:
        """Intersect forward and reverse tiles index by index.

        Raises:
            ValueError: If the tilings have different lengths
        """
        if len(forward_intervals) != len(reverse_intervals):
            raise ValueError(
                "the reverse and forward interval lists should be the same size"
            )
        return [
            IndexedSnpInterval.from_bounds(forward.start_index, reverse.end_index)
            for forward, reverse in zip(forward_intervals, reverse_intervals)
        ]

    @staticmethod
    def create_uber_cores(
        uber_intervals: List[IndexedSnpInterval],
        core_intervals: List[IndexedSnpInterval],
    ) -> List[List[IndexedSnpInterval]]:
        """Group the uber intervals that could become the max-k interval of each core.

        A candidate contains its core and intersects neither neighbouring core.

        Raises:
            ValueError: If there are fewer uber intervals than cores, or a
                core ends up without any candidate
        """
        if len(uber_intervals) < len(core_intervals):
            raise ValueError(
                "the list of uber intervals should be at least as big as "
                "the list of core intervals"
            )
        groups: List[List[IndexedSnpInterval]] = []
        if not core_intervals:
            return groups

        core_index = 0
        current_group: List[IndexedSnpInterval] = []
        for uber in uber_intervals:
            if uber.start_index > core_intervals[core_index].end_index:
                groups.append(current_group)
                current_group = []
                core_index += 1
                if core_index == len(core_intervals):
                    break

            core = core_intervals[core_index]
            prev_core = core_intervals[core_index - 1] if core_index > 0 else None
            next_core = (
                core_intervals[core_index + 1]
                if core_index + 1 < len(core_intervals)
                else None
            )
            if (
                uber.contains(core)
                and (prev_core is None or not uber.intersects(prev_core))
                and (next_core is None or not uber.intersects(next_core))
            ):
                current_group.append(uber)
        else:
            if current_group:
                groups.append(current_group)

        if len(groups) != len(core_intervals) or not all(groups):
            raise ValueError(
                f"uber intervals do not cover every core interval "
                f"({len(groups)} groups for {len(core_intervals)} cores)"
            )
        return groups

    @staticmethod
    def create_max_k_intervals(
        uber_cores: List[List[IndexedSnpInterval]],
    ) -> List[IndexedSnpInterval]:
        """Choose one interval per group maximizing the summed extent.

        Consecutive choices must touch or overlap
        (``prev.end_index >= next.start_index - 1``). Works back from the last
        group building forward pointers; on equal cumulative extent the
        lowest index candidate wins.
        """
        if not uber_cores:
            return []

        last_group = uber_cores[-1]
        cumulative = [interval.extent_in_indices for interval in last_group]
        forward_pointers: List[List[int]] = [[] for _ in range(len(uber_cores) - 1)]

        for group_index in range(len(uber_cores) - 2, -1, -1):
            group = uber_cores[group_index]
            following = uber_cores[group_index + 1]
            group_cumulative = [0] * len(group)
            group_pointers = [0] * len(group)
            for j, interval in enumerate(group):
                best = 0
                for k, next_interval in enumerate(following):
                    extent = cumulative[k] + interval.extent_in_indices
                    if (
                        extent > best
                        and interval.end_index >= next_interval.start_index - 1
                    ):
                        best = extent
                        group_cumulative[j] = extent
                        group_pointers[j] = k
            forward_pointers[group_index] = group_pointers
            cumulative = group_cumulative

        pointer = 0
        for i in range(len(cumulative)):
            if cumulative[i] > cumulative[pointer]:
                pointer = i
        max_k_intervals = [uber_cores[0][pointer]]
        for group_index, group_pointers in enumerate(forward_pointers):
            pointer = group_pointers[pointer]
            max_k_intervals.append(uber_cores[group_index + 1][pointer])
        return max_k_intervals

    @staticmethod
    def to_ordered_physical_intervals(
        indexed_intervals: List[IndexedSnpInterval], positions: SnpPositions
    ) -> List[BasePairInterval]:
        """Translate SNP index intervals into base pair intervals, keeping order.

        Raises:
            ValueError: If positions are not forward or an interval falls
                outside the available positions
        """
        if positions.direction != StreamDirection.FORWARD:
            raise ValueError(
                "this function can only deal with forward reading position streams"
            )
        physical: List[BasePairInterval] = []
        for interval in indexed_intervals:
            if interval.start_index < 0 or interval.end_index >= len(positions):
                raise ValueError(
                    f"interval {interval.start_index}-{interval.end_index} is outside "
                    f"the {len(positions)} available SNP positions"
                )
            start_bp = positions[interval.start_index]
            end_bp = positions[interval.end_index]
            physical.append(
                BasePairInterval(positions.chromosome, start_bp, 1 + end_bp - start_bp)
            )
        return physical
