"""Tests for the perfect phylogeny builder and tree model."""

import numpy as np
import pytest

from hapscan.core.intervals import BasePairInterval, IndexedSnpInterval
from hapscan.core.interval_scanner import IntervalScanner
from hapscan.core.phylogeny import (
    NewickFormatError,
    NoValidPhylogenyError,
    PhylogenyTreeEdge,
    PhylogenyTreeNode,
)
from hapscan.core.phylogeny_scanner import (
    LEAF_EDGE_LENGTH,
    PhylogenyScanner,
    build_perfect_phylogeny,
)
from hapscan.core.sdp import SdpStream, minority_normalize

from .helpers import WORKED_STRAINS, random_sdps, worked_example


class TestBuildPerfectPhylogeny:
    """Test cases for the recursive tree builder."""

    def test_worked_example_first_interval(self):
        stream = worked_example().sdp_stream()
        tree = build_perfect_phylogeny(stream.sdps[0:7], WORKED_STRAINS)
        assert tree.to_newick() == "((C:1.0,B:1.0):1.0,(D:1.0,E:1.0):1.0,A:1.0);"

    def test_worked_example_second_interval(self):
        stream = worked_example().sdp_stream()
        tree = build_perfect_phylogeny(stream.sdps[1:8], WORKED_STRAINS)
        assert tree.to_newick() == "(B:1.0,(D:1.0,E:1.0):1.0,(C:1.0,A:1.0):1.0);"

    def test_incompatible_interval_raises(self):
        stream = worked_example().sdp_stream()
        with pytest.raises(NoValidPhylogenyError, match="SDPs"):
            build_perfect_phylogeny(stream.sdps, WORKED_STRAINS)

    def test_uncovered_strains_become_short_leaves(self):
        tree = build_perfect_phylogeny([0b0011, 0b0001], ["A", "B", "C", "D"])
        assert tree.to_newick() == "((A:1.0,B:1e-05):1.0,C:1e-05,D:1e-05);"

    def test_monomorphic_interval_gives_star_tree(self):
        tree = build_perfect_phylogeny([0, 0b111], ["A", "B", "C"])
        assert sorted(leaf.strains[0] for leaf in tree.leaf_nodes()) == ["A", "B", "C"]
        assert all(edge.length == LEAF_EDGE_LENGTH for edge in tree.child_edges)

    def test_needs_two_strains(self):
        with pytest.raises(ValueError):
            build_perfect_phylogeny([0], ["A"])

    @pytest.mark.parametrize("seed", range(10))
    def test_edge_sdps_match_interval_sdps(self, seed):
        rng = np.random.default_rng(seed)
        strains = [f"S{i}" for i in range(6)]
        stream = SdpStream(strains, random_sdps(rng, 50, len(strains)))
        scanner = IntervalScanner()
        for interval in scanner.greedy_scan(stream):
            window = stream.sdps[interval.start_index:interval.end_index + 1]
            tree = build_perfect_phylogeny(window, strains)
            expected = {minority_normalize(sdp, len(strains)) for sdp in window} | {0}
            assert set(tree.edge_sdps()) | {0} == expected
            assert sorted(tree.all_strains()) == sorted(strains)
            leaves = tree.leaf_nodes()
            assert all(len(leaf.strains) == 1 for leaf in leaves)


class TestPhylogenyScanner:
    """Test cases for interval by interval inference."""

    def test_phylogeny_intervals_for_max_k_intervals(self):
        chromosome = worked_example()
        stream = chromosome.sdp_stream()
        max_k = IntervalScanner().max_k_scan(stream, stream.reversed(), stream)
        results = PhylogenyScanner().infer_phylogeny_intervals(
            stream, chromosome.snp_positions(), max_k
        )
        assert [r.interval for r in results] == [
            BasePairInterval(1, 1, 7),
            BasePairInterval(1, 2, 7),
        ]
        assert results[0].phylogeny.to_newick() == (
            "((C:1.0,B:1.0):1.0,(D:1.0,E:1.0):1.0,A:1.0);"
        )

    def test_single_strain_gives_no_trees(self):
        stream = SdpStream(["A"], [0, 0])
        assert PhylogenyScanner().infer_perfect_phylogenies(
            stream, [IndexedSnpInterval(0, 2)]
        ) == []

    def test_interval_outside_columns(self):
        stream = SdpStream(["A", "B"], [0b01])
        with pytest.raises(ValueError, match="outside"):
            PhylogenyScanner().infer_perfect_phylogenies(
                stream, [IndexedSnpInterval(0, 2)]
            )

    def test_reverse_stream_rejected(self):
        stream = SdpStream(["A", "B"], [0b01])
        with pytest.raises(ValueError, match="forward"):
            PhylogenyScanner().infer_perfect_phylogenies(
                stream.reversed(), [IndexedSnpInterval(0, 1)]
            )


class TestNewick:
    """Test cases for Newick text conversion."""

    def test_parse_keeps_structure(self):
        text = "((C:1.0,B:1.0):1.0,(D:1.0,E:1.0):1.0,A:1.0);"
        tree = PhylogenyTreeNode.from_newick(text)
        assert tree.to_newick() == text
        assert all(edge.sdp is None for edge in tree.child_edges)
        assert tree.all_strains() == ["C", "B", "D", "E", "A"]

    def test_parse_interior_strains_and_lengths(self):
        tree = PhylogenyTreeNode.from_newick("((A:0.5,B:2.0)C|D:1e-05,E:3.0);")
        inner = tree.child_edges[0]
        assert inner.length == pytest.approx(1e-05)
        assert inner.node.strains == ["C", "D"]
        assert [e.length for e in inner.node.child_edges] == [0.5, 2.0]

    @pytest.mark.parametrize(
        "text",
        [
            "(A:1.0,B:1.0)",
            "(A:1.0,B);",
            "(A:1.0,B:x);",
            "((A:1.0,B:1.0):1.0;",
        ],
    )
    def test_malformed_text_raises(self, text):
        with pytest.raises(NewickFormatError):
            PhylogenyTreeNode.from_newick(text)

    def test_format_error_is_value_error(self):
        assert issubclass(NewickFormatError, ValueError)


class TestTreeSimplification:
    """Test cases for tree rewriting passes."""

    def _chain_tree(self):
        # root -> (interior without strains) -> (A, B) plus leaf C
        pair = PhylogenyTreeNode(
            [
                PhylogenyTreeEdge(0b001, PhylogenyTreeNode(strains=["A"])),
                PhylogenyTreeEdge(0b010, PhylogenyTreeNode(strains=["B"])),
            ]
        )
        chain = PhylogenyTreeNode([PhylogenyTreeEdge(0b011, pair, 2.0)])
        return PhylogenyTreeNode(
            [
                PhylogenyTreeEdge(0b011, chain, 1.0),
                PhylogenyTreeEdge(0b100, PhylogenyTreeNode(strains=["C"])),
            ]
        )

    def test_remove_non_branching_interior_nodes(self):
        tree = self._chain_tree()
        simplified = tree.remove_non_branching_interior_nodes()
        assert simplified.to_newick() == "((A:1.0,B:1.0):3.0,C:1.0);"
        assert simplified.child_edges[0].sdp == 0b011
        # source tree untouched
        assert tree.to_newick() == "(((A:1.0,B:1.0):2.0):1.0,C:1.0);"

    def test_resolve_to_single_strain_leaves(self):
        tree = PhylogenyTreeNode.from_newick("((A:1.0,B|C:1.0)D:1.0,E:1.0);")
        resolved = tree.resolve_to_single_strain_leaf_nodes(0.5)
        assert resolved.to_newick() == (
            "((A:1.0,(B:0.5,C:0.5):1.0,D:0.5):1.0,E:1.0);"
        )
        assert all(len(leaf.strains) == 1 for leaf in resolved.leaf_nodes())

    def test_collapse_short_edges(self):
        tree = PhylogenyTreeNode.from_newick("(((A:1.0,B:1.0):0.001,C:1.0):1.0,D:1.0);")
        collapsed = tree.collapse_short_edges(0.01)
        assert collapsed.to_newick() == "((A:1.0,B:1.0,C:1.0):1.0,D:1.0);"

    def test_collapse_keeps_short_leaf_edges(self):
        tree = PhylogenyTreeNode.from_newick("(A:0.001,B:1.0);")
        assert tree.collapse_short_edges(0.01).to_newick() == "(A:0.001,B:1.0);"

    def test_pruned_to_strains(self):
        tree = PhylogenyTreeNode.from_newick("((A:1.0,B:1.0):1.0,(C:1.0,D:1.0):1.0);")
        pruned = tree.pruned_to_strains({"A", "B", "C"})
        assert pruned.to_newick() == "((A:1.0,B:1.0):1.0,(C:1.0):1.0);"
        assert sorted(tree.all_strains()) == ["A", "B", "C", "D"]
