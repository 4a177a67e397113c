from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np

from hapscan.core.genotypes import ChromosomeGenotypes

WORKED_STRAINS = ["A", "B", "C", "D", "E"]

# rows are SNPs 1..8 at positions 1..8, columns are strains A..E
WORKED_ALLELES = [
    "TGGTT",
    "TTGTT",
    "GGGTG",
    "GGGGT",
    "GTGGG",
    "GGGTT",
    "GTTTT",
    "GAGAA",
]

WORKED_CSV_HEADER = ["snp.ID", "ChrID", "build.36.bp.Position", "Source"]


def worked_example(chromosome: int = 1) -> ChromosomeGenotypes:
    """The 5-strain, 8-SNP example genotypes as a chromosome."""
    alleles = np.array([list(row) for row in WORKED_ALLELES], dtype=str)
    return ChromosomeGenotypes(
        chromosome,
        list(WORKED_STRAINS),
        np.arange(1, len(WORKED_ALLELES) + 1, dtype=np.int64),
        alleles,
    )


def write_genotype_csv(
    path: Path,
    strains: Sequence[str],
    rows: List[Dict],
    conflict_column: bool = False,
):
    """
    Write a genotype flat file with four annotation columns.

    Each row dict must contain keys:
      - calls (str or List[str]) aligned to strains order
    and may contain:
      - chrom (str), default "1"
      - pos (int), default row number
      - id (str)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    header = WORKED_CSV_HEADER + list(strains)
    if conflict_column:
        header.append("idx.validated.conflict.snp")
    lines = [",".join(header)]
    for i, row in enumerate(rows, start=1):
        line = [
            row.get("id", f"rs{i}"),
            str(row.get("chrom", "1")),
            str(row.get("pos", i)),
            "test",
        ]
        line += list(row["calls"])
        if conflict_column:
            line.append("0")
        lines.append(",".join(line))
    path.write_text("\n".join(lines) + "\n")


def write_worked_example_csv(path: Path, chrom: str = "1"):
    write_genotype_csv(
        path,
        WORKED_STRAINS,
        [
            {"chrom": chrom, "pos": i, "calls": calls}
            for i, calls in enumerate(WORKED_ALLELES, start=1)
        ],
    )


def write_vcf(path: Path, samples: List[str], variants: List[Dict]):
    """
    Write a minimal VCF with provided variants.

    Each variant dict must contain keys:
      - chrom (str)
      - pos (int)
      - id (str)
      - ref (str)
      - alt (str)
      - genotypes (List[str]) aligned to samples order
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    contigs = sorted({str(v.get("chrom", "1")) for v in variants})
    with open(path, "w") as f:
        f.write("##fileformat=VCFv4.2\n")
        f.write("##source=hapscan-tests\n")
        for contig in contigs:
            f.write(f"##contig=<ID={contig}>\n")
        f.write('##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">\n')
        f.write(
            "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\t"
            + "\t".join(samples)
            + "\n"
        )
        for v in variants:
            line = [
                str(v.get("chrom", "1")),
                str(v.get("pos", 1)),
                v["id"],
                v.get("ref", "A"),
                v.get("alt", "T"),
                ".",
                "PASS",
                ".",
                "GT",
            ]
            line += v["genotypes"]
            f.write("\t".join(line) + "\n")


def random_sdps(
    rng: np.random.Generator, snp_count: int, strain_count: int
) -> List[int]:
    """Raw SDP columns from a random two-allele matrix."""
    alleles = rng.integers(0, 2, size=(snp_count, strain_count))
    sdps = []
    for row in alleles:
        differs = row != row[0]
        sdps.append(sum(1 << i for i, d in enumerate(differs) if d))
    return sdps


def block_tuples(blocks, strain_names: Optional[Sequence[str]] = None):
    """Sorted (start, extent, strains) tuples for comparing blocks."""
    names = strain_names or WORKED_STRAINS
    result = []
    for block in blocks:
        strains = "".join(
            names[i] for i in range(len(names)) if block.strain_group >> i & 1
        )
        result.append((block.start_bp, block.extent_bp, strains))
    return sorted(result)
