import json
import subprocess
import sys
from pathlib import Path

import pytest

from hapscan.app import HapScanApp, HapScanConfig

from .helpers import write_vcf, write_worked_example_csv

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _run(input_path: Path, outdir: Path, *extra: str) -> subprocess.CompletedProcess:
    args = [
        sys.executable,
        "-m",
        "hapscan.cli",
        str(input_path),
        str(outdir),
        *extra,
    ]
    return subprocess.run(
        args,
        check=True,
        cwd=PROJECT_ROOT,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )


def _rows(path: Path):
    lines = [
        line
        for line in path.read_text().splitlines()
        if line.strip() and not line.startswith("#")
    ]
    return lines[1:]


def test_worked_example_outputs(tmp_path: Path):
    genotypes = tmp_path / "strains.csv"
    write_worked_example_csv(genotypes)
    outdir = tmp_path / "out"
    _run(genotypes, outdir, "-s", "2", "-g", "2", "-q")

    assert len(_rows(outdir / "haplotype_blocks.csv")) == 10
    phylogenies = _rows(outdir / "phylogenies.csv")
    assert phylogenies == [
        '1,1,7,"((C:1.0,B:1.0):1.0,(D:1.0,E:1.0):1.0,A:1.0);"',
        '1,2,7,"(B:1.0,(D:1.0,E:1.0):1.0,(C:1.0,A:1.0):1.0);"',
    ]
    assert (outdir / "equivalence_classes.csv").exists()
    assert not (outdir / "multi_haplotype_blocks.csv").exists()
    run_info = (outdir / "run_info.txt").read_text()
    assert "Max-k intervals: 2" in run_info
    assert "Haplotype blocks: 10" in run_info


def test_windows_and_ibs(tmp_path: Path):
    genotypes = tmp_path / "strains.csv"
    write_worked_example_csv(genotypes, chrom="chr2")
    outdir = tmp_path / "out"
    _run(
        genotypes,
        outdir,
        "-w",
        "2",
        "--ibs-reference",
        "A",
        "--ibs-min-snps",
        "3",
        "--skip-blocks",
        "--skip-phylogeny",
        "-q",
    )
    assert not (outdir / "haplotype_blocks.csv").exists()
    assert not (outdir / "phylogenies.csv").exists()
    assert len(_rows(outdir / "multi_haplotype_blocks.csv")) >= 1
    assert _rows(outdir / "ibs_regions.csv") == ["A,B,2,2,3", "A,C,2,3,4", "A,E,2,1,3"]


def test_vcf_input_with_strain_selection(tmp_path: Path):
    vcf = tmp_path / "strains.vcf"
    write_vcf(
        vcf,
        ["S1", "S2", "S3", "S4"],
        [
            {"chrom": "1", "pos": 100 * i, "id": f"v{i}", "genotypes": gts}
            for i, gts in enumerate(
                [
                    ["0/0", "0/0", "1/1", "1/1"],
                    ["0/0", "0/0", "1/1", "0/0"],
                    ["0/0", "0/0", "0/0", "1/1"],
                ],
                start=1,
            )
        ],
    )
    outdir = tmp_path / "out"
    _run(vcf, outdir, "--strains", "S1,S2,S3", "-s", "3", "-q", "--simplify-trees")
    assert _rows(outdir / "haplotype_blocks.csv") == ["1,100,201,2,S1|S2"]
    assert len(_rows(outdir / "phylogenies.csv")) == 1


def test_json_logging(tmp_path: Path):
    genotypes = tmp_path / "strains.csv"
    write_worked_example_csv(genotypes)
    result = _run(genotypes, tmp_path / "out", "-F", "json", "-L", "INFO")
    records = [json.loads(line) for line in result.stderr.splitlines() if line.startswith("{")]
    assert records
    assert {"level", "logger", "message", "time"} <= set(records[0])


def test_version():
    result = subprocess.run(
        [sys.executable, "-m", "hapscan.cli", "--version"],
        check=True,
        cwd=PROJECT_ROOT,
        stdout=subprocess.PIPE,
        text=True,
    )
    assert result.stdout.startswith("hapscan ")


@pytest.mark.parametrize(
    "extra",
    [
        ["-g", "0"],
        ["-s", "-1"],
        ["-w", "-3"],
        ["--step-by-snp"],
        ["--annotation-columns", "1"],
        ["--ibs-min-snps", "0"],
        ["--skip-blocks", "--skip-phylogeny"],
        ["--strains", "A,B", "--ibs-reference", "C"],
        ["--strains", ","],
    ],
)
def test_invalid_arguments(tmp_path: Path, extra):
    genotypes = tmp_path / "strains.csv"
    write_worked_example_csv(genotypes)
    with pytest.raises(subprocess.CalledProcessError):
        _run(genotypes, tmp_path / "out", *extra)


def test_missing_input_file(tmp_path: Path):
    with pytest.raises(subprocess.CalledProcessError):
        _run(tmp_path / "absent.csv", tmp_path / "out", "-q")


def test_app_run_in_process(tmp_path: Path):
    genotypes = tmp_path / "strains.csv"
    write_worked_example_csv(genotypes)
    config = HapScanConfig(
        input_path=genotypes,
        output_dir=tmp_path / "out",
        min_snps=2,
        min_strains=2,
        window_size=4,
        verbose=False,
    )
    results = HapScanApp(config).run()
    assert len(results.haplotype_blocks) == 10
    assert len(results.phylogenies) == 2
    assert [b.strain_groupings[0] for b in results.multi_haplotype_blocks] == [0] * len(
        results.multi_haplotype_blocks
    )
    assert (tmp_path / "out" / "multi_haplotype_blocks.csv").exists()


def test_app_stops_when_shutdown_requested(tmp_path: Path):
    genotypes = tmp_path / "strains.csv"
    write_worked_example_csv(genotypes)
    config = HapScanConfig(
        input_path=genotypes, output_dir=tmp_path / "out", verbose=False
    )
    calls = {"n": 0}

    def shutdown_after_parsing():
        calls["n"] += 1
        return calls["n"] > 8

    results = HapScanApp(config, shutdown_checker=shutdown_after_parsing).run()
    assert results.haplotype_blocks == []
    assert (tmp_path / "out" / "run_info.txt").exists()
