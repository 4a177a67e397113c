"""Input format detection and index creation for genotype files."""

from pathlib import Path
from typing import Optional
import logging
import subprocess

__all__ = ["infer_input_format", "ensure_variant_index", "VARIANT_FORMATS"]

# bcftools style letters: v (VCF), z (VCF.gz), u/b (BCF)
VARIANT_FORMATS = ("v", "z", "u", "b")


def infer_input_format(path: Path) -> str:
    """Infer the input format from the file name.

    Returns ``csv`` for comma separated genotype files, otherwise one of the
    bcftools format letters. Unknown extensions are read as genotype CSV.

    Example:
        >>> infer_input_format(Path("strains.vcf.gz"))
        'z'
    """
    name = str(path).lower()
    if name.endswith(".vcf.gz") or name.endswith(".vcf.bgz"):
        return "z"
    if name.endswith(".bcf"):
        return "b"
    if name.endswith(".vcf"):
        return "v"
    return "csv"


def ensure_variant_index(
    vpath: Path, fmt_letter: Optional[str], logger: Optional[logging.Logger]
) -> bool:
    """Make sure a compressed variant file has a CSI index.

    Plain VCF is read sequentially and never indexed.

    Args:
        vpath: Path to the variant file
        fmt_letter: Format letter, ``auto`` or None to infer it
        logger: Optional logger for progress messages

    Returns:
        True when an index is available for region queries

    Raises:
        RuntimeError: If bcftools is missing or fails
    """
    fmt = fmt_letter or "auto"
    if fmt == "auto":
        fmt = infer_input_format(vpath)

    if fmt == "v":
        if logger and logger.isEnabledFor(logging.INFO):
            logger.info("Input is plain VCF; no index required")
        return False

    if fmt in ("b", "u", "z"):
        csi = Path(str(vpath) + ".csi")
        tbi = Path(str(vpath) + ".tbi")
        if csi.exists() or tbi.exists():
            return True
        if logger and logger.isEnabledFor(logging.INFO):
            logger.info("Index not found; creating CSI index via bcftools...")
        _run_bcftools_index(vpath, logger)
        return True

    if logger and logger.isEnabledFor(logging.WARNING):
        logger.warning(f"Input format '{fmt}' is not a variant format; no index used")
    return False


def _run_bcftools_index(vpath: Path, logger: Optional[logging.Logger]) -> None:
    """Run bcftools index --csi on the given file, raising on failure."""
    cmd = ["bcftools", "index", "--csi", "-f", str(vpath)]
    try:
        res = subprocess.run(
            cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True
        )
        if logger and logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"bcftools index stdout: {res.stdout.strip()}")
    except FileNotFoundError:
        msg = "bcftools not found in PATH; please install bcftools to enable CSI indexing"
        if logger:
            logger.error(msg)
        raise RuntimeError(msg)
    except subprocess.CalledProcessError as e:
        if logger:
            logger.error(f"bcftools index failed: {e.stderr.strip()}")
        raise RuntimeError(f"bcftools index failed with code {e.returncode}")
