"""Command-line interface for hapscan."""

import argparse
import signal
import sys
from pathlib import Path
import platform

from .app import HapScanApp, HapScanConfig
from .utils.validation import validate_cli_arguments
from .version import __version__, get_git_commit

__all__ = ["parser_resolve_path", "create_parser", "main", "is_shutdown_requested"]

_shutdown_requested = False


def _signal_handler(signum: int, frame: object) -> None:
    """Handle signals for graceful shutdown."""
    global _shutdown_requested
    if signum == signal.SIGINT:
        print("\nReceived interrupt signal (Ctrl+C). Shutting down gracefully...")
    elif signum == signal.SIGTERM:
        print("\nReceived termination signal. Shutting down gracefully...")
    else:
        print(f"\nReceived signal {signum}. Shutting down gracefully...")
    _shutdown_requested = True


def is_shutdown_requested() -> bool:
    """Check if graceful shutdown was requested."""
    return _shutdown_requested


def _build_version_string() -> str:
    """Compose version string with build and runtime info."""
    py = platform.python_version()
    return f"hapscan {__version__} (commit hash {get_git_commit()})\nPython {py}"


def parser_resolve_path(path: str) -> Path:
    """Resolve CLI-provided path string to an absolute Path.

    Example:
        >>> parser_resolve_path("strains.csv")
        PosixPath('/absolute/path/to/strains.csv')
    """
    return Path(path).resolve()


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser.

    Returns:
        Configured ArgumentParser with all hapscan options

    Example:
        >>> parser = create_parser()
        >>> args = parser.parse_args(["strains.csv", "output", "-s", "5", "-g", "3"])
        >>> print(f"Blocks: >= {args.min_snps} SNPs, >= {args.min_strains} strains")
        Blocks: >= 5 SNPs, >= 3 strains
    """
    parser = argparse.ArgumentParser(
        description=(
            "Partition strain SNP genotypes into maximal perfect phylogeny "
            "intervals, infer one phylogeny per interval and estimate haplotype "
            "blocks shared by groups of strains."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        epilog=(
            "Notes: Only bi-allelic, homozygous SNPs are used. SNPs with missing "
            "or heterozygous calls are dropped; multiallelic SNPs are rejected."
        ),
    )

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=_build_version_string(),
        help="Show program version, commit hash, and Python version, then exit",
    )

    parser.add_argument(
        "input",
        help="Genotype file: comma separated strain table or VCF/BCF",
        type=parser_resolve_path,
        metavar="GENOTYPES",
    )
    parser.add_argument(
        "outdir",
        help="Path to output folder (will be created if absent)",
        type=parser_resolve_path,
        metavar="OUTPUT_FOLDER",
    )

    grp_blocks = parser.add_argument_group(
        "Haplotype blocks", "Thresholds for haplotype block estimation"
    )
    grp_blocks.add_argument(
        "-s",
        "--min-snps",
        dest="min_snps",
        help="Minimum number of SNPs a haplotype block must span",
        default=3,
        type=int,
        metavar="MIN_SNPS",
    )
    grp_blocks.add_argument(
        "-g",
        "--min-strains",
        dest="min_strains",
        help="Minimum number of strains sharing a haplotype block",
        default=2,
        type=int,
        metavar="MIN_STRAINS",
    )

    grp_select = parser.add_argument_group("Selection", "Strain and chromosome selection")
    grp_select.add_argument(
        "--strains",
        help="Comma separated strains to analyse, in output order (default: all)",
        default=None,
        metavar="NAMES",
    )
    grp_select.add_argument(
        "--chromosomes",
        help="Comma separated chromosomes to analyse, e.g. 1,2,X (default: all)",
        default=None,
        metavar="NAMES",
    )
    grp_select.add_argument(
        "--exclude-imputed",
        dest="exclude_imputed",
        help="Drop SNPs with imputed (lower case) calls instead of using them",
        action="store_true",
        default=False,
    )

    grp_analysis = parser.add_argument_group("Analyses", "Enable or disable analyses")
    grp_analysis.add_argument(
        "--skip-blocks",
        dest="skip_blocks",
        help="Do not estimate haplotype blocks and equivalence classes",
        action="store_true",
        default=False,
    )
    grp_analysis.add_argument(
        "--skip-phylogeny",
        dest="skip_phylogeny",
        help="Do not scan for max-k intervals and perfect phylogenies",
        action="store_true",
        default=False,
    )
    grp_analysis.add_argument(
        "--simplify-trees",
        dest="simplify_trees",
        help="Write trees with one leaf per strain and no non-branching interior nodes",
        action="store_true",
        default=False,
    )
    grp_analysis.add_argument(
        "-w",
        "--window-size",
        dest="window_size",
        help="SNPs per sliding window for multi-haplotype blocks (0 disables)",
        default=0,
        type=int,
        metavar="WINDOW",
    )
    grp_analysis.add_argument(
        "--step-by-snp",
        dest="step_by_snp",
        help="Slide windows by one SNP instead of a whole window",
        action="store_true",
        default=False,
    )
    grp_analysis.add_argument(
        "--ibs-reference",
        dest="ibs_reference",
        help="Reference strain for identical-by-state regions (default: skip)",
        default=None,
        metavar="STRAIN",
    )
    grp_analysis.add_argument(
        "--ibs-min-snps",
        dest="ibs_min_snps",
        help="Minimum number of SNPs in an IBS region",
        default=1,
        type=int,
        metavar="N",
    )
    grp_analysis.add_argument(
        "--ibs-min-bp",
        dest="ibs_min_bp",
        help="Minimum base pair extent of an IBS region",
        default=0,
        type=int,
        metavar="BP",
    )

    grp_io = parser.add_argument_group("IO formats", "Input genotype formats")
    grp_io.add_argument(
        "-I",
        "--input-format",
        help=(
            "Input format: auto (default, by file extension), csv (strain table), "
            "v (VCF), z (VCF.gz), u (uncompressed BCF), b (compressed BCF)"
        ),
        choices=["auto", "csv", "v", "z", "u", "b"],
        default="auto",
    )
    grp_io.add_argument(
        "--annotation-columns",
        dest="annotation_columns",
        help="Leading non-strain columns of a CSV strain table",
        default=4,
        type=int,
        metavar="N",
    )

    grp_log = parser.add_argument_group("Logging", "Logging verbosity and format")
    grp_log.add_argument(
        "-q",
        "--quiet",
        help="Suppress progress output",
        action="store_true",
        default=False,
    )
    grp_log.add_argument(
        "-L",
        "--log-level",
        help=(
            "Logging level (DEBUG, INFO, WARNING, ERROR); default depends on --quiet"
        ),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
    )
    grp_log.add_argument(
        "-F",
        "--log-format",
        help="Logging format: text or json",
        choices=["text", "json"],
        default="text",
    )

    return parser


def main() -> None:
    """CLI entry point.

    This function:
    1. Parses command line arguments
    2. Validates argument combinations
    3. Creates application configuration
    4. Runs the hapscan pipeline

    Example:
        >>> # Command line usage:
        >>> # hapscan strains.csv output -s 5 -g 3 --simplify-trees
    """
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    parser = create_parser()
    args = parser.parse_args()

    validate_cli_arguments(args)

    config = HapScanConfig(
        input_path=args.input,
        output_dir=args.outdir,
        input_format=args.input_format,
        strains=args.strains,
        chromosomes=args.chromosomes,
        annotation_columns=args.annotation_columns,
        exclude_imputed=args.exclude_imputed,
        min_snps=args.min_snps,
        min_strains=args.min_strains,
        skip_blocks=args.skip_blocks,
        skip_phylogeny=args.skip_phylogeny,
        simplify_trees=args.simplify_trees,
        window_size=args.window_size,
        step_by_snp=args.step_by_snp,
        ibs_reference=args.ibs_reference,
        ibs_min_snps=args.ibs_min_snps,
        ibs_min_bp=args.ibs_min_bp,
        verbose=not args.quiet,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    print(f"Starting {_build_version_string()}")
    print(f"Genotypes: {config.input_path}")
    print(f"Output directory: {config.output_dir}")
    print(
        f"Configuration: min_snps={config.min_snps}, min_strains={config.min_strains}, "
        f"window_size={config.window_size}"
    )
    if config.exclude_imputed:
        print("Excluding SNPs with imputed calls")
    print(f"Logging: level={config.log_level or 'INFO'}, format={config.log_format}")
    print("-" * 60)

    app = HapScanApp(config, shutdown_checker=is_shutdown_requested)
    try:
        app.run()
    except KeyboardInterrupt:
        print("\nOperation interrupted by user. Exiting gracefully.")
        sys.exit(1)
    except Exception as e:
        if _shutdown_requested:
            print(f"\nGraceful shutdown completed. Error during shutdown: {e}")
            sys.exit(1)
        else:
            raise


if __name__ == "__main__":
    main()
