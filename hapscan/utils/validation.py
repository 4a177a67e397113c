"""Input validation utilities."""

import sys
import argparse

__all__ = ["validate_cli_arguments", "parse_name_list"]


def parse_name_list(value):
    """Split a comma separated CLI value into names, or None when unset."""
    if value is None:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def validate_cli_arguments(args: argparse.Namespace) -> None:
    """Validate CLI argument combinations and constraints.

    Comma separated selections are converted to lists in place.

    Args:
        args: Parsed command line arguments
    """
    if args.min_snps < 0:
        sys.exit("-s (min_snps) must be >= 0")

    if args.min_strains < 1:
        sys.exit("-g (min_strains) must be >= 1")

    if args.annotation_columns < 2:
        sys.exit(
            "--annotation-columns must be >= 2 (chromosome and position columns)"
        )

    if args.window_size < 0:
        sys.exit("-w (window_size) must be >= 0 (0 disables window estimation)")

    if args.step_by_snp and args.window_size == 0:
        sys.exit("--step-by-snp requires a window size (-w) greater than 0")

    if args.ibs_min_snps < 1:
        sys.exit("--ibs-min-snps must be >= 1")

    if args.ibs_min_bp < 0:
        sys.exit("--ibs-min-bp must be >= 0")

    if args.skip_blocks and args.skip_phylogeny and not args.window_size and not args.ibs_reference:
        sys.exit("Nothing to do: every analysis has been disabled")

    strains = parse_name_list(args.strains)
    if args.strains is not None and not strains:
        sys.exit("--strains must name at least one strain")
    args.strains = strains

    chromosomes = parse_name_list(args.chromosomes)
    if args.chromosomes is not None and not chromosomes:
        sys.exit("--chromosomes must name at least one chromosome")
    args.chromosomes = chromosomes

    if args.ibs_reference and args.strains and args.ibs_reference not in args.strains:
        sys.exit("--ibs-reference must be one of the selected --strains")
