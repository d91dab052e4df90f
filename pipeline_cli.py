#!/usr/bin/env python3

"""
Command-line interface for the lncRNA categorization pipeline.

Extracts putative lncRNAs from a Cuffcompare tracking file, converts them to
gene prediction format and categorizes them against a reference annotation.
"""

import argparse
import sys
import logging

from lncrna_categorizer.core.config import load_config
from lncrna_categorizer.core.exceptions import ConfigurationError, PipelineError
from lncrna_categorizer.core.pipeline import CategorizationPipeline, parse_sample_names


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Categorize assembled transcripts into lncRNA classes relative to a reference annotation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full run
  python pipeline_cli.py --cuffcmp cuffcmp.tracking --annotation refGene.txt --out results \\
      --sample-names s1,s2 s1.gtf s2.gtf

  # Resume at categorization with a LincRNA proximity window
  python pipeline_cli.py --cuffcmp cuffcmp.tracking --annotation refGene.txt --out results \\
      --sample-names s1 --categorize --linc-rna-prox 1000 s1.gtf
        """
    )

    # Required arguments
    parser.add_argument(
        'assemblies',
        nargs='+',
        help='Cufflinks assembled transcript files (GTF), one per sample'
    )
    parser.add_argument(
        '--cuffcmp',
        required=True,
        help='Cuffcompare tracking file'
    )
    parser.add_argument(
        '--annotation',
        required=True,
        help='Reference annotation in gene prediction format'
    )
    parser.add_argument(
        '--out',
        required=True,
        help='Output directory'
    )
    parser.add_argument(
        '--sample-names',
        required=True,
        help='Comma separated sample names, one per assembly'
    )

    # Extraction options
    parser.add_argument(
        '--fpkm-cutoff',
        type=float,
        help='Extract transcripts with FPKM / RPKM at or above this value (default: 0.0)'
    )
    parser.add_argument(
        '--cov-cutoff',
        type=float,
        help='Extract transcripts with coverage at or above this value (default: 0.0)'
    )
    parser.add_argument(
        '--full-read-support',
        action='store_true',
        help='Extract only transcripts with full read support'
    )
    parser.add_argument(
        '--include-novel',
        action='store_true',
        help='Also extract novel isoforms (class code "j")'
    )
    parser.add_argument(
        '--extract-pattern',
        help='Class code pattern to extract, overrides the default "i|o|u|x"'
    )

    # Resume options
    parser.add_argument(
        '--genePred',
        action='store_true',
        help='Start the pipeline at genePred conversion of existing putative lncRNA GTFs'
    )
    parser.add_argument(
        '--categorize',
        action='store_true',
        help='Start the pipeline at categorization of existing putative lncRNAs'
    )

    # Categorization options
    parser.add_argument(
        '--length',
        type=int,
        help='Minimum transcript length (default: 200)'
    )
    parser.add_argument(
        '--max-length',
        type=int,
        help='Ignore transcripts longer than this length'
    )
    parser.add_argument(
        '--min-exons',
        type=int,
        help='Minimum number of exons per transcript (default: 1)'
    )
    parser.add_argument(
        '--overlap',
        type=float,
        help='Minimum exon overlap percentage for Exonic overlaps'
    )
    parser.add_argument(
        '--known-ncRNAs',
        action='store_true',
        help='Annotation holds known ncRNAs; report only exact exonic matches'
    )
    parser.add_argument(
        '--antisense-only',
        action='store_true',
        help='Report only antisense exonic overlaps'
    )
    parser.add_argument(
        '--linc-rna-prox',
        type=int,
        help='Report LincRNAs only when a reference gene lies within this many bases'
    )
    parser.add_argument(
        '--rescue-categories',
        action='store_true',
        help='Do not move categories that disagree with the Cuffcompare class code'
    )
    parser.add_argument(
        '--ignore-genePred-err',
        action='store_true',
        help='Skip validation of gene prediction lines'
    )

    # Processing options
    parser.add_argument(
        '--bin-gtfToGenePred',
        help='Path to the gtfToGenePred executable'
    )
    parser.add_argument(
        '--cpu',
        type=int,
        help='Number of samples to categorize in parallel (default: 1)'
    )
    parser.add_argument(
        '--clean-tmp',
        action='store_true',
        help='Remove intermediate putative lncRNA files'
    )
    parser.add_argument(
        '--config',
        help='Configuration file (JSON or YAML)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )

    return parser


def apply_overrides(config, args) -> None:
    """Override config values with command line arguments."""
    values = {
        'fpkm_cutoff': args.fpkm_cutoff,
        'cov_cutoff': args.cov_cutoff,
        'extract_pattern': args.extract_pattern,
        'min_length': args.length,
        'max_length': args.max_length,
        'min_exons': args.min_exons,
        'overlap_percent': args.overlap,
        'linc_rna_proximity': args.linc_rna_prox,
        'gtf_to_genepred_bin': args.bin_gtfToGenePred,
        'parallel_workers': args.cpu,
    }
    for field_name, value in values.items():
        if value is not None:
            setattr(config, field_name, value)

    flags = {
        'full_read_support': args.full_read_support,
        'include_novel': args.include_novel,
        'known_ncrnas': args.known_ncRNAs,
        'antisense_only': args.antisense_only,
        'rescue': args.rescue_categories,
        'ignore_genepred_errors': args.ignore_genePred_err,
        'clean_tmp': args.clean_tmp,
    }
    for field_name, enabled in flags.items():
        if enabled:
            setattr(config, field_name, True)

    if args.log_level == 'DEBUG':
        config.debug_mode = True


def main(argv=None):
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Set up logging
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        # Load configuration
        config = load_config(config_path=args.config, use_env=True)
        apply_overrides(config, args)

        # Re-validate after CLI overrides.
        config.validate()

        sample_names = parse_sample_names(args.sample_names)
        if len(sample_names) != len(args.assemblies):
            raise ConfigurationError(
                f"Number of Sample Names [ {len(sample_names)} ] is not equal to Number of "
                f"transcripts' files [ {len(args.assemblies)} ] provided."
            )

        resume_from = None
        if args.categorize:
            resume_from = 'categorize'
        elif args.genePred:
            resume_from = 'genepred'

        pipeline = CategorizationPipeline(config)
        success = pipeline.run(
            annotation=args.annotation,
            tracking=args.cuffcmp,
            assemblies=args.assemblies,
            sample_names=sample_names,
            output=args.out,
            resume_from=resume_from
        )

        if success:
            logger.info("categorize_ncRNAs finished!")
            return 0
        else:
            logger.error("Pipeline failed!")
            return 1

    except PipelineError as e:
        logger.error(f"Pipeline error: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        logger.debug("Full traceback:", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
