#!/usr/bin/env python3

"""
Main pipeline class for lncRNA categorization.

Chains putative lncRNA extraction, genePred conversion and categorization,
with checkpoint files that let an interrupted run resume at a later step.
"""

import os
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .config import CategorizerConfig
from .converter import GenePredConverter, check_gtf_attributes, format_gtf
from .dispatcher import UnitOutcome, WorkDispatcher, WorkUnit
from .exceptions import ConfigurationError, PipelineError
from .extraction import ExtractionFilters, PutativeExtractor
from .parsers import count_transcript_features, load_gene_predictions
from ..utils.performance_monitor import PerformanceMonitor

PUTATIVE_CHECKPOINT = '.get_putative_ncRNAs.OK'
GENEPRED_CHECKPOINT = '.get_genePred.OK'
ZERO_CLASS_MARKER = '.cat.extractPat.zero'

RESUME_STEPS = ('genepred', 'categorize')


def parse_sample_names(sample_names: str) -> List[str]:
    """Split a comma separated list of sample names; inner whitespace becomes '_'."""
    names = re.sub(r'\s+', '_', sample_names.strip())
    names = names.rstrip(',')
    if not names:
        return []
    return names.split(',')


def _stem(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0]


@dataclass
class SampleFiles:
    """Intermediate and final files of one sample."""
    label: str
    assembly: str
    putative_gtf: str
    putative_genepred: str
    classified: str
    unclassified: str

    @classmethod
    def for_sample(cls, output_dir: str, assembly: str, label: str, formatted: bool) -> 'SampleFiles':
        # Reformatted assemblies already carry the label in their file name
        prefix = os.path.join(output_dir, _stem(assembly) if formatted else f"{_stem(assembly)}.{label}")
        return cls(
            label=label,
            assembly=assembly,
            putative_gtf=f"{prefix}.putative_lncRNAs.gtf",
            putative_genepred=f"{prefix}.putative_lncRNAs.txt",
            classified=f"{prefix}.putative.class.lncRNAs.gtf",
            unclassified=f"{prefix}.putative.noClass.lncRNAs.gtf",
        )


class CategorizationPipeline:
    """Main pipeline class that coordinates all processing phases."""

    def __init__(self, config: CategorizerConfig):
        self.config = config
        self.monitor = PerformanceMonitor(memory_limit_mb=config.memory_limit_mb)
        self.samples: List[SampleFiles] = []
        self.outcomes: List[UnitOutcome] = []
        self.output_dir: str = ""

    def checkpoint(self, name: str) -> str:
        return os.path.join(self.output_dir, name)

    def run(self, annotation: str, tracking: str, assemblies: List[str],
            sample_names: List[str], output: str, resume_from: Optional[str] = None) -> bool:
        """
        Run the lncRNA categorization pipeline.

        Args:
            annotation: Reference annotation in gene prediction format
            tracking: Cuffcompare .tracking file
            assemblies: Assembled transcript GTF files, one per sample
            sample_names: One label per assembly
            output: Output directory path
            resume_from: 'genepred' or 'categorize' to skip earlier steps

        Returns:
            True if pipeline completed successfully
        """
        try:
            Path(output).mkdir(parents=True, exist_ok=True)
            self.output_dir = output
            self._setup_pipeline_logging(output)

            logging.info("Starting lncRNA categorization pipeline")
            logging.info(f"Configuration: {self.config}")
            logging.info(f"Reference annotation: {annotation}")
            logging.info(f"Cuffcompare tracking file: {tracking}")
            logging.info(f"Output directory: {output}")

            self._validate_inputs(annotation, tracking, assemblies, sample_names, resume_from)
            self._prepare_samples(assemblies, sample_names)
            self._log_options()

            step = self._resume_step(resume_from)
            if step is None:
                for sample in self.samples:
                    if os.path.exists(sample.putative_gtf):
                        os.unlink(sample.putative_gtf)
                self._extract_putative(tracking)

            if self._no_class_codes():
                logging.warning(f"No transcripts with requested class codes [ {self.config.extraction_pattern} ] "
                                f"were found in {tracking}")
                return True

            if step != 'categorize':
                self._convert_to_genepred()

            success = self._categorize(annotation)

            if self.config.clean_tmp:
                self._remove_intermediate_files()

            if self.config.known_ncrnas:
                logging.info('Known ncRNAs are stored in files ending with suffix ".putative.class.lncRNAs.gtf"')

            self.monitor.log_performance_report()
            if success:
                logging.info("Pipeline completed successfully")
            return success

        except PipelineError as e:
            logging.error(f"Pipeline failed: {e}")
            logging.debug("Full traceback:", exc_info=True)
            return False

    def _setup_pipeline_logging(self, output_dir: str) -> None:
        """Set up pipeline-specific logging."""
        log_file = Path(output_dir) / 'categorize_ncrnas.log'

        # Add file handler to root logger
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        ))

        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)

        if self.config.debug_mode:
            root_logger.setLevel(logging.DEBUG)

    def _validate_inputs(self, annotation: str, tracking: str, assemblies: List[str],
                         sample_names: List[str], resume_from: Optional[str]) -> None:
        if resume_from is not None and resume_from not in RESUME_STEPS:
            raise ConfigurationError(f"Unknown resume step '{resume_from}', expected one of {RESUME_STEPS}")

        if not assemblies:
            raise ConfigurationError("Cufflinks assembled transcript files not provided.")

        if len(sample_names) != len(assemblies):
            raise ConfigurationError(
                f"Number of Sample Names [ {len(sample_names)} ] is not equal to Number of "
                f"transcripts' files [ {len(assemblies)} ] provided."
            )

        required = {'annotation': annotation, 'tracking': tracking}
        for i, assembly in enumerate(assemblies):
            required[f"assembly {sample_names[i]}"] = assembly

        for file_type, file_path in required.items():
            if not os.path.exists(file_path):
                raise ConfigurationError(f"{file_type} file not found: {file_path}")

    def _prepare_samples(self, assemblies: List[str], sample_names: List[str]) -> None:
        """Check assembly attributes and derive per-sample file names."""
        logging.info("Checking for the validity of attribute column [ 9th column ] in supplied "
                     "transcript assembly [ GTF ] file(s)...")
        self.samples = []
        for assembly, label in zip(assemblies, sample_names):
            formatted = False
            if not check_gtf_attributes(assembly):
                formatted_path = os.path.join(self.output_dir, f"{_stem(assembly)}.{label}.formatted.gtf")
                assembly = format_gtf(assembly, formatted_path)
                formatted = True
            self.samples.append(SampleFiles.for_sample(self.output_dir, assembly, label, formatted))

    def _log_options(self) -> None:
        logging.info(
            "Using options:\n--------------\n"
            f"FPKM cutoff                            : {self.config.fpkm_cutoff}\n"
            f"Coverage cutoff                        : {self.config.cov_cutoff}\n"
            f"Minimum transcript length              : {self.config.min_length}\n"
            f"Minimum exon overlap percentage        : {self.config.overlap_percent or 0}\n"
            f"Minimum number of exons per transcript : {self.config.min_exons}\n"
            f"Extract only Antisense exon overlaps   : {self.config.antisense_only}"
        )

    def _resume_step(self, resume_from: Optional[str]) -> Optional[str]:
        if resume_from:
            return resume_from
        if not self.config.checkpoint_enabled:
            return None

        has_putative = os.path.exists(self.checkpoint(PUTATIVE_CHECKPOINT))
        if has_putative and os.path.exists(self.checkpoint(GENEPRED_CHECKPOINT)):
            logging.info("Found genePred checkpoint, resuming at categorization")
            return 'categorize'
        if has_putative:
            logging.info("Found putative lncRNA checkpoint, resuming at genePred conversion")
            return 'genepred'
        return None

    def _touch(self, name: str) -> None:
        Path(self.checkpoint(name)).touch()

    def _extract_putative(self, tracking: str) -> None:
        with self.monitor.phase_context("putative_extraction") as metrics:
            extractor = PutativeExtractor(
                tracking,
                [sample.assembly for sample in self.samples],
                [sample.putative_gtf for sample in self.samples],
                pattern=self.config.extraction_pattern,
                filters=ExtractionFilters(
                    fpkm_cutoff=self.config.fpkm_cutoff,
                    cov_cutoff=self.config.cov_cutoff,
                    full_read_support=self.config.full_read_support,
                ),
            )
            result = extractor.run()
            metrics.items = result.total

        if self.config.checkpoint_enabled:
            self._touch(PUTATIVE_CHECKPOINT)

    def _no_class_codes(self) -> bool:
        """Record and report when some sample has no putative lncRNAs at all."""
        missing = [sample for sample in self.samples if not os.path.exists(sample.putative_gtf)]
        if not missing:
            return False
        self._touch(ZERO_CLASS_MARKER)
        return True

    def _convert_to_genepred(self) -> None:
        logging.info("Converting putative ncRNAs list to Gene Prediction format using gtfToGenePred tool...")
        with self.monitor.phase_context("genepred_conversion") as metrics:
            converter = GenePredConverter(self.config.gtf_to_genepred_bin)
            converter.check_available()
            converter.convert_all([(sample.putative_gtf, sample.putative_genepred) for sample in self.samples])
            metrics.items = len(self.samples)

        if self.config.checkpoint_enabled:
            self._touch(GENEPRED_CHECKPOINT)

    def _categorize(self, annotation_path: str) -> bool:
        strict = not self.config.ignore_genepred_errors

        with self.monitor.phase_context("annotation_loading") as metrics:
            logging.info(f"Loading reference annotation [ {annotation_path} ]...")
            annotation = load_gene_predictions(annotation_path, strict)
            metrics.items = sum(len(models) for models in annotation.values())
            self.monitor.check_memory_limit()

        units = []
        for sample in self.samples:
            units.append(WorkUnit(
                label=_stem(sample.classified),
                candidates_path=sample.putative_genepred,
                gtf_path=sample.putative_gtf,
                classified_path=sample.classified,
                unclassified_path=sample.unclassified,
                total_transcripts=count_transcript_features(sample.assembly) or "NA",
                strict=strict,
            ))

        with self.monitor.phase_context("categorization") as metrics:
            dispatcher = WorkDispatcher(annotation, self.config.to_settings(),
                                        max_workers=self.config.parallel_workers)
            self.outcomes = dispatcher.run(units)
            metrics.items = sum(len(outcome.result.classified) for outcome in self.outcomes
                                           if outcome.ok)

        failed = [outcome.label for outcome in self.outcomes if not outcome.ok]
        if failed:
            logging.error(f"Categorization failed for: {', '.join(failed)}")
            return False
        return True

    def _remove_intermediate_files(self) -> None:
        logging.info("Removing intermediate files...")
        for sample in self.samples:
            for path in (sample.putative_gtf, sample.putative_genepred):
                if os.path.exists(path):
                    os.unlink(path)
