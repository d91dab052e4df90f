#!/usr/bin/env python3

"""
Dispatch classification units (one per sample) to a bounded worker pool.

Units share only the read-only reference annotation. With a single worker
the units run in the calling process and share one de-duplication map; with
a process pool every unit owns its own map, so de-duplication is scoped to
the unit.
"""

import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .classifier import ClassificationEngine, ClassifierSettings
from .data_structures import AnnotationIndex, CandidatePool, ClassifiedKeys, UnitResult
from .exceptions import PipelineError
from .parsers import GTFTranscriptStore, load_gene_predictions
from .writers import format_summary, write_unit_outputs


@dataclass
class WorkUnit:
    """Inputs and outputs of one sample's categorization."""
    label: str
    candidates_path: str
    gtf_path: Optional[str] = None
    classified_path: Optional[str] = None
    unclassified_path: Optional[str] = None
    total_transcripts: Union[int, str, None] = None
    strict: bool = True


@dataclass
class UnitOutcome:
    """Result of one unit; failed units carry the error message instead."""
    label: str
    ok: bool
    result: Optional[UnitResult] = None
    error: str = ""


def process_unit(annotation: AnnotationIndex, settings: ClassifierSettings, unit: WorkUnit,
                 classified_keys: Optional[ClassifiedKeys] = None) -> UnitOutcome:
    """Categorize one unit; input and output errors are contained to the unit."""
    try:
        pool = CandidatePool(load_gene_predictions(unit.candidates_path, unit.strict))
        gtf_store = GTFTranscriptStore(unit.gtf_path)

        engine = ClassificationEngine(annotation, settings, classified_keys)
        result = engine.classify(pool, gtf_store.class_codes, unit.total_transcripts, unit.label)

        if unit.classified_path and unit.unclassified_path:
            write_unit_outputs(result, gtf_store, unit.classified_path, unit.unclassified_path)

        logging.info(format_summary(unit.label, result.summary))
        return UnitOutcome(label=unit.label, ok=True, result=result)

    except (PipelineError, OSError) as e:
        logging.error(f"Categorization failed for [ {unit.label} ]: {e}")
        return UnitOutcome(label=unit.label, ok=False, error=str(e))


# Per-process state installed by the pool initializer
_worker_annotation: AnnotationIndex = {}
_worker_settings: Optional[ClassifierSettings] = None


def _init_worker(annotation: AnnotationIndex, settings: ClassifierSettings) -> None:
    global _worker_annotation, _worker_settings
    _worker_annotation = annotation
    _worker_settings = settings


def _pool_worker(unit: WorkUnit) -> UnitOutcome:
    return process_unit(_worker_annotation, _worker_settings, unit, ClassifiedKeys())


class WorkDispatcher:
    """Run classification units with at most ``max_workers`` running at once."""

    def __init__(self, annotation: AnnotationIndex, settings: Optional[ClassifierSettings] = None,
                 max_workers: int = 1):
        self.annotation = annotation
        self.settings = settings or ClassifierSettings()
        self.max_workers = max_workers

    def run(self, units: List[WorkUnit], max_workers: Optional[int] = None) -> List[UnitOutcome]:
        """Process every unit and return outcomes in input order."""
        workers = max_workers if max_workers is not None else self.max_workers

        if workers <= 1 or len(units) <= 1:
            shared_keys = ClassifiedKeys()
            return [process_unit(self.annotation, self.settings, unit, shared_keys) for unit in units]

        logging.info(f"Categorizing {len(units)} samples with {workers} worker processes")
        outcomes: Dict[int, UnitOutcome] = {}

        with ProcessPoolExecutor(max_workers=workers,
                                 initializer=_init_worker,
                                 initargs=(self.annotation, self.settings)) as executor:
            futures = {executor.submit(_pool_worker, unit): i for i, unit in enumerate(units)}

            for future in as_completed(futures):
                i = futures[future]
                try:
                    outcomes[i] = future.result()
                except Exception as e:
                    logging.error(f"Worker for [ {units[i].label} ] terminated: {e}")
                    outcomes[i] = UnitOutcome(label=units[i].label, ok=False, error=str(e))

        failed = sum(1 for outcome in outcomes.values() if not outcome.ok)
        if failed:
            logging.warning(f"{failed} of {len(units)} samples failed to categorize")

        return [outcomes[i] for i in range(len(units))]
