#!/usr/bin/env python3

"""
Output writers for categorized and uncategorized lncRNAs.

Every GTF line of a categorized transcript is copied with its transcript
length and lncRNA type appended as extra attributes.
"""

import fcntl
import logging
import os
from typing import Iterable, List

from .data_structures import ClassificationRecord, UnitResult, UnitSummary
from .exceptions import PipelineError
from .parsers import GTFTranscriptStore


class LockedAppender:
    """Append to a file that other workers may be appending to as well."""

    def __init__(self, file_path: str):
        self.file_path = file_path

    def append(self, text: str) -> None:
        if not text:
            return
        try:
            with open(self.file_path, 'a') as f:
                fcntl.flock(f, fcntl.LOCK_EX)
                try:
                    f.seek(0, os.SEEK_END)
                    f.write(text)
                    f.flush()
                finally:
                    fcntl.flock(f, fcntl.LOCK_UN)
        except OSError as e:
            raise PipelineError(f"Cannot write to [ {self.file_path} ]: {e}")

    def append_lines(self, lines: Iterable[str]) -> None:
        self.append(''.join(f"{line}\n" for line in lines))


def annotate_lines(record: ClassificationRecord, gtf_store: GTFTranscriptStore) -> List[str]:
    """GTF lines of the record's transcript with the category attributes appended."""
    suffix = record.attribute_suffix()
    return [f"{line}{suffix}" for line in gtf_store.lines(record.candidate_id)]


def write_records(records: List[ClassificationRecord], gtf_store: GTFTranscriptStore,
                  output_path: str) -> int:
    """Write annotated GTF lines for each record; returns the number of lines written."""
    lines = []
    missing = 0
    for record in records:
        annotated = annotate_lines(record, gtf_store)
        if not annotated:
            missing += 1
        lines.extend(annotated)

    if missing:
        logging.warning(f"{missing} transcripts had no GTF lines in "
                        f"[ {gtf_store.file_path} ] and were not written to {output_path}")

    LockedAppender(output_path).append_lines(lines)
    return len(lines)


def write_unit_outputs(result: UnitResult, gtf_store: GTFTranscriptStore,
                       classified_path: str, unclassified_path: str) -> None:
    """Replace a unit's classified and unclassified GTF outputs."""
    for path in (classified_path, unclassified_path):
        if os.path.exists(path):
            os.unlink(path)

    written = write_records(result.classified, gtf_store, classified_path)
    logging.info(f"Wrote {written} lines for {len(result.classified)} categorized lncRNAs to {classified_path}")

    written = write_records(result.unclassified, gtf_store, unclassified_path)
    logging.info(f"Wrote {written} lines for {len(result.unclassified)} uncategorized transcripts "
                 f"to {unclassified_path}")


def format_summary(label: str, summary: UnitSummary) -> str:
    """Human readable per-unit summary."""
    return (
        f"\n\nlncRNA Summary [ {label} ] :\n"
        + "-" * 71 + "\n"
        f"Total number of input transcripts: {summary.total_input}\n"
        f"LincRNAs: {summary.lincrnas}\n"
        f"Intronic overlaps - Concs: {summary.concs}\n"
        f"Intronic overlaps - Poncs: {summary.poncs}\n"
        f"Intronic overlaps - Incs: {summary.incs}\n"
        f"Exonic overlaps: {summary.exonic}\n"
        f"Total categorized: {summary.total_categorized}\n"
        f"Uncategorized: {summary.uncategorized}\n"
    )
