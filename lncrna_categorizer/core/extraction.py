#!/usr/bin/env python3

"""
Extraction of putative lncRNAs from a Cuffcompare tracking file.

Each tracking line names one transcript per sample together with the class
code Cuffcompare assigned against the reference. Transcripts whose class
code matches the extraction pattern, and which pass the expression filters,
are copied from the sample assemblies with their class code appended.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .exceptions import FormatError
from .parsers import GTFTranscriptStore
from .writers import LockedAppender

FPKM_PATTERN = re.compile(r'[FR]PKM\s+"(.+?)"', re.IGNORECASE)
COV_PATTERN = re.compile(r'\bcov\s+"(.+?)"', re.IGNORECASE)
FULL_READ_SUPPORT_PATTERN = re.compile(r'full_read_support\s+"(yes|no)"', re.IGNORECASE)


@dataclass
class ExtractionFilters:
    """Expression filters applied to extracted transcripts."""
    fpkm_cutoff: float = 0.0
    cov_cutoff: float = 0.0
    full_read_support: bool = False


@dataclass
class ExtractionResult:
    """Per-sample counts of extracted putative lncRNAs."""
    output_paths: List[str]
    extracted: List[int] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.extracted)


def _attribute_value(pattern, lines: Sequence[str]) -> Optional[str]:
    for line in lines:
        match = pattern.search(line)
        if match:
            return match.group(1)
    return None


class PutativeExtractor:
    """Copy transcripts with matching class codes into per-sample putative GTFs."""

    def __init__(self, tracking_path: str, assembly_paths: List[str], output_paths: List[str],
                 pattern: str = 'i|o|u|x', filters: Optional[ExtractionFilters] = None):
        if len(assembly_paths) != len(output_paths):
            raise FormatError("Number of output files does not match number of assemblies")

        self.tracking_path = tracking_path
        self.assembly_paths = assembly_paths
        self.output_paths = output_paths
        self.pattern = re.compile(pattern, re.IGNORECASE)
        self.filters = filters or ExtractionFilters()
        self._warned: Dict[str, bool] = {}

    def run(self) -> ExtractionResult:
        logging.info("Getting putative list of lncRNAs in GTF format...")

        stores = [GTFTranscriptStore(path) for path in self.assembly_paths]
        appenders = [LockedAppender(path) for path in self.output_paths]
        result = ExtractionResult(output_paths=list(self.output_paths),
                                  extracted=[0] * len(self.output_paths))

        for path in self.output_paths:
            if os.path.exists(path):
                os.unlink(path)

        try:
            with open(self.tracking_path, 'r') as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    self._extract_line(line, line_num, stores, appenders, result)
        except FileNotFoundError:
            raise FormatError(f"Cuffcompare tracking file not found: {self.tracking_path}")

        for path, count in zip(self.output_paths, result.extracted):
            logging.info(f"Extracted {count} putative lncRNAs into {path}")
        result.warnings = [name for name, warned in self._warned.items() if warned]
        return result

    def _extract_line(self, line: str, line_num: int, stores: List[GTFTranscriptStore],
                      appenders: List[LockedAppender], result: ExtractionResult) -> None:
        parts = line.split('\t')
        if len(parts) < 4:
            raise FormatError("Tracking line has fewer than 4 columns",
                              self.tracking_path, line_num, line)

        class_code, sample_cols = parts[3], parts[4:]
        if len(sample_cols) != len(stores):
            raise FormatError(
                "Number of sample columns in Cuffcompare tracking file do not match number "
                "of assembled transcript files supplied",
                self.tracking_path, line_num, line
            )

        if not self.pattern.search(class_code):
            return

        for i, col in enumerate(sample_cols):
            fields = col.split('|')
            if len(fields) < 2 or not fields[1]:
                continue

            transcript_lines = stores[i].lines(fields[1])
            if not transcript_lines or not self._passes_filters(transcript_lines):
                continue

            appenders[i].append_lines(f'{t_line} class_code "{class_code}";' for t_line in transcript_lines)
            result.extracted[i] += 1

    def _passes_filters(self, lines: List[str]) -> bool:
        fpkm = _attribute_value(FPKM_PATTERN, lines)
        cov = _attribute_value(COV_PATTERN, lines)
        full_support = _attribute_value(FULL_READ_SUPPORT_PATTERN, lines)

        if self.filters.cov_cutoff > 0 and cov is None:
            self._warn_once('cov', "Coverage information not present in the input transcript assemblies. "
                                   "Transcripts will not be filtered based on coverage cutoff.")
        if self.filters.fpkm_cutoff > 0 and fpkm is None:
            self._warn_once('fpkm', "FPKM / RPKM information not present in the input transcript "
                                    "assemblies. Transcripts will not be filtered based on FPKM / RPKM cutoff.")
        if self.filters.full_read_support and full_support is None:
            self._warn_once('full_read_support', "Full read support information not present in the input "
                                                 "transcript assemblies. Transcripts will not be filtered "
                                                 "based on full read support information.")

        try:
            if fpkm is not None and cov is not None and full_support is not None:
                support_ok = full_support.lower() == 'yes' or not self.filters.full_read_support
                return (float(fpkm) >= self.filters.fpkm_cutoff and
                        float(cov) >= self.filters.cov_cutoff and support_ok)
            if fpkm is not None and cov is not None:
                return float(fpkm) >= self.filters.fpkm_cutoff and float(cov) >= self.filters.cov_cutoff
            if fpkm is not None:
                return float(fpkm) >= self.filters.fpkm_cutoff
        except ValueError as e:
            raise FormatError(f"Invalid expression value in transcript attributes: {e}", line=lines[0])
        return True

    def _warn_once(self, key: str, message: str) -> None:
        if not self._warned.get(key):
            logging.warning(message)
            self._warned[key] = True
