#!/usr/bin/env python3

"""
File parsers for gene prediction tables and transcript assembly GTFs.

Gene prediction (genePred) rows hold one transcript per line; GTF files are
only grouped by transcript so that their lines can be copied into the
categorized outputs.
"""

import logging
import re
from collections import OrderedDict
from typing import Dict, List, Optional

from .data_structures import GeneModel
from .exceptions import FormatError

ACCEPTED_CHROM_PREFIXES = re.compile(r'^(chr|ens|uc)', re.IGNORECASE)
VALID_STRANDS = ('+', '-', '.')

TRANSCRIPT_ID_PATTERN = re.compile(r'transcript_id\s+"(.+?)"', re.IGNORECASE)
CLASS_CODE_PATTERN = re.compile(r'class_code\s+"(.+?)"', re.IGNORECASE)


class GenePredParser:
    """Parse gene prediction tables into per-chromosome gene models."""

    def __init__(self, file_path: str, strict: bool = True):
        self.file_path = file_path
        self.strict = strict
        self.models: Dict[str, List[GeneModel]] = OrderedDict()

    def load(self) -> Dict[str, List[GeneModel]]:
        """Read every row; keys are lower-cased chromosome names."""
        logging.info(f"Reading information from gene prediction format file [ {self.file_path} ]...")

        model_count = 0
        try:
            with open(self.file_path, 'r') as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line or line.startswith('#'):
                        continue

                    model = self.parse_line(line, line_num)
                    self.models.setdefault(model.chrom_key, []).append(model)
                    model_count += 1
        except FileNotFoundError:
            raise FormatError(f"Gene prediction file not found: {self.file_path}")
        except UnicodeDecodeError as e:
            raise FormatError(f"Gene prediction file is not valid text: {e}", self.file_path)
        except OSError as e:
            raise FormatError(f"Cannot read gene prediction file: {e}", self.file_path)

        logging.info(f"Parsed {model_count} gene models on {len(self.models)} chromosomes")
        return self.models

    def parse_line(self, line: str, line_num: int = 0) -> GeneModel:
        parts = line.split('\t')
        if len(parts) < 10:
            raise FormatError(
                f"Expected at least 10 tab separated columns, found {len(parts)}",
                self.file_path, line_num, line
            )

        (t_id, chrom, strand, tx_start, tx_end,
         cds_start, cds_end, num_exons, exon_starts, exon_ends) = parts[:10]

        if self.strict:
            self._validate(chrom, strand, num_exons, line, line_num)

        try:
            return GeneModel(
                id=t_id,
                chromosome=chrom,
                strand=strand,
                tx_start=int(tx_start),
                tx_end=int(tx_end),
                cds_start=int(cds_start) if cds_start else 0,
                cds_end=int(cds_end) if cds_end else 0,
                exon_starts=self._parse_coordinates(exon_starts),
                exon_ends=self._parse_coordinates(exon_ends),
                extra=parts[10:],
            )
        except ValueError as e:
            raise FormatError(f"Invalid coordinate: {e}", self.file_path, line_num, line)
        except FormatError as e:
            raise FormatError(str(e), self.file_path, line_num, line)

    def _validate(self, chrom: str, strand: str, num_exons: str, line: str, line_num: int) -> None:
        if (not ACCEPTED_CHROM_PREFIXES.match(chrom) or
                strand not in VALID_STRANDS or
                not num_exons.isdigit()):
            raise FormatError(
                "Supplied file does not seem to be in gene prediction format. Use the "
                "ignore gene prediction format errors option to skip this check if you "
                "think this is a valid line.",
                self.file_path, line_num, line
            )

    @staticmethod
    def _parse_coordinates(field: str) -> List[int]:
        field = field.strip().rstrip(',')
        if not field:
            return []
        return [int(value) for value in field.split(',')]


def load_gene_predictions(file_path: str, strict: bool = True) -> Dict[str, List[GeneModel]]:
    """Load a gene prediction table into an annotation index or candidate map."""
    return GenePredParser(file_path, strict).load()


class GTFTranscriptStore:
    """GTF lines grouped by transcript_id, in file order."""

    def __init__(self, file_path: Optional[str] = None):
        self.file_path = file_path
        self.transcript_lines: Dict[str, List[str]] = OrderedDict()
        self.class_codes: Dict[str, str] = {}
        self.transcript_features = 0

        if file_path:
            self._load()

    def _load(self) -> None:
        try:
            with open(self.file_path, 'r') as f:
                for line in f:
                    self.add_line(line)
        except FileNotFoundError:
            raise FormatError(f"GTF file not found: {self.file_path}")
        except UnicodeDecodeError as e:
            raise FormatError(f"GTF file is not valid text: {e}", self.file_path)
        except OSError as e:
            raise FormatError(f"Cannot read GTF file: {e}", self.file_path)

    def add_line(self, line: str) -> None:
        line = line.rstrip('\n')
        if not line.strip() or line.startswith('#'):
            return

        match = TRANSCRIPT_ID_PATTERN.search(line)
        if not match:
            logging.debug(f"Skipping GTF line without transcript_id: {line}")
            return

        transcript_id = match.group(1)
        self.transcript_lines.setdefault(transcript_id, []).append(line)

        code = CLASS_CODE_PATTERN.search(line)
        if code and transcript_id not in self.class_codes:
            self.class_codes[transcript_id] = code.group(1)

        parts = line.split('\t')
        if len(parts) > 2 and parts[2] == 'transcript':
            self.transcript_features += 1

    def lines(self, transcript_id: str) -> List[str]:
        return self.transcript_lines.get(transcript_id, [])

    def class_code(self, transcript_id: str) -> Optional[str]:
        return self.class_codes.get(transcript_id)

    def count_transcript_features(self) -> int:
        return self.transcript_features

    def __contains__(self, transcript_id: str) -> bool:
        return transcript_id in self.transcript_lines

    def __len__(self) -> int:
        return len(self.transcript_lines)


def count_transcript_features(gtf_path: str) -> int:
    """Number of 'transcript' feature lines in an assembly GTF."""
    count = 0
    with open(gtf_path, 'r') as f:
        for line in f:
            parts = line.split('\t')
            if len(parts) > 2 and parts[2] == 'transcript':
                count += 1
    return count
