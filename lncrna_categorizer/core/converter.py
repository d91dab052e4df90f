#!/usr/bin/env python3

"""
GTF checks and conversion of putative lncRNA GTFs to gene prediction format.

Conversion is delegated to the UCSC gtfToGenePred tool.
"""

import logging
import re
import subprocess
from collections import OrderedDict
from typing import Dict, List, Tuple

from .exceptions import ConfigurationError, FormatError, PipelineError

QUOTED_ATTRIBUTE = re.compile(r'".+?";')
SINGLE_QUOTED_ATTRIBUTE = re.compile(r"'.+?'")
TRANSCRIPT_ID = re.compile(r'transcript_id\s+"(.+?)"', re.IGNORECASE)
CLASS_CODE_ATTRIBUTE = re.compile(r'\s*class_code\s+"[^"]*";?', re.IGNORECASE)
EXON_NUMBER_ATTRIBUTE = re.compile(r'\s*exon_number\s+"?\d+"?;?', re.IGNORECASE)


def _first_feature_line(gtf_path: str, feature: str) -> str:
    with open(gtf_path, 'r') as f:
        for line in f:
            parts = line.rstrip('\n').split('\t')
            if len(parts) >= 9 and parts[2].lower() == feature and TRANSCRIPT_ID.search(parts[8]):
                return line.rstrip('\n')
    return ""


def check_gtf_attributes(gtf_path: str) -> bool:
    """
    Validate the attribute column of an assembly GTF.

    Returns True when the file already has transcript feature lines and
    False when it only holds exon lines and needs reformatting.
    """
    try:
        transcript_line = _first_feature_line(gtf_path, 'transcript')
        exon_line = _first_feature_line(gtf_path, 'exon')
    except FileNotFoundError:
        raise ConfigurationError(f"Assembled transcript file not found: {gtf_path}")

    if ((not QUOTED_ATTRIBUTE.search(transcript_line) and not QUOTED_ATTRIBUTE.search(exon_line)) or
            SINGLE_QUOTED_ATTRIBUTE.search(transcript_line) or SINGLE_QUOTED_ATTRIBUTE.search(exon_line)):
        raise FormatError(
            'The attribute column of GTF file does not contain tag-value pairs between double '
            'quotes [ Ex: gene_id "CUFF.1"; ]',
            gtf_path, line=f"{transcript_line}\n\n{exon_line}"
        )

    if not transcript_line:
        logging.warning(f"Assembly [ {gtf_path} ] does not contain transcript feature lines; "
                        "it will be reformatted into transcript-exon features")
        return False
    return True


def format_gtf(gtf_path: str, formatted_path: str) -> str:
    """Rewrite an exon-only GTF so that every transcript starts with a transcript line."""
    bounds: Dict[str, List[int]] = OrderedDict()
    lines: Dict[str, List[str]] = OrderedDict()

    with open(gtf_path, 'r') as f:
        for line_num, line in enumerate(f, 1):
            line = line.rstrip('\n')
            if not line.strip() or line.startswith('#'):
                continue

            match = TRANSCRIPT_ID.search(line)
            if not match:
                raise FormatError('Did not find "transcript_id" tag-value pair in the GTF file',
                                  gtf_path, line_num, line)

            line = CLASS_CODE_ATTRIBUTE.sub('', line)
            parts = line.split('\t')
            try:
                coords = [int(parts[3]), int(parts[4])]
            except (IndexError, ValueError):
                raise FormatError("Invalid GTF coordinates", gtf_path, line_num, line)

            transcript_id = match.group(1)
            bounds.setdefault(transcript_id, []).extend(coords)
            lines.setdefault(transcript_id, []).append(line)

    with open(formatted_path, 'w') as out:
        for transcript_id, tr_lines in lines.items():
            out.write(_transcript_line(tr_lines[0], min(bounds[transcript_id]), max(bounds[transcript_id])) + "\n")
            for line in tr_lines:
                out.write(line + "\n")

    logging.info(f"Formatted {len(lines)} transcripts from {gtf_path} into {formatted_path}")
    return formatted_path


def _transcript_line(exon_line: str, start: int, end: int) -> str:
    parts = exon_line.split('\t')
    parts[2] = 'transcript'
    parts[3] = str(start)
    parts[4] = str(end)
    if len(parts) > 8:
        parts[8] = EXON_NUMBER_ATTRIBUTE.sub('', parts[8]).strip()
    return '\t'.join(parts)


class GenePredConverter:
    """Thin wrapper around the gtfToGenePred executable."""

    USAGE_PATTERN = re.compile(r'gtfToGenePred.*?convert a GTF file to a genePred', re.IGNORECASE | re.DOTALL)

    def __init__(self, binary: str = "gtfToGenePred"):
        self.binary = binary

    def check_available(self) -> None:
        """Raise ConfigurationError unless the tool prints its usage message."""
        try:
            proc = subprocess.run([self.binary], stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
        except OSError as e:
            raise ConfigurationError(f"Cannot find gtfToGenePred tool [ {self.binary} ]: {e}")

        if not self.USAGE_PATTERN.search(proc.stdout + proc.stderr):
            raise ConfigurationError(f"Cannot find gtfToGenePred tool in your path [ {self.binary} ]")

    def command(self, gtf_path: str, genepred_path: str) -> List[str]:
        return [self.binary, '-genePredExt', '-geneNameAsName2', gtf_path, genepred_path]

    def convert(self, gtf_path: str, genepred_path: str) -> str:
        cmd = self.command(gtf_path, genepred_path)
        logging.info(f"Command call: {' '.join(cmd)}")
        try:
            subprocess.run(cmd, check=True, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE, text=True)
        except subprocess.CalledProcessError as e:
            raise PipelineError(f"gtfToGenePred failed on {gtf_path}: {e.stderr}")
        except OSError as e:
            raise ConfigurationError(f"Cannot run gtfToGenePred [ {self.binary} ]: {e}")
        return genepred_path

    def convert_all(self, pairs: List[Tuple[str, str]]) -> List[str]:
        return [self.convert(gtf_path, genepred_path) for gtf_path, genepred_path in pairs]
