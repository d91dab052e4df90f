#!/usr/bin/env python3

"""
Geometric and strand predicates used to categorize lncRNAs.

Exon coordinates come from gene prediction tables, so exon starts are
already zero-based and an exon spans end - start bases.
"""

from enum import Enum
from typing import Optional, Sequence

from .exceptions import FormatError, GeometryError

STRANDED = ('+', '-')


class StrandRelation(Enum):
    """Relative orientation of a candidate and a reference model."""
    ANTISENSE = "antisense"
    SENSE = "sense"
    UNSTRANDED = "unstranded"


def transcript_length(exon_starts: Sequence[int], exon_ends: Sequence[int],
                      transcript_id: str = "") -> int:
    """Sum of exon spans."""
    if len(exon_starts) != len(exon_ends):
        raise FormatError(
            f"Number of exon starts ({len(exon_starts)}) does not correspond with "
            f"number of exon ends ({len(exon_ends)})"
        )

    length = 0
    for start, end in zip(exon_starts, exon_ends):
        if end < start:
            raise GeometryError(f"Exon start [ {start} ] is greater than exon end [ {end} ]",
                                transcript_id)
        length += end - start

    if length <= 0:
        raise GeometryError("Could not get transcript length (zero length exons)", transcript_id)
    return length


def is_antisense(strand_a: str, strand_b: str) -> bool:
    """True only for two stranded models on opposite strands."""
    return strand_a in STRANDED and strand_b in STRANDED and strand_a != strand_b


def strand_relation(ref_strand: str, cand_strand: str) -> StrandRelation:
    if is_antisense(ref_strand, cand_strand):
        return StrandRelation.ANTISENSE
    if ref_strand in STRANDED and cand_strand in STRANDED:
        return StrandRelation.SENSE
    return StrandRelation.UNSTRANDED


def exons_interleave(cand_start: int, cand_end: int, ref_start: int, ref_end: int) -> bool:
    """Candidate exon sits before-and-into, inside, into-and-after, or across a reference exon."""
    # left overhang
    if cand_start <= ref_start and cand_end >= ref_start and cand_end <= ref_end:
        return True
    # inside
    if cand_start >= ref_start and cand_start <= ref_end and cand_end <= ref_end:
        return True
    # right overhang
    if cand_start >= ref_start and cand_start <= ref_end and cand_end >= ref_end:
        return True
    # spanning
    if cand_start <= ref_start and cand_end >= ref_end:
        return True
    return False


def is_exonic_overlap(ref_exon_starts: Sequence[int], ref_exon_ends: Sequence[int],
                      cand_exon_starts: Sequence[int], cand_exon_ends: Sequence[int],
                      overlap_pct: Optional[float] = None, exact_mode: bool = False) -> bool:
    """
    Test candidate exons against reference exons.

    Normal mode returns True for the first interleaving exon pair whose
    overlap percentage (candidate exon length over reference exon length)
    reaches ``overlap_pct``; any interleaving pair counts when no threshold
    is set. Exact mode ignores the threshold and requires the number of
    interleaving exon pairs to equal the number of candidate exons.
    """
    matched = 0

    for cand_start, cand_end in zip(cand_exon_starts, cand_exon_ends):
        cand_len = cand_end - cand_start

        for ref_start, ref_end in zip(ref_exon_starts, ref_exon_ends):
            if not exons_interleave(cand_start, cand_end, ref_start, ref_end):
                continue

            if exact_mode:
                matched += 1
                continue

            if overlap_pct is None:
                return True

            ref_len = ref_end - ref_start
            if ref_len <= 0:
                continue
            if cand_len / ref_len * 100 >= overlap_pct:
                return True

    if exact_mode:
        return matched == len(cand_exon_starts)
    return False


def is_intronic_overlap(query_start: int, query_end: int,
                        exon_starts: Sequence[int], exon_ends: Sequence[int]) -> bool:
    """True if [query_start, query_end] lies strictly inside one intron."""
    if len(exon_starts) < 2:
        return False

    for i in range(1, len(exon_starts)):
        if query_end < exon_starts[i] and query_start > exon_ends[i - 1]:
            return True
    return False


def contains_strictly(outer_start: int, outer_end: int, inner_start: int, inner_end: int) -> bool:
    """Inner span lies strictly inside the outer span."""
    return (inner_start > outer_start and inner_start < outer_end and
            inner_end < outer_end and inner_end > outer_start)


def straddles(outer_start: int, outer_end: int, inner_start: int, inner_end: int) -> bool:
    """Outer span starts before and ends after the inner span."""
    return (outer_start < inner_start and outer_start < inner_end and
            outer_end > inner_start and outer_end > inner_end)


def partially_overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Spans overlap but neither contains the other."""
    right_shifted = a_start > b_start and a_end > b_end and a_start < b_end and a_end > b_start
    left_shifted = a_start < b_start and a_end < b_end and a_start < b_end and a_end > b_start
    return right_shifted or left_shifted
