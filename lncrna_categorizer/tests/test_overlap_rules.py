#!/usr/bin/env python3

"""
Unit tests for the geometric and strand predicates.
"""

import unittest
import sys
import os

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from lncrna_categorizer.core.exceptions import FormatError, GeometryError
from lncrna_categorizer.core.overlap_rules import (
    StrandRelation, contains_strictly, exons_interleave, is_antisense,
    is_exonic_overlap, is_intronic_overlap, partially_overlaps, straddles,
    strand_relation, transcript_length
)

# Reference gene used throughout: three exons separated by two introns
REF_STARTS = [1000, 2500, 4500]
REF_ENDS = [1500, 3000, 5000]


class TestTranscriptLength(unittest.TestCase):
    """Test spliced transcript length."""

    def test_sum_of_exon_spans(self):
        self.assertEqual(transcript_length(REF_STARTS, REF_ENDS), 1500)
        self.assertEqual(transcript_length([0], [1]), 1)

    def test_mismatched_exon_lists(self):
        with self.assertRaises(FormatError):
            transcript_length([100, 200], [150])

    def test_reversed_exon(self):
        with self.assertRaises(GeometryError) as ctx:
            transcript_length([100, 300], [200, 250], "TCONS_1")
        self.assertEqual(ctx.exception.transcript_id, "TCONS_1")

    def test_zero_length_transcript(self):
        with self.assertRaises(GeometryError):
            transcript_length([100], [100])


class TestStrandRelation(unittest.TestCase):
    """Test strand comparisons."""

    def test_antisense_requires_two_stranded_models(self):
        self.assertTrue(is_antisense('+', '-'))
        self.assertTrue(is_antisense('-', '+'))
        self.assertFalse(is_antisense('+', '+'))
        self.assertFalse(is_antisense('+', '.'))
        self.assertFalse(is_antisense('.', '-'))

    def test_strand_relation(self):
        self.assertEqual(strand_relation('+', '-'), StrandRelation.ANTISENSE)
        self.assertEqual(strand_relation('-', '-'), StrandRelation.SENSE)
        self.assertEqual(strand_relation('+', '.'), StrandRelation.UNSTRANDED)
        self.assertEqual(strand_relation('.', '.'), StrandRelation.UNSTRANDED)


class TestExonicOverlap(unittest.TestCase):
    """Test exon interleaving and exonic overlap."""

    def test_interleave_cases(self):
        self.assertTrue(exons_interleave(900, 1100, 1000, 1500))    # left overhang
        self.assertTrue(exons_interleave(1100, 1200, 1000, 1500))   # inside
        self.assertTrue(exons_interleave(1400, 1600, 1000, 1500))   # right overhang
        self.assertTrue(exons_interleave(900, 1600, 1000, 1500))    # spanning
        self.assertTrue(exons_interleave(1500, 1600, 1000, 1500))   # shared end point
        self.assertFalse(exons_interleave(1501, 1600, 1000, 1500))
        self.assertFalse(exons_interleave(800, 999, 1000, 1500))

    def test_any_contact_without_threshold(self):
        self.assertTrue(is_exonic_overlap(REF_STARTS, REF_ENDS, [1100], [1200]))
        self.assertFalse(is_exonic_overlap(REF_STARTS, REF_ENDS, [1600], [2400]))

    def test_overlap_percentage_threshold(self):
        # 100 / 500 * 100 = 20%
        self.assertFalse(is_exonic_overlap(REF_STARTS, REF_ENDS, [1100], [1200], overlap_pct=50))
        self.assertTrue(is_exonic_overlap(REF_STARTS, REF_ENDS, [1100], [1200], overlap_pct=20))
        # 300 / 500 * 100 = 60%
        self.assertTrue(is_exonic_overlap(REF_STARTS, REF_ENDS, [2600], [2900], overlap_pct=50))

    def test_zero_length_reference_exon_is_ignored(self):
        self.assertFalse(is_exonic_overlap([1000], [1000], [900], [1100], overlap_pct=10))

    def test_exact_mode_counts_matching_pairs(self):
        self.assertTrue(is_exonic_overlap(REF_STARTS, REF_ENDS, REF_STARTS, REF_ENDS, exact_mode=True))
        self.assertFalse(is_exonic_overlap(REF_STARTS, REF_ENDS,
                                           [1000, 2500, 6000], [1500, 3000, 6500],
                                           exact_mode=True))

    def test_exact_mode_ignores_threshold(self):
        self.assertTrue(is_exonic_overlap(REF_STARTS, REF_ENDS, [1100], [1200],
                                          overlap_pct=90, exact_mode=True))


class TestIntronicOverlap(unittest.TestCase):
    """Test placement of a span inside an intron."""

    def test_span_inside_intron(self):
        self.assertTrue(is_intronic_overlap(1700, 2300, REF_STARTS, REF_ENDS))
        self.assertTrue(is_intronic_overlap(3100, 4400, REF_STARTS, REF_ENDS))

    def test_intron_bounds_are_strict(self):
        self.assertFalse(is_intronic_overlap(1500, 2300, REF_STARTS, REF_ENDS))
        self.assertFalse(is_intronic_overlap(1501, 2500, REF_STARTS, REF_ENDS))
        self.assertTrue(is_intronic_overlap(1501, 2499, REF_STARTS, REF_ENDS))

    def test_span_crossing_exon(self):
        self.assertFalse(is_intronic_overlap(1400, 2300, REF_STARTS, REF_ENDS))

    def test_single_exon_has_no_intron(self):
        self.assertFalse(is_intronic_overlap(10, 20, [0], [100]))


class TestSpanPredicates(unittest.TestCase):
    """Test containment, straddling and partial overlap of spans."""

    def test_contains_strictly(self):
        self.assertTrue(contains_strictly(1000, 5000, 1700, 2300))
        self.assertFalse(contains_strictly(1000, 5000, 1000, 2300))
        self.assertFalse(contains_strictly(1000, 5000, 1700, 5000))
        self.assertFalse(contains_strictly(1000, 5000, 900, 2300))

    def test_straddles(self):
        self.assertTrue(straddles(100, 8500, 1000, 5000))
        self.assertFalse(straddles(1000, 8500, 1000, 5000))
        self.assertFalse(straddles(1700, 2300, 1000, 5000))

    def test_partially_overlaps(self):
        self.assertTrue(partially_overlaps(900, 1200, 1000, 5000))
        self.assertTrue(partially_overlaps(4800, 6000, 1000, 5000))
        self.assertFalse(partially_overlaps(1700, 2300, 1000, 5000))
        self.assertFalse(partially_overlaps(100, 8500, 1000, 5000))
        self.assertFalse(partially_overlaps(6000, 7000, 1000, 5000))


if __name__ == '__main__':
    unittest.main()
