#!/usr/bin/env python3

"""
Unit tests for the work dispatcher.

Each unit reads its candidates and putative GTF from disk, so these tests
also cover the file outputs of a complete categorization unit.
"""

import unittest
import tempfile
import shutil
import sys
import os

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from lncrna_categorizer.core.classifier import ClassifierSettings
from lncrna_categorizer.core.data_structures import GeneModel
from lncrna_categorizer.core.dispatcher import WorkDispatcher, WorkUnit, process_unit

CANDIDATES = [
    "TCONS_1\tchr1\t-\t1700\t2300\t1700\t1700\t1\t1700,\t2300,",
    "TCONS_3\tchr1\t+\t15000\t15500\t15000\t15000\t1\t15000,\t15500,",
]

PUTATIVE_GTF = [
    'chr1\tCufflinks\ttranscript\t1701\t2300\t1000\t-\t.\tgene_id "XLOC_1"; transcript_id "TCONS_1"; class_code "i";',
    'chr1\tCufflinks\texon\t1701\t2300\t1000\t-\t.\tgene_id "XLOC_1"; transcript_id "TCONS_1"; class_code "i";',
    'chr1\tCufflinks\ttranscript\t15001\t15500\t1000\t+\t.\tgene_id "XLOC_3"; transcript_id "TCONS_3"; class_code "u";',
    'chr1\tCufflinks\texon\t15001\t15500\t1000\t+\t.\tgene_id "XLOC_3"; transcript_id "TCONS_3"; class_code "u";',
]


def reference_annotation():
    ref = GeneModel(id="NM_1", chromosome="chr1", strand="+", tx_start=1000, tx_end=5000,
                    exon_starts=[1000, 2500, 4500], exon_ends=[1500, 3000, 5000])
    return {"chr1": [ref]}


class TestWorkDispatcher(unittest.TestCase):
    """Test sequential and pooled dispatch of classification units."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.annotation = reference_annotation()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def write_file(self, name, lines):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'w') as f:
            f.write("\n".join(lines) + "\n")
        return path

    def make_unit(self, label, candidates=CANDIDATES):
        return WorkUnit(
            label=label,
            candidates_path=self.write_file(f"{label}.putative_lncRNAs.txt", candidates),
            gtf_path=self.write_file(f"{label}.putative_lncRNAs.gtf", PUTATIVE_GTF),
            classified_path=os.path.join(self.temp_dir, f"{label}.putative.class.lncRNAs.gtf"),
            unclassified_path=os.path.join(self.temp_dir, f"{label}.putative.noClass.lncRNAs.gtf"),
            total_transcripts=2,
        )

    def read(self, path):
        with open(path) as f:
            return f.read().splitlines()

    def test_process_unit_writes_outputs(self):
        unit = self.make_unit("s1")
        outcome = process_unit(self.annotation, ClassifierSettings(), unit)

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.result.summary.incs, 1)
        self.assertEqual(outcome.result.summary.lincrnas, 1)
        self.assertEqual(outcome.result.summary.total_input, 2)

        classified = self.read(unit.classified_path)
        self.assertEqual(len(classified), 4)
        self.assertTrue(classified[0].endswith(
            'transcript_length "600"; lncRNA_type "Inc - Antisense intronic overlap with NM_1";'))
        self.assertEqual(self.read(unit.unclassified_path), [])

    def test_process_unit_contains_errors(self):
        unit = self.make_unit("bad", candidates=["TCONS_1\tscaffold_1\t-\t1700\t2300\t0\t0\t1\t1700,\t2300,"])
        outcome = process_unit(self.annotation, ClassifierSettings(), unit)

        self.assertFalse(outcome.ok)
        self.assertIn("gene prediction format", outcome.error)

    def test_sequential_run_shares_dedup_scope(self):
        units = [self.make_unit("s1"), self.make_unit("s2")]
        dispatcher = WorkDispatcher(self.annotation, ClassifierSettings(rescue=True), max_workers=1)

        outcomes = dispatcher.run(units)

        self.assertEqual([o.label for o in outcomes], ["s1", "s2"])
        self.assertTrue(all(o.ok for o in outcomes))
        self.assertEqual(len(outcomes[0].result.classified), 2)
        # identical transcripts were already classified by the first unit
        self.assertTrue(outcomes[1].result.is_empty)

    def test_pooled_run_isolates_units(self):
        units = [self.make_unit("s1"), self.make_unit("s2"),
                 self.make_unit("bad", candidates=["only\tthree\tcolumns"])]
        dispatcher = WorkDispatcher(self.annotation, ClassifierSettings(rescue=True), max_workers=2)

        outcomes = dispatcher.run(units)

        self.assertEqual([o.label for o in outcomes], ["s1", "s2", "bad"])
        self.assertEqual([o.ok for o in outcomes], [True, True, False])
        self.assertEqual(len(outcomes[0].result.classified), 2)
        self.assertEqual(len(outcomes[1].result.classified), 2)
        self.assertEqual(len(self.read(units[1].classified_path)), 4)

    def test_sequential_run_continues_after_unreadable_unit(self):
        bad = self.make_unit("bad")
        with open(bad.gtf_path, 'ab') as f:
            f.write(b'chr1\tCufflinks\texon\t1\t10\t.\t+\t.\tgene_id "\xff\xfe";\n')
        units = [bad, self.make_unit("s2")]

        outcomes = WorkDispatcher(self.annotation, ClassifierSettings(rescue=True), max_workers=1).run(units)

        self.assertEqual([o.ok for o in outcomes], [False, True])
        self.assertIn("not valid text", outcomes[0].error)
        self.assertEqual(len(outcomes[1].result.classified), 2)

    def test_directory_as_input_fails_only_its_unit(self):
        unit = self.make_unit("dir")
        unit.gtf_path = self.temp_dir
        outcome = process_unit(self.annotation, ClassifierSettings(), unit)

        self.assertFalse(outcome.ok)
        self.assertIn("Cannot read GTF file", outcome.error)

    def test_empty_unit_list(self):
        self.assertEqual(WorkDispatcher(self.annotation).run([]), [])


if __name__ == '__main__':
    unittest.main()
