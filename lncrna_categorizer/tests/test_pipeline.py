#!/usr/bin/env python3

"""
Integration tests for the categorization pipeline.

A shell stand-in for gtfToGenePred converts single-exon transcripts so the
whole chain runs without the UCSC tools installed.
"""

import unittest
import tempfile
import shutil
import logging
import stat
import sys
import os

# Add the parent directory to the path to import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from lncrna_categorizer.core.config import CategorizerConfig
from lncrna_categorizer.core.pipeline import (
    GENEPRED_CHECKPOINT, PUTATIVE_CHECKPOINT, ZERO_CLASS_MARKER,
    CategorizationPipeline, SampleFiles, parse_sample_names
)

FAKE_GTF_TO_GENEPRED = r"""#!/bin/sh
if [ "$#" -eq 0 ]; then
    echo "gtfToGenePred - convert a GTF file to a genePred"
    exit 255
fi
awk -F'\t' '$3 == "transcript" {
    match($9, /transcript_id "[^"]*"/)
    id = substr($9, RSTART + 15, RLENGTH - 16)
    s = $4 - 1
    printf "%s\t%s\t%s\t%d\t%d\t%d\t%d\t1\t%d,\t%d,\n", id, $1, $7, s, $5, s, s, s, $5
}' "$3" > "$4"
"""

ANNOTATION = ["NM_1\tchr1\t+\t1000\t5000\t1000\t5000\t3\t1000,2500,4500,\t1500,3000,5000,"]

ASSEMBLY = [
    'chr1\tCufflinks\ttranscript\t1701\t2300\t1000\t-\t.\tgene_id "CUFF.1"; transcript_id "CUFF.1.1";',
    'chr1\tCufflinks\texon\t1701\t2300\t1000\t-\t.\tgene_id "CUFF.1"; transcript_id "CUFF.1.1"; exon_number "1";',
    'chr1\tCufflinks\ttranscript\t15001\t15500\t1000\t+\t.\tgene_id "CUFF.2"; transcript_id "CUFF.2.1";',
    'chr1\tCufflinks\texon\t15001\t15500\t1000\t+\t.\tgene_id "CUFF.2"; transcript_id "CUFF.2.1"; exon_number "1";',
]

TRACKING = [
    "TCONS_00000001\tXLOC_000001\tNM_1|NM_1.1\ti\tq1:CUFF.1|CUFF.1.1|100|2.5|0|0|600",
    "TCONS_00000002\tXLOC_000002\t-\tu\tq1:CUFF.2|CUFF.2.1|100|0.1|0|0|500",
]


class TestSampleNaming(unittest.TestCase):
    """Test sample name parsing and per-sample file names."""

    def test_parse_sample_names(self):
        self.assertEqual(parse_sample_names("s1,s2"), ["s1", "s2"])
        self.assertEqual(parse_sample_names("  s1,liver sample 2,\n"), ["s1", "liver_sample_2"])
        self.assertEqual(parse_sample_names(""), [])

    def test_sample_files(self):
        files = SampleFiles.for_sample("out", "/data/s1.gtf", "S1", formatted=False)

        self.assertEqual(files.putative_gtf, os.path.join("out", "s1.S1.putative_lncRNAs.gtf"))
        self.assertEqual(files.putative_genepred, os.path.join("out", "s1.S1.putative_lncRNAs.txt"))
        self.assertEqual(files.classified, os.path.join("out", "s1.S1.putative.class.lncRNAs.gtf"))
        self.assertEqual(files.unclassified, os.path.join("out", "s1.S1.putative.noClass.lncRNAs.gtf"))

    def test_formatted_sample_files(self):
        files = SampleFiles.for_sample("out", "out/s1.S1.formatted.gtf", "S1", formatted=True)
        self.assertEqual(files.classified, os.path.join("out", "s1.S1.formatted.putative.class.lncRNAs.gtf"))


class TestCategorizationPipeline(unittest.TestCase):
    """Test complete pipeline runs and checkpoint handling."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.output_dir = os.path.join(self.temp_dir, "out")
        self.annotation = self.write_file("refGene.txt", ANNOTATION)
        self.assembly = self.write_file("s1.gtf", ASSEMBLY)
        self.tracking = self.write_file("cuffcmp.tracking", TRACKING)

        self.tool = os.path.join(self.temp_dir, "gtfToGenePred")
        with open(self.tool, 'w') as f:
            f.write(FAKE_GTF_TO_GENEPRED)
        os.chmod(self.tool, os.stat(self.tool).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    def tearDown(self):
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            if isinstance(handler, logging.FileHandler) and handler.baseFilename.startswith(self.temp_dir):
                root_logger.removeHandler(handler)
                handler.close()
        shutil.rmtree(self.temp_dir)

    def write_file(self, name, lines):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'w') as f:
            f.write("\n".join(lines) + "\n")
        return path

    def output(self, name):
        return os.path.join(self.output_dir, name)

    def run_pipeline(self, config, sample_names=("S1",), resume_from=None):
        pipeline = CategorizationPipeline(config)
        success = pipeline.run(self.annotation, self.tracking, [self.assembly],
                               list(sample_names), self.output_dir, resume_from)
        return pipeline, success

    def test_full_run(self):
        pipeline, success = self.run_pipeline(CategorizerConfig(gtf_to_genepred_bin=self.tool))

        self.assertTrue(success)
        self.assertTrue(os.path.exists(self.output(PUTATIVE_CHECKPOINT)))
        self.assertTrue(os.path.exists(self.output(GENEPRED_CHECKPOINT)))
        self.assertTrue(os.path.exists(self.output("categorize_ncrnas.log")))

        summary = pipeline.outcomes[0].result.summary
        self.assertEqual(pipeline.outcomes[0].label, "s1.S1.putative.class.lncRNAs")
        self.assertEqual(summary.total_input, 2)
        self.assertEqual(summary.incs, 1)
        self.assertEqual(summary.lincrnas, 1)

        with open(self.output("s1.S1.putative.class.lncRNAs.gtf")) as f:
            classified = f.read().splitlines()
        self.assertEqual(len(classified), 4)
        self.assertTrue(classified[0].endswith(
            'class_code "i"; transcript_length "600"; lncRNA_type "Inc - Antisense intronic overlap with NM_1";'))

    def test_resume_from_checkpoints(self):
        _, success = self.run_pipeline(CategorizerConfig(gtf_to_genepred_bin=self.tool))
        self.assertTrue(success)

        # both checkpoints exist, so the converter is never invoked
        missing_tool = os.path.join(self.temp_dir, "no_such_tool")
        pipeline, success = self.run_pipeline(CategorizerConfig(gtf_to_genepred_bin=missing_tool))

        self.assertTrue(success)
        self.assertEqual(pipeline.outcomes[0].result.summary.total_categorized, 2)

    def test_checkpoints_disabled(self):
        missing_tool = os.path.join(self.temp_dir, "no_such_tool")
        config = CategorizerConfig(gtf_to_genepred_bin=missing_tool, checkpoint_enabled=False)

        _, success = self.run_pipeline(config)

        self.assertFalse(success)
        self.assertFalse(os.path.exists(self.output(PUTATIVE_CHECKPOINT)))

    def test_clean_tmp(self):
        config = CategorizerConfig(gtf_to_genepred_bin=self.tool, clean_tmp=True)
        _, success = self.run_pipeline(config)

        self.assertTrue(success)
        self.assertFalse(os.path.exists(self.output("s1.S1.putative_lncRNAs.gtf")))
        self.assertFalse(os.path.exists(self.output("s1.S1.putative_lncRNAs.txt")))
        self.assertTrue(os.path.exists(self.output("s1.S1.putative.class.lncRNAs.gtf")))

    def test_no_matching_class_codes(self):
        config = CategorizerConfig(gtf_to_genepred_bin=self.tool, extract_pattern='=')
        pipeline, success = self.run_pipeline(config)

        self.assertTrue(success)
        self.assertTrue(os.path.exists(self.output(ZERO_CLASS_MARKER)))
        self.assertEqual(pipeline.outcomes, [])

    def test_sample_name_mismatch(self):
        _, success = self.run_pipeline(CategorizerConfig(gtf_to_genepred_bin=self.tool),
                                       sample_names=("S1", "S2"))
        self.assertFalse(success)

    def test_unknown_resume_step(self):
        _, success = self.run_pipeline(CategorizerConfig(gtf_to_genepred_bin=self.tool),
                                       resume_from='extract')
        self.assertFalse(success)


if __name__ == '__main__':
    unittest.main()
