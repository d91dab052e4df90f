#!/usr/bin/env python3

"""
Classification engine for putative lncRNAs.

Candidates are tested against the reference models of their chromosome in
a fixed pass order (Exonic, Inc, Conc, Ponc, then LincRNA / no class).
Within a pass the first reference model that satisfies the pass rule
decides the label, and classified candidates leave the candidate pool so
later passes never see them again.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from .data_structures import (
    AnnotationIndex, CandidatePool, Category, ClassificationRecord,
    ClassifiedKeys, GeneModel, UnitResult, UnitSummary
)
from .exceptions import EmptyResultWarning, GeometryError
from .intervals import IntervalIndex
from .overlap_rules import (
    StrandRelation, contains_strictly, is_exonic_overlap, is_intronic_overlap,
    partially_overlaps, straddles, strand_relation
)

NO_CLASS_LABEL = "No Class (?)"
LINCRNA_LABEL = "LincRNA"

# Class codes a category must agree with to survive the resync step.
ACCEPTED_CLASS_CODES: Dict[Category, str] = {
    Category.EXONIC: 'jxo',
    Category.CONC: 'jxo',
    Category.PONC: 'jxo',
    Category.INC: 'i',
    Category.LINCRNA: 'u',
}


@dataclass
class ClassifierSettings:
    """Thresholds and switches read by the classification engine."""
    min_length: int = 200
    max_length: Optional[int] = None
    min_exons: int = 1
    overlap_percent: Optional[float] = None
    linc_rna_proximity: Optional[int] = None
    antisense_only: bool = False
    known_ncrnas: bool = False
    rescue: bool = False


class PassContext:
    """State shared by one rule while it walks one chromosome."""

    def __init__(self, settings: ClassifierSettings):
        self.settings = settings
        self.candidate_spans = IntervalIndex()

    def candidate_span_hits(self, ref: GeneModel) -> int:
        return len(self.candidate_spans.query(ref.tx_start, ref.tx_end))


@dataclass(frozen=True)
class OverlapRule:
    """One category pass: a geometric test plus its strand-specific labels."""
    category: Category
    description: str
    labels: Dict[StrandRelation, str]
    test: Callable[[GeneModel, GeneModel, PassContext], bool]
    tracks_candidate_spans: bool = False

    def label(self, relation: StrandRelation, ref_id: str) -> str:
        return self.labels[relation].format(ref=ref_id)


def _exonic(cand: GeneModel, ref: GeneModel, ctx: PassContext) -> bool:
    return is_exonic_overlap(ref.exon_starts, ref.exon_ends,
                             cand.exon_starts, cand.exon_ends,
                             ctx.settings.overlap_percent,
                             exact_mode=ctx.settings.known_ncrnas)


def _inc(cand: GeneModel, ref: GeneModel, ctx: PassContext) -> bool:
    return (contains_strictly(ref.tx_start, ref.tx_end, cand.tx_start, cand.tx_end) and
            is_intronic_overlap(cand.tx_start, cand.tx_end, ref.exon_starts, ref.exon_ends))


def _conc(cand: GeneModel, ref: GeneModel, ctx: PassContext) -> bool:
    return (straddles(cand.tx_start, cand.tx_end, ref.tx_start, ref.tx_end) and
            is_intronic_overlap(ref.tx_start, ref.tx_end, cand.exon_starts, cand.exon_ends) and
            ctx.candidate_span_hits(ref) >= 1)


def _ponc(cand: GeneModel, ref: GeneModel, ctx: PassContext) -> bool:
    if not partially_overlaps(cand.tx_start, cand.tx_end, ref.tx_start, ref.tx_end):
        return False
    if not is_intronic_overlap(ref.tx_start, ref.tx_end, cand.exon_starts, cand.exon_ends):
        return False
    # any exon contact disqualifies, whatever the configured percentage
    if is_exonic_overlap(ref.exon_starts, ref.exon_ends, cand.exon_starts, cand.exon_ends):
        return False
    return ctx.candidate_span_hits(ref) >= 1


EXONIC_RULE = OverlapRule(
    category=Category.EXONIC,
    description="Exonic overlaps",
    labels={
        StrandRelation.ANTISENSE: "Exonic - Antisense exonic overlap with {ref}",
        StrandRelation.SENSE: "Exonic - Sense exonic overlap with {ref}",
        StrandRelation.UNSTRANDED: "Exonic - Exonic overlap with {ref}",
    },
    test=_exonic,
)

INC_RULE = OverlapRule(
    category=Category.INC,
    description="Intronic overlaps - Incs",
    labels={
        StrandRelation.ANTISENSE: "Inc - Antisense intronic overlap with {ref}",
        StrandRelation.SENSE: "Inc - Sense intronic overlap with {ref}",
        StrandRelation.UNSTRANDED: "Inc - Intronic overlap with {ref}",
    },
    test=_inc,
)

CONC_RULE = OverlapRule(
    category=Category.CONC,
    description="Intronic overlaps - Concs",
    labels={
        StrandRelation.ANTISENSE: "Conc - Antisense intronic overlap with {ref}",
        StrandRelation.SENSE: "Conc - Sense intronic overlap with {ref}",
        StrandRelation.UNSTRANDED: "Conc - Intronic overlap with {ref}",
    },
    test=_conc,
    tracks_candidate_spans=True,
)

PONC_RULE = OverlapRule(
    category=Category.PONC,
    description="Intronic overlaps - Poncs",
    labels={
        StrandRelation.ANTISENSE: "Ponc - Antisense partial intronic overlap with {ref}",
        StrandRelation.SENSE: "Ponc - Sense partial intronic overlap with {ref}",
        StrandRelation.UNSTRANDED: "Ponc - Partial intronic overlap with {ref}",
    },
    test=_ponc,
    tracks_candidate_spans=True,
)

OVERLAP_RULES: List[OverlapRule] = [EXONIC_RULE, INC_RULE, CONC_RULE, PONC_RULE]


class ClassificationEngine:
    """Categorize one unit of candidate transcripts against a reference annotation."""

    def __init__(self, annotation: AnnotationIndex, settings: Optional[ClassifierSettings] = None,
                 classified_keys: Optional[ClassifiedKeys] = None):
        self.annotation = annotation
        self.settings = settings or ClassifierSettings()
        self.classified_keys = classified_keys if classified_keys is not None else ClassifiedKeys()

    @property
    def rules(self) -> List[OverlapRule]:
        if self.settings.known_ncrnas:
            return [EXONIC_RULE]
        return OVERLAP_RULES

    def classify(self, pool: CandidatePool, class_codes: Optional[Dict[str, str]] = None,
                 total_transcripts: Union[int, str, None] = None, unit: str = "") -> UnitResult:
        """Run every pass over the pool and return the unit's records and counts."""
        result = UnitResult()

        if len(pool) == 0:
            warning = EmptyResultWarning("No candidate transcripts to categorize", unit)
            logging.warning(str(warning))
            warnings.warn(warning)
            result.summary = UnitSummary.from_records([], [], total_transcripts)
            return result

        sync_word = " " if self.settings.rescue else " and syncing "
        for rule in self.rules:
            logging.info(f"Categorizing{sync_word}lncRNAs ({rule.description}) [ {unit} ]...")
            for chrom in pool.chromosomes():
                self._run_pass(rule, chrom, pool, result)

        if not self.settings.known_ncrnas:
            logging.info(f"Categorizing{sync_word}lncRNAs (lincRNA) [ {unit} ]...")
            for chrom in pool.chromosomes():
                self._resolve_intergenic(chrom, pool, result)

        if not self.settings.rescue:
            self.resync(result, class_codes or {})

        result.summary = UnitSummary.from_records(result.classified, result.unclassified,
                                                  total_transcripts, no_class_only=self.settings.rescue)
        if result.is_empty:
            warning = EmptyResultWarning("0 transcripts have been categorized", unit)
            logging.warning(str(warning))
            warnings.warn(warning)
        return result

    def _eligible_length(self, candidate: GeneModel) -> Optional[int]:
        """Transcript length if the candidate is within the maximum length, else None."""
        try:
            length = candidate.length
        except GeometryError as e:
            raise GeometryError(
                f"{e.args[0]} in {candidate.describe()} exons "
                f"{candidate.exon_starts} / {candidate.exon_ends}",
                candidate.id
            )

        if self.settings.max_length is not None and length > self.settings.max_length:
            return None
        return length

    def _passes_gate(self, candidate: GeneModel, length: int) -> bool:
        return length >= self.settings.min_length and candidate.num_exons >= self.settings.min_exons

    def _run_pass(self, rule: OverlapRule, chrom: str, pool: CandidatePool, result: UnitResult) -> None:
        references = self.annotation.get(chrom, [])
        ctx = PassContext(self.settings)
        consumed: List[GeneModel] = []

        for candidate in pool.active(chrom):
            length = self._eligible_length(candidate)
            if length is None:
                continue

            if rule.tracks_candidate_spans:
                ctx.candidate_spans.add(candidate.id, candidate.tx_start, candidate.tx_end)

            if not self._passes_gate(candidate, length):
                continue
            if candidate.signature in self.classified_keys:
                continue

            for ref in references:
                if not rule.test(candidate, ref, ctx):
                    continue

                relation = strand_relation(ref.strand, candidate.strand)
                record = ClassificationRecord(
                    candidate_id=candidate.id,
                    category=rule.category,
                    label=rule.label(relation, ref.id),
                    transcript_length=length,
                    evidence_gene_id=ref.id,
                )
                consumed.append(candidate)

                if (rule.category is Category.EXONIC and self.settings.antisense_only and
                        relation is not StrandRelation.ANTISENSE):
                    logging.debug(f"{candidate.describe()}: {record.label} (not antisense, unclassified)")
                    result.unclassified.append(record)
                else:
                    self._assign(candidate, record, result)
                break

        pool.remove(chrom, consumed)

    def _assign(self, candidate: GeneModel, record: ClassificationRecord, result: UnitResult) -> None:
        if not self.classified_keys.record(candidate.signature, record.label):
            return
        logging.debug(f"{candidate.describe()}: {record.label}")
        result.classified.append(record)

    def _resolve_intergenic(self, chrom: str, pool: CandidatePool, result: UnitResult) -> None:
        """LincRNA or no class for every candidate left on a chromosome."""
        window = self.settings.linc_rna_proximity
        use_window = window is not None and window > 0

        # A chromosome absent from the annotation still resolves, with zero overlaps
        references = self.annotation.get(chrom, [])
        ref_spans = IntervalIndex.build((ref.id, ref.tx_start, ref.tx_end) for ref in references)
        proximity = IntervalIndex()
        if use_window:
            for ref in references:
                if ref.tx_start != 0:
                    proximity.add(f"{ref.id}lincRNA_prox_st", ref.tx_start - window, ref.tx_start - 1)
                proximity.add(f"{ref.id}lincRNA_prox_end", ref.tx_end + 1, ref.tx_end + window)

        consumed: List[GeneModel] = []
        for candidate in pool.active(chrom):
            length = self._eligible_length(candidate)
            if length is None or not self._passes_gate(candidate, length):
                continue
            if candidate.signature in self.classified_keys:
                continue

            direct = ref_spans.query(candidate.tx_start, candidate.tx_end)
            if use_window:
                nearby = proximity.query(candidate.tx_start, candidate.tx_end)
                is_linc = not direct and len(nearby) == 1
            else:
                is_linc = not direct

            consumed.append(candidate)
            if is_linc:
                record = ClassificationRecord(candidate.id, Category.LINCRNA, LINCRNA_LABEL, length)
                self._assign(candidate, record, result)
            else:
                record = ClassificationRecord(candidate.id, Category.NO_CLASS, NO_CLASS_LABEL, length)
                self.classified_keys.record(candidate.signature, record.label)
                logging.debug(f"{candidate.describe()}: {NO_CLASS_LABEL}")
                result.unclassified.append(record)

        pool.remove(chrom, consumed)

    def resync(self, result: UnitResult, class_codes: Dict[str, str]) -> int:
        """Move records whose category disagrees with the transcript's class code.

        Returns the number of records moved to the unclassified output.
        """
        if self.settings.known_ncrnas:
            return 0

        kept: List[ClassificationRecord] = []
        moved = 0
        for record in result.classified:
            code = (class_codes.get(record.candidate_id) or "")[:1].lower()
            accepted = ACCEPTED_CLASS_CODES.get(record.category, "")
            if code and code in accepted:
                kept.append(record)
            else:
                logging.debug(f"{record.candidate_id}: class code '{code}' does not sync with "
                              f"'{record.label}'")
                result.unclassified.append(record)
                moved += 1

        result.classified = kept
        if moved:
            logging.info(f"Moved {moved} categorized transcripts without a matching class code "
                         "to the unclassified output")
        return moved
