#!/usr/bin/env python3

"""
Core data structures for the lncRNA categorization pipeline.

Defines gene models read from gene prediction tables, the mutable pool of
candidate transcripts, the de-duplication map and the records produced by
the classification engine.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Union

from .exceptions import FormatError
from .overlap_rules import transcript_length


class Category(Enum):
    """lncRNA categories in the order they are evaluated."""
    EXONIC = "Exonic"
    INC = "Inc"
    CONC = "Conc"
    PONC = "Ponc"
    LINCRNA = "LincRNA"
    NO_CLASS = "No Class (?)"


@dataclass
class GeneModel:
    """One transcript record from a gene prediction table."""
    id: str
    chromosome: str
    strand: str
    tx_start: int
    tx_end: int
    cds_start: int = 0
    cds_end: int = 0
    exon_starts: List[int] = field(default_factory=list)
    exon_ends: List[int] = field(default_factory=list)
    extra: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate exon lists after initialization."""
        if len(self.exon_starts) != len(self.exon_ends):
            raise FormatError(
                f"Number of exon starts ({len(self.exon_starts)}) does not correspond with "
                f"number of exon ends ({len(self.exon_ends)}) for {self.id}"
            )

    @property
    def num_exons(self) -> int:
        """Get number of exons."""
        return len(self.exon_starts)

    @property
    def chrom_key(self) -> str:
        """Chromosome names are compared case-insensitively."""
        return self.chromosome.lower()

    @property
    def length(self) -> int:
        """Get spliced transcript length."""
        return transcript_length(self.exon_starts, self.exon_ends, self.id)

    @property
    def signature(self) -> str:
        """Structural key used to classify a transcript at most once."""
        return (f"{self.id}{self.strand}{self.tx_start}{self.tx_end}{self.num_exons}"
                + "".join(str(s) for s in self.exon_starts)
                + "".join(str(e) for e in self.exon_ends))

    def describe(self) -> str:
        """Short location string for log and error messages."""
        return f"{self.id} [ {self.chromosome}:{self.tx_start}-{self.tx_end} ({self.strand}) ]"


# Reference annotation: lower-cased chromosome -> models in file order.
AnnotationIndex = Dict[str, List[GeneModel]]


class CandidatePool:
    """Per-chromosome candidate transcripts awaiting classification.

    Classified candidates are dropped by rebuilding the chromosome's list
    from its survivors, so a pool only ever shrinks.
    """

    def __init__(self, models: Optional[Dict[str, List[GeneModel]]] = None):
        self._by_chrom: Dict[str, List[GeneModel]] = OrderedDict()
        for chrom, chrom_models in (models or {}).items():
            self._by_chrom[chrom.lower()] = list(chrom_models)

    @classmethod
    def from_models(cls, models: Iterable[GeneModel]) -> 'CandidatePool':
        pool = cls()
        for model in models:
            pool._by_chrom.setdefault(model.chrom_key, []).append(model)
        return pool

    def chromosomes(self) -> List[str]:
        return list(self._by_chrom.keys())

    def active(self, chrom: str) -> List[GeneModel]:
        """Snapshot of the candidates still unclassified on a chromosome."""
        return list(self._by_chrom.get(chrom, []))

    def remove(self, chrom: str, classified: Iterable[GeneModel]) -> int:
        """Drop classified candidates from a chromosome and return how many left."""
        drop = {id(model) for model in classified}
        if not drop:
            return 0
        before = self._by_chrom.get(chrom, [])
        survivors = [model for model in before if id(model) not in drop]
        self._by_chrom[chrom] = survivors
        return len(before) - len(survivors)

    def size(self, chrom: Optional[str] = None) -> int:
        if chrom is not None:
            return len(self._by_chrom.get(chrom, []))
        return sum(len(models) for models in self._by_chrom.values())

    def __iter__(self) -> Iterator[GeneModel]:
        for models in self._by_chrom.values():
            yield from models

    def __len__(self) -> int:
        return self.size()


class ClassifiedKeys:
    """De-duplication map from transcript signature to assigned label.

    One instance is owned by a classification unit, or shared by several
    units run in the same process when a single global scope is wanted.
    """

    def __init__(self):
        self._labels: Dict[str, str] = {}

    def __contains__(self, signature: str) -> bool:
        return signature in self._labels

    def __len__(self) -> int:
        return len(self._labels)

    def record(self, signature: str, label: str) -> bool:
        """Record a label; returns False if the signature was already classified."""
        if signature in self._labels:
            return False
        self._labels[signature] = label
        return True

    def get(self, signature: str) -> Optional[str]:
        return self._labels.get(signature)


@dataclass
class ClassificationRecord:
    """Outcome for one candidate transcript."""
    candidate_id: str
    category: Category
    label: str
    transcript_length: int
    evidence_gene_id: Optional[str] = None

    def attribute_suffix(self) -> str:
        """GTF attributes appended to every line of the transcript."""
        return f' transcript_length "{self.transcript_length}"; lncRNA_type "{self.label}";'


@dataclass
class UnitSummary:
    """Per-unit counts reported after categorization."""
    total_input: Union[int, str] = "NA"
    lincrnas: int = 0
    concs: int = 0
    poncs: int = 0
    incs: int = 0
    exonic: int = 0
    uncategorized: int = 0

    @property
    def total_categorized(self) -> int:
        return self.lincrnas + self.concs + self.poncs + self.incs + self.exonic

    @classmethod
    def from_records(cls, classified: List[ClassificationRecord],
                     unclassified: List[ClassificationRecord],
                     total_input: Union[int, str, None] = None,
                     no_class_only: bool = False) -> 'UnitSummary':
        """Count records per category; with ``no_class_only`` only No Class records are uncategorized."""
        summary = cls(total_input=total_input if total_input else "NA")
        counters = {
            Category.LINCRNA: 'lincrnas',
            Category.CONC: 'concs',
            Category.PONC: 'poncs',
            Category.INC: 'incs',
            Category.EXONIC: 'exonic',
        }
        for record in classified:
            attr = counters.get(record.category)
            if attr:
                setattr(summary, attr, getattr(summary, attr) + 1)
        if no_class_only:
            summary.uncategorized = sum(1 for record in unclassified if record.category is Category.NO_CLASS)
        else:
            summary.uncategorized = len(unclassified)
        return summary


@dataclass
class UnitResult:
    """Classified and unclassified records produced for one unit of work."""
    classified: List[ClassificationRecord] = field(default_factory=list)
    unclassified: List[ClassificationRecord] = field(default_factory=list)
    summary: UnitSummary = field(default_factory=UnitSummary)

    @property
    def is_empty(self) -> bool:
        return not self.classified and not self.unclassified
