#!/usr/bin/env python3

"""
lncRNA Categorization Pipeline

Categorizes assembled transcripts without coding potential into lncRNA
classes (Exonic, Inc, Conc, Ponc, LincRNA) relative to a reference gene
annotation in gene prediction format.

Modules:
- core: Data model, parsers, overlap rules, classification engine and pipeline
- utils: Performance monitoring
- tests: Unit tests
"""

__version__ = "1.0.0"
__author__ = "lncRNA Categorizer Team"

# Import main components for easy access
from .core.data_structures import (
    Category, GeneModel, CandidatePool, ClassifiedKeys,
    ClassificationRecord, UnitSummary, UnitResult
)
from .core.exceptions import (
    PipelineError, FormatError, GeometryError, ConfigurationError,
    MemoryError, EmptyResultWarning
)
from .core.config import CategorizerConfig, load_config
from .core.classifier import ClassificationEngine, ClassifierSettings
from .core.dispatcher import WorkDispatcher, WorkUnit
from .core.pipeline import CategorizationPipeline

__all__ = [
    # Main pipeline
    'CategorizationPipeline', 'ClassificationEngine', 'ClassifierSettings',
    'WorkDispatcher', 'WorkUnit',
    # Data structures
    'Category', 'GeneModel', 'CandidatePool', 'ClassifiedKeys',
    'ClassificationRecord', 'UnitSummary', 'UnitResult',
    # Exceptions
    'PipelineError', 'FormatError', 'GeometryError', 'ConfigurationError',
    'MemoryError', 'EmptyResultWarning',
    # Configuration
    'CategorizerConfig', 'load_config'
]
