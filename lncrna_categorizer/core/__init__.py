#!/usr/bin/env python3

"""
Core module for the lncRNA categorization pipeline.

Contains the data model, exception types, configuration, parsers and the
classification engine.
"""

from .data_structures import Category, GeneModel, CandidatePool, ClassifiedKeys
from .exceptions import (
    PipelineError, FormatError, GeometryError, ConfigurationError,
    MemoryError, EmptyResultWarning
)
from .config import CategorizerConfig, load_config

__all__ = [
    'Category', 'GeneModel', 'CandidatePool', 'ClassifiedKeys',
    'PipelineError', 'FormatError', 'GeometryError', 'ConfigurationError',
    'MemoryError', 'EmptyResultWarning',
    'CategorizerConfig', 'load_config'
]
