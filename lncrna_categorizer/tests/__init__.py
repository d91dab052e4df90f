#!/usr/bin/env python3

"""
Test suite for the lncRNA categorization pipeline.

Unit tests covering:
- Overlap predicates and interval queries
- Gene prediction and GTF parsing
- Classification passes, de-duplication and class code syncing
- Configuration management and validation
- Extraction, conversion, writers and the work dispatcher
"""
