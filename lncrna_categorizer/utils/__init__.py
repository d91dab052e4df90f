#!/usr/bin/env python3

"""Utility helpers for the lncRNA categorization pipeline."""
