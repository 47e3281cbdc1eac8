#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Utility helpers for text handling, encoding detection and secure fetching."""
