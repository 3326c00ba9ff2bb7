"""Reporting layer.

This module summarizes and renders record sets for human inspection.
"""
