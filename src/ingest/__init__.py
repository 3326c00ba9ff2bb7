"""Data ingestion pipeline.

This module fetches raw tables from endpoints and files, validates them,
and runs ordered transform stages toward a reported record set.
"""
