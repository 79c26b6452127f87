"""
Data Models
===========

Pydantic models for scene documents, render options and side-table records.
"""
