"""Core (UI-agnostic) study analytics logic.

This package contains:
- settings (.env -> Settings)
- record normalization and validity checks
- stats engine and the analytics payload
- spreadsheet importer and MongoDB access
- display formatting and chart helpers (Altair)
"""
