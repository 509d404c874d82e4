"""Core (UI-agnostic) dashboard logic.

This package contains:
- region records and the dataset store adapters (memory, Firestore)
- view filters, sorting and national aggregates
- pending edits and their commit to the store
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict) and CSV export
"""
