"""Core (UI-agnostic) dashboard logic.

This package contains:
- CSV ingestion (text -> pandas)
- filter normalization
- dashboard / analysis compute functions (JSON-serializable payloads)
- the session that owns the current dataset
- chart helpers (Altair -> Vega-Lite spec dict)
"""
