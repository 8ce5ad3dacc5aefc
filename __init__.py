"""
Excel Reformat Application

This package provides an API that re-indexes, merges and formats Excel
workbooks, and builds formatted workbooks from JSON sheet definitions.

Key modules:
- main.py: FastAPI application with API endpoints
- workbook_process.py: Request orchestration, response schemas and stage logging
- config.py: Environment-driven settings
- sheet_pipeline/: Reading, normalizing, re-indexing, merging, formatting and writing
- utils/result.py: Result pattern implementation for error handling
"""
