"""Automated repair of validation issues.

- engine: RepairEngine, auto_repair_document and the repair report model
- report: text rendering of a RepairReport
"""
