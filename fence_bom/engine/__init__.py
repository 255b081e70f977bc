"""
BOM formula engine.

Pure Python math, no I/O beyond the injected catalog repository.
Given a fence run (length, lines, gates) and a SKU, produce exact component
quantities from stored formula templates (V2), and diff them against the
legacy hardcoded calculator (V1) during the migration.
"""
