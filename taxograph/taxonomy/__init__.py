"""Taxonomy mappings and the schema-driven graph compiler.

Projects validated, schema-annotated payloads into deterministic knowledge
graph node and relationship operations for an external ingestion service.
"""
