"""Canonical knowledge graph taxonomy.

YAML-driven list of well-known node types (with their identifying
properties) and relationship types (with endpoint constraints).
"""
