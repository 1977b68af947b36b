"""taxograph: schema validation and taxonomy-to-graph compilation.

Validates decoded tool and agent payloads against declarative schemas and
projects schema-annotated data into deterministic knowledge-graph node and
relationship operations.
"""

__version__ = "0.3.0"
