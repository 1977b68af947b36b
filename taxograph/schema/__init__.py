"""Schema descriptors, the definition registry and the structural validator."""
