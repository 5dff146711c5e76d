"""Service layer: link extraction, graph building, backlinks and note operations."""
