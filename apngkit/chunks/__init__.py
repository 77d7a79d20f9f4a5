"""Chunk-level primitives and the chunk reader."""
