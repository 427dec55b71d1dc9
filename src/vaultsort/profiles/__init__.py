"""Folder centroid and coherence profiling."""
