"""Collaborators at the edge of a run: unit manifests and unit processors."""

__all__ = [
    "discovery",
    "processor",
]
