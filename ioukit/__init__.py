"""
IOU Kit — knowledge extraction for Dutch government information.

Pattern-based named entity recognition, a shared knowledge graph with
community detection and path finding, term-signature similarity search,
and rule-based Woo/AVG/Archiefwet compliance assessment.
"""

from ioukit.version import __version__

__all__ = ["__version__"]
