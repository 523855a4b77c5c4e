"""ragcurator — derived-image cache and page image resolution for RAG dataset curation."""

from ragcurator.version import __version__

__all__ = ["__version__"]
