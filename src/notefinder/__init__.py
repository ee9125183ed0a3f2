"""NoteFinder - keeps a vector index of markdown notes in sync and answers questions over it."""

__version__ = "0.1.0"
