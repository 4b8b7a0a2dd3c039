"""SecondBrain: personal content store with semantic search."""

__version__ = "0.1.0"
