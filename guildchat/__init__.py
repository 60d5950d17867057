"""Guild chat model, SQLite storage for channels and users, and a live message broker."""

__version__ = "0.1.0"