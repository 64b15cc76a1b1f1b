"""docsearch - search front-end core with access control and a file-to-HTTP bridge."""

__version__ = "0.1.0"
