"""File wrappers over raw descriptors, a shell parser, a small shell and a socket pipeline runner."""

__version__ = "0.1.0"