"""cmzip: per-record LZMA archives for MDL SD files."""

__version__ = "1.0.0"
