"""
Slorpit: pack files into a PDF container and restore them byte-for-byte.

Features:

- One deflate-compressed /EmbeddedFile stream per archived file.
- A JSON catalog (path, size, mtime, payload index) in its own compressed stream,
  linked from the document root under /SlorpitCatalog.
- Explicit catalog-to-payload indices, with positional matching kept for older
  catalogs that do not carry them.
- Containment checks on every extracted path; a human-readable listing page so
  the archive still opens as an ordinary document.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "catalog",
    "codec",
    "writer",
    "reader",
]

# Importable programmatic API is available via slorpit.writer/slorpit.reader and
# the CLI functions in slorpit.cli (cmd_build/cmd_extract) which take normal parameters.
