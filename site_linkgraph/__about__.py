"""Metadata for site_linkgraph."""

__all__ = [
    "__title__",
    "__version__",
    "__description__",
    "__requires_python__",
]

__title__ = "site_linkgraph"
__version__ = "0.1.0"
__description__ = (
    "Breadth-first same-site crawler that maps internal links, finds orphan "
    "pages and broken links, and exports the graph for visualization."
)
__requires_python__ = ">=3.9"
