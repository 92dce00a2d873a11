"""
Hierarchy Publisher - Note references and publish-time hierarchy filtering

A library for hierarchical note graphs with support for:
- Note reference embedding (((ref: [[note]]))) across render destinations
- Wildcard and heading-range references
- Per-hierarchy publish rules and frontmatter injection
- Domain navigation for published sites
"""

from hierarchy_publisher.core.models import (
    AmbiguousDomainError,
    CompileResult,
    FilterResult,
    Note,
    NoteRefDescriptor,
    RenderDestination,
    SiteConfigError,
    Vault,
)
from hierarchy_publisher.core.config import HierarchyConfig, SiteConfig
from hierarchy_publisher.core.graph import InMemoryNoteStore, NoteGraph
from hierarchy_publisher.core.embedder import NoteRefEmbedder, compile_document
from hierarchy_publisher.core.site import HierarchyFilter, filter_by_config, get_domains

__version__ = "0.1.0"

__all__ = [
    "AmbiguousDomainError",
    "CompileResult",
    "FilterResult",
    "Note",
    "NoteRefDescriptor",
    "RenderDestination",
    "SiteConfigError",
    "Vault",
    "HierarchyConfig",
    "SiteConfig",
    "InMemoryNoteStore",
    "NoteGraph",
    "NoteRefEmbedder",
    "compile_document",
    "HierarchyFilter",
    "filter_by_config",
    "get_domains",
]
