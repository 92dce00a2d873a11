"""Core components for Hierarchy Publisher."""

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
from hierarchy_publisher.core.config import DuplicateNoteBehavior, FrontmatterField, HierarchyConfig, SiteConfig
from hierarchy_publisher.core.graph import InMemoryNoteStore, NoteGraph, NoteStore
from hierarchy_publisher.core.refs import ResolvedRef, parse, resolve, serialize
from hierarchy_publisher.core.embedder import NoteRefEmbedder, compile_document
from hierarchy_publisher.core.site import HierarchyFilter, filter_by_config, get_domains

__all__ = [
    "AmbiguousDomainError",
    "CompileResult",
    "FilterResult",
    "Note",
    "NoteRefDescriptor",
    "RenderDestination",
    "SiteConfigError",
    "Vault",
    "DuplicateNoteBehavior",
    "FrontmatterField",
    "HierarchyConfig",
    "SiteConfig",
    "InMemoryNoteStore",
    "NoteGraph",
    "NoteStore",
    "ResolvedRef",
    "parse",
    "resolve",
    "serialize",
    "NoteRefEmbedder",
    "compile_document",
    "HierarchyFilter",
    "filter_by_config",
    "get_domains",
]
