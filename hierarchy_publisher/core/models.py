"""Data models for Hierarchy Publisher."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


# Hierarchy segment delimiter in note fnames
DELIMITER = "."


class SiteConfigError(ValueError):
    """Raised when the site configuration is malformed or cannot be applied."""


class AmbiguousDomainError(SiteConfigError):
    """Raised when a domain matches several notes and no vault pin is configured."""


@dataclass(frozen=True)
class Vault:
    """A root content collection. Notes belong to exactly one vault."""
    fs_path: str
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.fs_path

    def matches(self, identifier: str) -> bool:
        """Check whether a vault name or path identifies this vault."""
        ident = identifier.strip().rstrip("/")
        return ident in (self.name, self.fs_path.rstrip("/"))


@dataclass
class Note:
    """A note record as held by the note store.

    ``custom`` holds the user-defined frontmatter. ``children`` lists
    child ids in order; ``parent`` is None for tree roots.
    """
    id: str
    fname: str
    vault: Vault
    title: str = ""
    body: str = ""
    custom: Dict[str, Any] = field(default_factory=dict)
    children: List[str] = field(default_factory=list)
    parent: Optional[str] = None
    stub: bool = False

    def copy(self, **changes: Any) -> "Note":
        """Return an independent copy, optionally with fields replaced."""
        changes.setdefault("custom", dict(self.custom))
        changes.setdefault("children", list(self.children))
        return replace(self, **changes)

    @property
    def domain_name(self) -> str:
        """Top-level hierarchy segment of this note."""
        return self.fname.split(DELIMITER, 1)[0]


class RenderDestination(Enum):
    """Output shape requested from the embedder."""
    NATIVE = "native"
    MD_REGULAR = "plain-markdown"
    HTML = "html"
    ENHANCED_PREVIEW = "enhanced-preview"


@dataclass(frozen=True)
class NoteRefDescriptor:
    """Parsed form of a ``((ref: [[...]]))`` occurrence.

    ``raw`` is the exact source text and is what the native destination
    writes back.
    """
    raw: str
    target: str
    vault_name: Optional[str] = None
    wildcard: bool = False
    anchor_start: Optional[str] = None
    anchor_end: Optional[str] = None

    @property
    def has_anchor(self) -> bool:
        return self.anchor_start is not None


@dataclass
class CompileResult:
    """Result of compiling a document for one destination."""
    content: str
    warnings: List[str] = field(default_factory=list)


@dataclass
class FilterResult:
    """Result of a publish filter pass."""
    notes: Dict[str, Note] = field(default_factory=dict)
    domains: List[Note] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
