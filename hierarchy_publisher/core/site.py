"""Publish-time hierarchy filtering.

Derives, from a full note graph, the pruned and re-parented subset of
notes a site publishes, plus the ordered domain list for navigation.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple
import yaml

from hierarchy_publisher.core.config import HierarchyConfig, SiteConfig
from hierarchy_publisher.core.graph import NoteGraph, NoteStore
from hierarchy_publisher.core.models import (
    AmbiguousDomainError,
    FilterResult,
    Note,
    SiteConfigError,
    Vault,
)
from hierarchy_publisher.transforms.body import strip_local_only_tags
from hierarchy_publisher.transforms.frontmatter import FrontmatterTransform, hierarchy_frontmatter

logger = logging.getLogger(__name__)


@dataclass
class HierarchyResult:
    """Filtered notes of one domain, keyed by id, and its normalized domain note."""
    notes: Dict[str, Note]
    domain: Note


def is_visible(note: Note, config: HierarchyConfig) -> bool:
    """Check the per-note visibility rule.

    A note is hidden when it sets ``published: false``, or when its
    hierarchy does not publish by default and it does not opt in.
    """
    published = note.custom.get("published")
    if published is False:
        return False
    return bool(config.publish_by_default) or bool(published)


class HierarchyFilter:
    """Computes the published subset of a note graph for a site config.

    The input graph is never modified. The only side effect is clearing
    stub flags through the note store when ``writeStubs`` is enabled.
    """

    def __init__(
        self,
        graph: NoteGraph,
        config: SiteConfig,
        store: Optional[NoteStore] = None,
    ):
        """Initialize HierarchyFilter.

        Args:
            graph: Read-only note graph snapshot
            config: Site configuration
            store: Note store used to persist cleared stub flags

        Raises:
            SiteConfigError: If writeStubs is enabled without a store
        """
        if config.write_stubs and store is None:
            raise SiteConfigError("writeStubs requires a note store")
        self.graph = graph
        self.config = config
        self.store = store
        self._warnings: List[str] = []
        self._persisted: Set[str] = set()

    def can_publish(self, note: Note) -> bool:
        """Check whether an arbitrary note would be published.

        The note's domain must be a configured hierarchy and the note must
        pass that hierarchy's visibility rule.
        """
        if note.domain_name not in self.config.site_hierarchies:
            return False
        return is_visible(note, self.config.config_for_hierarchy(note.domain_name))

    def filter_by_config(self) -> FilterResult:
        """Filter every configured hierarchy and merge the results.

        All domain notes are resolved before any traversal so an ambiguous
        domain aborts the pass before a stub is written.

        Returns:
            FilterResult with notes, navigation domains and warnings

        Raises:
            AmbiguousDomainError: If a domain matches several notes and no
                                  vault pin is configured
        """
        self._warnings = []
        self._persisted = set()

        resolved: List[Tuple[Note, HierarchyConfig]] = []
        for nav_order, domain in enumerate(self.config.site_hierarchies):
            hconfig = self.config.config_for_hierarchy(domain)
            domain_note = self.resolve_domain(domain, nav_order, hconfig)
            if domain_note is not None:
                resolved.append((domain_note, hconfig))

        notes: Dict[str, Note] = {}
        domains: List[Note] = []
        for domain_note, hconfig in resolved:
            result = self.traverse(domain_note, hconfig)
            domains.append(result.domain)
            notes.update(result.notes)

        # a single hierarchy also navigates its immediate children
        if len(self.config.site_hierarchies) == 1 and len(domains) == 1:
            root = domains[0]
            domains = domains + [notes[c] for c in root.children if c in notes]

        return FilterResult(notes=notes, domains=domains, warnings=list(self._warnings))

    def resolve_domain(self, domain: str, nav_order: int, hconfig: HierarchyConfig) -> Optional[Note]:
        """Pick and normalize the note that roots a domain.

        Args:
            domain: Domain fname
            nav_order: Position of the domain in the configured list
            hconfig: Resolved config for the domain

        Returns:
            A normalized copy of the domain note, or None if skipped

        Raises:
            AmbiguousDomainError: On several candidates without a vault pin
        """
        candidates = [
            n for n in self.graph.find_by_fname(domain)
            if is_visible(n, hconfig)
        ]

        if len(candidates) > 1:
            pin = self.config.duplicate_note_behavior
            if pin is None:
                vaults = ", ".join(n.vault.label for n in candidates)
                raise AmbiguousDomainError(f"Multiple notes found for domain '{domain}' in vaults: {vaults}")
            pinned = [n for n in candidates if pin.matches(n.vault)]
            if not pinned:
                self._warn(f"No note for domain '{domain}' in pinned vault '{pin.vault}', skipping")
                return None
            domain_note = pinned[0]
        elif not candidates:
            self._warn(f"No publishable note found for domain '{domain}', skipping")
            return None
        else:
            domain_note = candidates[0]

        custom = dict(domain_note.custom)
        custom["nav_order"] = nav_order
        if domain_note.fname == self.config.site_index:
            custom["permalink"] = "/"
        return domain_note.copy(
            parent=None,
            title=domain_note.title.capitalize(),
            custom=custom,
        )

    def traverse(self, domain_note: Note, hconfig: HierarchyConfig) -> HierarchyResult:
        """Walk a domain's subtree, building filtered copies.

        Args:
            domain_note: Normalized domain note
            hconfig: Resolved config for the domain

        Returns:
            HierarchyResult keyed by note id
        """
        transform = hierarchy_frontmatter(hconfig)
        out: Dict[str, Note] = {}
        queue = [domain_note]

        while queue:
            note = queue.pop()
            if note.id in out:
                continue

            filtered = self.filter_note(note, transform)
            if self.config.write_stubs and note.stub:
                filtered.stub = False
                self._clear_stub(note.id)

            children = self.graph.children_of(note)
            skip_levels = self._skip_levels(note, hconfig)
            if skip_levels > 0:
                for _ in range(skip_levels):
                    children = [gc for child in children for gc in self.graph.children_of(child)]
                children = [child.copy(parent=note.id) for child in children]

            children = [child for child in children if is_visible(child, hconfig)]
            queue.extend(children)
            filtered.children = [child.id for child in children]
            out[filtered.id] = filtered
            logger.debug(f"Kept '{note.fname}' with {len(children)} children")

        return HierarchyResult(notes=out, domain=out[domain_note.id])

    def filter_note(self, note: Note, transform: FrontmatterTransform) -> Note:
        """Build the published copy of a single note."""
        return note.copy(
            custom=transform(note.custom),
            body=strip_local_only_tags(note.body),
        )

    def _skip_levels(self, note: Note, hconfig: HierarchyConfig) -> int:
        value = note.custom.get("skipLevels", hconfig.skip_levels)
        try:
            return max(int(value or 0), 0)
        except (TypeError, ValueError):
            self._warn(f"Ignoring invalid skipLevels {value!r} on '{note.fname}'")
            return 0

    def _clear_stub(self, note_id: str) -> None:
        if note_id in self._persisted:
            return
        original = self.graph.get(note_id)
        if original is None:
            return
        self.store.write_note(original.copy(stub=False))
        self._persisted.add(note_id)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self._warnings.append(message)


def filter_by_config(
    graph: NoteGraph,
    config: SiteConfig,
    store: Optional[NoteStore] = None,
) -> FilterResult:
    """Run a full publish filter pass."""
    return HierarchyFilter(graph, config, store).filter_by_config()


def get_domains(notes: Dict[str, Note], config: SiteConfig) -> List[Note]:
    """Order the published top-level domains for navigation.

    With a single hierarchy the domain note is followed by its direct
    children; otherwise every note without a parent is returned, ordered
    by ``nav_order``.

    Args:
        notes: Filtered notes keyed by id
        config: Site configuration

    Returns:
        Ordered list of domain notes
    """
    if len(config.site_hierarchies) == 1:
        fname = config.site_hierarchies[0].lower()
        roots = [n for n in notes.values() if n.fname.lower() == fname]
        if not roots:
            return []
        root = roots[0]
        return [root] + [notes[c] for c in root.children if c in notes]

    tops = [n for n in notes.values() if n.parent is None]
    return sorted(tops, key=lambda n: n.custom.get("nav_order", len(tops)))


def add_site_only_notes(graph: NoteGraph) -> List[Note]:
    """Create notes that exist only on the published site."""
    note = Note(
        id="403",
        fname="403",
        vault=graph.vaults[0],
        title="Access Denied",
        body="You are not allowed to view this page",
    )
    return [note]


def copy_assets(ws_root: Path, vault: Vault, site_assets_dir: Path) -> Optional[Path]:
    """Copy a vault's ``assets`` directory into the site, if it has one.

    Args:
        ws_root: Workspace root the vault path is relative to
        vault: Vault whose assets to copy
        site_assets_dir: Destination directory

    Returns:
        The destination directory, or None if the vault has no assets
    """
    vault_assets = Path(ws_root) / vault.fs_path / "assets"
    if not vault_assets.is_dir():
        return None
    shutil.copytree(vault_assets, site_assets_dir, dirs_exist_ok=True)
    return Path(site_assets_dir)


def build_output(note: Note) -> str:
    """Render a filtered note as markdown with YAML frontmatter.

    Args:
        note: Filtered note

    Returns:
        Complete markdown string
    """
    frontmatter = {"id": note.id, "title": note.title}
    frontmatter.update(note.custom)
    frontmatter_str = yaml.dump(
        frontmatter,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=True,
    )
    content = note.body.rstrip('\n')
    return f"---\n{frontmatter_str}---\n{content}\n"
