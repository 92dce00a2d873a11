"""Recursive note reference embedding.

Compiles a parsed document for a render destination. The native
destination writes every reference back verbatim; the others replace it
with the referenced content wrapped in a portal container.
"""

import html
import logging
from typing import List, Optional, Tuple

from hierarchy_publisher.core.graph import NoteGraph
from hierarchy_publisher.core.models import CompileResult, Note, NoteRefDescriptor, RenderDestination, Vault
from hierarchy_publisher.core.refs import Node, RefNode, parse, resolve
from hierarchy_publisher.transforms.body import slice_anchor_range
from hierarchy_publisher.transforms.links import HrefTransform, markdown_link, relative_href

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10


def default_href_transform(dest: RenderDestination) -> HrefTransform:
    """Default link shape for a destination."""
    if dest == RenderDestination.HTML:
        return relative_href(".html")
    return relative_href(".md")


class NoteRefEmbedder:
    """Expands note references for one render destination.

    Every compile is a pure function of the graph snapshot. Recursion
    carries its own stack of note ids being expanded and a depth budget;
    a note already on the stack, or one reached with no budget left, is
    rendered as a link instead of being expanded again.
    """

    def __init__(
        self,
        graph: NoteGraph,
        dest: RenderDestination,
        vault: Optional[Vault] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        href_transform: Optional[HrefTransform] = None,
    ):
        """Initialize NoteRefEmbedder.

        Args:
            graph: Read-only note graph snapshot
            dest: Render destination
            vault: Active vault; links to notes in other vaults are
                   prefixed with the target vault's label
            max_depth: Maximum nesting of expanded references
            href_transform: Maps a fname to the link target used in portals
                            and cycle links (default depends on dest)
        """
        self.graph = graph
        self.dest = dest
        self.vault = vault
        self.max_depth = max_depth
        self.href_transform = href_transform or default_href_transform(dest)

    def compile(self, text: str, source: Optional[Note] = None) -> CompileResult:
        """Compile a document.

        Args:
            text: Document text
            source: Note the text belongs to; references back to it are
                    rendered as links

        Returns:
            CompileResult with the output and any warnings
        """
        warnings: List[str] = []
        stack: Tuple[str, ...] = (source.id,) if source is not None else ()
        content = self.compile_nodes(parse(text), stack, self.max_depth, warnings)
        return CompileResult(content=content, warnings=warnings)

    def compile_note(self, note: Note) -> CompileResult:
        return self.compile(note.body, source=note)

    def compile_nodes(
        self,
        nodes: List[Node],
        stack: Tuple[str, ...],
        depth: int,
        warnings: List[str],
    ) -> str:
        parts = []
        for node in nodes:
            if isinstance(node, RefNode) and self.dest != RenderDestination.NATIVE:
                parts.append(self._embed(node.descriptor, stack, depth, warnings))
            else:
                parts.append(node.raw)
        return "".join(parts)

    def _embed(
        self,
        descriptor: NoteRefDescriptor,
        stack: Tuple[str, ...],
        depth: int,
        warnings: List[str],
    ) -> str:
        resolved = resolve(descriptor, self.graph)
        if resolved.broken:
            self._warn(warnings, f"Broken note reference: {descriptor.raw}")
            return descriptor.raw

        blocks = []
        for note in resolved.notes:
            if note.id in stack:
                logger.debug(f"Reference cycle at '{note.fname}', rendering link")
                blocks.append(self._link(note))
                continue
            if depth <= 0:
                self._warn(warnings, f"Reference depth limit reached at '{note.fname}'")
                blocks.append(self._link(note))
                continue

            body = self._select_body(note, descriptor, warnings)
            inner = self.compile_nodes(parse(body), stack + (note.id,), depth - 1, warnings)
            blocks.append(self._render_portal(note, inner, descriptor))
        return "\n".join(blocks)

    def _select_body(self, note: Note, descriptor: NoteRefDescriptor, warnings: List[str]) -> str:
        if not descriptor.has_anchor:
            return note.body
        sliced = slice_anchor_range(note.body, descriptor.anchor_start, descriptor.anchor_end)
        if sliced is None:
            self._warn(
                warnings,
                f"Anchor range not found in '{note.fname}', embedding full body: {descriptor.raw}",
            )
            return note.body
        return sliced

    def _href(self, note: Note) -> str:
        href = self.href_transform(note.fname)
        if self.vault is not None and note.vault != self.vault:
            href = f"{note.vault.label}/{href}"
        return href

    def _link(self, note: Note) -> str:
        return markdown_link(note.title or note.fname, self._href(note))

    def _render_portal(self, note: Note, body: str, descriptor: NoteRefDescriptor) -> str:
        title = html.escape(note.title or note.fname, quote=True)
        fname = html.escape(note.fname, quote=True)
        anchor = html.escape(descriptor.anchor_start or "", quote=True)
        href = html.escape(self._href(note), quote=True)

        if self.dest == RenderDestination.MD_REGULAR:
            return "\n".join([
                f'<!-- portal title="{title}" fname="{fname}" anchor="{anchor}" -->',
                body,
                "<!-- /portal -->",
            ])

        return "\n".join([
            f'<div class="portal-container" data-note-id="{html.escape(note.id, quote=True)}" '
            f'data-fname="{fname}" data-anchor="{anchor}">',
            '<div class="portal-head">',
            f'<div class="portal-title">{title}</div>',
            f'<a class="portal-arrow" href="{href}">Go to text <span class="right-arrow">&rarr;</span></a>',
            "</div>",
            '<div class="portal-parent">',
            "",
            body,
            "",
            "</div>",
            "</div>",
        ])

    def _warn(self, warnings: List[str], message: str) -> None:
        logger.warning(message)
        warnings.append(message)


def compile_document(
    text: str,
    graph: NoteGraph,
    dest: RenderDestination,
    source: Optional[Note] = None,
    vault: Optional[Vault] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> CompileResult:
    """Compile a document for a destination with default settings."""
    embedder = NoteRefEmbedder(graph, dest, vault=vault, max_depth=max_depth)
    return embedder.compile(text, source=source)
