"""Note reference parsing and resolution.

A note reference transcludes another note at render time::

    ((ref: [[vault:path.to.note#start,#end]]))

Parsing splits a document into text, code and reference nodes without
touching the note graph. Resolution maps a descriptor onto notes.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from hierarchy_publisher.core.graph import NoteGraph
from hierarchy_publisher.core.models import DELIMITER, Note, NoteRefDescriptor

logger = logging.getLogger(__name__)

NOTE_EXTENSION = ".md"
WILDCARD = "*"

# ((ref: [[target]])) with an optional anchor suffix after the brackets
REF_PATTERN = re.compile(r'\(\(ref:\s*\[\[(?P<link>[^\]\n]*)\]\](?P<suffix>[^()\n]*)\)\)')

# Fenced code blocks, closed by a fence of the same kind or end of text
FENCED_CODE_PATTERN = re.compile(
    r'^[ \t]*(?P<fence>`{3,}|~{3,})[^\n]*\n.*?(?:^[ \t]*(?P=fence)[`~]*[ \t]*$|\Z)',
    re.MULTILINE | re.DOTALL,
)

INLINE_CODE_PATTERN = re.compile(
    r'(?<!`)(?P<ticks>`+)(?!`)(?:(?!\n[ \t]*\n).)+?(?<!`)(?P=ticks)(?!`)',
    re.DOTALL,
)

# #start, #start,#end, #start:#end, #start:#*, #start:#3, #start:3
# A comma or colon only separates a range when "#" or a line count follows
ANCHOR_PATTERN = re.compile(
    r'^#(?P<start>.+?)\s*(?:[,:]\s*#(?P<end>[^#]+?)|:\s*(?P<lines>\d+))?\s*$'
)


@dataclass
class TextNode:
    value: str

    @property
    def raw(self) -> str:
        return self.value


@dataclass
class CodeNode:
    """Inline or fenced code. Opaque to reference parsing."""
    value: str

    @property
    def raw(self) -> str:
        return self.value


@dataclass
class RefNode:
    """Placeholder for a reference, replaced or preserved at compile time."""
    descriptor: NoteRefDescriptor

    @property
    def raw(self) -> str:
        return self.descriptor.raw


Node = Union[TextNode, CodeNode, RefNode]


@dataclass
class ResolvedRef:
    """Outcome of resolving a descriptor. No notes means a broken reference."""
    descriptor: NoteRefDescriptor
    notes: List[Note] = field(default_factory=list)

    @property
    def broken(self) -> bool:
        return not self.notes


def parse_descriptor(raw: str, link: str, suffix: str = "") -> NoteRefDescriptor:
    """Parse the inside of a reference into a descriptor.

    Never fails: unparseable anchors are ignored and an empty target
    simply resolves to nothing.

    Args:
        raw: Full source text of the reference
        link: Text between ``[[`` and ``]]``
        suffix: Text between ``]]`` and ``))``

    Returns:
        NoteRefDescriptor
    """
    link = link.strip()
    anchor = ""
    if "#" in link:
        link, anchor = link.split("#", 1)
        anchor = "#" + anchor
    elif suffix.strip().startswith("#"):
        anchor = suffix.strip()

    vault_name = None
    if ":" in link:
        vault_name, link = link.split(":", 1)
        vault_name = vault_name.strip() or None
    target = link.strip()

    if target.lower().endswith(NOTE_EXTENSION):
        target = target[:-len(NOTE_EXTENSION)]

    wildcard = False
    if target == WILDCARD:
        target, wildcard = "", True
    elif target.endswith(DELIMITER + WILDCARD):
        target, wildcard = target[:-2], True

    anchor_start = anchor_end = None
    match = ANCHOR_PATTERN.match(anchor.strip()) if anchor else None
    if match:
        anchor_start = match.group("start").strip()
        anchor_end = match.group("end") or match.group("lines")

    return NoteRefDescriptor(
        raw=raw,
        target=target,
        vault_name=vault_name,
        wildcard=wildcard,
        anchor_start=anchor_start,
        anchor_end=anchor_end.strip() if anchor_end else None,
    )


def parse(text: str) -> List[Node]:
    """Split a document into text, code and reference nodes.

    Code spans are opaque: references inside them stay plain code.
    Joining the ``raw`` of every node gives back ``text`` unchanged.
    """
    nodes: List[Node] = []
    pos = 0
    for match in FENCED_CODE_PATTERN.finditer(text):
        nodes.extend(_parse_inline(text[pos:match.start()]))
        nodes.append(CodeNode(match.group(0)))
        pos = match.end()
    nodes.extend(_parse_inline(text[pos:]))
    return nodes


def _parse_inline(text: str) -> List[Node]:
    nodes: List[Node] = []
    pos = 0
    for match in INLINE_CODE_PATTERN.finditer(text):
        nodes.extend(_parse_refs(text[pos:match.start()]))
        nodes.append(CodeNode(match.group(0)))
        pos = match.end()
    nodes.extend(_parse_refs(text[pos:]))
    return nodes


def _parse_refs(text: str) -> List[Node]:
    nodes: List[Node] = []
    pos = 0
    for match in REF_PATTERN.finditer(text):
        if match.start() > pos:
            nodes.append(TextNode(text[pos:match.start()]))
        descriptor = parse_descriptor(match.group(0), match.group("link"), match.group("suffix"))
        nodes.append(RefNode(descriptor))
        pos = match.end()
    if pos < len(text):
        nodes.append(TextNode(text[pos:]))
    return nodes


def serialize(nodes: List[Node]) -> str:
    """Write nodes back in native form."""
    return "".join(node.raw for node in nodes)


def resolve(descriptor: NoteRefDescriptor, graph: NoteGraph) -> ResolvedRef:
    """Resolve a descriptor against the graph.

    Wildcards select every note one segment below the prefix, ordered by
    fname. Plain targets match by fname, falling back to note id; when
    several vaults hold the fname and no vault is given, the first vault
    in iteration order wins.

    Args:
        descriptor: Parsed reference
        graph: Note graph snapshot

    Returns:
        ResolvedRef, broken if nothing matched
    """
    vault = None
    if descriptor.vault_name:
        vault = graph.find_vault(descriptor.vault_name)
        if vault is None:
            logger.warning(f"Unknown vault '{descriptor.vault_name}' in {descriptor.raw}")
            return ResolvedRef(descriptor)

    if descriptor.wildcard:
        return ResolvedRef(descriptor, graph.find_by_prefix(descriptor.target, vault))

    if not descriptor.target:
        return ResolvedRef(descriptor)

    matches = graph.find_by_fname(descriptor.target, vault)
    if not matches:
        note = graph.get(descriptor.target)
        if note is not None and (vault is None or note.vault == vault):
            matches = [note]
    if len(matches) > 1:
        vaults = ", ".join(n.vault.label for n in matches)
        logger.debug(f"'{descriptor.target}' exists in several vaults ({vaults}), using {matches[0].vault.label}")

    return ResolvedRef(descriptor, matches[:1])


def resolve_target(
    target: str,
    graph: NoteGraph,
    vault_name: Optional[str] = None,
) -> ResolvedRef:
    """Resolve a bare target string such as ``foo.*`` or ``vault:foo``."""
    prefix = f"{vault_name}:" if vault_name else ""
    raw = f"((ref: [[{prefix}{target}]]))"
    return resolve(parse_descriptor(raw, f"{prefix}{target}"), graph)
