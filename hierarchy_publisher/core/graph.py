"""Read-only note graph snapshots and the note store interface."""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Protocol

from hierarchy_publisher.core.models import DELIMITER, Note, Vault

logger = logging.getLogger(__name__)


class NoteStore(Protocol):
    """Write side of the external note store."""

    def write_note(self, note: Note) -> None:
        ...


class NoteGraph:
    """Immutable-by-convention snapshot of every note across all vaults.

    Answers lookups by id, by fname (optionally scoped to a vault) and by
    fname prefix for wildcard references. Results that may span vaults
    are returned in vault iteration order.
    """

    def __init__(self, notes: Iterable[Note], vaults: Optional[List[Vault]] = None):
        """Initialize NoteGraph.

        Args:
            notes: Note records making up the graph
            vaults: Vault iteration order (default: order of first appearance)

        Raises:
            ValueError: If two notes share an id
        """
        self._notes: Dict[str, Note] = {}
        for note in notes:
            if note.id in self._notes:
                raise ValueError(f"Duplicate note id: {note.id}")
            self._notes[note.id] = note

        self.vaults: List[Vault] = list(vaults or [])
        for note in self._notes.values():
            if note.vault not in self.vaults:
                self.vaults.append(note.vault)

    def __contains__(self, note_id: object) -> bool:
        return note_id in self._notes

    def __getitem__(self, note_id: str) -> Note:
        return self._notes[note_id]

    def __iter__(self) -> Iterator[Note]:
        return iter(self._notes.values())

    def __len__(self) -> int:
        return len(self._notes)

    @property
    def notes(self) -> Dict[str, Note]:
        """A shallow copy of the id -> note mapping."""
        return dict(self._notes)

    def get(self, note_id: str) -> Optional[Note]:
        return self._notes.get(note_id)

    def find_vault(self, identifier: str) -> Optional[Vault]:
        """Find a vault by name or path."""
        for vault in self.vaults:
            if vault.matches(identifier):
                return vault
        return None

    def find_by_fname(self, fname: str, vault: Optional[Vault] = None) -> List[Note]:
        """Find notes with the given fname, case-insensitive.

        Args:
            fname: Full hierarchical name
            vault: Restrict the search to this vault

        Returns:
            Matching notes in vault iteration order
        """
        key = fname.lower()
        matches = [
            n for n in self._notes.values()
            if n.fname.lower() == key and (vault is None or n.vault == vault)
        ]
        return sorted(matches, key=self._vault_index)

    def find_by_prefix(self, prefix: str, vault: Optional[Vault] = None) -> List[Note]:
        """Find notes exactly one hierarchy segment below ``prefix``.

        An empty prefix selects top-level notes. Results are ordered by
        full fname, then vault iteration order.
        """
        head = prefix.lower() + DELIMITER if prefix else ""
        matches = []
        for note in self._notes.values():
            fname = note.fname.lower()
            if not fname.startswith(head):
                continue
            rest = fname[len(head):]
            if not rest or DELIMITER in rest:
                continue
            if vault is not None and note.vault != vault:
                continue
            matches.append(note)
        return sorted(matches, key=lambda n: (n.fname.lower(), self._vault_index(n)))

    def children_of(self, note: Note) -> List[Note]:
        """Resolve a note's child ids, skipping ids missing from the graph."""
        children = []
        for child_id in note.children:
            child = self._notes.get(child_id)
            if child is None:
                logger.warning(f"Note '{note.fname}' lists missing child id '{child_id}'")
                continue
            children.append(child)
        return children

    def _vault_index(self, note: Note) -> int:
        return self.vaults.index(note.vault)

    @classmethod
    def from_hierarchy(cls, notes: Iterable[Note], vaults: Optional[List[Vault]] = None) -> "NoteGraph":
        """Build a graph whose parent/children links follow the fnames.

        Missing intermediate levels are filled with stub notes. Top-level
        notes hang off the vault's ``root`` note when one exists.

        Args:
            notes: Notes with fname and vault set; links are overwritten
            vaults: Vault iteration order

        Returns:
            A new NoteGraph over linked copies of the notes
        """
        by_key: Dict[tuple, Note] = {}
        for note in notes:
            by_key[(note.vault, note.fname.lower())] = note.copy(children=[], parent=None)

        for vault, fname in list(by_key):
            parts = fname.split(DELIMITER)
            for depth in range(1, len(parts)):
                key = (vault, DELIMITER.join(parts[:depth]))
                if key not in by_key and key[1] != "root":
                    by_key[key] = Note(
                        id=f"{vault.label}/{key[1]}",
                        fname=key[1],
                        vault=vault,
                        title=parts[depth - 1],
                        stub=True,
                    )

        for (vault, fname), note in sorted(by_key.items(), key=lambda item: item[0][1]):
            if fname == "root":
                continue
            if DELIMITER in fname:
                parent = by_key[(vault, fname.rsplit(DELIMITER, 1)[0])]
            else:
                parent = by_key.get((vault, "root"))
            if parent is not None:
                note.parent = parent.id
                parent.children.append(note.id)

        return cls(by_key.values(), vaults)


class InMemoryNoteStore:
    """Dictionary-backed note store.

    Hands out graph snapshots and records every write.
    """

    def __init__(self, notes: Iterable[Note], vaults: Optional[List[Vault]] = None):
        self.vaults = list(vaults or [])
        self.notes: Dict[str, Note] = {n.id: n for n in notes}
        self.writes: List[Note] = []

    @classmethod
    def from_graph(cls, graph: NoteGraph) -> "InMemoryNoteStore":
        return cls(graph, graph.vaults)

    def snapshot(self) -> NoteGraph:
        """Copy the current notes into a fresh graph."""
        return NoteGraph((n.copy() for n in self.notes.values()), self.vaults)

    def write_note(self, note: Note) -> None:
        stored = note.copy()
        self.notes[stored.id] = stored
        self.writes.append(stored)
