"""Alternate table-of-contents overlays anchored through the citation resolver."""

import logging
import re
from dataclasses import dataclass, field

from seforim.citations.index import RefTarget
from seforim.citations.resolver import CitationResolver
from seforim.config import ResolutionConfig
from seforim.ingestion.toc import map_lines_to_entries
from seforim.models.alt_structure import (
    AltNode,
    AltStructure,
    AltTocEntry,
    AltTocStructure,
    AltTocTree,
)
from seforim.numerals import daf_address, gematria, parse_daf_position

logger = logging.getLogger(__name__)

# Ordered: the first fragment found in the (lowercased) label wins
HEBREW_LABEL_BASES: tuple[tuple[str, str], ...] = (
    ("aliyah", "עליה"),
    ("daf", "דף"),
    ("chapter", "פרק"),
    ("perek", "פרק"),
    ("siman", "סימן"),
    ("section", "סימן"),
    ("klal", "כלל"),
    ("psalm", "מזמור"),
    ("day", "יום"),
)

DEFAULT_BASE = "פרק"
DAF_BASE = "דף"

_LEADING_INT = re.compile(r"\s*(\d+)")


def map_base_to_hebrew(base: str | None) -> str | None:
    """Translate an English child label ("Aliyah", "Daf") to its Hebrew word.

    Unknown labels are returned unchanged; blank labels give None.
    """
    if base is None or not base.strip():
        return None
    norm = base.lower()
    for fragment, hebrew in HEBREW_LABEL_BASES:
        if fragment in norm:
            return hebrew
    return base


def format_address(value: int, talmud: bool) -> str:
    """Hebrew address label: daf form for paginated works, gematria otherwise."""
    if talmud:
        return daf_address(value).hebrew()
    return gematria(value)


def compute_address_value(node: AltNode, idx: int) -> int | None:
    """Address of the ``idx``-th inline child of ``node``.

    An explicit per-child address wins. Otherwise the walk starts at
    ``offset`` (or just before ``starting_address``) and advances one step
    per child, never landing on a skipped address. Returns None when the
    node declares neither.

    Example: offset 0 with address 2 skipped gives 1, 3, 4 for the first
    three children.
    """
    if idx < len(node.addresses):
        return node.addresses[idx]

    if node.offset is not None:
        current = node.offset
    else:
        start = _starting_position(node)
        if start is None:
            return None
        current = start - 1
    if current < 0:
        return None

    steps = idx
    while True:
        current += 1
        if current in node.skipped_addresses:
            continue
        if steps == 0:
            return current
        steps -= 1


def _starting_position(node: AltNode) -> int | None:
    if node.starting_address is None or not node.starting_address.strip():
        return None
    if node.is_daf:
        return parse_daf_position(node.starting_address)
    match = _LEADING_INT.match(node.starting_address)
    return int(match.group(1)) if match else None


def inline_child_label(node: AltNode, idx: int, address_value: int | None) -> str:
    """Label of an inline child: "<Hebrew base> <address>" or the bare address."""
    value = max(address_value if address_value is not None else idx + 1, 1)
    suffix = format_address(value, node.is_daf)
    base = map_base_to_hebrew(node.child_label)
    return f"{base} {suffix}" if base else suffix


def node_label(node: AltNode, position: int) -> str:
    """Label of an anchored node: its titles, else a derived address label."""
    if node.he_title and node.he_title.strip():
        return node.he_title
    if node.title and node.title.strip():
        return node.title

    value = compute_address_value(node, 0)
    if value is None:
        value = position + 1
    suffix = format_address(max(value, 1), node.is_daf)
    base = map_base_to_hebrew(node.child_label) or (DAF_BASE if node.is_daf else DEFAULT_BASE)
    return f"{base} {suffix}"


def container_label(node: AltNode, position: int) -> str:
    if node.he_title and node.he_title.strip():
        return node.he_title
    if node.title and node.title.strip():
        return node.title
    return f"{DEFAULT_BASE} {gematria(position + 1)}"


@dataclass
class _Draft:
    id: int
    parent_id: int | None
    text: str
    level: int
    target: RefTarget | None = None
    children: list[int] = field(default_factory=list)


@dataclass
class _BuildState:
    drafts: dict[int, _Draft] = field(default_factory=dict)
    roots: list[int] = field(default_factory=list)
    used_lines: dict[int | None, set[int]] = field(default_factory=dict)
    next_id: int = 1

    def add(self, parent_id: int | None, text: str, level: int, target: RefTarget | None) -> _Draft:
        draft = _Draft(id=self.next_id, parent_id=parent_id, text=text, level=level, target=target)
        self.next_id += 1
        self.drafts[draft.id] = draft
        self.siblings(parent_id).append(draft.id)
        return draft

    def remove(self, draft: _Draft) -> None:
        self.siblings(draft.parent_id).remove(draft.id)
        del self.drafts[draft.id]

    def siblings(self, parent_id: int | None) -> list[int]:
        return self.roots if parent_id is None else self.drafts[parent_id].children

    def claim_line(self, parent_id: int | None, line_id: int) -> bool:
        """Reserve a line under a parent; False if a sibling already uses it."""
        used = self.used_lines.setdefault(parent_id, set())
        if line_id in used:
            return False
        used.add(line_id)
        return True


class AltStructureBuilder:
    """Builds anchored alternate TOC trees for one book.

    Each node is anchored by its whole-range citation, then its child
    citations, whichever resolves first. Nodes that cannot be anchored are
    dropped; grouping nodes without citations of their own become
    containers that are kept only if some descendant was anchored, and
    then take over their first anchored child's line.

    Args:
        resolver: Resolver over the corpus reference index.
        config: Category and structure rules for suppression and fallback.
    """

    def __init__(self, resolver: CitationResolver, config: ResolutionConfig | None = None) -> None:
        self._resolver = resolver
        self._config = config or ResolutionConfig()

    def build(
        self,
        structure: AltStructure,
        book_id: int,
        categories: list[str],
        first_line_id: int,
        total_lines: int,
    ) -> AltTocTree:
        """Build one structure.

        Args:
            structure: The structure definition.
            book_id: Book the structure belongs to; citations resolve inside it.
            categories: The book's category path.
            first_line_id: Global id of the book's line 0.
            total_lines: Number of lines in the book.

        Returns:
            The tree with local ids (structure 0, entries from 1), to be
            rebased by the caller.
        """
        multi_section = self._config.is_multi_section(categories)
        suppress_inline = (
            self._config.is_paginated(categories)
            or multi_section
            or structure.key in self._config.inline_suppressed_structures
        )
        walker = _StructureWalker(
            resolver=self._resolver,
            book_id=book_id,
            multi_section=multi_section,
            suppress_inline=suppress_inline,
        )
        for position, node in enumerate(structure.nodes):
            walker.traverse(node, level=0, parent_id=None, position=position)

        entries = walker.finish(structure_id=0)
        anchors = [(e.line_index, e.id) for e in entries if e.line_index is not None]
        tree = AltTocTree(
            structure=AltTocStructure(
                id=0,
                book_id=book_id,
                key=structure.key,
                title=structure.title,
                he_title=structure.he_title,
            ),
            entries=entries,
            line_mapping=map_lines_to_entries(anchors, first_line_id, total_lines),
        )
        logger.debug(
            "Alt structure '%s' for book %d: %d entries", structure.key, book_id, len(entries)
        )
        return tree


class _StructureWalker:
    """Traversal state for a single structure."""

    def __init__(
        self,
        resolver: CitationResolver,
        book_id: int,
        multi_section: bool,
        suppress_inline: bool,
    ) -> None:
        self.resolver = resolver
        self.book_id = book_id
        self.multi_section = multi_section
        self.suppress_inline = suppress_inline
        self.state = _BuildState()

    def resolve(self, citation: str, node: AltNode) -> RefTarget | None:
        return self.resolver.resolve(
            citation,
            book_id=self.book_id,
            allow_chapter_fallback=not node.is_daf,
            allow_tail_fallback=not node.is_daf and not self.multi_section,
        )

    def traverse(self, node: AltNode, level: int, parent_id: int | None, position: int) -> bool:
        """Add ``node`` and its subtree; True if anything was anchored."""
        state = self.state
        current_parent = parent_id
        container: _Draft | None = None
        inserted = False

        if not node.has_own_refs and node.children:
            container = state.add(parent_id, container_label(node, position), level, None)
            current_parent = container.id

        if node.is_daf and node.refs and not node.has_title:
            inserted = self._add_inline_children(node, parent_id, level)
        elif node.has_own_refs:
            entry = self._add_anchored(node, level, parent_id, position)
            if entry is not None:
                inserted = True
                if node.children:
                    current_parent = entry.id
            elif node.children:
                # Unanchored group: kept only if a descendant anchors
                container = state.add(parent_id, container_label(node, position), level, None)
                current_parent = container.id

        child_level = level + 1 if current_parent != parent_id else level
        child_inserted = False
        for idx, child in enumerate(node.children):
            if self.traverse(child, child_level, current_parent, idx):
                child_inserted = True

        if container is not None:
            if container.children:
                first = state.drafts[container.children[0]]
                container.target = first.target
            else:
                state.remove(container)

        return inserted or child_inserted

    def _add_anchored(
        self, node: AltNode, level: int, parent_id: int | None, position: int
    ) -> _Draft | None:
        candidates = ([node.whole_ref] if node.whole_ref else []) + node.refs
        target = next(
            (t for t in (self.resolve(c, node) for c in candidates) if t is not None), None
        )
        if target is None:
            logger.debug("Dropping unanchored alt node %r", node.title or node.he_title)
            return None
        if not self.state.claim_line(parent_id, target.line_id):
            return None

        entry = self.state.add(parent_id, node_label(node, position), level, target)
        if not self.suppress_inline and node.refs:
            self._add_inline_children(node, entry.id, level + 1)
        return entry

    def _add_inline_children(self, node: AltNode, parent_id: int | None, level: int) -> bool:
        added = False
        for idx, ref in enumerate(node.refs):
            target = self.resolve(ref, node)
            if target is None or not self.state.claim_line(parent_id, target.line_id):
                continue
            label = inline_child_label(node, idx, compute_address_value(node, idx))
            self.state.add(parent_id, label, level, target)
            added = True
        return added

    def finish(self, structure_id: int) -> list[AltTocEntry]:
        """Renumber drafts contiguously in creation order and emit entries."""
        drafts = sorted(self.state.drafts.values(), key=lambda d: d.id)
        new_ids = {draft.id: idx for idx, draft in enumerate(drafts, start=1)}
        last_children = {
            siblings[-1]
            for siblings in [self.state.roots] + [d.children for d in drafts]
            if siblings
        }

        return [
            AltTocEntry(
                id=new_ids[draft.id],
                structure_id=structure_id,
                parent_id=None if draft.parent_id is None else new_ids[draft.parent_id],
                text=draft.text,
                level=draft.level,
                line_id=draft.target.line_id if draft.target else None,
                line_index=draft.target.line_index if draft.target else None,
                has_children=bool(draft.children),
                is_last_child=draft.id in last_children,
            )
            for draft in drafts
        ]
