"""Schema-driven flattener for hierarchical texts."""

import logging
from dataclasses import dataclass, field
from typing import Any

from seforim.errors import StructuralMismatchError
from seforim.models.book import FlattenedBook, Heading, Line, RefEntry
from seforim.models.schema import AddressType, ContainerNode, LeafNode, SchemaNode
from seforim.numerals import daf_address, gematria

logger = logging.getLogger(__name__)


def is_blank(value: Any) -> bool:
    """Return True for content that contributes nothing.

    None, whitespace-only strings, and arrays or objects whose values are
    all blank (recursively).
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list):
        return all(is_blank(item) for item in value)
    if isinstance(value, dict):
        return all(is_blank(item) for item in value.values())
    return False


def select_child_content(child: SchemaNode, content: Any) -> Any:
    """Find the content value belonging to a container's child.

    Titled children are looked up by title (then key); default children by
    the empty key, then title, then key.

    Raises:
        StructuralMismatchError: If ``content`` is not an object.
    """
    if not isinstance(content, dict):
        raise StructuralMismatchError(child.title or child.key, "object", content)
    if child.is_default:
        candidates = ("", child.title, child.key)
    else:
        candidates = (child.title, child.key)
    for candidate in candidates:
        if candidate is not None and candidate in content:
            return content[candidate]
    return None


def address_labels(address_type: AddressType, position: int) -> tuple[str, str]:
    """Return the (English, Hebrew) labels for a 1-based position."""
    if address_type is AddressType.TALMUD_PAGE:
        daf = daf_address(position)
        return daf.english(), daf.hebrew()
    return str(position), gematria(position)


@dataclass
class _RefPath:
    """Running reference prefixes: title segments plus per-level addresses."""

    titles_en: tuple[str, ...]
    titles_he: tuple[str, ...]
    addresses_en: tuple[str, ...] = ()
    addresses_he: tuple[str, ...] = ()

    def with_title(self, title_en: str, title_he: str) -> "_RefPath":
        return _RefPath(
            titles_en=self.titles_en + (title_en,),
            titles_he=self.titles_he + (title_he or title_en,),
        )

    def with_address(self, label_en: str, label_he: str) -> "_RefPath":
        return _RefPath(
            titles_en=self.titles_en,
            titles_he=self.titles_he,
            addresses_en=self.addresses_en + (label_en,),
            addresses_he=self.addresses_he + (label_he,),
        )

    def ref(self) -> str:
        base = ", ".join(self.titles_en)
        if not self.addresses_en:
            return base
        return f"{base} {':'.join(self.addresses_en)}"

    def he_ref(self) -> str:
        base = ", ".join(self.titles_he)
        if not self.addresses_he:
            return base
        return f"{base} {', '.join(self.addresses_he)}"


@dataclass
class _FlattenState:
    book_id: int
    lines: list[Line] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)
    refs: list[RefEntry] = field(default_factory=list)
    mismatches: int = 0

    def add_heading(self, title: str, level: int) -> None:
        self.headings.append(Heading(title=title, level=level, line_index=len(self.lines)))

    def add_line(self, content: str, path: _RefPath) -> None:
        ref, he_ref = path.ref(), path.he_ref()
        self.lines.append(
            Line(
                book_id=self.book_id,
                line_index=len(self.lines),
                content=content,
                ref=ref,
                he_ref=he_ref,
            )
        )
        self.refs.append(
            RefEntry(ref=ref, he_ref=he_ref, line_index=len(self.lines), book_id=self.book_id)
        )


class HierarchicalFlattener:
    """Walks a schema and its parallel content tree, emitting lines.

    Lines, headings and reference entries come out of one depth-first
    traversal, so their relative order is consistent: a heading's
    ``line_index`` is the number of lines emitted before it, and a
    reference entry's 1-based ``line_index`` is the line count right after
    its line was emitted.

    Blank branches are skipped without headings or lines. A subtree whose
    content does not have the shape its schema declares is skipped and
    counted in ``FlattenedBook.structural_mismatches``.
    """

    def flatten(
        self,
        schema: SchemaNode,
        content: Any,
        title_en: str,
        title_he: str = "",
        book_id: int = 0,
    ) -> FlattenedBook:
        """Flatten one document.

        Args:
            schema: Root schema node.
            content: Content tree mirroring ``schema``.
            title_en: English book title, first segment of every ref.
            title_he: Hebrew book title, first segment of every Hebrew ref.
            book_id: Id stamped on every emitted line.

        Returns:
            The flattened book.
        """
        title_he = title_he or title_en
        state = _FlattenState(book_id=book_id)
        state.add_heading(title_he, level=0)
        root = _RefPath(titles_en=(title_en,), titles_he=(title_he,))

        self._visit_guarded(schema, content, level=1, path=root, state=state)

        return FlattenedBook(
            book_id=book_id,
            title_en=title_en,
            title_he=title_he,
            lines=state.lines,
            headings=state.headings,
            ref_entries=state.refs,
            structural_mismatches=state.mismatches,
        )

    def _visit_guarded(
        self, node: SchemaNode, content: Any, level: int, path: _RefPath, state: _FlattenState
    ) -> None:
        try:
            self._visit(node, content, level, path, state)
        except StructuralMismatchError as e:
            state.mismatches += 1
            logger.warning("Skipping subtree of '%s': %s", path.ref(), e)

    def _visit(
        self, node: SchemaNode, content: Any, level: int, path: _RefPath, state: _FlattenState
    ) -> None:
        if isinstance(node, ContainerNode):
            self._visit_container(node, content, level, path, state)
        elif isinstance(node, LeafNode):
            self._walk_leaf(node, content, 0, level, path, "", state)
        else:
            raise TypeError(f"Unknown schema node type: {type(node).__name__}")

    def _visit_container(
        self, node: ContainerNode, content: Any, level: int, path: _RefPath, state: _FlattenState
    ) -> None:
        if not isinstance(content, dict):
            raise StructuralMismatchError(path.ref(), "object", content)

        for child in node.children:
            child_content = select_child_content(child, content)
            if is_blank(child_content):
                continue

            child_level = level
            child_path = path
            if not child.is_default:
                state.add_heading(child.display_title, level)
                child_level = level + 1
                child_path = path.with_title(child.title, child.he_title)

            self._visit_guarded(child, child_content, child_level, child_path, state)

    def _walk_leaf(
        self,
        leaf: LeafNode,
        content: Any,
        position: int,
        level: int,
        path: _RefPath,
        line_prefix: str,
        state: _FlattenState,
    ) -> None:
        if position == leaf.depth:
            if not isinstance(content, str):
                raise StructuralMismatchError(path.ref(), "string", content)
            if content.strip():
                state.add_line(line_prefix + content.replace("\n", ""), path)
            return

        if not isinstance(content, list):
            raise StructuralMismatchError(path.ref(), "array", content)

        address_type = leaf.address_types[position]
        referenceable = leaf.is_referenceable(position)
        section_name = leaf.heading_name(position)
        terminal = position == leaf.depth - 1
        siblings = sum(1 for item in content if not is_blank(item)) if terminal else 0
        inline_labels = (
            terminal
            and referenceable
            and address_type is not AddressType.INTEGER
            and siblings > 1
        )

        for idx, item in enumerate(content):
            if is_blank(item):
                continue
            label_en, label_he = address_labels(address_type, idx + 1)

            next_level = level
            if not terminal and referenceable and section_name:
                state.add_heading(f"{section_name} {label_he}", level)
                next_level = level + 1

            item_path = path.with_address(label_en, label_he)
            try:
                self._walk_leaf(
                    leaf,
                    item,
                    position + 1,
                    next_level,
                    item_path,
                    f"({label_he}) " if inline_labels else "",
                    state,
                )
            except StructuralMismatchError as e:
                state.mismatches += 1
                logger.warning("Skipping subtree of '%s': %s", item_path.ref(), e)
