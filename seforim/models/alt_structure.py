"""Alternate table-of-contents models: definitions and anchored output."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AltNode(BaseModel):
    """One entry of an alternate structure definition.

    ``refs`` lists the citations of the node's inline children. Their
    labels come from ``addresses`` when given, otherwise from a walk that
    starts at ``offset`` (or just before ``starting_address``) and skips
    every value in ``skipped_addresses``.
    """

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    he_title: str | None = None
    whole_ref: str | None = None
    refs: list[str] = Field(default_factory=list)
    address_types: list[str] = Field(default_factory=list)
    child_label: str | None = None
    addresses: list[int] = Field(default_factory=list)
    skipped_addresses: frozenset[int] = Field(default_factory=frozenset)
    starting_address: str | None = None
    offset: int | None = None
    children: list[AltNode] = Field(default_factory=list)

    @property
    def has_title(self) -> bool:
        return bool((self.he_title or "").strip() or (self.title or "").strip())

    @property
    def has_own_refs(self) -> bool:
        return bool(self.whole_ref) or bool(self.refs)

    def has_address_type(self, *names: str) -> bool:
        wanted = {n.lower() for n in names}
        return any(a.lower() in wanted for a in self.address_types)

    @property
    def is_daf(self) -> bool:
        return self.has_address_type("Talmud")


class AltStructure(BaseModel):
    """A named alternate structure (e.g. Parasha) for one book."""

    model_config = ConfigDict(frozen=True)

    key: str
    title: str | None = None
    he_title: str | None = None
    nodes: list[AltNode] = Field(default_factory=list)


class AltTocStructure(BaseModel):
    """An alternate structure registered for a book."""

    model_config = ConfigDict(frozen=True)

    id: int
    book_id: int
    key: str
    title: str | None = None
    he_title: str | None = None


class AltTocEntry(BaseModel):
    """An anchored entry of an alternate structure."""

    model_config = ConfigDict(frozen=True)

    id: int
    structure_id: int
    parent_id: int | None = None
    text: str
    level: int
    line_id: int | None = None
    line_index: int | None = None
    has_children: bool = False
    is_last_child: bool = False


class AltTocTree(BaseModel):
    """All anchored entries of one structure, parents before children."""

    structure: AltTocStructure
    entries: list[AltTocEntry] = Field(default_factory=list)
    line_mapping: list[tuple[int, int]] = Field(default_factory=list)  # (line_id, entry_id)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def rebased(self, structure_id: int, entry_offset: int) -> AltTocTree:
        """Return a copy with global ids: entry ids shifted by ``entry_offset``."""

        def shift(value: int | None) -> int | None:
            return None if value is None else value + entry_offset

        entries = [
            entry.model_copy(
                update={
                    "id": entry.id + entry_offset,
                    "parent_id": shift(entry.parent_id),
                    "structure_id": structure_id,
                }
            )
            for entry in self.entries
        ]
        return AltTocTree(
            structure=self.structure.model_copy(update={"id": structure_id}),
            entries=entries,
            line_mapping=[(line_id, entry_id + entry_offset) for line_id, entry_id in self.line_mapping],
        )
