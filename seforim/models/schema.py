"""Document schema models: container and leaf nodes."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_NODE_KEY = "default"


class AddressType(str, Enum):
    """How one level of a leaf node is addressed."""

    CHAPTER = "Chapter"
    VERSE = "Verse"
    TALMUD_PAGE = "TalmudPage"
    INTEGER = "Integer"
    SECTION = "Section"
    PARAGRAPH = "Paragraph"

    @classmethod
    def from_label(cls, label: str | None) -> AddressType:
        """Map a free-form address label (e.g. "Perek", "Talmud") to the enum."""
        if not label:
            return cls.SECTION
        return _ADDRESS_LABELS.get(label.strip().lower(), cls.SECTION)


_ADDRESS_LABELS: dict[str, AddressType] = {
    "talmud": AddressType.TALMUD_PAGE,
    "talmudpage": AddressType.TALMUD_PAGE,
    "daf": AddressType.TALMUD_PAGE,
    "chapter": AddressType.CHAPTER,
    "perek": AddressType.CHAPTER,
    "verse": AddressType.VERSE,
    "pasuk": AddressType.VERSE,
    "mishnah": AddressType.VERSE,
    "section": AddressType.SECTION,
    "siman": AddressType.SECTION,
    "halakhah": AddressType.SECTION,
    "volume": AddressType.SECTION,
    "paragraph": AddressType.PARAGRAPH,
    "seif": AddressType.PARAGRAPH,
    "comment": AddressType.PARAGRAPH,
    "integer": AddressType.INTEGER,
    "line": AddressType.INTEGER,
}


class _NodeBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str = ""
    title: str = ""
    he_title: str = ""

    @property
    def is_default(self) -> bool:
        """Untitled or "default" nodes add no heading and no reference segment."""
        return self.key.lower() == DEFAULT_NODE_KEY or not self.title.strip()

    @property
    def display_title(self) -> str:
        return self.he_title.strip() or self.title.strip()


class ContainerNode(_NodeBase):
    """A node whose content is an object keyed by its children's titles."""

    kind: Literal["container"] = "container"
    children: list[SchemaNode] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_child_keys(self) -> ContainerNode:
        seen: set[str] = set()
        for child in self.children:
            child_key = child.key or child.title
            if not child_key:
                continue
            if child_key in seen:
                raise ValueError(f"Duplicate child key '{child_key}' in '{self.title}'")
            seen.add(child_key)
        return self


class LeafNode(_NodeBase):
    """A node whose content is nested arrays of strings, `depth` levels deep.

    ``section_names``, ``address_types`` and ``referenceable`` hold one
    entry per level.
    """

    kind: Literal["leaf"] = "leaf"
    depth: int = Field(ge=0)
    section_names: list[str] = Field(default_factory=list)
    he_section_names: list[str] = Field(default_factory=list)
    address_types: list[AddressType] = Field(default_factory=list)
    referenceable: list[bool] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _derive_address_types(cls, data: object) -> object:
        # Address types default to what the section names imply
        if isinstance(data, dict) and not data.get("address_types"):
            names = data.get("section_names") or []
            data = {**data, "address_types": [AddressType.from_label(n) for n in names]}
        return data

    @model_validator(mode="after")
    def _levels_match_depth(self) -> LeafNode:
        for name in ("section_names", "address_types"):
            values = getattr(self, name)
            if len(values) != self.depth:
                raise ValueError(
                    f"{name} has {len(values)} entries but depth is {self.depth}"
                )
        for name in ("he_section_names", "referenceable"):
            values = getattr(self, name)
            if values and len(values) != self.depth:
                raise ValueError(
                    f"{name} has {len(values)} entries but depth is {self.depth}"
                )
        return self

    def is_referenceable(self, level: int) -> bool:
        if not self.referenceable:
            return True
        return self.referenceable[level]

    def heading_name(self, level: int) -> str:
        """Section name used in headings, preferring the Hebrew name."""
        if self.he_section_names and self.he_section_names[level].strip():
            return self.he_section_names[level].strip()
        return self.section_names[level].strip()


SchemaNode = Annotated[Union[ContainerNode, LeafNode], Field(discriminator="kind")]

ContainerNode.model_rebuild()
