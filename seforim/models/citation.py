"""Parsed citation model."""

from pydantic import BaseModel, ConfigDict, Field


class Citation(BaseModel):
    """A citation string split into book title, optional section and numbers.

    ``raw`` keeps the original text so resolvers can build lookup keys from
    it. ``is_daf`` is set when the first reference came from a page+side
    token such as "45b".
    """

    model_config = ConfigDict(frozen=True)

    book_title: str
    section: str | None = None
    references: list[int] = Field(default_factory=list)
    raw: str = ""
    is_daf: bool = False

    @property
    def has_references(self) -> bool:
        return bool(self.references)
