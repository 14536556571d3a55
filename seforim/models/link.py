"""Link models between lines of different books."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ConnectionType(str, Enum):
    """Closed set of link types."""

    COMMENTARY = "COMMENTARY"
    TARGUM = "TARGUM"
    REFERENCE = "REFERENCE"
    SOURCE = "SOURCE"
    OTHER = "OTHER"

    @classmethod
    def from_label(cls, label: str | None) -> "ConnectionType | None":
        """Normalize a free-text label; blank labels return None."""
        if label is None or not label.strip():
            return None
        return _CONNECTION_LABELS.get(label.strip().lower(), cls.OTHER)

    @property
    def is_directional(self) -> bool:
        """Commentary and targum links are oriented from the base text."""
        return self in (ConnectionType.COMMENTARY, ConnectionType.TARGUM)


_CONNECTION_LABELS: dict[str, ConnectionType] = {
    "commentary": ConnectionType.COMMENTARY,
    "targum": ConnectionType.TARGUM,
    "reference": ConnectionType.REFERENCE,
    "source": ConnectionType.SOURCE,
}


class RawLink(BaseModel):
    """A citation pair as read from a link file."""

    model_config = ConfigDict(frozen=True)

    citation1: str
    citation2: str
    connection_type: str = ""


class Link(BaseModel):
    """A resolved, directed link between two lines."""

    model_config = ConfigDict(frozen=True)

    source_book_id: int
    source_line_id: int
    target_book_id: int
    target_line_id: int
    connection_type: ConnectionType
