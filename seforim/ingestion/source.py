"""Corpus reader: loads documents and link files from an export directory."""

import csv
import io
import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import chardet

from seforim.citations.normalize import normalize_title_key
from seforim.config import CorpusConfig
from seforim.errors import CorpusNotFoundError
from seforim.models.alt_structure import AltNode, AltStructure
from seforim.models.book import SourceDocument
from seforim.models.link import ConnectionType, RawLink
from seforim.models.schema import AddressType, ContainerNode, LeafNode, SchemaNode

logger = logging.getLogger(__name__)

TEXT_FILENAME = "merged.json"
EXPORT_SUBDIR = "database_export"
HEBREW_ENCODING = "windows-1255"

CITATION_COLUMNS = ("Citation 1", "Citation 2")
# The export historically misspells "Connection"
CONNECTION_COLUMNS = ("Conection Type", "Connection Type")


def read_text_file(file_path: Path) -> str:
    """Read a text file with encoding detection.

    Tries UTF-8 first, then chardet, then Windows-1255 (common Hebrew
    encoding). A low-confidence chardet guess is tried after Windows-1255.

    Args:
        file_path: Path to the file.

    Returns:
        The decoded content.
    """
    try:
        return file_path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError:
        pass

    raw_bytes = file_path.read_bytes()
    detected = chardet.detect(raw_bytes)
    encoding = detected.get("encoding") or "utf-8"
    confidence = detected.get("confidence", 0)

    # A low-confidence guess must not shadow the Hebrew code page
    encodings = [encoding, HEBREW_ENCODING]
    if confidence < 0.7:
        logger.warning(
            "Low confidence encoding detection for %s: %s (%.0f%%)",
            file_path,
            encoding,
            confidence * 100,
        )
        encodings.reverse()

    for candidate in encodings:
        try:
            return raw_bytes.decode(candidate)
        except (UnicodeDecodeError, LookupError):
            continue

    logger.error("Failed to decode file: %s", file_path)
    return raw_bytes.decode("utf-8", errors="replace")


def _strings(values: Any) -> list[str]:
    if not isinstance(values, list):
        return []
    return [v for v in values if isinstance(v, str)]


def _ints(values: Any) -> list[int]:
    if not isinstance(values, list):
        return []
    return [v for v in values if isinstance(v, int) and not isinstance(v, bool)]


def _fit(values: list, depth: int, filler: Any, what: str, title: str) -> list:
    """Pad or truncate a per-level list to ``depth`` entries."""
    if len(values) != depth:
        logger.warning(
            "Schema '%s': %s has %d entries for depth %d; adjusting",
            title,
            what,
            len(values),
            depth,
        )
    return (values + [filler] * depth)[:depth]


def parse_schema_node(obj: dict[str, Any]) -> SchemaNode:
    """Convert a schema JSON object into a ContainerNode or LeafNode."""
    title = obj.get("title") or ""
    he_title = obj.get("heTitle") or ""
    key = obj.get("key") or title

    if "nodes" in obj:
        children = [parse_schema_node(child) for child in obj.get("nodes") or [] if isinstance(child, dict)]
        return ContainerNode(key=key, title=title, he_title=he_title, children=children)

    section_names = _strings(obj.get("sectionNames"))
    he_section_names = _strings(obj.get("heSectionNames"))
    depth = obj.get("depth")
    if not isinstance(depth, int) or depth < 0:
        depth = len(section_names) or len(he_section_names)

    labels = _strings(obj.get("addressTypes")) or section_names
    referenceable = [v for v in obj.get("referenceableSections") or [] if isinstance(v, bool)]

    return LeafNode(
        key=key,
        title=title,
        he_title=he_title,
        depth=depth,
        section_names=_fit(section_names, depth, "", "sectionNames", title),
        he_section_names=_fit(he_section_names, depth, "", "heSectionNames", title) if he_section_names else [],
        address_types=[
            AddressType.from_label(label)
            for label in _fit(labels, depth, "", "addressTypes", title)
        ],
        referenceable=_fit(referenceable, depth, True, "referenceableSections", title) if referenceable else [],
    )


def parse_alt_node(obj: dict[str, Any]) -> AltNode:
    child_label = (_strings(obj.get("heSectionNames")) or _strings(obj.get("sectionNames")) or [None])[0]
    offset = obj.get("offset")
    return AltNode(
        title=obj.get("title"),
        he_title=obj.get("heTitle"),
        whole_ref=obj.get("wholeRef"),
        refs=[r for r in _strings(obj.get("refs")) if r.strip()],
        address_types=_strings(obj.get("addressTypes")),
        child_label=child_label,
        addresses=_ints(obj.get("addresses")),
        skipped_addresses=frozenset(_ints(obj.get("skipped_addresses"))),
        starting_address=str(obj["startingAddress"]) if obj.get("startingAddress") is not None else None,
        offset=offset if isinstance(offset, int) and not isinstance(offset, bool) else None,
        children=[parse_alt_node(c) for c in obj.get("nodes") or [] if isinstance(c, dict)],
    )


def parse_alt_structures(schema_json: dict[str, Any]) -> list[AltStructure]:
    """Read the ``alts`` (or ``alt_structs``) section of a schema file."""
    alts = schema_json.get("alts") or schema_json.get("alt_structs") or {}
    if not isinstance(alts, dict):
        return []
    structures = []
    for key, value in alts.items():
        if not isinstance(value, dict) or not isinstance(value.get("nodes"), list):
            continue
        structures.append(
            AltStructure(
                key=key,
                title=value.get("title"),
                he_title=value.get("heTitle"),
                nodes=[parse_alt_node(n) for n in value["nodes"] if isinstance(n, dict)],
            )
        )
    return structures


def _authors(schema_json: dict[str, Any]) -> list[str]:
    authors = []
    for author in schema_json.get("authors") or []:
        if isinstance(author, dict):
            name = author.get("he") or author.get("en")
        else:
            name = author
        if isinstance(name, str) and name.strip():
            authors.append(name.strip())
    return authors


class CorpusReader:
    """Reads a corpus export laid out as json/, schemas/ and links/.

    Args:
        root: Corpus root directory. A ``database_export`` sub-directory,
            when present, is used instead.
        config: Directory names inside the root.
    """

    def __init__(self, root: str | Path, config: CorpusConfig | None = None) -> None:
        self._config = config or CorpusConfig()
        root = Path(root)
        if (root / EXPORT_SUBDIR).is_dir():
            root = root / EXPORT_SUBDIR
        self.root = root
        self.json_dir = root / self._config.json_dir
        self.schemas_dir = root / self._config.schemas_dir
        self.links_dir = root / self._config.links_dir
        self._schema_lookup: dict[str, Path] | None = None

    def check(self) -> None:
        """Verify the corpus layout.

        Raises:
            CorpusNotFoundError: If the root, its text directory or its
                schema directory is missing.
        """
        for path in (self.root, self.json_dir, self.schemas_dir):
            if not path.is_dir():
                raise CorpusNotFoundError(f"Corpus directory not found: {path}")

    @property
    def schema_lookup(self) -> dict[str, Path]:
        """Normalized English/Hebrew title -> schema file."""
        if self._schema_lookup is None:
            lookup: dict[str, Path] = {}
            for schema_path in sorted(self.schemas_dir.glob("*.json")):
                try:
                    schema = json.loads(read_text_file(schema_path)).get("schema") or {}
                    titles = (schema.get("title"), schema.get("heTitle"))
                except (json.JSONDecodeError, AttributeError):
                    logger.warning("Unreadable schema file: %s", schema_path)
                    continue
                for title in titles:
                    key = normalize_title_key(title)
                    if key:
                        lookup.setdefault(key, schema_path)
            self._schema_lookup = lookup
            logger.info("Indexed %d schema titles", len(lookup))
        return self._schema_lookup

    def text_files(self) -> list[Path]:
        return sorted(p for p in self.json_dir.rglob("*") if p.is_file() and p.name.lower() == TEXT_FILENAME)

    def iter_documents(self) -> Iterator[SourceDocument]:
        """Yield every readable document in path order.

        Files that cannot be read or have no matching schema are logged and
        skipped.
        """
        self.check()
        files = self.text_files()
        logger.info("Found %d %s files", len(files), TEXT_FILENAME)
        for text_path in files:
            try:
                document = self.read_document(text_path)
            except (OSError, ValueError):
                logger.exception("Failed to read document %s", text_path)
                continue
            if document is not None:
                yield document

    def read_document(self, text_path: Path) -> SourceDocument | None:
        """Read one text file together with its schema.

        Returns:
            The document, or None when no schema matches or the file has no
            text.

        Raises:
            ValueError: If the JSON or the schema is invalid.
        """
        text_json = json.loads(read_text_file(text_path))
        file_title = text_json.get("title")
        file_he_title = text_json.get("heTitle")
        folder = text_path.parent.name

        schema_path = self._find_schema(file_title, file_he_title, folder)
        if schema_path is None:
            logger.warning("No schema for %s", text_path)
            return None
        if "text" not in text_json:
            logger.warning("No text in %s", text_path)
            return None

        schema_json = json.loads(read_text_file(schema_path))
        schema_obj = schema_json.get("schema") or {}
        title_en = schema_obj.get("title") or file_title or folder
        title_he = schema_obj.get("heTitle") or file_he_title or title_en

        categories = (
            _strings(schema_json.get("heCategories"))
            or _strings(schema_obj.get("heCategories"))
            or _strings(text_json.get("categories"))
        )
        dependence = ConnectionType.from_label(schema_json.get("dependence"))
        if dependence is not None and not dependence.is_directional:
            dependence = None

        return SourceDocument(
            title_en=title_en,
            title_he=title_he,
            categories=categories,
            schema_node=parse_schema_node({**schema_obj, "title": title_en, "heTitle": title_he}),
            content=text_json["text"],
            alt_structures=parse_alt_structures(schema_json),
            authors=_authors(schema_json),
            dependence=dependence,
            is_base_book=dependence is None and not schema_json.get("base_text_titles"),
        )

    def _find_schema(self, title: str | None, he_title: str | None, folder: str) -> Path | None:
        for candidate in (title, he_title, folder.replace("_", " "), folder):
            key = normalize_title_key(candidate)
            if key and key in self.schema_lookup:
                return self.schema_lookup[key]
            if candidate:
                path = self.schemas_dir / f"{candidate.replace(' ', '_')}.json"
                if path.exists():
                    return path
        return None

    def link_files(self) -> list[Path]:
        if not self.links_dir.is_dir():
            logger.warning("No links directory at %s", self.links_dir)
            return []
        return sorted(self.links_dir.glob("*.csv"))

    def read_links(self, csv_path: Path) -> list[RawLink]:
        """Read one link CSV file.

        A file without the citation columns is skipped with a warning; rows
        with a blank citation are ignored.
        """
        reader = csv.reader(io.StringIO(read_text_file(csv_path)))
        header = next(reader, None)
        if header is None:
            return []
        columns = [h.strip().strip("\"'") for h in header]
        try:
            idx1, idx2 = (columns.index(name) for name in CITATION_COLUMNS)
        except ValueError:
            logger.warning("Skipping link file without citation columns: %s", csv_path)
            return []
        idx_type = next((columns.index(n) for n in CONNECTION_COLUMNS if n in columns), None)

        links = []
        for row in reader:
            c1 = _cell(row, idx1)
            c2 = _cell(row, idx2)
            if not c1 or not c2:
                continue
            links.append(
                RawLink(
                    citation1=c1,
                    citation2=c2,
                    connection_type=_cell(row, idx_type) if idx_type is not None else "",
                )
            )
        logger.debug("Read %d links from %s", len(links), csv_path.name)
        return links


def _cell(row: list[str], idx: int) -> str:
    if idx >= len(row):
        return ""
    return " ".join(row[idx].strip().strip("\"'").split())
