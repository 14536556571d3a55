"""Import orchestration: flatten, index, then build alt TOCs and links."""

import logging
import threading
from collections.abc import Iterable, Iterator
from concurrent.futures import Executor, Future, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field

from seforim.citations.index import CanonicalRefIndex
from seforim.citations.resolver import CitationResolver
from seforim.config import AppConfig
from seforim.ingestion.flattener import HierarchicalFlattener
from seforim.ingestion.source import CorpusReader
from seforim.ingestion.toc import build_toc
from seforim.links.resolver import LinkResolver, LinkStats
from seforim.models.alt_structure import AltTocTree
from seforim.models.book import BookMeta, BookRecord, FlattenedBook, RefEntry, SourceDocument
from seforim.models.link import Link, RawLink
from seforim.pipeline.arena import IdArena
from seforim.storage.sink import PersistenceSink
from seforim.structure.alt_toc import AltStructureBuilder

logger = logging.getLogger(__name__)


class ImportReport(BaseModel):
    """Aggregate counts of one import run."""

    documents_processed: int = 0
    documents_failed: int = 0
    lines: int = 0
    toc_entries: int = 0
    alt_toc_entries: int = 0
    structural_mismatches: int = 0
    links_created: int = 0
    links_dropped: dict[str, int] = Field(default_factory=dict)
    link_files_failed: int = 0
    cancelled: bool = False


def flatten_document(document: SourceDocument, book_id: int) -> FlattenedBook:
    """Flatten one document (runs inside a worker)."""
    return HierarchicalFlattener().flatten(
        document.schema_node,
        document.content,
        title_en=document.title_en,
        title_he=document.title_he,
        book_id=book_id,
    )


@dataclass
class _PublishedBook:
    book_id: int
    document: SourceDocument
    first_line_id: int
    total_lines: int


class ImportOrchestrator:
    """Runs a full import into a persistence sink.

    Stages:
    1. Flatten every document in a worker pool. Results are consumed in
       document order and published whole, one document at a time.
    2. Build the canonical reference index once from all reference entries.
    3. Build alternate TOCs and resolve link files in a thread pool that
       shares the now read-only index.

    A document whose flattening fails is logged and counted; the run goes
    on. Setting ``cancel_event`` stops the run at the next document or link
    file boundary.

    Args:
        config: Application configuration.
        sink: Receives books, lines, TOCs and links.
    """

    def __init__(self, config: AppConfig, sink: PersistenceSink) -> None:
        self._config = config
        self._sink = sink
        self.arena = IdArena()
        self.index: CanonicalRefIndex | None = None

    def run_corpus(
        self, root: str | Path | None = None, cancel_event: threading.Event | None = None
    ) -> ImportReport:
        """Import a corpus export from disk.

        Raises:
            CorpusNotFoundError: If the corpus root or its required
                directories are missing.
        """
        reader = CorpusReader(root or self._config.corpus.root, self._config.corpus)
        reader.check()
        link_files = [self._read_link_file(reader, path) for path in reader.link_files()]
        return self.run(reader.iter_documents(), link_files, cancel_event)

    @staticmethod
    def _read_link_file(reader: CorpusReader, path: Path) -> Iterator[RawLink]:
        # Read lazily, inside the worker that resolves the file
        yield from reader.read_links(path)

    def run(
        self,
        documents: Iterable[SourceDocument],
        link_files: Iterable[Iterable[RawLink]],
        cancel_event: threading.Event | None = None,
    ) -> ImportReport:
        """Import documents and link files.

        Args:
            documents: Documents in the order their ids should be minted.
            link_files: One iterable of raw links per link file.
            cancel_event: Optional cooperative cancellation flag.

        Returns:
            The run's report.
        """
        cancel = cancel_event or threading.Event()
        report = ImportReport()

        books, ref_entries = self._flatten_all(documents, cancel, report)
        logger.info(
            "Flattened %d documents (%d failed), %d lines",
            report.documents_processed,
            report.documents_failed,
            report.lines,
        )

        self.index = CanonicalRefIndex.build(
            ref_entries,
            {book.book_id: book.document.aliases for book in books},
            {book.book_id: book.first_line_id for book in books},
        )
        resolver = CitationResolver(self.index)

        if not report.cancelled:
            self._build_alt_tocs(books, resolver, cancel, report)
        if not report.cancelled:
            self._resolve_links(books, link_files, resolver, cancel, report)

        logger.info(
            "Import finished: %d links created, %d dropped%s",
            report.links_created,
            sum(report.links_dropped.values()),
            " (cancelled)" if report.cancelled else "",
        )
        return report

    def _flatten_pool(self) -> Executor:
        workers = self._config.importer.resolved_workers()
        if self._config.importer.executor == "process":
            return ProcessPoolExecutor(max_workers=workers)
        return ThreadPoolExecutor(max_workers=workers)

    def _flatten_all(
        self,
        documents: Iterable[SourceDocument],
        cancel: threading.Event,
        report: ImportReport,
    ) -> tuple[list[_PublishedBook], list[RefEntry]]:
        books: list[_PublishedBook] = []
        ref_entries: list[RefEntry] = []

        with self._flatten_pool() as pool:
            submitted: list[tuple[SourceDocument, int, Future]] = []
            for document in documents:
                book_id = self.arena.book()
                submitted.append((document, book_id, pool.submit(flatten_document, document, book_id)))

            for document, book_id, future in submitted:
                if cancel.is_set():
                    report.cancelled = True
                    for _, _, pending in submitted:
                        pending.cancel()
                    logger.warning("Import cancelled; %d documents published", len(books))
                    break
                try:
                    flat = future.result()
                except Exception:
                    report.documents_failed += 1
                    logger.exception("Failed to flatten '%s'", document.title_en)
                    continue

                books.append(self._publish_book(document, flat, report))
                ref_entries.extend(flat.ref_entries)

        return books, ref_entries

    def _publish_book(
        self, document: SourceDocument, flat: FlattenedBook, report: ImportReport
    ) -> _PublishedBook:
        book_id = flat.book_id
        total = len(flat.lines)
        first_line_id = self.arena.reserve_lines(total)

        self._sink.add_book(
            BookRecord(
                id=book_id,
                title=flat.title_he,
                title_en=flat.title_en,
                categories=document.categories,
                authors=document.authors,
                is_base_book=_is_base(document),
                total_lines=total,
            )
        )

        batch_size = self._config.importer.line_batch_size
        for start in range(0, total, batch_size):
            self._sink.add_lines(
                [
                    line.model_copy(update={"id": first_line_id + line.line_index})
                    for line in flat.lines[start:start + batch_size]
                ]
            )

        toc = build_toc(
            book_id,
            flat.headings,
            first_line_id=first_line_id,
            total_lines=total,
            first_entry_id=self.arena.reserve_toc_entries(len(flat.headings)),
        )
        self._sink.add_toc(toc)

        report.documents_processed += 1
        report.lines += total
        report.toc_entries += len(toc.entries)
        report.structural_mismatches += flat.structural_mismatches
        logger.debug("Published '%s' as book %d (%d lines)", flat.title_en, book_id, total)
        return _PublishedBook(book_id, document, first_line_id, total)

    def _build_alt_tocs(
        self,
        books: list[_PublishedBook],
        resolver: CitationResolver,
        cancel: threading.Event,
        report: ImportReport,
    ) -> None:
        builder = AltStructureBuilder(resolver, self._config.resolution)
        workers = self._config.importer.resolved_workers()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            jobs = [
                (
                    book,
                    [
                        pool.submit(
                            builder.build,
                            structure,
                            book.book_id,
                            book.document.categories,
                            book.first_line_id,
                            book.total_lines,
                        )
                        for structure in book.document.alt_structures
                    ],
                )
                for book in books
                if book.document.alt_structures
            ]

            for book, futures in jobs:
                if cancel.is_set():
                    report.cancelled = True
                    for _, pending in jobs:
                        for future in pending:
                            future.cancel()
                    return
                generated = False
                for future in futures:
                    try:
                        tree = future.result()
                    except Exception:
                        logger.exception("Failed to build alt structure for book %d", book.book_id)
                        continue
                    if tree.is_empty:
                        continue
                    self._publish_alt_toc(tree, report)
                    generated = True
                if generated:
                    self._sink.set_has_alt_structures(book.book_id, True)

    def _publish_alt_toc(self, tree: AltTocTree, report: ImportReport) -> None:
        structure_id = self.arena.structure()
        first_entry_id = self.arena.reserve_alt_entries(len(tree.entries))
        self._sink.add_alt_toc(tree.rebased(structure_id, first_entry_id - 1))
        report.alt_toc_entries += len(tree.entries)

    def _resolve_links(
        self,
        books: list[_PublishedBook],
        link_files: Iterable[Iterable[RawLink]],
        resolver: CitationResolver,
        cancel: threading.Event,
        report: ImportReport,
    ) -> None:
        book_meta = {
            book.book_id: BookMeta(
                is_base_book=_is_base(book.document),
                category_level=max(len(book.document.categories) - 1, 0),
                dependence=book.document.dependence,
            )
            for book in books
        }

        def resolve_file(raw_links: Iterable[RawLink]) -> tuple[list[Link], LinkStats]:
            link_resolver = LinkResolver(resolver, book_meta)
            if cancel.is_set():
                return [], link_resolver.stats
            return list(link_resolver.resolve_all(raw_links)), link_resolver.stats

        stats = LinkStats()
        batch_size = self._config.importer.link_batch_size
        workers = self._config.importer.resolved_workers()

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(resolve_file, raw_links) for raw_links in link_files]
            for future in futures:
                if cancel.is_set():
                    report.cancelled = True
                    for pending in futures:
                        pending.cancel()
                    break
                try:
                    links, file_stats = future.result()
                except Exception:
                    report.link_files_failed += 1
                    logger.exception("Failed to process a link file")
                    continue
                for start in range(0, len(links), batch_size):
                    self._sink.add_links(links[start:start + batch_size])
                stats.merge(file_stats)

        report.links_created = stats.created
        report.links_dropped = {reason.value: count for reason, count in stats.dropped.items()}
        logger.info(
            "Resolved %d link files: %d links created, %d pairs dropped",
            len(futures),
            stats.created,
            stats.total_dropped,
        )


def _is_base(document: SourceDocument) -> bool:
    if document.is_base_book is not None:
        return document.is_base_book
    return document.dependence is None
