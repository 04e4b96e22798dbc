#!/usr/bin/env python
"""Ingest documents and optionally query them from the command line.

Usage:
    python scripts/ingest.py report.pdf notes.txt
    python scripts/ingest.py q3.pdf --category financial --query "revenue growth"
    python scripts/ingest.py docs/*.md --query "hiring plan" --top-k 3 --verbose
"""
import argparse
import asyncio
import mimetypes
import sys
from datetime import datetime
from pathlib import Path
from typing import List

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from docintel import config
from docintel.log import configure_logging
from docintel.rag.models import IngestMetadata, ProcessedDocument
from docintel.rag.pipeline import DocumentProcessor
from docintel.rag.store import InMemoryDocumentStore

logger = structlog.get_logger()

mimetypes.add_type("text/markdown", ".md")


class ProgressReporter:
    """Simple progress reporter for CLI."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.start_time = None

    def start(self, message: str):
        self.start_time = datetime.now()
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print(f"{'=' * 60}\n")

    def update(self, current: int, total: int, file_path: Path):
        percentage = (current / total) * 100 if total > 0 else 0
        bar_length = 40
        filled = int(bar_length * current / total) if total > 0 else 0
        bar = "█" * filled + "░" * (bar_length - filled)

        print(
            f"\r  [{bar}] {percentage:5.1f}% ({current}/{total}) {file_path.name[:30]:<30}",
            end="",
            flush=True,
        )

        if self.verbose:
            print()

    def finish(self, stats: dict):
        print("\n")
        elapsed_seconds = (datetime.now() - self.start_time).total_seconds()

        print(f"{'=' * 60}")
        print("  Ingestion Complete!")
        print(f"{'=' * 60}\n")
        print(f"  📁 Files processed:      {stats['files_processed']}")
        print(f"  ❌ Files failed:         {stats['files_failed']}")
        print(f"  📝 Chunks created:       {stats['chunks_created']}")
        print(f"  🎲 Fallback vectors:     {stats['fallback_chunks']}")
        print(f"  ⏱️  Time elapsed:         {elapsed_seconds:.1f}s")
        print(f"\n{'=' * 60}\n")

        if stats["files_failed"] > 0:
            print(f"⚠️  Warning: {stats['files_failed']} file(s) failed to ingest.")
            print("   Check logs for details.\n")

        if stats["fallback_chunks"] > 0:
            print("⚠️  Some chunks carry fallback vectors; search results for them are not meaningful.\n")


def guess_content_type(path: Path) -> str:
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or "text/plain"


async def ingest_files(
    processor: DocumentProcessor,
    store: InMemoryDocumentStore,
    paths: List[Path],
    metadata: IngestMetadata,
    progress: ProgressReporter,
) -> dict:
    """Process each file into the store, counting failures instead of stopping."""
    stats = {"files_processed": 0, "files_failed": 0, "chunks_created": 0, "fallback_chunks": 0}

    for idx, path in enumerate(paths, 1):
        progress.update(idx, len(paths), path)

        try:
            data = path.read_bytes()
            document: ProcessedDocument = await processor.process_document(
                data, path.name, guess_content_type(path), metadata
            )
            store.add(document)
        except Exception as e:
            logger.error("file_ingestion_failed", path=str(path), error=str(e), error_type=type(e).__name__)
            stats["files_failed"] += 1
            continue

        stats["files_processed"] += 1
        stats["chunks_created"] += len(document.chunks)
        stats["fallback_chunks"] += document.fallback_chunk_count

    return stats


async def run_query(processor: DocumentProcessor, store: InMemoryDocumentStore, args) -> None:
    documents = store.documents()

    response = await processor.search_documents_with_status(
        args.query,
        documents,
        top_k=args.top_k,
        min_similarity=args.min_similarity,
    )

    print(f"🔍 Query: {args.query}\n")

    if response.degraded:
        print("⚠️  Results are degraded (fallback embeddings involved).\n")

    if response.is_empty:
        print("No relevant documents found\n")
        return

    for rank, result in enumerate(response.results, 1):
        preview = result.chunk.text[:120].replace("\n", " ")
        print(
            f"  {rank}. {result.document.file_name} "
            f"[chunk {result.chunk.chunk_index}, {result.chunk.metadata.section}] "
            f"similarity={result.similarity:.3f}"
        )
        print(f"     {preview}{'...' if len(result.chunk.text) > 120 else ''}")

    context = await processor.get_relevant_context(
        args.query,
        documents,
        max_context_length=args.max_length,
        top_k=args.top_k,
        min_similarity=args.min_similarity,
    )

    print(f"\n📄 Context ({len(context)} chars):\n")
    print(context)
    print()


async def main():
    """Main entry point for the ingest script."""
    parser = argparse.ArgumentParser(
        description="Ingest documents into an in-memory collection and query them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/ingest.py report.pdf notes.txt
  python scripts/ingest.py q3.pdf --category financial --query "revenue growth"
        """,
    )

    parser.add_argument("files", nargs="+", type=Path, help="Files to ingest")
    parser.add_argument(
        "--category",
        default="general",
        choices=config.DOCUMENT_CATEGORIES,
        help="Category assigned to every file (default: general)",
    )
    parser.add_argument("--query", default=None, help="Query to run after ingestion")
    parser.add_argument(
        "--top-k",
        type=int,
        default=config.DEFAULT_TOP_K,
        help=f"Maximum results (default: {config.DEFAULT_TOP_K})",
    )
    parser.add_argument(
        "--min-similarity",
        type=float,
        default=config.DEFAULT_MIN_SIMILARITY,
        help=f"Similarity threshold (default: {config.DEFAULT_MIN_SIMILARITY})",
    )
    parser.add_argument(
        "--max-length",
        type=int,
        default=config.MAX_CONTEXT_LENGTH,
        help=f"Maximum context length in characters (default: {config.MAX_CONTEXT_LENGTH})",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show verbose output")

    args = parser.parse_args()

    configure_logging(level="DEBUG" if args.verbose else "WARNING", json=False)

    progress = ProgressReporter(verbose=args.verbose)

    try:
        print("\n📋 Configuration:")
        print(f"   Embedding provider: {config.EMBEDDING_PROVIDER}")
        print(f"   Embedding model:    {config.EMBEDDING_MODEL}")
        print(f"   Chunk size:         {config.CHUNK_SIZE} words")
        print(f"   Chunk overlap:      {config.CHUNK_OVERLAP} words")

        processor = DocumentProcessor()
        store = InMemoryDocumentStore()

        if not processor.embedding_available:
            print("\n⚠️  No embedding provider available: every vector will be a fallback vector.")

        progress.start(f"Ingesting {len(args.files)} file(s)")

        stats = await ingest_files(
            processor,
            store,
            args.files,
            IngestMetadata(category=args.category),
            progress,
        )

        progress.finish(stats)

        if args.query:
            await run_query(processor, store, args)

        if stats["files_failed"] > 0:
            sys.exit(1)

    except KeyboardInterrupt:
        print("\n\n⚠️  Ingestion cancelled by user.\n")
        sys.exit(1)

    except ValueError as e:
        print(f"\n❌ Error: {e}\n")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
