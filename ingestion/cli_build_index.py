from __future__ import annotations

import argparse
from pathlib import Path

from common.config import yaml_config
from common.errors import ResearchMindError
from common.logger import get_logger
from ingestion.ingest_pipeline import IngestionPipeline, ProgressEvent
from models.embedder import Embedder
from sources.registry import ADAPTERS
from vectorstore.factory import open_vector_store

log = get_logger(__name__)


def _print_event(event: ProgressEvent) -> None:
    print(f"[{event.progress:3d}%] {event.message}")


def main():
    parser = argparse.ArgumentParser(
        description="Search a paper catalog and index the results, or index an uploaded PDF."
    )
    parser.add_argument("query", type=str, nargs="?", help="Search query")
    parser.add_argument(
        "--source",
        choices=sorted(ADAPTERS),
        default=yaml_config.sources.default_source,
    )
    parser.add_argument("--max_results", type=int, default=5)
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Process papers concurrently (no per-stage progress)",
    )
    parser.add_argument("--workers", type=int, default=4)
    parser.add_argument("--upload", type=str, default=None, help="Path of a PDF to index")
    parser.add_argument("--title", type=str, default=None)
    parser.add_argument("--authors", type=str, default=None)
    parser.add_argument("--backend", choices=["json", "memory"], default=None)
    parser.add_argument("--store", type=str, default=None, help="Path of the store file")
    args = parser.parse_args()

    if not args.query and not args.upload:
        parser.error("a query or --upload PATH is required")

    with open_vector_store(args.backend, args.store) as store:
        pipeline = IngestionPipeline(store=store, embedder=Embedder())
        try:
            if args.upload:
                path = Path(args.upload)
                if not path.exists():
                    log.error("File does not exist: %s", path)
                    raise SystemExit(1)
                result = pipeline.ingest_upload(
                    path.read_bytes(),
                    title=args.title,
                    authors=args.authors,
                    filename=path.name,
                )
                print(f"Indexed '{result.paper.title}' -> {result.chunks} chunks")
                stats = result.stats
            elif args.parallel:
                report = pipeline.ingest_parallel(
                    args.query,
                    args.max_results,
                    args.source,
                    max_workers=args.workers,
                    show_progress=True,
                )
                print(report.message)
                stats = report.stats
            else:
                report = pipeline.ingest(
                    args.query, args.max_results, args.source, on_event=_print_event
                )
                stats = report.stats
        except ResearchMindError as e:
            log.error("%s", e)
            raise SystemExit(1)

    print(f"Store now holds {stats['totalPapers']} papers / {stats['totalChunks']} chunks")


if __name__ == "__main__":
    main()
