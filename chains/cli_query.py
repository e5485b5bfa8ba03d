from __future__ import annotations

import argparse

from common.config import yaml_config
from common.errors import ResearchMindError
from common.logger import get_logger
from ingestion.document_models import NO_PDF
from vectorstore.factory import open_vector_store

log = get_logger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Ask a question against the ingested papers, or inspect/clear the store."
    )
    parser.add_argument("question", type=str, nargs="?", help="Your question")
    parser.add_argument("--k", type=int, default=yaml_config.retrieval.k)
    parser.add_argument("--backend", choices=["json", "memory"], default=None)
    parser.add_argument("--store", type=str, default=None, help="Path of the store file")
    parser.add_argument("--stats", action="store_true", help="Print store statistics")
    parser.add_argument("--clear", action="store_true", help="Delete every stored chunk")
    args = parser.parse_args()

    if not (args.question or args.stats or args.clear):
        parser.error("a question, --stats or --clear is required")

    with open_vector_store(args.backend, args.store) as store:
        if args.clear:
            store.clear()
            print("Database cleared")
        if args.stats:
            s = store.stats()
            print(f"{s['totalPapers']} papers, {s['totalChunks']} chunks")
        if not args.question:
            return

        from chains.research_assistant import ResearchAssistant
        from models.embedder import Embedder

        assistant = ResearchAssistant(store=store, embedder=Embedder())
        try:
            result = assistant.ask(args.question, top_k=args.k)
        except ResearchMindError as e:
            log.error("%s", e)
            raise SystemExit(1)

    print("\n=== ANSWER ===\n")
    print(result.answer)

    if result.citations:
        print("\n=== SOURCES ===\n")
        for c in result.citations:
            print(f"[Source {c.number}] {c.title} - {c.authors} ({c.published})")
            if c.pdfUrl and c.pdfUrl != NO_PDF:
                print(f"  {c.pdfUrl}")


if __name__ == "__main__":
    main()
