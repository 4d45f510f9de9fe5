"""Command line interface for the lead qualifier."""

import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger

from config import Settings
from graph.errors import LeadQualifierError
from graph.state import NoRelevantLead


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lead-qualifier",
        description="Find, score and draft outreach for stored sales leads",
    )
    parser.add_argument("--verbose", action="store_true", help="Show debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Seed the vector store from a markdown file")
    ingest.add_argument("--path", default=None, help="Markdown file of leads (default: LEADS_PATH)")

    query = sub.add_parser("query", help="Qualify the best lead for a fuzzy description")
    query.add_argument("text", nargs="?", default=None, help="Lead description (prompted when omitted)")

    sub.add_parser("delete", help="Delete all vectors from the store namespace")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    sub.add_parser("agent", help="Chat with the multi-agent router")

    return parser.parse_args(argv)


async def run_ingest(settings: Settings, path: Optional[str]) -> int:
    from factory import build_store
    from tools.ingest import load_markdown_to_store

    path = path or settings.leads_path
    stored = await load_markdown_to_store(path, build_store(settings))
    print(f"Vector store seeded with {stored} chunks from {path}.")
    return 0


async def run_query(settings: Settings, text: Optional[str]) -> int:
    from factory import build_pipeline

    if text is None:
        text = input("Enter a fuzzy lead description: ")
    text = text.strip()
    if not text:
        print("A lead description is required.", file=sys.stderr)
        return 2

    pipeline = build_pipeline(settings)
    result = await pipeline.run(text, timeout=settings.request_timeout)

    if isinstance(result, NoRelevantLead):
        print("No highly relevant leads found.")
        return 0

    lead = result.selected_lead
    print(f"Top Lead (score: {lead.relevance_score:.2f}):\n{lead.text}\n")
    print(f"Lead Score & Justification: {result.score_justification}")
    print(f"\nSuggested Prospecting Email:\n{result.draft_email}")
    return 0


async def run_delete(settings: Settings) -> int:
    from factory import build_store

    await build_store(settings).remove_collection()
    print("Vector store namespace deleted successfully.")
    return 0


async def run_agent(settings: Settings) -> int:
    from factory import build_router

    router = build_router(settings)
    router.add_listener(lambda e: print(f"[{e.from_controller} -> {e.to_specialist}]", file=sys.stderr))
    print("Describe a lead (empty line to quit).")

    while True:
        try:
            line = input("> ").strip()
        except EOFError:
            break
        if not line:
            break
        try:
            async for chunk in router.stream(line, timeout=settings.request_timeout):
                print(chunk, end="", flush=True)
        except LeadQualifierError as e:
            print(f"Error: {e}", file=sys.stderr)
            continue
        print()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")

    settings = Settings.from_env()

    if args.command == "serve":
        from app import serve
        serve(host=args.host, port=args.port, reload=args.reload, settings=settings)
        return 0

    commands = {
        "ingest": lambda: run_ingest(settings, args.path),
        "query": lambda: run_query(settings, args.text),
        "delete": lambda: run_delete(settings),
        "agent": lambda: run_agent(settings),
    }

    try:
        return asyncio.run(commands[args.command]())
    except (LeadQualifierError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
