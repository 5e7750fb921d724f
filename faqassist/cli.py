"""Lightweight CLI for the faq-assist API and the local knowledge base."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

import httpx

from app.retrieval import text_matcher
from app.shared.faq_data import load_knowledge_base


def _print_session(body: dict) -> None:
    if body.get("error"):
        print(f"Error: {body['error']}")
    sub_questions = body.get("sub_questions") or []
    if not sub_questions:
        print("No sub-questions found.")
        return
    print(f"Question: {body.get('question')}")
    for sub in sub_questions:
        print(f"\n[{sub['index'] + 1}] {sub['text']}")


def _command_ask(args: argparse.Namespace) -> int:
    api_base = args.api.rstrip("/")

    try:
        with httpx.Client(timeout=args.timeout) as client:
            response = client.post(f"{api_base}/api/v1/assistant/sessions")
            response.raise_for_status()
            session_id = response.json()["session_id"]

            response = client.post(
                f"{api_base}/api/v1/assistant/sessions/{session_id}/questions",
                json={"question": args.question},
            )
            response.raise_for_status()
            body = response.json()
            _print_session(body)

            for sub in body.get("sub_questions") or []:
                if sub["index"] != body.get("selected_index"):
                    response = client.post(
                        f"{api_base}/api/v1/assistant/sessions/{session_id}/select",
                        json={"index": sub["index"]},
                    )
                    response.raise_for_status()
                    body = response.json()
                print(f"\n== {sub['text']}")
                matches = body.get("matches") or []
                if not matches:
                    print("  No relevant FAQs found for this sub-question.")
                for match in matches:
                    print(f"  ({match['confidence_percent']:>3}%) {match['question']}")
                    print(f"        {match['answer']}")
    except httpx.HTTPError as exc:
        print(f"Request failed: {exc}")
        if hasattr(exc, "response") and exc.response is not None:
            try:
                error_detail = exc.response.json()
                print(f"Error detail: {error_detail}")
            except Exception:
                print(f"Response text: {exc.response.text}")
        return 1

    return 0


def _command_search(args: argparse.Namespace) -> int:
    entries = load_knowledge_base(args.faq_file)
    found = 0
    for entry in entries:
        if not (
            text_matcher.matches(entry.question, args.term) or text_matcher.matches(entry.answer, args.term)
        ):
            continue
        found += 1
        print(f"- {entry.question}")
        print(f"  {entry.answer}")
    if not found:
        print("No FAQs found.")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="faqassist",
        description="Utilities for working with the faq-assist API.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ask_parser = subparsers.add_parser("ask", help="Break down a question and list matching FAQs.")
    ask_parser.add_argument("question", help="Question to ask (may contain several parts).")
    ask_parser.add_argument(
        "--api",
        default="http://localhost:8000",
        help="faq-assist API base URL (default: http://localhost:8000).",
    )
    ask_parser.add_argument(
        "--timeout",
        type=float,
        default=120.0,
        help="HTTP timeout per request in seconds (default: 120).",
    )
    ask_parser.set_defaults(func=_command_ask)

    search_parser = subparsers.add_parser("search", help="Search the knowledge base locally.")
    search_parser.add_argument("term", help="Words or phrases; separate alternatives with '|'.")
    search_parser.add_argument(
        "--faq-file",
        type=Path,
        default=None,
        help="JSON knowledge base to search instead of the built-in FAQ list.",
    )
    search_parser.set_defaults(func=_command_search)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
