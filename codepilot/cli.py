"""CLI entry point for codepilot.

Runs one completion or generation against the backend configured in the
environment. Useful for checking a model/template combination without an
editor attached.

Entry point:
    codepilot-cli complete --file <path> [--context <path>] [--params <json|@file>]
    codepilot-cli generate --file <path> [--context <path>] [--params <json|@file>]
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codepilot-cli",
        description="Headless completion and generation for codepilot backends.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command")

    for command, help_text in (
        ("complete", "Text to insert at the cursor"),
        ("generate", "Standalone generation"),
    ):
        p = sub.add_parser(command, help=help_text)
        p.add_argument("--file", required=True, help="Code file (may contain <CURSOR>)")
        p.add_argument("--context", default=None, help="File with retrieved context")
        p.add_argument(
            "--params", default="{}",
            help="Run params as JSON, or @path to a JSON file",
        )
        p.add_argument("--backend", default="default", help="Name to register the environment backend under")
        p.add_argument("--timeout", type=int, default=None, help="Timeout in seconds")

    return parser


def _load_params(raw: str) -> Any:
    """Parse --params: inline JSON or @file."""
    if raw.startswith("@"):
        raw = Path(raw[1:]).read_text()
    return json.loads(raw)


# ─────────────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────────────


async def _cmd_run(
    command: str,
    file_path: str,
    context_path: Optional[str] = None,
    params_raw: str = "{}",
    backend: str = "default",
    timeout: Optional[int] = None,
) -> int:
    """Run one request. Returns exit code."""
    from codepilot.adapters.schema import Prompt
    from codepilot.worker import CompletionRequest, GenerationRequest, TransformerWorker

    code_file = Path(file_path)
    if not code_file.exists():
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1

    context = ""
    if context_path:
        context_file = Path(context_path)
        if not context_file.exists():
            print(f"Error: context file not found: {context_path}", file=sys.stderr)
            return 1
        context = context_file.read_text()

    try:
        params = _load_params(params_raw)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error loading params: {e}", file=sys.stderr)
        return 1

    prompt = Prompt(context=context, code=code_file.read_text())
    request_cls = CompletionRequest if command == "complete" else GenerationRequest
    request = request_cls(backend=backend, prompt=prompt, params=params)

    result = await TransformerWorker(timeout_seconds=timeout).run(request)

    if result.status == "error":
        print(f"Error ({result.error_type}): {result.error}", file=sys.stderr)
        return 1

    json.dump(result.response, sys.stdout, indent=2)
    sys.stdout.write("\n")
    logger.debug("Request finished in %dms", result.duration_ms)
    return 0


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────


def main():
    parser = _build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s %(message)s", stream=sys.stderr)

    # Load env
    from dotenv import load_dotenv
    load_dotenv()

    # Build backend from environment
    from codepilot.errors import BackendError
    from codepilot.registry import register_default_backend
    try:
        register_default_backend(name=args.backend)
    except BackendError as e:
        print(f"Error starting backend: {e}", file=sys.stderr)
        sys.exit(1)

    code = asyncio.run(_cmd_run(
        command=args.command,
        file_path=args.file,
        context_path=args.context,
        params_raw=args.params,
        backend=args.backend,
        timeout=args.timeout,
    ))
    sys.exit(code)


if __name__ == "__main__":
    main()
