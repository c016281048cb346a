#!/usr/bin/env python3
"""
PatchStream CLI - Main Entry Point

Usage:
    patchstream plan "landing page for a bakery"
    patchstream generate "landing page for a bakery"
    patchstream generate --stream "add a dark mode toggle"
    patchstream parse response.txt --chunk-size 64
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console

from patchstream.cli.renderer import ResponseRenderer
from patchstream.core.config import settings
from patchstream.core.exceptions import GateError, PatchStreamError
from patchstream.core.logging_config import generate_request_id, logger, set_request_id
from patchstream.modules.orchestrator.multi_agent_orchestrator import (
    run_generate_multi_agent,
    run_plan_multi_agent,
)
from patchstream.modules.orchestrator.prompts import CODE_SYSTEM_PROMPT, PLANNER_SYSTEM_PROMPT
from patchstream.modules.orchestrator.role_models import is_multi_agent_architect_enabled
from patchstream.modules.protocol.file_op_parser import parse_file_ops
from patchstream.modules.protocol.stream_session import FileOpStreamSession
from patchstream.services.patch_validator import validate_patch_strict
from patchstream.utils.deepseek_client import DeepSeekClient


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_GATE_FAILED = 2


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog="patchstream",
        description="Multi-agent planning and file-op patch generation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  patchstream plan "portfolio site with a contact form"
  patchstream generate "portfolio site with a contact form"
  patchstream generate --stream "make the header sticky"
  patchstream parse output.txt --chunk-size 32
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show chunk events and tracebacks")
    parser.add_argument("--json", action="store_true", dest="as_json", help="Print results as JSON")

    subparsers = parser.add_subparsers(dest="command", help="Commands")
    subparsers.required = True

    def add_model_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--thinking", action="store_true", help="Use thinking-mode models")
        sub.add_argument("--routing", help="Model routing as JSON (plannerModel, executorModel, multiAgent)")
        sub.add_argument(
            "--timeout-ms",
            type=int,
            default=settings.MULTI_AGENT_TIMEOUT_MS,
            help=f"Per-call timeout (default: {settings.MULTI_AGENT_TIMEOUT_MS})"
        )

    plan_parser = subparsers.add_parser("plan", help="Produce a validated architecture plan")
    plan_parser.add_argument("prompt", help="What to build")
    add_model_options(plan_parser)

    generate_parser = subparsers.add_parser("generate", help="Produce a validated file-op patch stream")
    generate_parser.add_argument("prompt", help="What to build or change")
    generate_parser.add_argument(
        "--stream",
        action="store_true",
        help="Single streamed call through the parser instead of the multi-agent run"
    )
    add_model_options(generate_parser)

    parse_parser = subparsers.add_parser("parse", help="Parse a saved protocol response")
    parse_parser.add_argument("file", help="File with file-op protocol text ('-' for stdin)")
    parse_parser.add_argument("--chunk-size", type=int, default=None, help="Body chunk size in characters")

    return parser


def _load_routing(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        routing = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PatchStreamError(f"--routing is not valid JSON: {e}", code="INVALID_ARGUMENT")
    if not isinstance(routing, dict):
        raise PatchStreamError("--routing must be a JSON object", code="INVALID_ARGUMENT")
    return routing


def _print_json(console: Console, data: Any) -> None:
    console.print_json(json.dumps(data))


async def run_plan(args, console: Console, renderer: ResponseRenderer) -> int:
    routing = _load_routing(args.routing)
    async with DeepSeekClient.from_settings() as client:
        result = await run_plan_multi_agent(
            args.prompt,
            client.create_chat_completion,
            thinking_mode=args.thinking,
            model_routing=routing,
            planner_system_prompt=PLANNER_SYSTEM_PROMPT,
            timeout_ms=args.timeout_ms,
            on_status=None if args.as_json else renderer.render_status,
        )

    if args.as_json:
        _print_json(console, result.to_dict())
    else:
        renderer.render_plan(result.plan, result.role_models.to_dict())
        renderer.render_validation(result.validation)
    return EXIT_OK


async def _stream_single_call(client: DeepSeekClient, prompt: str, thinking_mode: bool,
                              renderer: ResponseRenderer, live: bool):
    session = FileOpStreamSession(on_event=renderer.render_event if live else None)
    payload = {
        "model": settings.default_model(thinking_mode),
        "temperature": settings.MULTI_AGENT_TEMPERATURE,
        "messages": [
            {"role": "system", "content": CODE_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
    }
    return await session.consume(client.iter_content_deltas(payload))


async def run_generate(args, console: Console, renderer: ResponseRenderer) -> int:
    routing = _load_routing(args.routing)
    live = not args.as_json

    async with DeepSeekClient.from_settings() as client:
        use_multi_agent = not args.stream and is_multi_agent_architect_enabled(True, routing)
        if not use_multi_agent:
            stream = await _stream_single_call(client, args.prompt, args.thinking, renderer, live)
            text = None
            validation = None
        else:
            result = await run_generate_multi_agent(
                args.prompt,
                client.create_chat_completion,
                thinking_mode=args.thinking,
                model_routing=routing,
                code_system_prompt=CODE_SYSTEM_PROMPT,
                timeout_ms=args.timeout_ms,
                on_status=renderer.render_status if live else None,
            )
            if result.bypass:
                logger.info(f"Multi-agent bypassed ({result.reason}); using single streamed call")
                stream = await _stream_single_call(client, result.text, args.thinking, renderer, live)
                text = None
                validation = None
            else:
                session = FileOpStreamSession()
                session.feed(result.text)
                stream = session.close()
                text = result.text
                validation = result.validation

    if args.as_json:
        data: Dict[str, Any] = {"files": stream.files, "deleted": stream.deleted,
                                "moved": [list(m) for m in stream.moved]}
        if text is not None:
            data["text"] = text
        if validation is not None:
            data["validation"] = validation.to_dict()
        _print_json(console, data)
    else:
        renderer.render_files(stream.files)
        if validation is not None:
            renderer.render_validation(validation)
    return EXIT_OK


def run_parse(args, console: Console, renderer: ResponseRenderer) -> int:
    if args.file == "-":
        text = sys.stdin.read()
    else:
        text = Path(args.file).read_text(encoding="utf-8")

    events = parse_file_ops(text, chunk_size=args.chunk_size)
    validation = validate_patch_strict(text)

    if args.as_json:
        _print_json(console, {
            "events": [event.to_dict() for event in events],
            "validation": validation.to_dict(),
        })
    else:
        renderer.render_events(events)
        renderer.render_validation(validation, title="Patch validator")
    return EXIT_OK if validation.ok else EXIT_GATE_FAILED


def main(argv=None) -> int:
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    console = Console()
    renderer = ResponseRenderer(console, verbose=args.verbose)
    set_request_id(generate_request_id())

    if getattr(args, "chunk_size", None) is not None and args.chunk_size < 1:
        parser.error("--chunk-size must be positive")

    try:
        if args.command == "plan":
            return asyncio.run(run_plan(args, console, renderer))
        if args.command == "generate":
            return asyncio.run(run_generate(args, console, renderer))
        return run_parse(args, console, renderer)

    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        return EXIT_ERROR
    except GateError as e:
        renderer.render_error(e.message, code=e.code, issues=e.issues)
        return EXIT_GATE_FAILED
    except PatchStreamError as e:
        renderer.render_error(e.message, code=e.code)
        return EXIT_ERROR
    except OSError as e:
        renderer.render_error(str(e))
        return EXIT_ERROR
    except Exception as e:
        logger.log_error_with_context(e, context=f"cli.{args.command}")
        if args.verbose:
            console.print_exception()
        else:
            renderer.render_error(f"{type(e).__name__}: {e}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
