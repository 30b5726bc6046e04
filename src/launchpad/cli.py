"""Command-line entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from launchpad.config import Settings, get_settings
from launchpad.core.command_runner import CommandRunner
from launchpad.core.errors import ProjectLoadError, SetupAlreadyRunning, SetupError
from launchpad.core.hybrid_agent import HybridAgent
from launchpad.core.sessions import build_llm_client, build_orchestrator
from launchpad.core.setup_context import SetupContext
from launchpad.logging_setup import configure_logging
from launchpad.models.events import LogEntry, SetupEvent, TerminalLine

logger = logging.getLogger(__name__)

PROCESS_POLL_SECONDS = 0.5


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="launchpad",
        description="Detect, install and launch JavaScript projects",
    )
    parser.add_argument("--log-level", default=None, help="Override LAUNCHPAD_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Print the detected stack as JSON")
    analyze.add_argument("path", type=Path, help="Project directory")

    setup = subparsers.add_parser("setup", help="Check, install and launch the project")
    setup.add_argument("path", type=Path, help="Project directory")
    setup.add_argument(
        "--no-wait",
        action="store_true",
        help="Return once the dev server is launched instead of following its output",
    )

    compose = subparsers.add_parser("compose", help="Generate docker-compose.yml")
    compose.add_argument("path", type=Path, help="Project directory")
    compose.add_argument("--write", action="store_true", help="Write the file to the project")

    chat = subparsers.add_parser("chat", help="Ask the setup assistant a question")
    chat.add_argument("path", type=Path, help="Project directory")
    chat.add_argument("message", help="Question or instruction")

    subparsers.add_parser("serve", help="Run the HTTP API")
    return parser


def _load(path: Path) -> SetupContext:
    context = SetupContext(path.expanduser().resolve())
    context.load()
    return context


def _print_event(event: SetupEvent) -> None:
    if isinstance(event, LogEntry):
        sys.stdout.write(f"[{event.type.value}] {event.message}\n")
    elif isinstance(event, TerminalLine):
        sys.stdout.write(f"{event.process_id} | {event.data}\n")
    sys.stdout.flush()


def _analyze(path: Path) -> int:
    context = _load(path)
    payload = {
        "analysis": context.analysis.model_dump(mode="json") if context.analysis else None,
        "dependencies": [record.model_dump(mode="json") for record in context.dependencies],
    }
    sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    return 0


async def _setup(path: Path, settings: Settings, *, wait: bool) -> int:
    context = _load(path)
    context.subscribe(_print_event)
    orchestrator = build_orchestrator(context, settings, CommandRunner())
    result = await orchestrator.run_full_setup()
    if result.frontend_url:
        sys.stdout.write(f"Ready: {result.frontend_url}\n")
    if not wait:
        return 0
    try:
        while context.handles.active():
            await asyncio.sleep(PROCESS_POLL_SECONDS)
    finally:
        if context.handles.active():
            await orchestrator.stop()
    return 0


def _compose(path: Path, settings: Settings, *, write: bool) -> int:
    context = _load(path)
    orchestrator = build_orchestrator(context, settings, CommandRunner())
    config = orchestrator.generate_container_config(write=write)
    if config.error is not None:
        sys.stderr.write(f"Could not write docker-compose.yml: {config.error}\n")
        return 1
    if not write:
        sys.stdout.write(config.content)
    return 0


async def _chat(path: Path, message: str, settings: Settings) -> int:
    context = _load(path)
    agent = HybridAgent(
        build_llm_client(settings),
        confidence_threshold=settings.rule_confidence_threshold,
    )
    response = await agent.chat(message, context.snapshot())
    sys.stdout.write(response.message + "\n")
    for action in response.actions:
        detail = f" {action.payload['command']}" if "command" in action.payload else ""
        sys.stdout.write(f"  -> {action.type.value}{detail}\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    if args.command == "serve":
        from launchpad.api.app import run

        run()
        return 0

    try:
        if args.command == "analyze":
            return _analyze(args.path)
        if args.command == "setup":
            return asyncio.run(_setup(args.path, settings, wait=not args.no_wait))
        if args.command == "compose":
            return _compose(args.path, settings, write=args.write)
        if args.command == "chat":
            return asyncio.run(_chat(args.path, args.message, settings))
    except (ProjectLoadError, SetupError, SetupAlreadyRunning) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130

    raise ValueError(f"Unsupported command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
