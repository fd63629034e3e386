#!/usr/bin/env python3
"""Main entry point for Duologue.

This module provides the command-line interface:

* ``duologue serve`` runs the HTTP/WebSocket API under uvicorn.
* ``duologue run`` runs one session in the terminal, printing every
  turn as it streams, then the summary.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.traceback import install as install_rich_traceback

from duologue import __version__
from duologue.config.env_schema import EngineSettings, load_settings
from duologue.config.loader import ConfigLoader
from duologue.config.models import AppConfig
from duologue.engine import build_scheduler
from duologue.state.schema import SessionFormat, SessionStatus, Speaker
from duologue.utils.exceptions import ConfigurationError, DuologueError
from duologue.utils.logging import get_logger, setup_logging

install_rich_traceback(show_locals=False)

console = Console()
logger = get_logger(__name__)

SPEAKER_STYLES = {
    Speaker.A.value: "bold cyan",
    Speaker.B.value: "bold magenta",
    Speaker.USER.value: "bold green",
}


def parse_arguments(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        prog="duologue",
        description="Run turn-based conversations between two AI participants",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show program version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: $DUOLOGUE_CONFIG or config.yml)",
    )
    parser.add_argument(
        "--env",
        type=Path,
        default=Path(".env"),
        help="Path to environment file (default: .env)",
    )
    parser.add_argument(
        "--debug",
        nargs="?",
        const="DEBUG",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Enable debug mode with optional log level (default: DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP/WebSocket API")
    serve.add_argument("--host", default=None, help="Bind address (default: $DUOLOGUE_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: $DUOLOGUE_PORT)")

    run = subparsers.add_parser("run", help="Run one session in the terminal")
    run.add_argument("topic", help="Topic of the conversation")
    run.add_argument("--description", default="", help="Optional topic description")
    run.add_argument(
        "--max-turns", type=int, default=None, help="AI turns before the session ends (1-50)"
    )
    run.add_argument(
        "--format",
        choices=[f.value for f in SessionFormat],
        default=None,
        help="Conversation format",
    )
    run.add_argument(
        "--export",
        type=Path,
        default=None,
        metavar="DIR",
        help="Write the Markdown transcript into DIR when done",
    )

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace, settings: EngineSettings) -> AppConfig:
    config_path = args.config or Path(settings.config_path)
    return ConfigLoader(config_path, required=args.config is not None).load()


class TerminalRenderer:
    """Prints live session events to the console."""

    def __init__(self, out: Console = console):
        self.console = out

    async def __call__(self, payload: Dict[str, Any]) -> None:
        event = payload.get("event")
        if event == "streamStart":
            speaker = payload["speaker"]
            self.console.print(
                Rule(f"[{SPEAKER_STYLES.get(speaker, 'bold')}]{speaker}", align="left")
            )
        elif event == "streamChunk":
            self.console.print(payload["text"], end="", markup=False, highlight=False)
        elif event == "streamComplete":
            message = payload["message"]
            self.console.print(f"\n[dim]({message['tokenCount']} tokens)[/dim]")
        elif event == "streamError":
            self.console.print(f"\n[bold red]Turn failed:[/bold red] {payload['error']}")
        elif event == "statusChanged":
            self.console.print(f"[yellow]Session is now {payload['status']}[/yellow]")


async def run_session(args: argparse.Namespace, config: AppConfig) -> int:
    """Run one session to completion in the terminal.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    scheduler = build_scheduler(config)
    settings: Dict[str, Any] = {}
    if args.max_turns is not None:
        settings["max_turns"] = args.max_turns
    if args.format:
        settings["format"] = args.format

    session = await scheduler.start(
        user_id="cli",
        topic=args.topic,
        description=args.description,
        settings=settings or None,
    )
    scheduler.broadcaster.join(session.id, "terminal", TerminalRenderer())

    participants = session.participants
    console.print(
        Panel(
            f"[bold]{session.topic}[/bold]\n{session.description}\n\n"
            f"A: {participants.a.provider.value}:{participants.a.model_id} "
            f"({participants.a.kind.value})\n"
            f"B: {participants.b.provider.value}:{participants.b.model_id} "
            f"({participants.b.kind.value})\n"
            f"Max turns: {session.settings.max_turns}",
            title=f"Duologue session {session.id[:8]}",
            border_style="blue",
        )
    )

    try:
        await scheduler.wait_idle(session.id)
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Interrupted, stopping session...[/yellow]")

    session = await scheduler.get(session.id)
    if session.status is SessionStatus.ACTIVE or session.status is SessionStatus.PAUSED:
        session = await scheduler.stop(session.id)

    scheduler.broadcaster.leave(session.id, "terminal")

    if session.status is SessionStatus.ERROR:
        console.print(f"[bold red]Session failed:[/bold red] {session.error}")

    result = await scheduler.summary(session.id)
    insights = "\n".join(f"{i}. {text}" for i, text in enumerate(result["insights"], 1))
    console.print(
        Panel(
            f"{result['summary']}\n\n[bold]Key insights[/bold]\n{insights or '-'}",
            title="Summary",
            border_style="green",
        )
    )
    stats = result["stats"]
    console.print(
        f"[dim]{stats['totalMessages']} messages, {stats['totalTokens']} tokens, "
        f"{stats['currentTurn']}/{stats['maxTurns']} turns[/dim]"
    )

    if args.export:
        path = scheduler.exporter.write(
            await scheduler.get(session.id), args.export, "markdown"
        )
        console.print(f"Transcript written to [bold]{path}[/bold]")

    await scheduler.shutdown()
    return 1 if session.status is SessionStatus.ERROR else 0


def serve(args: argparse.Namespace, settings: EngineSettings, config: AppConfig) -> int:
    import uvicorn

    from duologue.api.app import create_app

    app = create_app(build_scheduler(config))
    uvicorn.run(
        app,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,
    )
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the application."""
    args = parse_arguments(argv)

    try:
        settings = load_settings(str(args.env) if args.env.exists() else None)
        log_file = setup_logging(
            level=args.debug or settings.log_level,
            log_dir=Path(settings.log_dir),
        )
        logger.info(f"Starting Duologue v{__version__}")
        if log_file:
            logger.debug(f"Writing detailed log to {log_file}")

        config = load_config(args, settings)
        required = {config.participants.a.provider, config.participants.b.provider}
        missing = settings.missing_providers(required)
        if missing:
            raise ConfigurationError(
                "Missing API keys for providers: "
                + ", ".join(p.value for p in missing),
                details={"providers": [p.value for p in missing]},
            )

        if args.command == "serve":
            exit_code = serve(args, settings, config)
        else:
            exit_code = asyncio.run(run_session(args, config))
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e.message}")
        exit_code = 2
    except DuologueError as e:
        console.print(f"[bold red]Error ({e.code}):[/bold red] {e.message}")
        exit_code = 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
