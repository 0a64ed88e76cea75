"""CLI commands for inspecting and feeding customer memory.

Provides subcommands for profiles, observations, recall and extraction
against the configured backend.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from .backends import POSTGRES_SCHEMA, BackendError, SQLiteBackend
from .config import MemoryConfig, config_from_env
from .logging import configure_logger, get_logger
from .memory import CustomerMemory, ProfileTraits, RecallStatus, Source

SOURCES = [s.value for s in Source] + ["call"]


def _open_memory(config: MemoryConfig) -> CustomerMemory:
    """Create a CustomerMemory writing to the global event log."""
    return CustomerMemory.from_config(config, event_log=get_logger())


def _load_messages(path: str) -> list[dict[str, Any]]:
    """Read a JSON list of {role, content} messages from a file or stdin."""
    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(Path(path).expanduser(), "r", encoding="utf-8") as f:
            data = json.load(f)

    if not isinstance(data, list):
        raise ValueError("Transcript must be a JSON list of messages")
    return data


async def _run_with_memory(config: MemoryConfig, func) -> int:
    memory = _open_memory(config)
    try:
        return await func(memory)
    finally:
        await memory.close()


def cmd_init_db(args: argparse.Namespace, config: MemoryConfig) -> int:
    """Create the SQLite schema."""
    if config.backend != "sqlite":
        print("Error: init-db only applies to the sqlite backend.")
        print("Apply the output of 'memdesk schema' to your Postgres database instead.")
        return 1

    backend = SQLiteBackend(config.db_path)
    backend.init_db()
    asyncio.run(backend.close())
    print(f"Initialized database at {config.db_path}")
    return 0


def cmd_schema(args: argparse.Namespace, config: MemoryConfig) -> int:
    """Print the Postgres schema."""
    print(POSTGRES_SCHEMA, end="")
    return 0


def cmd_profile(args: argparse.Namespace, config: MemoryConfig) -> int:
    """Get or create a profile."""
    traits = None
    if args.name or args.email:
        traits = ProfileTraits(name=args.name, email=args.email)

    async def run(memory: CustomerMemory) -> int:
        profile_id = await memory.get_or_create_profile(args.phone, traits)
        if profile_id is None:
            print(f"Error: could not get or create profile {args.phone}")
            return 1
        print(profile_id)
        return 0

    return asyncio.run(_run_with_memory(config, run))


def cmd_lookup(args: argparse.Namespace, config: MemoryConfig) -> int:
    """Look up a profile by phone."""

    async def run(memory: CustomerMemory) -> int:
        profile_id = await memory.lookup_profile(args.phone)
        if profile_id is None:
            print(f"Profile {args.phone} not found.")
            return 1
        print(profile_id)
        return 0

    return asyncio.run(_run_with_memory(config, run))


def cmd_observe(args: argparse.Namespace, config: MemoryConfig) -> int:
    """Record an observation."""

    async def run(memory: CustomerMemory) -> int:
        if not await memory.create_observation(args.phone, args.content, args.source):
            print("Error: observation was not stored.")
            return 1
        print(f"Stored observation for {args.phone}")
        return 0

    return asyncio.run(_run_with_memory(config, run))


def cmd_recall(args: argparse.Namespace, config: MemoryConfig) -> int:
    """Recall memories and print them as a prompt block or JSON."""

    async def run(memory: CustomerMemory) -> int:
        outcome = await memory.recall_outcome(
            args.phone, args.query, conversation_id=args.conversation_id
        )
        if outcome.status == RecallStatus.ERROR:
            print(f"Error: recall failed: {outcome.error}")
            return 1

        if args.json:
            data = outcome.result.to_dict() if outcome.result else {}
            data["status"] = outcome.status.value
            data["usedFallback"] = outcome.used_fallback
            print(json.dumps(data, indent=2, ensure_ascii=False))
            return 0

        if outcome.status == RecallStatus.EMPTY:
            print(f"No memories for {args.phone}.")
            return 0

        print(memory.format_memories_for_prompt(outcome.result).strip())
        return 0

    return asyncio.run(_run_with_memory(config, run))


def cmd_extract(args: argparse.Namespace, config: MemoryConfig) -> int:
    """Extract facts from a transcript and store them."""
    try:
        messages = _load_messages(args.transcript)
    except (OSError, ValueError) as e:
        print(f"Error: cannot read transcript: {e}")
        return 1

    async def run(memory: CustomerMemory) -> int:
        facts = memory.extractor.extract(messages)
        await memory.extract_and_store_observations(args.phone, messages, args.source)
        if not facts:
            print("No facts found.")
            return 0
        for fact in facts:
            print(f"- {fact}")
        print(f"\nTotal: {len(facts)} fact(s)")
        return 0

    return asyncio.run(_run_with_memory(config, run))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the memdesk CLI."""
    parser = argparse.ArgumentParser(
        prog="memdesk",
        description="Customer memory for support conversations",
    )

    subparsers = parser.add_subparsers(dest="command", help="Sub-command help")

    # init-db command
    subparsers.add_parser("init-db", help="Create the SQLite schema")

    # schema command
    subparsers.add_parser("schema", help="Print the Postgres schema")

    # profile command
    profile_parser = subparsers.add_parser("profile", help="Get or create a profile")
    profile_parser.add_argument("phone", help="Customer phone number")
    profile_parser.add_argument("-n", "--name", help="Customer name")
    profile_parser.add_argument("-e", "--email", help="Customer email")

    # lookup command
    lookup_parser = subparsers.add_parser("lookup", help="Look up a profile")
    lookup_parser.add_argument("phone", help="Customer phone number")

    # observe command
    observe_parser = subparsers.add_parser("observe", help="Record an observation")
    observe_parser.add_argument("phone", help="Customer phone number")
    observe_parser.add_argument("content", help="The observed fact")
    observe_parser.add_argument(
        "-s", "--source",
        required=True,
        choices=SOURCES,
        help="Channel the fact was observed on",
    )

    # recall command
    recall_parser = subparsers.add_parser("recall", help="Recall memories")
    recall_parser.add_argument("phone", help="Customer phone number")
    recall_parser.add_argument("query", nargs="?", default="", help="Search text")
    recall_parser.add_argument("--conversation-id", help="Conversation being served")
    recall_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the recall result as JSON",
    )

    # extract command
    extract_parser = subparsers.add_parser(
        "extract", help="Extract and store facts from a transcript"
    )
    extract_parser.add_argument("phone", help="Customer phone number")
    extract_parser.add_argument(
        "transcript", help="JSON file with [{role, content}, ...], or - for stdin"
    )
    extract_parser.add_argument(
        "-s", "--source",
        required=True,
        choices=SOURCES,
        help="Channel the conversation took place on",
    )

    return parser


def run_cli(argv: list[str] | None = None, config: MemoryConfig | None = None) -> int:
    """Run the CLI with given arguments.

    Args:
        argv: Command-line arguments. Uses sys.argv[1:] if None.
        config: Memory configuration. Loaded from the environment if None.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if config is None:
        try:
            config = config_from_env()
        except ValueError as e:
            print(f"Error: invalid configuration: {e}")
            return 1

    configure_logger(config.log_dir)

    commands = {
        "init-db": cmd_init_db,
        "schema": cmd_schema,
        "profile": cmd_profile,
        "lookup": cmd_lookup,
        "observe": cmd_observe,
        "recall": cmd_recall,
        "extract": cmd_extract,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args, config)
    except BackendError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(run_cli())
