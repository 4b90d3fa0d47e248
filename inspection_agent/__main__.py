# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Interactive entrypoint, run with `python -m inspection_agent --config ./config.toml`.
"""

import sys
import signal
import logging
import asyncio
import argparse
import threading

from dotenv import load_dotenv

from .src.app.application import Application
from .src.session.managed_session import ManagedSession

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  help        show this message
  exit, quit  leave the session
Anything else is sent to the orchestrator."""


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inspection_agent", description="Interactive SRE inspection agent"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="./config.toml",
        help="Path to the TOML configuration file",
    )
    parser.add_argument(
        "--resume",
        type=str,
        default=None,
        help="Resume a session saved with SaveContext (markdown file path)",
    )
    return parser


def _start_stdin_reader(queue: asyncio.Queue) -> None:
    """Feed stdin lines into `queue` from a daemon thread; None marks EOF."""
    loop = asyncio.get_running_loop()

    def _read() -> None:
        while True:
            try:
                line = input()
            except EOFError:
                line = None
            loop.call_soon_threadsafe(queue.put_nowait, line)
            if line is None:
                return

    threading.Thread(target=_read, name="stdin-reader", daemon=True).start()


async def repl(app: Application, session: ManagedSession) -> None:
    print(f"Session {session.id} started. Type 'help' for commands.")

    lines: asyncio.Queue = asyncio.Queue()
    _start_stdin_reader(lines)
    while True:
        print("> ", end="", flush=True)
        line = await lines.get()
        if line is None:
            break

        line = line.strip()
        if not line:
            continue
        if line in ("exit", "quit"):
            break
        if line == "help":
            print(HELP_TEXT)
            continue

        try:
            reply = await app.run(line, session)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Run failed: {e}")
            continue
        print(reply.text)


def _register_signal_handlers(task: asyncio.Task) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
        except NotImplementedError:
            logger.debug(f"Signal handler for {sig.name} not supported on this platform")


async def main(config_path: str, resume: str | None = None) -> int:
    app = Application(config_path)
    try:
        await app.initialize()
    except Exception as e:
        logger.error(f"Failed to initialize application: {e}")
        print(f"Failed to initialize application: {e}", file=sys.stderr)
        return 1

    if resume:
        try:
            session = app.restore_session(resume)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to resume session from {resume}: {e}")
            print(f"Failed to resume session from {resume}: {e}", file=sys.stderr)
            await app.shutdown_with_timeout()
            return 1
    else:
        session = app.new_session()

    task = asyncio.create_task(repl(app, session))
    _register_signal_handlers(task)
    try:
        await task
    except asyncio.CancelledError:
        logger.info("Interrupted, shutting down...")
    finally:
        errors = await app.shutdown_with_timeout()
        if errors:
            logger.warning(f"Shutdown finished with {len(errors)} error(s)")
    return 0


if __name__ == "__main__":
    load_dotenv()
    args = setup_parser().parse_args()
    sys.exit(asyncio.run(main(args.config, args.resume)))
