import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from reqdeck.app import App
from reqdeck.config import Config, load_config
from reqdeck.core.engine import RequestRunner
from reqdeck.core.events import EventSource
from reqdeck.core.storage import StorageEngine
from reqdeck.pages.collection_list import CollectionList
from reqdeck.pages.collection_viewer.viewer import CollectionViewer
from reqdeck.pages.routes import Routes
from reqdeck.tui.input import TerminalInput
from reqdeck.tui.router import Router
from reqdeck.tui.surface import Size
from reqdeck.tui.terminal import Screen, TerminalController

logger = logging.getLogger(__name__)

MIN_SIZE = Size(80, 22)


def setup_logging(config: Config) -> None:
    # stdout belongs to the TUI, so logs only ever go to a file
    config.log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=config.log_file,
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_app(config: Config, input_source, screen=None, runner=None) -> App:
    storage = StorageEngine(config.collections_dir, dry_run=config.dry_run)
    runner = runner or RequestRunner(timeout=config.request_timeout)

    router = Router(min_size=MIN_SIZE)
    router.add_route(Routes.COLLECTION_LIST, CollectionList(config, storage, storage.load_collections()))
    router.add_route(Routes.COLLECTION_VIEWER, CollectionViewer(config, storage, runner))

    events = EventSource(input_source, tick_rate=config.tick_rate, frame_rate=config.frame_rate)
    return App(router, events, screen=screen, viewer_route=Routes.COLLECTION_VIEWER)


async def _run(config: Config) -> None:
    # 1. Hook stdin and SIGWINCH into the running loop
    terminal_input = TerminalInput(sys.stdin.fileno())
    terminal_input.attach()
    try:
        # 2. Wire pages, router and event source, then hand over to the loop
        app = build_app(config, terminal_input, screen=Screen())
        await app.run()
    finally:
        terminal_input.detach()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="reqdeck terminal HTTP client")
    parser.add_argument("--dir", type=str, default=None, help="Directory holding collection files")
    parser.add_argument("--config", type=str, default=None, help="Path to a reqdeck.toml file")
    parser.add_argument("--dry-run", action="store_true", help="Never write collections to disk")
    parser.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, ...)")
    args = parser.parse_args(argv)

    config = load_config(Path(args.config) if args.config else None)
    if args.dir:
        config.collections_dir = Path(args.dir)
    if args.dry_run:
        config.dry_run = True
    if args.log_level:
        config.log_level = args.log_level

    setup_logging(config)
    logger.info("starting reqdeck with collections in %s", os.path.abspath(config.collections_dir))

    if not sys.stdin.isatty():
        print("reqdeck needs an interactive terminal", file=sys.stderr)
        return 1

    terminal = TerminalController(sys.stdin.fileno(), sys.stdout.fileno())
    with terminal.raw_mode():
        asyncio.run(_run(config))
    logger.info("reqdeck exited")
    return 0


if __name__ == "__main__":
    sys.exit(main())
