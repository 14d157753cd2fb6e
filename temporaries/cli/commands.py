#!/usr/bin/env python3
"""
Adds, gets, updates, and deletes temporary data.

Local temporaries are stored in the ``options`` table. Network temporaries
(``--network``) are stored in ``sitemeta`` on multisite installs and in
``options`` otherwise.

Usage:
  temporaries set sample_key "test data" 3600
  temporaries update sample_key "test data" 3600
  temporaries get sample_key
  temporaries get --all [--network]
  temporaries delete sample_key
  temporaries delete --all
  temporaries clean
  temporaries schedule-clean --interval 600
"""
import argparse
import asyncio
import sys
from typing import List, Optional

from temporaries.core.config import Settings
from temporaries.core.container import Container, lifespan
from temporaries.core.logging import configure_logging, get_logger
from temporaries.services.scheduler import (
    get_job_info,
    register_sweep_job,
    remove_sweep_job,
    shutdown_scheduler,
    start_scheduler,
)
from temporaries.services.temporary import TemporaryStore
from .formatting import format_table, format_value, human_timeout

logger = get_logger(__name__)


class CommandError(Exception):
    """Fatal command failure; reported as "Error: ..." with exit code 1."""


def success(message: str) -> None:
    print(f"Success: {message}")


def warning(message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


class TemporaryCommand:
    """Implementation of the temporaries subcommands."""

    def __init__(self, container: Container):
        self.settings = container.settings()
        self.local = container.local_store()
        self.network = container.network_store()
        self.sweeper = container.sweeper()

    def store(self, for_network: bool) -> TemporaryStore:
        return self.network if for_network else self.local

    async def get(self, args) -> None:
        if args.all:
            await self.get_all(args.network)
            return

        if not args.key:
            raise CommandError("Please specify temporary key, or use --all")

        value = await self.store(args.network).get(args.key)
        if value is None:
            warning(f'Temporary with key "{args.key}" is not set.')
            return

        print(format_value(value, args.format))

    async def set(self, args) -> None:
        if await self.store(args.network).set(args.key, args.value, args.expiration):
            success("Temporary added.")
        else:
            raise CommandError("Temporary could not be set.")

    async def update(self, args) -> None:
        if await self.store(args.network).update(args.key, args.value, args.expiration):
            success("Temporary updated.")
        else:
            raise CommandError("Temporary could not be updated.")

    async def delete(self, args) -> None:
        if args.all:
            await self.delete_all()
            return

        if not args.key:
            raise CommandError("Please specify temporary key, or use --all")

        store = self.store(args.network)
        if await store.delete(args.key):
            success("Temporary deleted.")
        elif await store.get(args.key) is not None:
            raise CommandError("Temporary was not deleted even though the temporary appears to exist.")
        else:
            warning("Temporary was not deleted, it does not appear to exist.")

    async def clean(self, args) -> None:
        await self.sweeper.sweep()
        success("Expired temporaries deleted from the database.")

        if self.settings.multisite:
            warning("Temporaries of other sites in the network cannot be deleted.")

    async def schedule_clean(self, args) -> None:
        interval = args.interval or self.settings.sweep_interval
        job_id = register_sweep_job(self.sweeper, interval)
        start_scheduler()

        info = get_job_info(job_id) or {}
        success(f"Cleaning expired temporaries every {interval} seconds, "
                f"next run at {info.get('next_run_time')}. Press Ctrl+C to stop.")
        try:
            await asyncio.Event().wait()
        finally:
            remove_sweep_job(job_id)
            shutdown_scheduler()

    async def get_all(self, for_network: bool = False) -> None:
        """Print a table of all temporaries in one scope."""
        store = self.store(for_network)
        now = store.clock()
        items = []

        for key in await store.keys():
            value = await store.get(key)
            if value is None:
                continue

            items.append({
                "Temporary": key,
                "Value": value,
                "Expires": human_timeout(await store.timeout(key), now),
            })

        if not items:
            warning("There are no set temporaries.")
            return

        print(format_table(items, ["Temporary", "Value", "Expires"]))

    async def delete_all(self) -> None:
        """Delete temporaries of both scopes."""
        count = await self.local.delete_all()
        count += await self.network.delete_all()

        if count > 0:
            if count == 1:
                success(f"{count} temporary deleted from the database.")
            else:
                success(f"{count} temporaries deleted from the database.")

            if self.settings.multisite:
                warning("Temporaries of other sites in the network are not deleted.")
        else:
            success("No temporaries found.")

            if self.settings.multisite:
                warning("Temporaries of other sites in the network cannot be deleted.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="temporaries",
        description="Adds, gets, updates, and deletes temporary data.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_get = sub.add_parser("get", help="Get a temporary value")
    p_get.add_argument("key", nargs="?", help="Key for the temporary")
    p_get.add_argument("--format", choices=["json", "yaml"], help="Render output in a particular format")
    p_get.add_argument("--network", action="store_true", help="Get the value of a network temporary")
    p_get.add_argument("--all", action="store_true", help="Get all temporaries")
    p_get.set_defaults(handler="get")

    for name, help_text in (("set", "Set a temporary value"),
                            ("update", "Update a temporary value without changing its expiration")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("key", help="Key for the temporary")
        p.add_argument("value", help="Value to be set for the temporary")
        p.add_argument("expiration", nargs="?", type=int, default=0,
                       help="Time until expiration, in seconds")
        p.add_argument("--network", action="store_true", help="Use a network temporary")
        p.set_defaults(handler=name)

    p_delete = sub.add_parser("delete", help="Delete a temporary value")
    p_delete.add_argument("key", nargs="?", help="Key for the temporary")
    p_delete.add_argument("--network", action="store_true", help="Delete a network temporary")
    p_delete.add_argument("--all", action="store_true", help="Delete all temporaries")
    p_delete.set_defaults(handler="delete")

    p_clean = sub.add_parser("clean", help="Delete all expired temporaries")
    p_clean.set_defaults(handler="clean")

    p_schedule = sub.add_parser("schedule-clean", help="Delete expired temporaries periodically")
    p_schedule.add_argument("--interval", type=int, default=None,
                            help="Seconds between runs (default: TEMPORARIES_SWEEP_INTERVAL)")
    p_schedule.set_defaults(handler="schedule_clean")

    return parser


async def run(container: Container, args: argparse.Namespace) -> None:
    async with lifespan(container):
        command = TemporaryCommand(container)
        await getattr(command, args.handler)(args)


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = settings or Settings()
    configure_logging(settings)

    container = Container()
    container.settings.override(settings)

    try:
        asyncio.run(run(container, args))
    except CommandError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
