import asyncio
import logging
import os

import click

from kvmount.engine import Database
from kvmount.fs import FileSystem
from kvmount.models.exceptions import StorageIOError

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger()


async def serve(db: Database, mountpoint: str, debug: bool = False):
    from fuse_server.server import FuseServer

    server = FuseServer(FileSystem(db), mountpoint, debug=debug)
    await server.start()


@click.command()
@click.argument("dbpath", type=click.Path(dir_okay=False))
@click.argument("mountpoint", type=click.Path(exists=True, file_okay=False))
@click.option("--debug", is_flag=True, help="Print every FUSE request")
@click.option(
    "--busy-timeout-ms",
    default=Database.DEFAULT_BUSY_TIMEOUT_MS,
    show_default=True,
    help="Wait this long for another process holding the write lock",
)
def main(dbpath: str, mountpoint: str, debug: bool, busy_timeout_ms: int) -> None:
    """Mount the database at DBPATH on MOUNTPOINT."""
    try:
        db = Database(dbpath, busy_timeout_ms=busy_timeout_ms)
    except (ValueError, PermissionError, StorageIOError) as e:
        raise click.ClickException(str(e)) from e

    try:
        asyncio.run(serve(db, mountpoint, debug=debug))
    except KeyboardInterrupt:
        pass
    finally:
        db.close()


if __name__ == "__main__":
    main()
