import asyncio
import logging
import signal

import pyfuse3
import pyfuse3.asyncio

from fuse_server.operations import KVOperations
from kvmount.fs.filesystem import FileSystem

logger = logging.getLogger(__name__)


class FuseServer:
    def __init__(self, filesystem: FileSystem, mountpoint: str, debug: bool = False):
        self.mountpoint = mountpoint
        self.debug = debug
        self.operations = KVOperations(filesystem)

    def fuse_options(self) -> set[str]:
        """Mount options passed to libfuse"""
        options = set(pyfuse3.default_options)
        options.add("fsname=kvmount")
        if self.debug:
            options.add("debug")
        return options

    async def start(self):
        """Mount and serve requests until unmounted or terminated"""
        pyfuse3.asyncio.enable()
        pyfuse3.init(self.operations, self.mountpoint, self.fuse_options())
        logger.info(f"kvmount serving on {self.mountpoint}")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, pyfuse3.terminate)

        try:
            await pyfuse3.main()
        except asyncio.CancelledError:
            logger.info("Server shutdown requested")
        except BaseException:
            pyfuse3.close(unmount=False)
            raise
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        await self.shutdown()

    async def shutdown(self):
        """Unmount and release the FUSE session"""
        logger.info(f"Unmounting {self.mountpoint}...")
        pyfuse3.close(unmount=True)
