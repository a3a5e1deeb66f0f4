"""
FileSystem - Entry point handing the root directory to the transport.
"""

from kvmount.engine.database import Database
from kvmount.fs.directory import Directory


class FileSystem:
    """
    Root dispatcher for one database.

    Each instance is independent, so several databases can be served
    from one process.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def db(self) -> Database:
        return self._db

    def root(self) -> Directory:
        """Return the directory node for the top level of the database."""
        return Directory(self._db, ())
