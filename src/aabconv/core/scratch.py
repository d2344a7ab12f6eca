"""Run-scoped temporary directories."""

import logging
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

from aabconv.core.reporter import NullReporter, Reporter

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "aabconv_"


class ScratchSpace:
    """A private temporary directory owned by one conversion run.

    Use as a context manager so the directory is removed on every exit path:

        with ScratchSpace(reporter) as scratch_dir:
            ...
    """

    def __init__(self, reporter: Reporter | None = None, base_dir: Path | None = None):
        self.reporter = reporter or NullReporter()
        self.base_dir = base_dir
        self.path: Path | None = None

    def acquire(self) -> Path:
        """Create the directory and return its absolute path.

        The name carries a random unique suffix.
        """
        if self.path is not None:
            return self.path

        self.path = Path(
            tempfile.mkdtemp(prefix=SCRATCH_PREFIX, dir=self.base_dir)
        ).resolve()
        logger.debug("Acquired scratch space %s", self.path)
        return self.path

    def release(self) -> None:
        """Delete the directory tree. Failures are reported, never raised."""
        if self.path is None:
            return

        path, self.path = self.path, None
        if not path.exists():
            return

        try:
            shutil.rmtree(path)
        except OSError as exc:
            logger.warning("Failed to remove scratch space %s: %s", path, exc)
            self.reporter.on_error(f"Failed to clean up temporary files: {exc}")
        else:
            logger.debug("Released scratch space %s", path)

    def __enter__(self) -> Path:
        return self.acquire()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
