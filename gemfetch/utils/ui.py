"""User-facing progress output."""

import logging

from rich.console import Console


class UI:
    """Progress reporter for fetch operations.

    Info lines go to a rich console on stderr. Debug detail goes through
    the ``gemfetch`` logger, and ``debug_enabled`` follows its level so
    progress dots are suppressed when debug logging is on.
    """

    def __init__(self, console: Console | None = None, quiet: bool = False):
        self._console = console or Console(stderr=True, highlight=False)
        self._quiet = quiet
        self._logger = logging.getLogger("gemfetch")

    @classmethod
    def silent(cls) -> "UI":
        """Create a UI that prints nothing."""
        return cls(quiet=True)

    @property
    def debug_enabled(self) -> bool:
        return self._logger.isEnabledFor(logging.DEBUG)

    def info(self, message: str = "", newline: bool = True) -> None:
        """Print a progress message.

        Args:
            message: Text to print (empty prints a blank line)
            newline: End the line after the message
        """
        if self._quiet:
            return
        self._console.print(message, end="\n" if newline else "", markup=False)

    def debug(self, message: str) -> None:
        self._logger.debug(message)
