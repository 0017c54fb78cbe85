from __future__ import annotations

"""Exception hierarchy shared by all App-Explorer components."""


class ExplorerError(Exception):
    """Base class for every error raised by this package."""


# ---------------------------------------------------------------------------
# fixtures ------------------------------------------------------------------


class FixtureError(ExplorerError):
    """Problems loading a fixture or resolving a value from it."""


class FixtureLoadError(FixtureError):
    """The fixture document could not be read or parsed."""


class FixtureNoMatchError(FixtureError):
    """No fixture entry matched and the fallback mode is ``strict``."""

    def __init__(self, element: str) -> None:
        super().__init__(
            f"No fixture match found for element '{element}' and fallback mode is strict"
        )
        self.element = element


# ---------------------------------------------------------------------------
# collaborators -------------------------------------------------------------


class OracleError(ExplorerError):
    """The decision oracle failed to answer."""


class InvalidDecisionError(OracleError):
    """The oracle answered with something that cannot be turned into a Decision."""


class DriverError(ExplorerError):
    """The UI driver could not snapshot the UI or perform an action."""
