# opelo/errors.py

from typing import Iterable, List


class RosterError(Exception):
    """Base class for every error the roster service maps to a response."""


class ValidationError(RosterError):
    """
    Rejected update payload. The three lists say which rule fired:
    required fields that were absent, fields that are not allowed at all,
    and fields whose values are not numbers.
    """

    def __init__(self, message: str,
                 missing: Iterable[str] = (),
                 unexpected: Iterable[str] = (),
                 non_numeric: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.missing: List[str] = list(missing)
        self.unexpected: List[str] = list(unexpected)
        self.non_numeric: List[str] = list(non_numeric)


class NotFoundError(RosterError):
    pass


class UpstreamFetchError(RosterError):
    """The external wiki could not be reached or returned an unusable page."""


class StorageError(RosterError):
    pass
