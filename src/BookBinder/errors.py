from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tokens import Location


class BookBinderError(Exception):
    """Base class for every error raised by the package."""


class UnexpectedMarkupError(BookBinderError):
    """The token stream does not match the book grammar."""

    def __init__(self, message: str, location: "Location | None" = None, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.location = location
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.location is None:
            return self.message
        return f"{self.message} (at {self.location})"


class MarkupSyntaxError(UnexpectedMarkupError):
    """The input is not well-formed XML."""


class MissingAttributeError(BookBinderError):
    pass


class IllegalAttributeValueError(BookBinderError):
    pass


class BindBookError(BookBinderError):
    pass


class ConfigError(BookBinderError):
    pass
