"""Exceptions raised by depcruft."""


class DepcruftError(Exception):
    """Base class for user-facing depcruft errors."""


class NoFilterSelectedError(DepcruftError, ValueError):
    """A scan was requested without any filter option enabled."""


class UnsupportedEcosystemError(DepcruftError, ValueError):
    """The requested ecosystem has no scanning rules."""


class InvalidRepositoryError(DepcruftError, ValueError):
    """A repository path is missing or not a writable directory."""
