"""
Exceptions raised by the structural mutation engine.

All of them are fatal for the call that triggered them: the engine never
retries and never applies part of a batch. Because existing instances are
never modified, the caller's original root is always left untouched.
"""

from typing import Iterable, Optional, Sequence, Tuple


class WithError(Exception):
    """Base class for every error raised by objectwith."""


class InvalidPath(WithError, ValueError):
    """A path is empty or one of its components is not a member of its owner."""

    def __init__(self, message: str, path: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.path: Tuple[str, ...] = tuple(path) if path is not None else ()


class ConstructorResolutionError(WithError):
    """No constructor could be selected to rebuild ``type`` for ``target_names``."""

    def __init__(self, message: str, type_: type, target_names: Iterable[str] = ()):
        super().__init__(message)
        self.type = type_
        self.target_names: Tuple[str, ...] = tuple(sorted(target_names))


class NoDesignatedConstructor(ConstructorResolutionError):
    """The type has no eligible constructor (all take zero parameters)."""


class NoMatchingConstructor(ConstructorResolutionError):
    """No candidate's parameters map onto members covering every target."""


class AmbiguousMember(NoMatchingConstructor):
    """A constructor parameter matched more than one member."""

    def __init__(self, message: str, type_: type, target_names: Iterable[str] = (),
                 parameter: str = "", members: Sequence[str] = ()):
        super().__init__(message, type_, target_names)
        self.parameter = parameter
        self.members: Tuple[str, ...] = tuple(members)
