"""
Member paths and compiled accessors.

A path is an ordered tuple of member names read root-to-leaf. Callers may
spell it several ways, all decomposed to the same names:

    "sales.manager.first_name"
    ("sales", "manager", "first_name")
    Path.of("sales.manager.first_name")
    lambda org: org.sales.manager.first_name

Lambdas are evaluated once against a recording proxy, so ``lambda o: o.x`` and
``lambda p: p.x`` produce the same path and share accessor cache entries.
"""

import inspect
import logging
from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable, Iterable, Tuple, Union

from objectwith.cache import AppendOnlyCache, CacheKey
from objectwith.errors import InvalidPath

logger = logging.getLogger(__name__)

SEPARATOR = '.'


class _PathRecorder:
    """Stand-in root that records attribute accesses instead of performing them."""
    __slots__ = ('__path_names',)

    def __init__(self, names: Tuple[str, ...] = ()):
        object.__setattr__(self, '_PathRecorder__path_names', names)

    def __getattr__(self, name: str) -> '_PathRecorder':
        if name.startswith('__') and name.endswith('__'):
            raise AttributeError(name)
        return _PathRecorder(self.__path_names + (name,))

    def __getitem__(self, key):
        raise InvalidPath(
            f"Unable to process expression: indexing [{key!r}] after "
            f"'{SEPARATOR.join(self.__path_names)}'. Only member access is supported.",
            self.__path_names,
        )

    def __call__(self, *args, **kwargs):
        raise InvalidPath(
            f"Unable to process expression: call after '{SEPARATOR.join(self.__path_names)}'. "
            f"Only member access is supported.",
            self.__path_names,
        )

    def __setattr__(self, name, value):
        raise InvalidPath("Path expressions must not assign attributes.", self.__path_names)

    @staticmethod
    def names_of(recorder: '_PathRecorder') -> Tuple[str, ...]:
        return object.__getattribute__(recorder, '_PathRecorder__path_names')


def _record(expression: Callable[[Any], Any]) -> Tuple[str, ...]:
    try:
        parameters = inspect.signature(expression).parameters
    except (TypeError, ValueError) as e:
        raise InvalidPath(f"Unable to inspect path expression {expression!r}.") from e
    if len(parameters) != 1:
        raise InvalidPath(f"Path expression must have a single parameter, got {len(parameters)}.")

    try:
        result = expression(_PathRecorder())
    except AttributeError as e:
        raise InvalidPath(f"Unable to process expression {expression!r}: {e}") from e
    if not isinstance(result, _PathRecorder):
        raise InvalidPath(f"Unable to process expression {expression!r}: it does not end in a member access.")
    return _PathRecorder.names_of(result)


PathLike = Union['Path', str, Iterable[str], Callable[[Any], Any]]


def decompose(path: PathLike) -> Tuple[str, ...]:
    """Turn any supported path spelling into its member-name tuple.

    Raises:
        InvalidPath: the path is empty, malformed, or uses indexing/calls
    """
    if isinstance(path, Path):
        names = path.names
    elif isinstance(path, str):
        names = tuple(path.split(SEPARATOR)) if path else ()
    elif isinstance(path, (tuple, list)):
        names = tuple(path)
    elif callable(path):
        names = _record(path)
    else:
        raise InvalidPath(f"Unsupported path {path!r} of type {type(path).__name__}.")

    if not names:
        raise InvalidPath("Path must contain at least one member.")
    for name in names:
        if not isinstance(name, str) or not name.isidentifier():
            raise InvalidPath(f"Invalid member name {name!r} in path {names!r}.", tuple(map(str, names)))
    return names


@dataclass(frozen=True)
class Path:
    """A decomposed member path."""
    names: Tuple[str, ...]

    @classmethod
    def of(cls, path: PathLike) -> 'Path':
        if isinstance(path, Path):
            return path
        return cls(decompose(path))

    @property
    def head(self) -> str:
        return self.names[0]

    @property
    def leaf(self) -> str:
        return self.names[-1]

    @property
    def tail(self) -> Tuple[str, ...]:
        return self.names[1:]

    def prefix(self, length: int) -> Tuple[str, ...]:
        return self.names[:length]

    def __len__(self) -> int:
        return len(self.names)

    def __str__(self) -> str:
        return SEPARATOR.join(self.names)


class Accessor:
    """Compiled reader for the value at a path prefix of a root instance."""

    def __init__(self, names: Tuple[str, ...]):
        self.names = names
        self._getter = attrgetter(SEPARATOR.join(names)) if names else None

    def __call__(self, root: Any) -> Any:
        if self._getter is None:
            return root
        try:
            return self._getter(root)
        except AttributeError as e:
            raise InvalidPath(
                f"Unable to read '{SEPARATOR.join(self.names)}' from {type(root).__name__}: {e}",
                self.names,
            ) from e

    def __repr__(self) -> str:
        return f"Accessor({SEPARATOR.join(self.names) or '<root>'})"


class AccessorCompiler:
    """Compile and memoize accessors keyed by (root type, dotted prefix)."""

    def __init__(self, cache: AppendOnlyCache = None):
        self._cache: AppendOnlyCache[Accessor] = cache if cache is not None else AppendOnlyCache('accessors')

    @staticmethod
    def cache_key(root_type: type, prefix: Iterable[str]) -> CacheKey:
        return CacheKey.from_args(root_type, SEPARATOR.join(prefix))

    def compile(self, root_type: type, prefix: Iterable[str] = ()) -> Accessor:
        names = tuple(prefix)
        return self._cache.get_or_compute(
            self.cache_key(root_type, names),
            lambda: Accessor(names),
        )
