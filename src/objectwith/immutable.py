"""
Module-level mutate()/mutate_all() and the Immutable mixin.

Both delegate to the engine returned by ``get_current_engine()``.
"""

from typing import Any, TypeVar

from objectwith.config import get_current_engine
from objectwith.executor import Mutations
from objectwith.paths import PathLike

T = TypeVar('T')


def mutate(root: T, path: PathLike, value: Any) -> T:
    """Return a copy of root with the member at path replaced by value.

    Example:
        >>> renamed = mutate(org, lambda o: o.sales.manager.first_name, "Foo")
        >>> renamed.sales.title is org.sales.title
        True
    """
    return get_current_engine().mutate(root, path, value)


def mutate_all(root: T, mutations: Mutations) -> T:
    """Return a copy of root with every (path, value) pair applied."""
    return get_current_engine().mutate_all(root, mutations)


class Immutable:
    """Mixin adding ``with_``/``with_all`` to immutable classes.

        @dataclass(frozen=True)
        class Employee(Immutable):
            first_name: str
            last_name: str

        Employee("John", "Doe").with_("first_name", "Jane")
    """
    __slots__ = ()

    def with_(self: T, path: PathLike, value: Any) -> T:
        return get_current_engine().mutate(self, path, value)

    def with_all(self: T, mutations: Mutations) -> T:
        return get_current_engine().mutate_all(self, mutations)
