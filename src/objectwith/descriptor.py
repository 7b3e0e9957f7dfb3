"""
Type descriptors: the member and constructor metadata the engine consumes.

The engine never inspects classes directly. It asks a ``TypeDescriptorProvider``
for a ``TypeDescriptor`` and works only with that. ``ReflectingTypeProvider``
is the default provider and builds descriptors from runtime introspection:

Members:
    Resolved class annotations across the MRO (dataclass fields, NamedTuple
    fields and plain annotated attributes), ``__slots__`` entries (typed
    ``Any`` when unannotated) and properties.
    ``ClassVar`` and ``InitVar`` annotations are not members.

Constructors:
    The class's ``__init__`` (or ``__new__`` when ``__init__`` is inherited
    from ``object``, as for NamedTuple) and any classmethod marked with
    ``@with_constructor``. Variadic parameters are not matchable and are left
    out of the parameter list.

A constructor marked with ``@with_constructor`` is *designated*; when a type
has designated constructors, only those are considered for reconstruction.
"""

import dataclasses
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import cached_property
from operator import attrgetter
from typing import Any, Callable, ClassVar, Dict, List, Optional, Sequence, Tuple, Union, get_args, get_origin, get_type_hints

from objectwith.cache import AppendOnlyCache, CacheKey

logger = logging.getLogger(__name__)

WITH_CONSTRUCTOR_ATTR = '__with_constructor__'

_VARIADIC_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def with_constructor(func):
    """Mark ``__init__`` or an alternate-constructor classmethod as designated.

    Works on either side of ``@classmethod``::

        class Money:
            @classmethod
            @with_constructor
            def of(cls, amount: int, currency: str) -> 'Money':
                ...
    """
    target = func.__func__ if isinstance(func, (classmethod, staticmethod)) else func
    setattr(target, WITH_CONSTRUCTOR_ATTR, True)
    return func


@dataclass(frozen=True)
class Member:
    """A readable member of a type: name, declared type and value accessor."""
    name: str
    type: Any
    get: Callable[[Any], Any]


@dataclass(frozen=True)
class Parameter:
    """A constructor parameter."""
    name: str
    type: Any
    kind: Any = inspect.Parameter.POSITIONAL_OR_KEYWORD


@dataclass(frozen=True)
class ConstructorCandidate:
    """One way of building an instance of a type.

    ``factory`` is what gets called: the class itself for ``__init__``/``__new__``
    and the bound classmethod for alternate constructors.
    """
    name: str
    factory: Callable[..., Any]
    parameters: Tuple[Parameter, ...]
    designated: bool = False

    @property
    def arity(self) -> int:
        return len(self.parameters)


@dataclass(frozen=True)
class TypeDescriptor:
    """Read-only member and constructor metadata for one type."""
    type: type
    members: Tuple[Member, ...]
    constructors: Tuple[ConstructorCandidate, ...]

    @cached_property
    def _members_by_name(self) -> Dict[str, Member]:
        return {m.name: m for m in self.members}

    def member(self, name: str) -> Optional[Member]:
        """Return the member called name, or None."""
        return self._members_by_name.get(name)

    def has_member(self, name: str) -> bool:
        return name in self._members_by_name

    @property
    def has_designated(self) -> bool:
        return any(c.designated for c in self.constructors)


class TypeDescriptorProvider(ABC):
    """Source of type metadata for the engine.

    Implementations must be deterministic and free of side effects: the same
    type always yields the same members and constructors in the same order.
    """

    @abstractmethod
    def get_members(self, type_: type) -> Sequence[Member]:
        """Return the members of type_, unique by name."""

    @abstractmethod
    def get_constructors(self, type_: type) -> Sequence[ConstructorCandidate]:
        """Return the constructor candidates of type_ in declaration order."""

    def is_designated(self, constructor: Callable[..., Any]) -> bool:
        """Whether constructor was marked for reconstruction."""
        target = getattr(constructor, '__func__', constructor)
        return bool(getattr(target, WITH_CONSTRUCTOR_ATTR, False))

    def describe(self, type_: type) -> TypeDescriptor:
        return TypeDescriptor(
            type=type_,
            members=tuple(self.get_members(type_)),
            constructors=tuple(self.get_constructors(type_)),
        )


def _resolve_hints(obj: Any) -> Dict[str, Any]:
    """Resolve annotations of a class or function, keeping raw ones on failure.

    Forward references that cannot be evaluated stay as strings; both members
    and parameters go through here so they stay comparable.
    """
    try:
        return get_type_hints(obj)
    except (NameError, TypeError) as e:
        logger.debug(f"Falling back to raw annotations for {obj!r}: {e}")
    if isinstance(obj, type):
        raw: Dict[str, Any] = {}
        for klass in reversed(obj.__mro__):
            raw.update(klass.__dict__.get('__annotations__', {}))
        return raw
    return dict(getattr(obj, '__annotations__', {}) or {})


def _drop_implicit_optional(hint: Any, raw: Any, default: Any) -> Any:
    """Undo ``Optional[X]`` that get_type_hints() adds for ``x: X = None`` before 3.11.

    Only applied when the parameter defaults to None and its own annotation
    does not mention None, so the result equals the matching member annotation.
    """
    if default is not None or get_origin(hint) is not Union:
        return hint
    args = get_args(hint)
    if type(None) not in args:
        return hint
    if isinstance(raw, str):
        if 'Optional' in raw or 'None' in raw or '|' in raw:
            return hint
    elif raw is None or raw is type(None) or type(None) in get_args(raw):
        return hint
    remaining = tuple(a for a in args if a is not type(None))
    return remaining[0] if len(remaining) == 1 else Union[remaining]


def _is_class_level_only(hint: Any) -> bool:
    if hint is ClassVar or get_origin(hint) is ClassVar:
        return True
    if isinstance(hint, dataclasses.InitVar) or hint is dataclasses.InitVar:
        return True
    if isinstance(hint, str):
        return hint.startswith(('ClassVar', 'typing.ClassVar', 'InitVar', 'dataclasses.InitVar'))
    return False


class ReflectingTypeProvider(TypeDescriptorProvider):
    """Build descriptors by runtime reflection and memoize them per type."""

    def __init__(self, cache: Optional[AppendOnlyCache] = None):
        self._cache: AppendOnlyCache[TypeDescriptor] = cache if cache is not None else AppendOnlyCache('descriptors')

    def describe(self, type_: type) -> TypeDescriptor:
        return self._cache.get_or_compute(
            CacheKey.from_args(type_),
            lambda: super(ReflectingTypeProvider, self).describe(type_),
        )

    def get_members(self, type_: type) -> List[Member]:
        members: Dict[str, Member] = {}

        for name, hint in _resolve_hints(type_).items():
            if name.startswith('__') or _is_class_level_only(hint):
                continue
            members[name] = Member(name=name, type=hint, get=attrgetter(name))

        # Unannotated slots are members of unknown type
        for klass in reversed(type_.__mro__):
            slots = klass.__dict__.get('__slots__', ())
            if isinstance(slots, str):
                slots = (slots,)
            for name in slots:
                if name.startswith('__') or name in members:
                    continue
                members[name] = Member(name=name, type=Any, get=attrgetter(name))

        # Properties override same-named annotations; walk base first so subclasses win
        for klass in reversed(type_.__mro__):
            for name, attr in vars(klass).items():
                if isinstance(attr, property) and attr.fget is not None:
                    hint = _resolve_hints(attr.fget).get('return', Any)
                    members[name] = Member(name=name, type=hint, get=attrgetter(name))

        return list(members.values())

    def get_constructors(self, type_: type) -> List[ConstructorCandidate]:
        candidates: List[ConstructorCandidate] = []

        if type_.__init__ is not object.__init__:
            primary = ('__init__', type_.__init__)
        elif type_.__new__ is not object.__new__:
            primary = ('__new__', type_.__new__)
        else:
            primary = None

        if primary is not None:
            name, func = primary
            parameters = self._parameters(func, skip_first=True)
            if parameters is not None:
                candidates.append(ConstructorCandidate(
                    name=name,
                    factory=type_,
                    parameters=parameters,
                    designated=self.is_designated(func),
                ))

        seen = set()
        for klass in type_.__mro__:
            for name, attr in vars(klass).items():
                if name in seen or not isinstance(attr, classmethod):
                    continue
                seen.add(name)
                if not self.is_designated(attr.__func__):
                    continue
                parameters = self._parameters(attr.__func__, skip_first=True)
                if parameters is None:
                    continue
                candidates.append(ConstructorCandidate(
                    name=name,
                    factory=getattr(type_, name),
                    parameters=parameters,
                    designated=True,
                ))

        return candidates

    @staticmethod
    def _parameters(func: Callable[..., Any], skip_first: bool) -> Optional[Tuple[Parameter, ...]]:
        """Matchable parameters of func, or None if it has no inspectable signature."""
        try:
            signature = inspect.signature(func)
        except (ValueError, TypeError):
            return None

        hints = _resolve_hints(func)
        raw = getattr(func, '__annotations__', None) or {}
        params = list(signature.parameters.values())
        if skip_first and params:
            params = params[1:]

        return tuple(
            Parameter(
                name=p.name,
                type=_drop_implicit_optional(hints.get(p.name, Any), raw.get(p.name), p.default),
                kind=p.kind,
            )
            for p in params
            if p.kind not in _VARIADIC_KINDS
        )
