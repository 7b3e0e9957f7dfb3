"""
Constructor resolution: pick a constructor able to rebuild a type with a given
set of members replaced, and compile it into a reusable ``Activator``.

ALGORITHM (per type and target member set):
  1. Drop zero-parameter constructors; keep only designated ones if any exist
  2. Stable-sort by parameter count according to ``ConstructorOrdering``
  3. Match each parameter to exactly one member by name (``names_match``) and
     identical declared type
  4. Accept the first candidate whose parameters all matched and which covers
     every target member
  5. Compile an ``Activator`` that takes target values from the replacement
     map and every other argument from the existing instance

Resolved activators are memoized under ``CacheKey(type, sorted targets)``.
"""

import enum
import inspect
import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from objectwith.cache import AppendOnlyCache, CacheKey
from objectwith.descriptor import ConstructorCandidate, Member, Parameter, TypeDescriptor, TypeDescriptorProvider
from objectwith.errors import AmbiguousMember, NoDesignatedConstructor, NoMatchingConstructor

logger = logging.getLogger(__name__)


class ConstructorOrdering(enum.Enum):
    """Order in which eligible constructors are tried."""
    MOST_PARAMETERS_FIRST = 'most_parameters_first'
    FEWEST_PARAMETERS_FIRST = 'fewest_parameters_first'


def names_match(member_name: str, parameter_name: str) -> bool:
    """Compare names ignoring the case of the first character only.

    ``FirstName`` matches ``firstName`` but not ``firstname``.
    """
    if member_name is parameter_name:
        return True
    if member_name is None or parameter_name is None or len(member_name) != len(parameter_name):
        return False
    if not member_name:
        return True
    if member_name[0].casefold() != parameter_name[0].casefold():
        return False
    return member_name[1:] == parameter_name[1:]


class _ArgumentSource:
    """Where one constructor argument comes from."""
    __slots__ = ('parameter', 'member', 'is_target')

    def __init__(self, parameter: Parameter, member: Member, is_target: bool):
        self.parameter = parameter
        self.member = member
        self.is_target = is_target


class Activator:
    """Compiled constructor call for one (type, target member set) key.

    ``activator(instance, {'first_name': 'Foo'})`` builds a new instance whose
    targets come from the map and whose other arguments are read from
    ``instance`` by reference.
    """

    def __init__(self, type_: type, constructor: ConstructorCandidate, sources: Tuple[_ArgumentSource, ...]):
        self.type = type_
        self.constructor = constructor
        self._sources = sources
        self.target_names: FrozenSet[str] = frozenset(s.member.name for s in sources if s.is_target)

    def __call__(self, instance: Any, replacements: Mapping[str, Any]) -> Any:
        missing = self.target_names.difference(replacements)
        if missing:
            raise KeyError(f"Missing replacement values for {sorted(missing)} on {self.type.__name__}")

        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for source in self._sources:
            if source.is_target:
                value = replacements[source.member.name]
            else:
                value = source.member.get(instance)
            if source.parameter.kind is inspect.Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[source.parameter.name] = value
        return self.constructor.factory(*args, **kwargs)

    def __repr__(self) -> str:
        return (f"Activator({self.type.__name__}.{self.constructor.name}, "
                f"targets={sorted(self.target_names)})")


class _Rejection(enum.Enum):
    UNMATCHED = 'unmatched'
    AMBIGUOUS = 'ambiguous'
    TARGETS_NOT_COVERED = 'targets_not_covered'


class ConstructorResolver:
    """Select and compile constructors, memoizing per (type, target names)."""

    def __init__(
        self,
        provider: TypeDescriptorProvider,
        ordering: ConstructorOrdering = ConstructorOrdering.MOST_PARAMETERS_FIRST,
        cache: Optional[AppendOnlyCache] = None,
    ):
        self.provider = provider
        self.ordering = ordering
        self._cache: AppendOnlyCache[Activator] = cache if cache is not None else AppendOnlyCache('activators')

    @staticmethod
    def cache_key(type_: type, target_names: Iterable[str]) -> CacheKey:
        return CacheKey.from_args(type_, tuple(sorted(set(target_names))))

    def resolve(self, type_: type, target_names: Iterable[str]) -> Activator:
        """Return the activator for type_ with target_names replaced.

        Raises:
            NoDesignatedConstructor: type_ has no constructor taking parameters
            AmbiguousMember: the only obstacle was a parameter matching several members
            NoMatchingConstructor: no candidate covers every target member
        """
        targets = frozenset(target_names)
        return self._cache.get_or_compute(
            self.cache_key(type_, targets),
            lambda: self._build(type_, targets),
        )

    def try_resolve(self, type_: type, target_names: Iterable[str]) -> Optional[Activator]:
        """Like ``resolve`` but return None when no constructor qualifies."""
        targets = frozenset(target_names)
        cached = self._cache.get(self.cache_key(type_, targets))
        if cached is not None:
            return cached
        try:
            return self.resolve(type_, targets)
        except NoMatchingConstructor as e:
            logger.debug(f"No joint constructor for {type_.__name__} {sorted(targets)}: {e}")
            return None

    def eligible_constructors(self, descriptor: TypeDescriptor) -> List[ConstructorCandidate]:
        """Candidates to try, filtered and ordered."""
        candidates = [c for c in descriptor.constructors if c.arity > 0]
        designated = [c for c in candidates if c.designated]
        if designated:
            candidates = designated
        reverse = self.ordering is ConstructorOrdering.MOST_PARAMETERS_FIRST
        # sorted() is stable: equal arities keep declaration order
        return sorted(candidates, key=lambda c: c.arity, reverse=reverse)

    def _build(self, type_: type, targets: FrozenSet[str]) -> Activator:
        descriptor = self.provider.describe(type_)
        candidates = self.eligible_constructors(descriptor)
        if not candidates:
            raise NoDesignatedConstructor(
                f"Unable to find appropriate constructor. Type '{type_.__name__}' has no constructor taking parameters.",
                type_, targets,
            )

        ambiguity: Optional[Tuple[str, Tuple[str, ...]]] = None
        only_ambiguous = True

        for candidate in candidates:
            sources, rejection, detail = self._match(descriptor, candidate, targets)
            if sources is not None:
                activator = Activator(type_, candidate, sources)
                logger.debug(f"Selected {activator!r} from {len(candidates)} candidate(s)")
                return activator

            logger.debug(f"Rejected {type_.__name__}.{candidate.name}{[p.name for p in candidate.parameters]}: "
                         f"{rejection.value} {detail}")
            if rejection is _Rejection.AMBIGUOUS:
                ambiguity = ambiguity or detail
            else:
                only_ambiguous = False

        if ambiguity is not None and only_ambiguous:
            parameter, members = ambiguity
            raise AmbiguousMember(
                f"Unable to construct object of type '{type_.__name__}'. "
                f"Constructor parameter '{parameter}' matches several members: {list(members)}.",
                type_, targets, parameter=parameter, members=members,
            )
        raise NoMatchingConstructor(
            f"Unable to find appropriate constructor. Type '{type_.__name__}' "
            f"has no constructor whose parameters cover members {sorted(targets)}.",
            type_, targets,
        )

    @staticmethod
    def _match(
        descriptor: TypeDescriptor,
        candidate: ConstructorCandidate,
        targets: FrozenSet[str],
    ) -> Tuple[Optional[Tuple[_ArgumentSource, ...]], Optional[_Rejection], Any]:
        sources: List[_ArgumentSource] = []
        covered = set()

        for parameter in candidate.parameters:
            matches = [
                m for m in descriptor.members
                if names_match(m.name, parameter.name) and m.type == parameter.type
            ]
            if not matches:
                return None, _Rejection.UNMATCHED, parameter.name
            if len(matches) > 1:
                return None, _Rejection.AMBIGUOUS, (parameter.name, tuple(m.name for m in matches))

            member = matches[0]
            is_target = member.name in targets
            if is_target:
                covered.add(member.name)
            sources.append(_ArgumentSource(parameter, member, is_target))

        if covered != targets:
            return None, _Rejection.TARGETS_NOT_COVERED, sorted(targets - covered)
        return tuple(sources), None, None
