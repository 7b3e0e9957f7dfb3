"""
Mutation executor: derive a new root from an existing one.

SINGLE MUTATION (bottom-up):
  For path [m0, ..., mk] the owner of mi is the value at prefix [m0..m(i-1)].
  Starting at the leaf, resolve an activator for (type(owner), {mi}), rebuild
  the owner with the new value, and carry the rebuilt owner up one level
  until the root itself is rebuilt. Every ancestor of the leaf is new, every
  sibling subtree is reused by reference.

BATCH:
  Mutations are grouped by their first member. Each group is reduced to a
  single replacement value for that member (nested groups recurse, so joint
  reconstruction is attempted at every level). One activator for all touched
  top-level members then rebuilds the root in a single call. When no
  constructor covers them all, the mutations are applied one after another in
  request order instead, so later mutations see the effect of earlier ones.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from objectwith.cache import AppendOnlyCache
from objectwith.descriptor import ReflectingTypeProvider, TypeDescriptorProvider
from objectwith.errors import InvalidPath
from objectwith.paths import SEPARATOR, AccessorCompiler, PathLike, decompose
from objectwith.resolver import ConstructorOrdering, ConstructorResolver

logger = logging.getLogger(__name__)

MutationRequest = Tuple[Tuple[str, ...], Any]
Mutations = Union[Mapping[Any, Any], Iterable[Tuple[PathLike, Any]]]


class WithEngine:
    """Resolver, accessor compiler and their caches bundled for reuse.

    Engines are safe to share between threads working on disjoint graphs; the
    caches are the only shared state and are append-only.
    """

    def __init__(
        self,
        provider: Optional[TypeDescriptorProvider] = None,
        ordering: ConstructorOrdering = ConstructorOrdering.MOST_PARAMETERS_FIRST,
    ):
        self.activator_cache = AppendOnlyCache('activators')
        self.accessor_cache = AppendOnlyCache('accessors')
        self.provider = provider if provider is not None else ReflectingTypeProvider()
        self.ordering = ordering
        self.resolver = ConstructorResolver(self.provider, ordering, self.activator_cache)
        self.accessors = AccessorCompiler(self.accessor_cache)

    def __repr__(self) -> str:
        return f"WithEngine(provider={type(self.provider).__name__}, ordering={self.ordering.name})"

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def mutate(self, root: Any, path: PathLike, value: Any) -> Any:
        """Return a copy of root with the member at path replaced by value."""
        if root is None:
            raise TypeError("mutate() requires a root instance, got None")
        return self._mutate_names(root, decompose(path), value)

    def mutate_all(self, root: Any, mutations: Mutations) -> Any:
        """Return a copy of root with every (path, value) in mutations applied.

        Accepts a sequence of pairs or a mapping of path to value. When two
        mutations touch the same member, the later one wins.
        """
        if root is None:
            raise TypeError("mutate_all() requires a root instance, got None")
        requests = self._normalize(mutations)
        if not requests:
            raise InvalidPath("mutate_all() requires at least one mutation.")
        return self._apply_batch(root, requests)

    # ------------------------------------------------------------------
    # Single mutation
    # ------------------------------------------------------------------

    def _owners(self, root: Any, names: Tuple[str, ...]) -> List[Any]:
        """Owner instance of each path component, validated top-down."""
        root_type = type(root)
        owners = []
        for depth, name in enumerate(names):
            owner = self.accessors.compile(root_type, names[:depth])(root)
            descriptor = self.provider.describe(type(owner))
            if not descriptor.has_member(name):
                raise InvalidPath(
                    f"'{name}' is not a member of {type(owner).__name__} "
                    f"(path '{SEPARATOR.join(names)}', depth {depth}).",
                    names,
                )
            owners.append(owner)
        return owners

    def _mutate_names(self, root: Any, names: Tuple[str, ...], value: Any) -> Any:
        owners = self._owners(root, names)
        for depth in range(len(names) - 1, -1, -1):
            owner, name = owners[depth], names[depth]
            activator = self.resolver.resolve(type(owner), (name,))
            value = activator(owner, {name: value})
        return value

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize(mutations: Mutations) -> List[MutationRequest]:
        pairs = mutations.items() if isinstance(mutations, Mapping) else mutations
        requests = []
        for pair in pairs:
            try:
                path, value = pair
            except (TypeError, ValueError) as e:
                raise InvalidPath(f"Expected a (path, value) pair, got {pair!r}.") from e
            requests.append((decompose(path), value))
        return requests

    def _apply_batch(self, root: Any, requests: Sequence[MutationRequest]) -> Any:
        if len(requests) == 1:
            names, value = requests[0]
            return self._mutate_names(root, names, value)

        groups: Dict[str, List[MutationRequest]] = {}
        for names, value in requests:
            groups.setdefault(names[0], []).append((names, value))

        descriptor = self.provider.describe(type(root))
        for head, group in groups.items():
            if not descriptor.has_member(head):
                raise InvalidPath(
                    f"'{head}' is not a member of {type(root).__name__} "
                    f"(path '{SEPARATOR.join(group[0][0])}', depth 0).",
                    group[0][0],
                )

        activator = self.resolver.try_resolve(type(root), groups.keys())
        if activator is None:
            logger.debug(f"Sequential fallback for {type(root).__name__}: {len(requests)} mutation(s) "
                         f"over {sorted(groups)}")
            return self._apply_sequential(root, requests)

        logger.debug(f"Joint reconstruction of {type(root).__name__} over {sorted(groups)}")
        replacements = {
            head: self._reduce_group(root, head, group)
            for head, group in groups.items()
        }
        return activator(root, replacements)

    def _reduce_group(self, root: Any, head: str, group: Sequence[MutationRequest]) -> Any:
        """Single replacement value for root.<head> after all of group applies."""
        last_whole = None
        for index, (names, _) in enumerate(group):
            if len(names) == 1:
                last_whole = index

        if last_whole is None:
            current = self.provider.describe(type(root)).member(head).get(root)
            nested = group
        else:
            current = group[last_whole][1]
            nested = group[last_whole + 1:]

        if not nested:
            return current
        return self._apply_batch(current, [(names[1:], value) for names, value in nested])

    def _apply_sequential(self, root: Any, requests: Sequence[MutationRequest]) -> Any:
        result = root
        for names, value in requests:
            result = self._mutate_names(result, names, value)
        return result
