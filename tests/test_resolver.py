"""Tests for constructor selection and activator compilation."""
import pytest
from dataclasses import dataclass

from objectwith import (
    AmbiguousMember,
    ConstructorOrdering,
    ConstructorResolver,
    NoDesignatedConstructor,
    NoMatchingConstructor,
    ReflectingTypeProvider,
    names_match,
    with_constructor,
)


class Money:
    """Two designated constructors of different arity, both covering amount."""

    def __init__(self, amount: int, currency: str, note: str, via: str = "__init__"):
        self._amount = amount
        self._currency = currency
        self._note = note
        self.via = via

    @classmethod
    @with_constructor
    def of(cls, amount: int, currency: str) -> 'Money':
        return cls(amount, currency, "", via="of")

    @classmethod
    @with_constructor
    def full(cls, amount: int, currency: str, note: str) -> 'Money':
        return cls(amount, currency, note, via="full")

    @property
    def amount(self) -> int:
        return self._amount

    @property
    def currency(self) -> str:
        return self._currency

    @property
    def note(self) -> str:
        return self._note


class Ticket:
    """Non-designated __init__ plus one designated alternate constructor."""

    def __init__(self, code: str, seat: int, via: str = "__init__"):
        self._code = code
        self._seat = seat
        self.via = via

    @classmethod
    @with_constructor
    def issue(cls, code: str, seat: int) -> 'Ticket':
        return cls(code, seat, via="issue")

    @property
    def code(self) -> str:
        return self._code

    @property
    def seat(self) -> int:
        return self._seat


class Shouty:
    """Parameter 'name' matches both 'name' and 'Name'."""

    def __init__(self, name: str):
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def Name(self) -> str:
        return self._name.upper()


class Mismatched:
    """Member type differs from the parameter type."""

    def __init__(self, count: int):
        self._count = count

    @property
    def count(self) -> float:
        return float(self._count)


class CamelCased:
    """Members spelled with a capital first letter."""

    def __init__(self, firstName: str, lastName: str):
        self._first = firstName
        self._last = lastName

    @property
    def FirstName(self) -> str:
        return self._first

    @property
    def LastName(self) -> str:
        return self._last


class PositionalOnly:

    def __init__(self, x: int, /, y: int):
        self._x = x
        self._y = y

    @property
    def x(self) -> int:
        return self._x

    @property
    def y(self) -> int:
        return self._y


class Empty:

    def __init__(self):
        pass


@dataclass(frozen=True)
class Pair:
    left: str
    right: str


@pytest.fixture
def resolver():
    return ConstructorResolver(ReflectingTypeProvider())


class TestNamesMatch:
    """First-letter case-insensitive name comparison."""

    @pytest.mark.parametrize("member, parameter", [
        ("first_name", "first_name"),
        ("FirstName", "firstName"),
        ("a", "A"),
        ("", ""),
    ])
    def test_match(self, member, parameter):
        assert names_match(member, parameter)

    @pytest.mark.parametrize("member, parameter", [
        ("firstname", "firstName"),
        ("FIRSTNAME", "firstname"),
        ("ab", "abc"),
        ("a", "b"),
    ])
    def test_no_match(self, member, parameter):
        assert not names_match(member, parameter)


class TestConstructorSelection:
    """Candidate filtering, ordering and matching."""

    def test_dataclass_init(self, resolver):
        activator = resolver.resolve(Pair, {"left"})
        original = Pair("a", "b")
        rebuilt = activator(original, {"left": "z"})

        assert rebuilt == Pair("z", "b")
        assert rebuilt.right is original.right

    def test_most_parameters_first(self, resolver):
        rebuilt = resolver.resolve(Money, {"amount"})(Money.full(1, "EUR", "memo"), {"amount": 5})
        assert rebuilt.via == "full"
        assert rebuilt.note == "memo"

    def test_fewest_parameters_first(self):
        resolver = ConstructorResolver(ReflectingTypeProvider(), ConstructorOrdering.FEWEST_PARAMETERS_FIRST)
        rebuilt = resolver.resolve(Money, {"amount"})(Money.full(1, "EUR", "memo"), {"amount": 5})
        assert rebuilt.via == "of"
        assert rebuilt.note == ""

    def test_fewest_first_still_covers_targets(self):
        resolver = ConstructorResolver(ReflectingTypeProvider(), ConstructorOrdering.FEWEST_PARAMETERS_FIRST)
        rebuilt = resolver.resolve(Money, {"note"})(Money.full(1, "EUR", "memo"), {"note": "new"})
        assert rebuilt.via == "full"

    def test_designated_takes_priority(self, resolver):
        rebuilt = resolver.resolve(Ticket, {"seat"})(Ticket("A1", 1), {"seat": 2})
        assert rebuilt.via == "issue"
        assert (rebuilt.code, rebuilt.seat) == ("A1", 2)

    def test_first_letter_case_insensitive(self, resolver):
        rebuilt = resolver.resolve(CamelCased, {"FirstName"})(CamelCased("John", "Doe"), {"FirstName": "Jane"})
        assert (rebuilt.FirstName, rebuilt.LastName) == ("Jane", "Doe")

    def test_positional_only_parameter(self, resolver):
        rebuilt = resolver.resolve(PositionalOnly, {"y"})(PositionalOnly(1, 2), {"y": 3})
        assert (rebuilt.x, rebuilt.y) == (1, 3)

    def test_joint_targets(self, resolver):
        activator = resolver.resolve(Pair, {"left", "right"})
        assert activator.target_names == frozenset({"left", "right"})
        assert activator(Pair("a", "b"), {"left": "x", "right": "y"}) == Pair("x", "y")

    def test_missing_replacement(self, resolver):
        activator = resolver.resolve(Pair, {"left"})
        with pytest.raises(KeyError):
            activator(Pair("a", "b"), {})


class TestResolutionErrors:

    def test_ambiguous_member(self, resolver):
        with pytest.raises(AmbiguousMember) as exc_info:
            resolver.resolve(Shouty, {"name"})
        assert exc_info.value.parameter == "name"
        assert set(exc_info.value.members) == {"name", "Name"}

    def test_ambiguous_is_no_matching(self, resolver):
        with pytest.raises(NoMatchingConstructor):
            resolver.resolve(Shouty, {"name"})

    def test_type_mismatch(self, resolver):
        with pytest.raises(NoMatchingConstructor) as exc_info:
            resolver.resolve(Mismatched, {"count"})
        assert exc_info.value.type is Mismatched
        assert exc_info.value.target_names == ("count",)

    def test_target_not_covered(self, resolver):
        with pytest.raises(NoMatchingConstructor):
            resolver.resolve(Pair, {"middle"})

    def test_no_eligible_constructor(self, resolver):
        with pytest.raises(NoDesignatedConstructor):
            resolver.resolve(Empty, {"anything"})

    def test_try_resolve_returns_none(self, resolver):
        assert resolver.try_resolve(Mismatched, {"count"}) is None

    def test_failures_not_cached(self, resolver):
        with pytest.raises(NoMatchingConstructor):
            resolver.resolve(Mismatched, {"count"})
        assert resolver.cache_key(Mismatched, {"count"}) not in resolver._cache


class TestActivatorCache:
    """Memoization by (type, sorted target names)."""

    def test_same_key_same_activator(self, resolver):
        assert resolver.resolve(Pair, {"left"}) is resolver.resolve(Pair, ["left"])

    def test_key_ignores_target_order(self, resolver):
        first = resolver.resolve(Pair, ["right", "left"])
        second = resolver.resolve(Pair, ("left", "right"))
        assert first is second

    def test_different_targets_different_entries(self, resolver):
        assert resolver.resolve(Pair, {"left"}) is not resolver.resolve(Pair, {"right"})

    def test_deterministic_across_resolvers(self):
        first = ConstructorResolver(ReflectingTypeProvider()).resolve(Money, {"amount"})
        second = ConstructorResolver(ReflectingTypeProvider()).resolve(Money, {"amount"})
        assert first.constructor.name == second.constructor.name
        original = Money.full(1, "EUR", "memo")
        assert first(original, {"amount": 2}).via == second(original, {"amount": 2}).via
