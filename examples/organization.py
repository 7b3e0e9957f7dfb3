"""
Organization walkthrough for objectwith.

Builds a small immutable organization graph and derives new versions of it
with single and batched mutations, printing which nodes are shared.

    python examples/organization.py
"""

import logging
from dataclasses import dataclass
from enum import Enum

from objectwith import ConstructorOrdering, Immutable, engine_context, mutate, mutate_all, with_constructor

logger = logging.getLogger(__name__)


class Currency(Enum):
    EUR = "EUR"
    USD = "USD"


class Budget:
    """Plain class rebuilt through a designated alternate constructor."""

    def __init__(self, amount: int, currency: Currency, approved_by: str):
        self._amount = amount
        self._currency = currency
        self._approved_by = approved_by

    @classmethod
    @with_constructor
    def draft(cls, amount: int, currency: Currency) -> 'Budget':
        return cls(amount, currency, approved_by="")

    @classmethod
    @with_constructor
    def approved(cls, amount: int, currency: Currency, approved_by: str) -> 'Budget':
        return cls(amount, currency, approved_by)

    @property
    def amount(self) -> int:
        return self._amount

    @property
    def currency(self) -> Currency:
        return self._currency

    @property
    def approved_by(self) -> str:
        return self._approved_by

    def __repr__(self):
        return f"Budget({self._amount} {self._currency.value}, approved_by={self._approved_by!r})"


@dataclass(frozen=True)
class Employee(Immutable):
    first_name: str
    last_name: str


@dataclass(frozen=True)
class Department(Immutable):
    title: str
    manager: Employee
    budget: Budget


@dataclass(frozen=True)
class Organization(Immutable):
    name: str
    sales: Department


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    org = Organization(
        name="Organization",
        sales=Department(
            title="Development Department",
            manager=Employee(first_name="John", last_name="Doe"),
            budget=Budget.approved(1000, Currency.EUR, approved_by="CFO"),
        ),
    )

    renamed = mutate(org, lambda o: o.sales.manager.first_name, "Foo")
    logger.info(f"manager: {renamed.sales.manager}")
    logger.info(f"name shared: {renamed.name is org.name}, title shared: {renamed.sales.title is org.sales.title}")
    logger.info(f"rebuilt: root={renamed is not org}, sales={renamed.sales is not org.sales}, "
                f"manager={renamed.sales.manager is not org.sales.manager}")

    reorganized = org.with_all([
        ("name", "Acme"),
        ("sales.title", "Sales"),
        ("sales.budget.amount", 2500),
    ])
    logger.info(f"batched: {reorganized.name} / {reorganized.sales.title} / {reorganized.sales.budget}")

    # Budget has two designated constructors; the ordering decides which one rebuilds it
    with engine_context(ordering=ConstructorOrdering.FEWEST_PARAMETERS_FIRST):
        drafted = mutate(org, "sales.budget.amount", 1200)
    logger.info(f"fewest-parameters-first: {drafted.sales.budget}")


if __name__ == "__main__":
    main()
