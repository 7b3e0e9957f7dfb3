"""Pytest configuration and shared fixtures."""
import pytest
from dataclasses import dataclass

import objectwith.config as config_module
from objectwith import WithEngine


@dataclass(frozen=True)
class Employee:
    """Leaf of the organization graph."""
    first_name: str
    last_name: str


@dataclass(frozen=True)
class Department:
    """Middle level of the organization graph."""
    title: str
    manager: Employee


@dataclass(frozen=True)
class Organization:
    """Root of the organization graph."""
    name: str
    sales: Department


@pytest.fixture(autouse=True)
def reset_engine_config():
    """Reset process-wide engine configuration around each test."""
    original_ordering = config_module._constructor_ordering
    original_provider = config_module._type_provider
    original_engine = config_module._default_engine

    config_module._default_engine = None

    yield

    config_module._constructor_ordering = original_ordering
    config_module._type_provider = original_provider
    config_module._default_engine = original_engine


@pytest.fixture
def engine():
    """Provide a fresh engine with empty caches."""
    return WithEngine()


@pytest.fixture
def organization():
    """Provide the Organization / Department / Employee sample graph."""
    return Organization(
        name="Organization",
        sales=Department(
            title="Development Department",
            manager=Employee(first_name="John", last_name="Doe"),
        ),
    )
