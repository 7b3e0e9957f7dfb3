"""
Structural mutation for immutable object graphs.

Derive a new object graph from an existing one by replacing the values at one
or more member paths. Every ancestor of a replaced member is rebuilt through
one of its constructors; every untouched subtree is shared by reference.

Quick Start:
    >>> from dataclasses import dataclass
    >>> from objectwith import mutate, mutate_all
    >>>
    >>> @dataclass(frozen=True)
    ... class Employee:
    ...     first_name: str
    ...     last_name: str
    >>>
    >>> @dataclass(frozen=True)
    ... class Department:
    ...     title: str
    ...     manager: Employee
    >>>
    >>> dept = Department("Development", Employee("John", "Doe"))
    >>> mutate(dept, "manager.first_name", "Foo").manager.first_name
    'Foo'
    >>> mutate_all(dept, [(lambda d: d.title, "R&D"), ("manager.last_name", "Bar")])
    Department(title='R&D', manager=Employee(first_name='John', last_name='Bar'))

Architecture:
    Mutation Executor (executor)
        ├── Path Accessor Compiler (paths)
        └── Constructor Resolver (resolver)
                └── Type Descriptor Provider (descriptor)
    Cache Layer (cache) backs descriptors, activators and accessors.

Modules:
    - descriptor: member/constructor metadata and the reflecting provider
    - resolver: constructor selection and activator compilation
    - paths: path decomposition and accessor compilation
    - executor: single and batched mutation (WithEngine)
    - cache: append-only, race-tolerant memo tables
    - config: default engine, ordering/provider settings, engine_context()
    - errors: exception hierarchy
"""

# Errors
from objectwith.errors import (
    WithError,
    InvalidPath,
    ConstructorResolutionError,
    NoDesignatedConstructor,
    NoMatchingConstructor,
    AmbiguousMember,
)

# Descriptors
from objectwith.descriptor import (
    Member,
    Parameter,
    ConstructorCandidate,
    TypeDescriptor,
    TypeDescriptorProvider,
    ReflectingTypeProvider,
    with_constructor,
)

# Cache
from objectwith.cache import AppendOnlyCache, CacheKey

# Resolver
from objectwith.resolver import Activator, ConstructorOrdering, ConstructorResolver, names_match

# Paths
from objectwith.paths import Accessor, AccessorCompiler, Path, decompose

# Executor
from objectwith.executor import WithEngine

# Configuration
from objectwith.config import (
    set_constructor_ordering,
    get_constructor_ordering,
    set_type_provider,
    get_type_provider,
    get_default_engine,
    get_current_engine,
    engine_context,
)

# Public API
from objectwith.immutable import Immutable, mutate, mutate_all

__all__ = [
    # Errors
    'WithError',
    'InvalidPath',
    'ConstructorResolutionError',
    'NoDesignatedConstructor',
    'NoMatchingConstructor',
    'AmbiguousMember',
    # Descriptors
    'Member',
    'Parameter',
    'ConstructorCandidate',
    'TypeDescriptor',
    'TypeDescriptorProvider',
    'ReflectingTypeProvider',
    'with_constructor',
    # Cache
    'AppendOnlyCache',
    'CacheKey',
    # Resolver
    'Activator',
    'ConstructorOrdering',
    'ConstructorResolver',
    'names_match',
    # Paths
    'Accessor',
    'AccessorCompiler',
    'Path',
    'decompose',
    # Executor
    'WithEngine',
    # Configuration
    'set_constructor_ordering',
    'get_constructor_ordering',
    'set_type_provider',
    'get_type_provider',
    'get_default_engine',
    'get_current_engine',
    'engine_context',
    # Public API
    'Immutable',
    'mutate',
    'mutate_all',
]

__version__ = '1.0.0'
__description__ = 'Structural mutation for immutable object graphs'
