"""
Process-wide engine configuration and contextvars-scoped overrides.

The default engine is built lazily from the configured provider and
constructor ordering. Both settings are part of what an activator means, so
changing either replaces the default engine (and with it the caches) rather
than mutating it.

Scoped overrides use contextvars, so they follow threads and asyncio tasks:

    with engine_context(ordering=ConstructorOrdering.FEWEST_PARAMETERS_FIRST):
        mutate(org, "name", "Renamed")
"""

import contextvars
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from objectwith.descriptor import TypeDescriptorProvider
from objectwith.executor import WithEngine
from objectwith.resolver import ConstructorOrdering

logger = logging.getLogger(__name__)

_constructor_ordering: ConstructorOrdering = ConstructorOrdering.MOST_PARAMETERS_FIRST
_type_provider: Optional[TypeDescriptorProvider] = None
_default_engine: Optional[WithEngine] = None
_default_engine_lock = threading.Lock()

current_engine: contextvars.ContextVar[Optional[WithEngine]] = contextvars.ContextVar(
    'current_engine', default=None
)


def set_constructor_ordering(ordering: ConstructorOrdering) -> None:
    """Set the ordering used by the default engine."""
    global _constructor_ordering
    _constructor_ordering = ConstructorOrdering(ordering)
    _reset_default_engine()


def get_constructor_ordering() -> ConstructorOrdering:
    """Get the ordering used by the default engine."""
    return _constructor_ordering


def set_type_provider(provider: Optional[TypeDescriptorProvider]) -> None:
    """Set the descriptor provider of the default engine (None restores reflection)."""
    global _type_provider
    _type_provider = provider
    _reset_default_engine()


def get_type_provider() -> Optional[TypeDescriptorProvider]:
    """Get the configured descriptor provider, or None for the reflecting default."""
    return _type_provider


def _reset_default_engine() -> None:
    global _default_engine
    with _default_engine_lock:
        _default_engine = None
    logger.debug(f"Default engine reset (ordering={_constructor_ordering.name}, "
                 f"provider={type(_type_provider).__name__ if _type_provider else 'ReflectingTypeProvider'})")


def get_default_engine() -> WithEngine:
    """Return the process-wide engine, building it on first use."""
    global _default_engine
    engine = _default_engine
    if engine is not None:
        return engine
    with _default_engine_lock:
        if _default_engine is None:
            _default_engine = WithEngine(provider=_type_provider, ordering=_constructor_ordering)
        return _default_engine


def get_current_engine() -> WithEngine:
    """Engine set by the innermost engine_context(), else the default engine."""
    engine = current_engine.get()
    return engine if engine is not None else get_default_engine()


@contextmanager
def engine_context(
    engine: Optional[WithEngine] = None,
    *,
    ordering: Optional[ConstructorOrdering] = None,
    provider: Optional[TypeDescriptorProvider] = None,
) -> Iterator[WithEngine]:
    """
    Scope module-level mutate()/mutate_all() calls to a specific engine.

    Args:
        engine: Engine to use. Mutually exclusive with ordering/provider.
        ordering: Build a fresh engine with this constructor ordering.
        provider: Build a fresh engine with this descriptor provider.

    Usage:
        with engine_context(provider=MyProvider()) as engine:
            mutate(root, "a.b", 1)
    """
    if engine is not None and (ordering is not None or provider is not None):
        raise ValueError("engine_context() takes either an engine or ordering/provider, not both")
    if engine is None:
        engine = WithEngine(
            provider=provider if provider is not None else _type_provider,
            ordering=ordering if ordering is not None else _constructor_ordering,
        )

    token = current_engine.set(engine)
    try:
        yield engine
    finally:
        current_engine.reset(token)
