"""Compile declarations into a registry, and keep a short-lived registry cache."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from tablegraph.config import Settings
from tablegraph.core.access_patterns import generate_access_patterns
from tablegraph.core.indexes import assign_indexes
from tablegraph.core.registry import build_models, load_declarations
from tablegraph.core.relationships import derive_relationships
from tablegraph.models import Registry

logger = logging.getLogger(__name__)


def compile_registry(declarations: Iterable[Any], settings: Settings | None = None) -> Registry:
    """Build models, derive relationships, assign indexes and generate access patterns.

    Deterministic for a given declaration order and settings; never raises on
    bad declarations (they become registry warnings).
    """
    registry = build_models(declarations, settings or Settings())
    derive_relationships(registry)
    assign_indexes(registry)
    generate_access_patterns(registry)
    return registry


def build_registry(settings: Settings) -> Registry:
    """Discover declarations under ``settings.models_path`` and compile them."""
    if settings.models_path is None:
        registry = Registry(settings=settings, warnings=["No models path configured"])
        logger.warning("No models path configured")
        return registry

    declarations, warnings = load_declarations(settings.models_path)
    for warning in warnings:
        logger.warning(warning)
    if not declarations and warnings:
        return Registry(settings=settings, warnings=warnings)

    registry = compile_registry(declarations, settings)
    registry.warnings[:0] = warnings
    logger.info(
        "Compiled %d model(s) into %d index(es) with %d warning(s)",
        len(registry.models),
        len(registry.index_definitions),
        len(registry.warnings),
    )
    return registry


class RegistryCache:
    """Time-boxed holder for a compiled registry.

    Not thread-safe; callers serving concurrent requests should guard
    ``get_or_build`` with a single-flight lock of their own.
    """

    def __init__(
        self,
        builder: Callable[[], Registry],
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._builder = builder
        self._ttl = ttl_seconds
        self._clock = clock
        self._registry: Registry | None = None
        self._built_at = 0.0

    @classmethod
    def for_settings(cls, settings: Settings) -> RegistryCache:
        return cls(lambda: build_registry(settings), ttl_seconds=settings.registry_ttl_seconds)

    @property
    def is_fresh(self) -> bool:
        return self._registry is not None and self._clock() - self._built_at < self._ttl

    def get_or_build(self) -> Registry:
        if self._registry is not None and self.is_fresh:
            return self._registry
        if self._registry is not None:
            logger.info("Registry cache expired, rebuilding")
        self._registry = self._builder()
        self._built_at = self._clock()
        return self._registry

    def invalidate(self) -> None:
        self._registry = None
        self._built_at = 0.0
