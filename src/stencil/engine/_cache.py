"""Compiled-template cache.

Entries are stored per template name together with the identity key they
were compiled for. A lookup whose key differs from the stored one is a miss,
so a changed source is always recompiled. Compiles for the same name are
serialised by a per-name lock; different names compile concurrently.
"""

import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, replace

from structlog.typing import FilteringBoundLogger

from stencil.loaders import TemplateSource, fingerprint_source
from stencil.utils import create_null_logger

from ._compiled import CompiledTemplate


@dataclass(frozen=True, slots=True)
class TemplateIdentity:
    """Identity of a template source: its name and content fingerprint."""

    name: str
    fingerprint: str

    @property
    def key(self) -> str:
        """Cache key, ``name@fingerprint``."""
        return f"{self.name}@{self.fingerprint}"

    @classmethod
    def for_source(cls, name: str, text: str) -> TemplateIdentity:
        """Build the identity of ``text`` stored under ``name``."""
        return cls(name=name, fingerprint=fingerprint_source(text))

    @classmethod
    def from_source(cls, source: TemplateSource) -> TemplateIdentity:
        """Build the identity of a loaded template source."""
        return cls(name=source.name, fingerprint=source.fingerprint)


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Counters describing cache activity.

    Attributes:
        hits: Lookups answered from the cache.
        misses: Lookups that required a compile.
        compiles: Successful compiles stored in the cache.
        evictions: Entries dropped to respect ``max_entries``.
    """

    hits: int = 0
    misses: int = 0
    compiles: int = 0
    evictions: int = 0


class TemplateCache:
    """Thread-safe cache of compiled templates.

    Construct one per engine (or share one explicitly between engines);
    there is no process-wide instance.

    Example:
        >>> cache = TemplateCache(max_entries=100)
        >>> identity = TemplateIdentity.for_source("hello", "Hi <%= name %>")
        >>> template = cache.get_or_compile(identity, compile_hello)  # doctest: +SKIP
    """

    def __init__(
        self,
        *,
        max_entries: int | None = 512,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize an empty cache.

        Args:
            max_entries: Maximum number of templates kept; least recently
                used entries are evicted first. None disables the bound.
            logger: Structured logger for cache events.
        """
        if max_entries is not None and max_entries < 1:
            msg = f"max_entries must be positive or None, got {max_entries}"
            raise ValueError(msg)
        self.max_entries: int | None = max_entries
        self._logger: FilteringBoundLogger = (
            logger if logger is not None else create_null_logger()
        )
        self._entries: OrderedDict[str, CompiledTemplate] = OrderedDict()
        self._gates: dict[str, threading.Lock] = {}
        self._lock: threading.Lock = threading.Lock()
        self._stats: CacheStats = CacheStats()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    @property
    def stats(self) -> CacheStats:
        """A snapshot of the cache counters."""
        with self._lock:
            return self._stats

    def get(self, identity: TemplateIdentity) -> CompiledTemplate | None:
        """Return the cached template for ``identity`` if it is current."""
        with self._lock:
            return self._lookup(identity)

    def get_or_compile(
        self,
        identity: TemplateIdentity,
        compiler: Callable[[], CompiledTemplate],
    ) -> CompiledTemplate:
        """Return the current compiled template, compiling it if needed.

        At most one compile runs per template name at a time. Callers that
        arrive while a compile is in flight wait and receive its result.
        Failed compiles are not cached.

        Args:
            identity: Identity of the current template source.
            compiler: Produces the compiled template on a miss. Its result
                must carry ``identity.key``.

        Returns:
            The compiled template for ``identity``.

        Raises:
            ValueError: If the compiler returns a template for another key.
        """
        with self._lock:
            cached = self._lookup(identity)
            if cached is not None:
                return cached
            gate = self._gates.setdefault(identity.name, threading.Lock())

        with gate:
            with self._lock:
                cached = self._lookup(identity)
                if cached is not None:
                    return cached
                self._stats = replace(self._stats, misses=self._stats.misses + 1)

            template = compiler()
            if template.key != identity.key:
                msg = (
                    f"Compiler returned template for key {template.key!r}, "
                    f"expected {identity.key!r}"
                )
                raise ValueError(msg)

            with self._lock:
                self._store(identity.name, template)
            return template

    def invalidate(self, name: str) -> bool:
        """Drop the entry for ``name``.

        Returns:
            True if an entry was removed.
        """
        with self._lock:
            gate = self._gates.get(name)
            if gate is not None and not gate.locked():
                del self._gates[name]
            return self._entries.pop(name, None) is not None

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        with self._lock:
            self._entries.clear()
            self._gates.clear()
            self._stats = CacheStats()

    def _lookup(self, identity: TemplateIdentity) -> CompiledTemplate | None:
        # Caller holds self._lock.
        template = self._entries.get(identity.name)
        if template is None or template.key != identity.key:
            return None
        self._entries.move_to_end(identity.name)
        self._stats = replace(self._stats, hits=self._stats.hits + 1)
        self._logger.debug("template_cache_hit", template=identity.name)
        return template

    def _store(self, name: str, template: CompiledTemplate) -> None:
        # Caller holds self._lock.
        self._entries[name] = template
        self._entries.move_to_end(name)
        evicted = 0
        while self.max_entries is not None and len(self._entries) > self.max_entries:
            evicted_name, _ = self._entries.popitem(last=False)
            self._gates.pop(evicted_name, None)
            evicted += 1
            self._logger.debug("template_cache_evicted", template=evicted_name)
        self._stats = replace(
            self._stats,
            compiles=self._stats.compiles + 1,
            evictions=self._stats.evictions + evicted,
        )
