"""Deterministic random number generation with isolated streams.

Each subsystem that rolls dice (detection checks, NPC idle behavior, combat
resolution, advisor line selection) gets its own independent random stream
derived from a master seed. This ensures that:

1. A mission replays identically from the same master seed
2. Extra rolls in one system don't shift another system's sequence
3. Tests can pin down one stream without caring about the others

There is no module-level provider. The engine owns an ``RNGProvider`` and
passes it to the components that need randomness.

Usage:
    provider = RNGProvider(config.RANDOM_SEED)
    detection_rng = provider.get("detection.roll")

    if detection_rng.random() * 100 < chance:
        ...

Domain naming convention (hierarchical):
    - "detection.roll"
    - "npc.behavior"
    - "combat.resolve"
    - "advisor.lines"
"""

from __future__ import annotations

import zlib
from collections.abc import Sequence
from random import Random
from typing import TypeAlias
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from infiltrator.types import RandomSeed

T = TypeVar("T")


class RNGStream:
    """Proxy that delegates to the current RNG for a domain.

    This wrapper allows callers to cache a reference that survives reset().
    All method calls are forwarded to the underlying Random instance,
    which is looked up fresh each time from the provider.
    """

    def __init__(self, provider: RNGProvider, domain: str) -> None:
        self._provider = provider
        self._domain = domain

    def _rng(self) -> Random:
        """Get the current underlying RNG."""
        return self._provider._get_raw(self._domain)

    def random(self) -> float:
        """Return random float in [0.0, 1.0)."""
        return self._rng().random()

    def randint(self, a: int, b: int) -> int:
        """Return random integer N such that a <= N <= b."""
        return self._rng().randint(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        """Return random element from non-empty sequence."""
        return self._rng().choice(seq)

    def uniform(self, a: float, b: float) -> float:
        """Return random float N such that a <= N <= b."""
        return self._rng().uniform(a, b)


# Type alias for functions that accept either Random or RNGStream.
RNG: TypeAlias = Random | RNGStream


class RNGProvider:
    """Provides isolated RNG streams for different game subsystems.

    Each domain gets its own Random instance derived deterministically
    from the master seed. Domains are identified by string names.
    """

    def __init__(self, master_seed: RandomSeed = None) -> None:
        self._master_seed = master_seed
        self._streams: dict[str, Random] = {}
        self._proxies: dict[str, RNGStream] = {}

    def get(self, domain: str) -> RNGStream:
        """Get an RNG stream for the named domain.

        Returns a proxy object that can be cached. The proxy automatically
        uses the current underlying RNG, even after reset().
        """
        if domain not in self._proxies:
            self._proxies[domain] = RNGStream(self, domain)
        return self._proxies[domain]

    def _get_raw(self, domain: str) -> Random:
        """Get the raw Random instance for a domain (internal use)."""
        if domain not in self._streams:
            if self._master_seed is None:
                # No seed: use system entropy for non-deterministic behavior
                self._streams[domain] = Random()
            else:
                # crc32 rather than hash(): hash() is salted per interpreter
                # session via PYTHONHASHSEED.
                derived_seed = zlib.crc32(f"{self._master_seed}:{domain}".encode())
                self._streams[domain] = Random(derived_seed)
        return self._streams[domain]

    def reset(self, master_seed: RandomSeed = None) -> None:
        """Reset all streams with a new master seed.

        Existing RNGStream proxies remain valid and will use the new streams.
        """
        self._master_seed = master_seed
        self._streams.clear()
