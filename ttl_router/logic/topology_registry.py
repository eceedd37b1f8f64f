"""Registry of routing units and the declaration plan derived from them.

Units are registered once at startup and the registry is frozen by
``build()``.  Dead-letter targets are normally required to be registered
before the units that reference them; with ``defer_resolution=True`` the
check (and cycle detection for units whose targets were still missing) is
postponed to ``build()`` so units can be loaded in any order, e.g. from a
config file.

Several units may share one queue (one binding per routing key), as long as
they agree on the queue's dead-letter target.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..domain.errors import (
    ConflictingQueueError,
    CyclicDeadLetterChainError,
    DuplicateNameError,
    RegistryFrozenError,
    UnknownDeadLetterTargetError,
)
from ..domain.routing_unit import (
    BindQueue,
    DeclareExchange,
    DeclareQueue,
    RoutingUnit,
    TopologyPlan,
)


class TopologyRegistry:

    def __init__(self, *, defer_resolution: bool = False) -> None:
        self._units: Dict[str, RoutingUnit] = {}
        self._queue_units: Dict[str, List[str]] = {}
        self._defer_resolution = defer_resolution
        self._frozen = False

    @classmethod
    def from_units(cls, units: Iterable[RoutingUnit], *, defer_resolution: bool = False) -> "TopologyRegistry":
        registry = cls(defer_resolution=defer_resolution)
        for unit in units:
            registry.register(unit)
        return registry

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register(self, unit: RoutingUnit) -> None:
        """Add *unit*. Raises a TopologyError and leaves the registry
        untouched if the unit clashes with what is already registered."""
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{unit.name}': registry was already built")
        if unit.name in self._units:
            raise DuplicateNameError(unit.name)

        candidate = dict(self._units)
        candidate[unit.name] = unit

        if unit.dead_letter is not None:
            if unit.dead_letter == unit.name:
                raise CyclicDeadLetterChainError([unit.name, unit.name])
            if unit.dead_letter not in self._units and not self._defer_resolution:
                raise UnknownDeadLetterTargetError(unit.name, unit.dead_letter)
            self._follow_chain(unit, candidate)

        self._check_shared_queue(unit, self._queue_units.get(unit.queue, []), candidate)

        self._units[unit.name] = unit
        self._queue_units.setdefault(unit.queue, []).append(unit.name)
        logging.debug(f"Registered routing unit {unit.name}: {unit.exchange} -> {unit.queue} ({unit.route_key})")

    @staticmethod
    def _queue_arguments(unit: RoutingUnit, units: Dict[str, RoutingUnit]) -> Optional[Dict[str, Any]]:
        """Queue arguments *unit* needs, or None while its target is unknown."""
        if unit.dead_letter is None:
            return {}
        target = units.get(unit.dead_letter)
        if target is None:
            return None
        return target.dead_letter_arguments()

    def _check_shared_queue(self, unit: RoutingUnit, sharers: List[str], units: Dict[str, RoutingUnit]) -> None:
        arguments = self._queue_arguments(unit, units)
        if arguments is None:
            return
        for name in sharers:
            other = self._queue_arguments(units[name], units)
            if other is not None and other != arguments:
                raise ConflictingQueueError(unit.queue, name, unit.name)

    @staticmethod
    def _follow_chain(start: RoutingUnit, units: Dict[str, RoutingUnit]) -> List[str]:
        """Walk dead-letter links from *start*. Stops at a unit without a
        target or at a target that is not registered (yet)."""
        chain = [start.name]
        current: Optional[RoutingUnit] = start
        while current is not None and current.dead_letter is not None:
            target = current.dead_letter
            if target in chain:
                chain.append(target)
                raise CyclicDeadLetterChainError(chain)
            chain.append(target)
            current = units.get(target)
        return chain

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def lookup(self, name: str) -> Optional[RoutingUnit]:
        return self._units.get(name)

    def dead_letter_target(self, unit: RoutingUnit) -> Optional[RoutingUnit]:
        if unit.dead_letter is None:
            return None
        return self._units.get(unit.dead_letter)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        return name in self._units

    def __len__(self) -> int:
        return len(self._units)

    def __iter__(self) -> Iterator[RoutingUnit]:
        return iter(self._units.values())

    # ------------------------------------------------------------------
    # Plan
    # ------------------------------------------------------------------
    def _resolve(self) -> None:
        for unit in self._units.values():
            if unit.dead_letter is None:
                continue
            if unit.dead_letter not in self._units:
                raise UnknownDeadLetterTargetError(unit.name, unit.dead_letter)
            self._follow_chain(unit, self._units)

        # targets registered after the units sharing a queue are only checked here
        for names in self._queue_units.values():
            for position, name in enumerate(names[1:], start=1):
                self._check_shared_queue(self._units[name], names[:position], self._units)

    def build(self) -> TopologyPlan:
        """Return the declaration plan and freeze the registry.

        Exchanges come first (deduplicated, in first-registration order),
        then each queue once (in first-registration order), then one binding
        per unit, so every entity a step refers to has been declared by an
        earlier step.
        """
        self._resolve()

        exchanges: List[DeclareExchange] = []
        seen_exchanges = set()
        for unit in self._units.values():
            if unit.exchange not in seen_exchanges:
                seen_exchanges.add(unit.exchange)
                exchanges.append(DeclareExchange(unit.exchange))

        queues = []
        for names in self._queue_units.values():
            first = self._units[names[0]]
            queues.append(DeclareQueue(first.queue, arguments=self._queue_arguments(first, self._units)))

        bindings = [BindQueue(unit.queue, unit.exchange, unit.route_key) for unit in self._units.values()]

        self._frozen = True
        plan = TopologyPlan(tuple(exchanges) + tuple(queues) + tuple(bindings))
        logging.info(
            f"Topology plan built: {len(exchanges)} exchanges, {len(queues)} queues, {len(bindings)} bindings"
        )
        return plan
