"""Reference resolution for the merger.

A ReferenceResolver is bound to one module and scope and handed to the
merger while a feature of that module is assembled. It resolves a single
identity to a feature by looking, in order, at:

1. the requesting module itself (assembled, then raw features, assembling
   raw ones on demand),
2. another module of the build graph (processing that module first),
3. the external artifact loader.

Cycles are broken with an in-flight set shared by every resolver of one
top-level process call: an identity that is already being resolved or
assembled further up the call stack yields NotFound instead of recursing.
"""

import logging
from typing import TYPE_CHECKING

from ..core.errors import ExternalResolutionError
from ..core.models import Feature, Identity, Module
from .diagnostics import DiagnosticKind
from .store import Scope

if TYPE_CHECKING:
    from .coordinator import AssemblyCoordinator


logger = logging.getLogger(__name__)


class NotFound:
    """Result of a resolution that produced no feature.

    Falsy, so mergers can write ``if not feature: ...``.
    """

    CYCLE = "cycle"
    MISSING = "missing"

    __slots__ = ("identity", "reason")

    def __init__(self, identity: Identity, reason: str = MISSING):
        self.identity = identity
        self.reason = reason

    def __bool__(self) -> bool:
        return False

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, NotFound)
            and other.identity == self.identity
            and other.reason == self.reason
        )

    def __hash__(self) -> int:
        return hash((self.identity, self.reason))

    def __repr__(self) -> str:
        return f"NotFound({self.identity.to_coordinate()!r}, reason={self.reason!r})"


class InFlight:
    """Identities currently being resolved or assembled on the call stack."""

    def __init__(self) -> None:
        self._stack: list[Identity] = []
        self._members: set[Identity] = set()

    def __contains__(self, id: object) -> bool:
        return id in self._members

    def __len__(self) -> int:
        return len(self._stack)

    def push(self, id: Identity) -> bool:
        """Add ``id``; returns False if it was already present."""
        if id in self._members:
            return False
        self._members.add(id)
        self._stack.append(id)
        return True

    def pop(self, id: Identity) -> None:
        if id in self._members:
            self._members.discard(id)
            self._stack.remove(id)

    def path(self) -> list[Identity]:
        return list(self._stack)


class ReferenceResolver:
    """Resolves identities on behalf of one module and scope."""

    def __init__(
        self,
        coordinator: "AssemblyCoordinator",
        module: Module,
        scope: Scope,
        in_flight: InFlight,
    ):
        self.coordinator = coordinator
        self.module = module
        self.scope = scope
        self.in_flight = in_flight

    @property
    def session(self):
        return self.coordinator.session

    def __call__(self, id: Identity) -> Feature | NotFound:
        return self.resolve(id)

    def resolve(self, id: Identity) -> Feature | NotFound:
        """Resolve ``id`` to a feature.

        Returns:
            The feature, or NotFound when the reference is cyclic or cannot
            be found in the requesting module or a sibling module.

        Raises:
            ExternalResolutionError: The external loader failed.
            FatalAssemblyError: Processing a sibling module failed.
        """
        diagnostics = self.session.diagnostics
        if id in self.in_flight:
            path = " -> ".join(i.to_coordinate() for i in self.in_flight.path())
            diagnostics.report(
                DiagnosticKind.CYCLE_DETECTED,
                self.module.id,
                f"Cyclic reference through {id.to_coordinate()} inside project "
                f"{self.module.id} (in flight: {path})",
                identity=id,
            )
            return NotFound(id, NotFound.CYCLE)

        self._record_reference(id)

        target = self.session.module_for(id)
        if target is not None and target.key != self.module.key:
            # Processing a sibling module is not a reference to ``id`` itself,
            # so it runs before ``id`` is marked in flight.
            logger.debug("Found reactor %s dependency to project: %s", id.type, id)
            self.coordinator.process_within(target, self.scope, self.in_flight)

        self.in_flight.push(id)
        try:
            if target is None:
                return self._load_external(id)

            found = self.coordinator.lookup(target, self.scope, id, self.in_flight)
            if found is not None:
                return found

            if target.key == self.module.key:
                message = (
                    f"Unable to find included feature {id.to_coordinate()} "
                    f"in project {self.module.id}"
                )
            else:
                message = (
                    f"Unable to get feature {id.to_coordinate()} from project "
                    f"{target.id}: not produced or recursive {self.scope.label} "
                    f"dependency list including project {self.module.id}"
                )
            diagnostics.report(
                DiagnosticKind.FEATURE_NOT_FOUND,
                self.module.id,
                message,
                identity=id,
            )
            return NotFound(id, NotFound.MISSING)
        finally:
            self.in_flight.pop(id)

    def _record_reference(self, id: Identity) -> None:
        config = self.session.scope_config(self.module, self.scope)
        if config.skip_add_dependencies or self.module.owns(id):
            return
        self.session.dependency_sink.ensure_dependency(
            self.module, id, config.dependency_scope
        )

    def _load_external(self, id: Identity) -> Feature:
        logger.debug("Found external %s dependency: %s", id.type, id)
        try:
            return self.session.loader.load(id)
        except ExternalResolutionError as exc:
            self.session.diagnostics.report(
                DiagnosticKind.EXTERNAL_RESOLUTION_FAILURE,
                self.module.id,
                str(exc),
                identity=id,
            )
            raise
