"""Dependency augmentation.

Artifacts referenced by a module's features are added to the module's
declared dependency list so the surrounding build resolves them before
the module is built.
"""

import logging

from ..core.models import Dependency, Identity, Module


logger = logging.getLogger(__name__)


class ModuleDependencySink:
    """Appends missing entries to ``Module.dependencies``.

    Idempotent: an identity already covered by an entry, or produced by the
    module itself, is skipped.
    """

    def __init__(self) -> None:
        self.added: list[tuple[str, Dependency]] = []

    def ensure_dependency(self, module: Module, id: Identity, scope: str) -> None:
        if module.owns(id):
            logger.debug("- skipping dependency %s", id.to_coordinate())
            return
        if module.has_dependency(id):
            return
        logger.debug("- adding dependency %s", id.to_coordinate())
        dep = Dependency.from_identity(id, scope)
        module.dependencies.append(dep)
        self.added.append((module.key, dep))

    def added_for(self, module: Module) -> list[Dependency]:
        return [dep for key, dep in self.added if key == module.key]
