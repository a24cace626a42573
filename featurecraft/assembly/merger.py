"""Default merger.

Implements prototype inheritance only: the prototype's bundles and
extensions (minus the removal lists) form the base, the feature's own
members are overlaid by identity or name. Build tools with richer merge
rules plug in their own Merger.
"""

import logging

from ..core.errors import AssemblyError
from ..core.models import Artifact, Extension, Feature, Identity
from .resolver import NotFound, ReferenceResolver


logger = logging.getLogger(__name__)


class PrototypeMerger:
    """Merge a feature with its prototype chain.

    In-graph prototypes come back from the resolver already assembled.
    External ones are returned verbatim, so their own prototypes are merged
    here through the same resolver; ``visited`` holds the external ids on
    the current chain so a loop between repository features fails instead
    of recursing forever.
    """

    def assemble(self, base: Feature, resolver: ReferenceResolver) -> Feature:
        return self._merge(base, resolver, frozenset())

    def _merge(
        self,
        base: Feature,
        resolver: ReferenceResolver,
        visited: frozenset[Identity],
    ) -> Feature:
        result = base.copy_for_assembly()
        if base.prototype is None:
            result.assembled = True
            return result

        prototype_id = base.prototype.id
        if prototype_id in visited:
            raise AssemblyError(base.id, prototype_id, NotFound.CYCLE)
        prototype = resolver.resolve(prototype_id)
        if isinstance(prototype, NotFound):
            raise AssemblyError(base.id, prototype_id, prototype.reason)
        if not prototype.assembled and prototype.prototype is not None:
            prototype = self._merge(prototype, resolver, visited | {prototype_id})

        logger.debug("Merging prototype %s into %s", prototype_id, base.id)
        removed_bundles = set(base.prototype.removed_bundles)
        removed_extensions = set(base.prototype.removed_extensions)

        bundles: dict[Identity, Artifact] = {}
        for artifact in prototype.bundles:
            if artifact.id not in removed_bundles:
                bundles[artifact.id] = artifact.model_copy(deep=True)
        for artifact in result.bundles:
            bundles[artifact.id] = artifact

        extensions: dict[str, Extension] = {}
        for ext in prototype.extensions:
            if ext.name not in removed_extensions:
                extensions[ext.name] = ext.model_copy(deep=True)
        for ext in result.extensions:
            extensions[ext.name] = ext

        result.bundles = list(bundles.values())
        result.extensions = list(extensions.values())
        result.variables = {**prototype.variables, **result.variables}
        result.framework_properties = {
            **prototype.framework_properties,
            **result.framework_properties,
        }
        for attr in ("title", "description", "vendor", "license"):
            if getattr(result, attr) is None:
                setattr(result, attr, getattr(prototype, attr))
        result.prototype = None
        result.assembled = True
        return result
