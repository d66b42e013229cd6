# src/branchguard/registry.py: Rule definition registry.
# Every rule carries a type tag and an opaque definition payload. The registry
# maps each tag to a factory for an empty definition of that kind, which then
# parses and evaluates itself. Adding a new protection kind means registering
# a new factory; the rule set never needs to know the concrete kinds.

from __future__ import annotations

from abc import ABC, abstractmethod
from functools import lru_cache
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

from .context import Context
from .types import MergeVerifyInput, RuleMergeOutput
from .util.errors import RegistryError, UnknownRuleTypeError
from .violations import Violation

if TYPE_CHECKING:
    from .membership import PermissionCache


class Definition(ABC):
    """A parsed, type-specific rule configuration with its merge check."""

    @abstractmethod
    def parse(self, raw: bytes) -> None:
        """Load the configuration from a raw JSON payload. Raises DefinitionError."""

    @abstractmethod
    def sanitize(self) -> None:
        """Validate and normalize the loaded configuration. Raises DefinitionError."""

    @abstractmethod
    def to_json(self) -> bytes:
        """Serialize the (sanitized) configuration back to JSON."""

    @abstractmethod
    def merge_verify(
        self, ctx: Context, in_: MergeVerifyInput
    ) -> Tuple[RuleMergeOutput, List[Violation]]:
        """Check a merge against this definition."""

    @abstractmethod
    def is_bypassed(
        self, ctx: Context, in_: MergeVerifyInput, resolver: Optional[PermissionCache]
    ) -> bool:
        """Check whether the actor may bypass this definition."""


DefinitionFactory = Callable[[], Definition]


class DefinitionRegistry:
    def __init__(self):
        self._factories: Dict[str, DefinitionFactory] = {}
        self._frozen = False

    def register(self, type_tag: str, factory: DefinitionFactory) -> None:
        if self._frozen:
            raise RegistryError(f"registry is frozen, cannot register rule type '{type_tag}'")
        if not type_tag:
            raise RegistryError("rule type must not be empty")
        if type_tag in self._factories:
            raise RegistryError(f"rule type '{type_tag}' already registered")
        self._factories[type_tag] = factory

    def freeze(self) -> None:
        """Make the registry read-only. Called once startup registration is done."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def types(self) -> List[str]:
        return sorted(self._factories)

    def new_definition(self, type_tag: str) -> Definition:
        factory = self._factories.get(type_tag)
        if factory is None:
            raise UnknownRuleTypeError(f"unknown rule type: '{type_tag}'")
        return factory()

    def from_json(self, type_tag: str, raw: bytes) -> Definition:
        """Create a definition of the given kind from its raw payload."""
        definition = self.new_definition(type_tag)
        definition.parse(raw)
        definition.sanitize()
        return definition

    def sanitize_json(self, type_tag: str, raw: bytes) -> bytes:
        """Return the normalized JSON form of a definition payload."""
        return self.from_json(type_tag, raw).to_json()


@lru_cache(maxsize=1)
def default_registry() -> DefinitionRegistry:
    """Returns the process-wide registry with the built-in rule kinds."""
    from .branch import TYPE_BRANCH, Branch

    registry = DefinitionRegistry()
    registry.register(TYPE_BRANCH, Branch)
    registry.freeze()
    return registry
