# src/branchguard/manager.py: Entry point for protection evaluation.
# The Manager ties the definition registry, the rule store and the membership
# resolver together. It builds the RuleSet for a repository and normalizes
# rules on the administrative path before they are stored.

from __future__ import annotations

from typing import Optional

from .context import Context
from .membership import PermissionCache
from .pattern import parse_pattern
from .registry import DefinitionRegistry, default_registry
from .ruleset import RuleSet
from .store import RuleStore
from .types import Repository, Rule
from .util.log import get_logger

logger = get_logger(__name__)


class Manager:
    def __init__(
        self,
        rule_store: RuleStore,
        registry: Optional[DefinitionRegistry] = None,
        resolver: Optional[PermissionCache] = None,
    ):
        self.rule_store = rule_store
        self.registry = registry or default_registry()
        self.resolver = resolver

    def for_repository(self, ctx: Context, repo: Repository) -> RuleSet:
        """Fetch the rules in scope for a repository and wrap them in a RuleSet."""
        ctx.raise_if_cancelled()
        rules = self.rule_store.list_repo_rules(repo)
        logger.debug(f"Loaded {len(rules)} rules for repository '{repo.path}'")
        return RuleSet(rules, self.registry, self.resolver)

    def sanitize_rule(self, rule: Rule) -> Rule:
        """
        Validate a rule and return it with normalized payloads.

        Raises:
            RuleError: If the pattern, the type or the definition is invalid.
        """
        pattern = parse_pattern(rule.pattern)
        definition = self.registry.sanitize_json(rule.info.type, rule.definition)
        return rule.model_copy(update={
            "pattern": pattern.model_dump_json().encode("utf-8"),
            "definition": definition,
        })
