# src/branchguard/ruleset.py: Multi-rule merge verification.
# A RuleSet holds the rules already fetched for one repository, in the order
# the rule store returned them. merge_verify runs every applicable rule's merge
# check and folds the results into a single decision: which merge methods are
# allowed, whether the source branch must be deleted, and which violations
# block the merge. A rule that cannot be parsed is logged and skipped so one
# broken rule never blocks unrelated merges.

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

from .context import Context
from .pattern import parse_pattern
from .registry import DefinitionRegistry
from .sortedset import intersect_sorted
from .types import MERGE_METHODS, MergeVerifyInput, MergeVerifyOutput, Rule, RuleState
from .util.errors import InvalidInputError, RuleError
from .util.log import get_logger, rule_context
from .violations import RuleViolations

if TYPE_CHECKING:
    from .membership import PermissionCache

logger = get_logger(__name__)


class RuleSet:
    def __init__(
        self,
        rules: List[Rule],
        registry: DefinitionRegistry,
        resolver: Optional[PermissionCache] = None,
    ):
        self.rules = list(rules)
        self.registry = registry
        self.resolver = resolver

    def __len__(self) -> int:
        return len(self.rules)

    def merge_verify(
        self, ctx: Context, in_: MergeVerifyInput
    ) -> Tuple[MergeVerifyOutput, List[RuleViolations]]:
        """
        Verify a pull request merge against every applicable rule.

        Args:
            ctx: Cancellable context, forwarded to membership lookups.
            in_: The actor, target repository, pull request and the
                requested merge method, if any.

        Returns:
            The aggregate decision and the per-rule violations, in rule order.
            allowed_methods is only computed when no method was requested.

        Raises:
            InvalidInputError: If the actor, repository or pull request is missing.
            EvaluationCancelledError: If the context is cancelled.
        """
        self._check_input(in_)
        ctx.raise_if_cancelled()

        out = MergeVerifyOutput(
            delete_source_branch=False,
            allowed_methods=list(MERGE_METHODS) if in_.method is None else None,
        )
        violations: List[RuleViolations] = []

        branch = in_.pull_req.target_branch
        default_branch = in_.target_repo.default_branch

        for rule in self.rules:
            ctx.raise_if_cancelled()
            info = rule.info
            if info.state == RuleState.DISABLED:
                continue

            token = rule_context.set(info.identifier)
            try:
                try:
                    if not parse_pattern(rule.pattern).matches(branch, default_branch):
                        continue
                    definition = self.registry.from_json(info.type, rule.definition)
                except RuleError as e:
                    logger.warning(f"Skipping rule '{info.identifier}' (id={info.id}): {e}")
                    continue

                rule_out, rule_violations = definition.merge_verify(ctx, in_)
                bypassed = definition.is_bypassed(ctx, in_, self.resolver)
            finally:
                rule_context.reset(token)

            if rule_violations:
                violations.append(RuleViolations(
                    rule=info,
                    bypassed=bypassed,
                    violations=rule_violations,
                ))

            if bypassed or info.state == RuleState.MONITOR:
                continue

            out.delete_source_branch = out.delete_source_branch or rule_out.delete_source_branch
            if out.allowed_methods is not None and rule_out.allowed_methods is not None:
                out.allowed_methods = intersect_sorted(out.allowed_methods, rule_out.allowed_methods)

        logger.debug(
            f"Merge verified for pull request {in_.pull_req.id} into '{branch}': "
            f"{len(self.rules)} rules, {len(violations)} with violations"
        )
        return out, violations

    @staticmethod
    def _check_input(in_: MergeVerifyInput) -> None:
        if in_ is None:
            raise InvalidInputError("merge verify input is required")
        if in_.actor is None:
            raise InvalidInputError("actor is required")
        if in_.target_repo is None:
            raise InvalidInputError("target repository is required")
        if in_.pull_req is None:
            raise InvalidInputError("pull request is required")
