# src/branchguard/violations.py: Violation codes and per-rule reports.
# Violations are data, not errors: a rule that is not satisfied returns coded
# violations which the rule set groups per originating rule, together with
# whether the actor bypassed that rule.

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field

from .types import RuleInfo, RuleState

CODE_MERGE_STRATEGIES_ALLOWED = "pullreq.merge.strategies_allowed"
CODE_APPROVALS_REQUIRE_MINIMUM_COUNT = "pullreq.approvals.require_minimum_count"
CODE_COMMENTS_REQUIRE_RESOLVE_ALL = "pullreq.comments.require_resolve_all"

VIOLATION_CODES = frozenset({
    CODE_MERGE_STRATEGIES_ALLOWED,
    CODE_APPROVALS_REQUIRE_MINIMUM_COUNT,
    CODE_COMMENTS_REQUIRE_RESOLVE_ALL,
})


class Violation(BaseModel):
    code: str
    message: str = ""
    params: Dict[str, Any] = Field(default_factory=dict)


def new_violation(code: str, message: str, **params: Any) -> Violation:
    """Build a violation whose message is formatted from its params."""
    if code not in VIOLATION_CODES:
        raise ValueError(f"unknown violation code: {code}")
    return Violation(code=code, message=message.format(**params), params=params)


class RuleViolations(BaseModel):
    rule: RuleInfo
    bypassed: bool = False
    violations: List[Violation] = Field(default_factory=list)

    def is_critical(self) -> bool:
        """True if these violations block the merge."""
        return (
            self.rule.state == RuleState.ACTIVE
            and not self.bypassed
            and len(self.violations) > 0
        )


def is_blocked(rule_violations: List[RuleViolations]) -> bool:
    return any(v.is_critical() for v in rule_violations)
