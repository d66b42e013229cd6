# src/branchguard/branch.py: The "branch" protection rule kind.
# A branch rule protects pull request merges into the branches its pattern
# selects. It can require a minimum number of approvals, require all review
# threads to be resolved, restrict the merge strategies and ask for the source
# branch to be deleted. Its bypass list names principals, repository owners
# and space roles that may merge despite its violations.

from __future__ import annotations

import json
from typing import TYPE_CHECKING, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .context import Context
from .membership import MembershipRole, Permission
from .registry import Definition
from .types import MergeVerifyInput, MergeMethod, RuleMergeOutput
from .util.errors import DefinitionError, StoreError
from .util.log import get_logger
from .violations import (
    CODE_APPROVALS_REQUIRE_MINIMUM_COUNT,
    CODE_COMMENTS_REQUIRE_RESOLVE_ALL,
    CODE_MERGE_STRATEGIES_ALLOWED,
    Violation,
    new_violation,
)

if TYPE_CHECKING:
    from .membership import PermissionCache

TYPE_BRANCH = "branch"

logger = get_logger(__name__)


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class DefBypass(_Strict):
    user_ids: List[int] = Field(default_factory=list)
    repo_owners: bool = False
    space_roles: List[MembershipRole] = Field(default_factory=list)


class DefApprovals(_Strict):
    require_minimum_count: int = Field(default=0, ge=0)


class DefComments(_Strict):
    require_resolve_all: bool = False


class DefMerge(_Strict):
    strategies_allowed: Optional[List[MergeMethod]] = None
    delete_branch: bool = False


class DefPullReq(_Strict):
    approvals: DefApprovals = Field(default_factory=DefApprovals)
    comments: DefComments = Field(default_factory=DefComments)
    merge: DefMerge = Field(default_factory=DefMerge)

    def merge_verify(self, in_: MergeVerifyInput) -> Tuple[RuleMergeOutput, List[Violation]]:
        pull_req = in_.pull_req
        violations: List[Violation] = []

        required = self.approvals.require_minimum_count
        if required > 0 and pull_req.approval_count < required:
            violations.append(new_violation(
                CODE_APPROVALS_REQUIRE_MINIMUM_COUNT,
                "Insufficient number of approvals. Have {count} but need at least {minimum}.",
                count=pull_req.approval_count,
                minimum=required,
            ))

        if self.comments.require_resolve_all and pull_req.unresolved_count > 0:
            violations.append(new_violation(
                CODE_COMMENTS_REQUIRE_RESOLVE_ALL,
                "All comments must be resolved. There are {count} unresolved comments.",
                count=pull_req.unresolved_count,
            ))

        allowed = self.merge.strategies_allowed
        if in_.method is not None and allowed is not None and in_.method not in allowed:
            violations.append(new_violation(
                CODE_MERGE_STRATEGIES_ALLOWED,
                "The requested merge strategy '{method}' is not allowed. Allowed strategies are {allowed}.",
                method=in_.method.value,
                allowed=[m.value for m in allowed],
            ))

        out = RuleMergeOutput(
            delete_source_branch=self.merge.delete_branch,
            allowed_methods=list(allowed) if allowed is not None else None,
        )
        return out, violations


class BranchConfig(_Strict):
    bypass: DefBypass = Field(default_factory=DefBypass)
    pullreq: DefPullReq = Field(default_factory=DefPullReq)


class Branch(Definition):
    """Definition for rules of type 'branch'."""

    def __init__(self):
        self.config = BranchConfig()

    def parse(self, raw: bytes) -> None:
        try:
            self.config = BranchConfig.model_validate_json(raw or b"{}")
        except ValidationError as e:
            raise DefinitionError(f"branch rule definition is invalid: {e}") from e

    def sanitize(self) -> None:
        merge = self.config.pullreq.merge
        if merge.strategies_allowed is not None:
            # An empty list would forbid every method; treat it as no restriction.
            if not merge.strategies_allowed:
                merge.strategies_allowed = None
            else:
                merge.strategies_allowed = sorted(set(merge.strategies_allowed), key=lambda m: m.value)

        bypass = self.config.bypass
        if any(user_id <= 0 for user_id in bypass.user_ids):
            raise DefinitionError("bypass user IDs must be positive")
        bypass.user_ids = sorted(set(bypass.user_ids))
        bypass.space_roles = sorted(set(bypass.space_roles), key=lambda r: r.value)

    def to_json(self) -> bytes:
        return json.dumps(
            self.config.model_dump(mode="json"),
            sort_keys=True,
            separators=(",", ":"),
        ).encode("utf-8")

    def merge_verify(
        self, ctx: Context, in_: MergeVerifyInput
    ) -> Tuple[RuleMergeOutput, List[Violation]]:
        ctx.raise_if_cancelled()
        return self.config.pullreq.merge_verify(in_)

    def is_bypassed(
        self, ctx: Context, in_: MergeVerifyInput, resolver: Optional[PermissionCache]
    ) -> bool:
        actor = in_.actor
        bypass = self.config.bypass

        if actor.admin or actor.id in bypass.user_ids:
            return True
        if not bypass.repo_owners and not bypass.space_roles:
            return False
        if resolver is None:
            logger.warning(
                "Rule bypass names repository owners or space roles but no membership resolver is configured."
            )
            return False

        space_ref = in_.target_repo.space_path
        try:
            if bypass.repo_owners and resolver.check(ctx, actor.id, space_ref, Permission.REPO_EDIT):
                return True
            if bypass.space_roles:
                roles = resolver.roles(ctx, actor.id, space_ref)
                return any(role in roles for role in bypass.space_roles)
        except StoreError as e:
            logger.warning(f"Failed to resolve bypass membership for principal {actor.id}: {e}")
        return False
