# src/branchguard/types.py: Core data model for protection rules.
# This module defines the read-only snapshots the engine consumes (principals,
# repositories, pull requests), the stored rule form with its opaque pattern
# and definition payloads, and the inputs and outputs of merge verification.

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .util.paths import parent_ref


class MergeMethod(str, Enum):
    MERGE = "merge"
    REBASE = "rebase"
    SQUASH = "squash"


# Sorted ascending by value, the order intersect_sorted relies on.
MERGE_METHODS: List[MergeMethod] = sorted(MergeMethod, key=lambda m: m.value)


class RuleState(str, Enum):
    ACTIVE = "active"
    DISABLED = "disabled"
    MONITOR = "monitor"


class Principal(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    uid: str = ""
    display_name: str = ""
    admin: bool = False


class Repository(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    path: str = ""
    default_branch: str = "main"

    @property
    def space_path(self) -> str:
        """Path of the space the repository lives in."""
        return parent_ref(self.path)


class PullReq(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    number: int = 0
    source_branch: str
    target_branch: str
    approval_count: int = Field(default=0, ge=0)
    unresolved_count: int = Field(default=0, ge=0)


class RuleInfo(BaseModel):
    """Identity and scope of a rule. Exactly one of the two paths is set."""

    model_config = ConfigDict(frozen=True)

    id: int
    identifier: str
    space_path: str = ""
    repo_path: str = ""
    type: str
    state: RuleState = RuleState.ACTIVE

    @model_validator(mode="after")
    def _check_scope(self) -> "RuleInfo":
        if bool(self.space_path) == bool(self.repo_path):
            raise ValueError(
                f"rule '{self.identifier}' must be scoped to exactly one of a space or a repository"
            )
        return self

    @property
    def scope(self) -> str:
        return self.repo_path or self.space_path


class Rule(BaseModel):
    """Stored form of a rule: its info plus raw JSON pattern and definition."""

    model_config = ConfigDict(frozen=True)

    info: RuleInfo
    pattern: bytes = b"{}"
    definition: bytes = b"{}"


class MergeVerifyInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    actor: Optional[Principal]
    target_repo: Optional[Repository]
    pull_req: Optional[PullReq]
    method: Optional[MergeMethod] = None


class RuleMergeOutput(BaseModel):
    """
    One rule's restrictions on a merge.

    allowed_methods is None when the rule does not restrict the merge method.
    """

    delete_source_branch: bool = False
    allowed_methods: Optional[List[MergeMethod]] = None


class MergeVerifyOutput(BaseModel):
    """
    Aggregate merge decision.

    allowed_methods is None when it was not computed or nothing restricts it;
    an empty list means every method is excluded.
    """

    delete_source_branch: bool = False
    allowed_methods: Optional[List[MergeMethod]] = None
