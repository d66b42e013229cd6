# src/branchguard/store.py: Rule, space and membership stores.
# The policy engine reads rules through the RuleStore contract. This module
# defines that contract and a YAML-backed implementation used by the CLI and
# the tests: one file lists spaces, memberships and rules. Rule patterns and
# definitions are kept as raw JSON bytes, exactly as a database would return
# them, and only parsed at evaluation time.

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .membership import Membership, MembershipRole, MembershipStore, Space, SpaceStore
from .types import Repository, Rule, RuleInfo, RuleState
from .util.errors import NotFoundError, StoreError
from .util.paths import is_ancestor_ref, parent_ref, space_segments


class RuleStore(ABC):
    @abstractmethod
    def list_repo_rules(self, repo: Repository) -> List[Rule]:
        """
        Return every rule in scope for a repository.

        Rules of ancestor spaces come first, root space first, followed by the
        repository's own rules; each group keeps its definition order.
        """


# --- File schema ---

class SpaceEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int = Field(gt=0)
    path: str


class MembershipEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    space: str
    principal_id: int = Field(gt=0)
    role: MembershipRole


class RuleEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int = Field(gt=0)
    identifier: str = Field(min_length=1)
    space_path: str = ""
    repo_path: str = ""
    type: str = "branch"
    state: RuleState = RuleState.ACTIVE
    pattern: Dict[str, Any] = Field(default_factory=dict)
    definition: Dict[str, Any] = Field(default_factory=dict)


class RulesFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    spaces: List[SpaceEntry] = Field(default_factory=list)
    memberships: List[MembershipEntry] = Field(default_factory=list)
    rules: List[RuleEntry] = Field(default_factory=list)


def _to_raw(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


class YamlRuleStore(RuleStore):
    """Rule store backed by a YAML rules file, with its spaces and memberships."""

    def __init__(self, data: RulesFile):
        self.spaces = InMemorySpaceStore()
        self.memberships = InMemoryMembershipStore()
        self._rules: List[Rule] = []

        self._load_spaces(data.spaces)
        self._load_memberships(data.memberships)
        self._load_rules(data.rules)

    @classmethod
    def load(cls, path: Path) -> "YamlRuleStore":
        """
        Load a rules file.

        Raises:
            NotFoundError: If the file does not exist.
            StoreError: If the file cannot be parsed or is inconsistent.
        """
        if not path.is_file():
            raise NotFoundError(f"Rules file not found at '{path}'.")
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StoreError(f"Failed to read rules file '{path}': {e}") from e
        except yaml.YAMLError as e:
            raise StoreError(f"Failed to parse rules file '{path}': {e}") from e

        try:
            data = RulesFile.model_validate(raw or {})
        except ValidationError as e:
            raise StoreError(f"Rules file validation failed:\n{e}") from e
        return cls(data)

    def _load_spaces(self, entries: List[SpaceEntry]) -> None:
        # Parents are resolved by path, so shallow spaces are indexed first.
        for entry in sorted(entries, key=lambda e: len(space_segments(e.path))):
            ref = "/".join(space_segments(entry.path))
            if not ref:
                raise StoreError(f"space {entry.id} has an empty path")
            if self.spaces.contains(ref) or self.spaces.contains_id(entry.id):
                raise StoreError(f"duplicate space '{ref}' (id={entry.id})")

            parent_id = 0
            parent = parent_ref(ref)
            if parent:
                if not self.spaces.contains(parent):
                    raise StoreError(f"space '{ref}' has no parent space '{parent}'")
                parent_id = self.spaces.find_by_ref(parent).id

            self.spaces.add(Space(id=entry.id, path=ref, parent_id=parent_id))

    def _load_memberships(self, entries: List[MembershipEntry]) -> None:
        for entry in entries:
            try:
                space = self.spaces.find_by_ref(entry.space)
            except NotFoundError as e:
                raise StoreError(f"membership refers to an unknown space: {e}") from e
            self.memberships.add(Membership(
                space_id=space.id,
                principal_id=entry.principal_id,
                role=entry.role,
            ))

    def _load_rules(self, entries: List[RuleEntry]) -> None:
        seen_ids = set()
        seen_identifiers = set()
        for entry in entries:
            try:
                info = RuleInfo(
                    id=entry.id,
                    identifier=entry.identifier,
                    space_path="/".join(space_segments(entry.space_path)),
                    repo_path="/".join(space_segments(entry.repo_path)),
                    type=entry.type,
                    state=entry.state,
                )
            except ValidationError as e:
                raise StoreError(f"invalid rule '{entry.identifier}': {e}") from e

            if info.id in seen_ids:
                raise StoreError(f"duplicate rule id {info.id}")
            scoped = (info.space_path, info.repo_path, info.identifier)
            if scoped in seen_identifiers:
                raise StoreError(
                    f"rule identifier '{info.identifier}' is not unique in '{info.scope}'"
                )
            seen_ids.add(info.id)
            seen_identifiers.add(scoped)

            self._rules.append(Rule(
                info=info,
                pattern=_to_raw(entry.pattern),
                definition=_to_raw(entry.definition),
            ))

    # --- RuleStore ---

    def list_repo_rules(self, repo: Repository) -> List[Rule]:
        repo_path = "/".join(space_segments(repo.path))
        space_path = parent_ref(repo_path)

        space_rules = [
            rule for rule in self._rules
            if rule.info.space_path and is_ancestor_ref(rule.info.space_path, space_path)
        ]
        space_rules.sort(key=lambda rule: len(space_segments(rule.info.space_path)))
        repo_rules = [rule for rule in self._rules if rule.info.repo_path == repo_path]
        return space_rules + repo_rules

    def all_rules(self) -> List[Rule]:
        return list(self._rules)


class InMemorySpaceStore(SpaceStore):
    def __init__(self):
        self._by_id: Dict[int, Space] = {}
        self._by_ref: Dict[str, Space] = {}

    def add(self, space: Space) -> None:
        self._by_id[space.id] = space
        self._by_ref[space.path] = space

    def contains(self, space_ref: str) -> bool:
        return "/".join(space_segments(space_ref)) in self._by_ref

    def contains_id(self, space_id: int) -> bool:
        return space_id in self._by_id

    def find(self, space_id: int) -> Space:
        space = self._by_id.get(space_id)
        if space is None:
            raise NotFoundError(f"space {space_id} not found")
        return space

    def find_by_ref(self, space_ref: str) -> Space:
        space = self._by_ref.get("/".join(space_segments(space_ref)))
        if space is None:
            raise NotFoundError(f"space '{space_ref}' not found")
        return space


class InMemoryMembershipStore(MembershipStore):
    def __init__(self):
        self._memberships: Dict[Tuple[int, int], Membership] = {}

    def add(self, membership: Membership) -> None:
        key = (membership.space_id, membership.principal_id)
        if key in self._memberships:
            raise StoreError(
                f"duplicate membership of principal {membership.principal_id} in space {membership.space_id}"
            )
        self._memberships[key] = membership

    def find(self, space_id: int, principal_id: int) -> Membership:
        membership = self._memberships.get((space_id, principal_id))
        if membership is None:
            raise NotFoundError(f"principal {principal_id} has no membership in space {space_id}")
        return membership
