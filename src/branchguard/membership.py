# src/branchguard/membership.py: Space membership and permission resolution.
# Bypass lists may refer to repository owners or to space roles, which are
# answered by walking from a space up through its parents until a membership
# grants what is asked for or the root is reached. Results are cached in a
# TTL cache so repeated merge checks do not hit the stores every time.

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from cachetools import TTLCache
from pydantic import BaseModel, ConfigDict

from .config import PermissionCacheConfig
from .context import Context
from .util.errors import NotFoundError
from .util.log import get_logger
from .util.paths import space_segments

logger = get_logger(__name__)


class Permission(str, Enum):
    SPACE_VIEW = "space_view"
    SPACE_EDIT = "space_edit"
    REPO_VIEW = "repo_view"
    REPO_PUSH = "repo_push"
    REPO_EDIT = "repo_edit"


class MembershipRole(str, Enum):
    READER = "reader"
    EXECUTOR = "executor"
    CONTRIBUTOR = "contributor"
    SPACE_OWNER = "space_owner"

    def permissions(self) -> List[Permission]:
        return _ROLE_PERMISSIONS[self]


_ROLE_PERMISSIONS: Dict[MembershipRole, List[Permission]] = {
    MembershipRole.READER: sorted([Permission.SPACE_VIEW, Permission.REPO_VIEW]),
    MembershipRole.EXECUTOR: sorted([Permission.SPACE_VIEW, Permission.REPO_VIEW]),
    MembershipRole.CONTRIBUTOR: sorted([
        Permission.SPACE_VIEW,
        Permission.REPO_VIEW,
        Permission.REPO_PUSH,
    ]),
    MembershipRole.SPACE_OWNER: sorted(Permission),
}


class Space(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    path: str
    parent_id: int = 0


class Membership(BaseModel):
    model_config = ConfigDict(frozen=True)

    space_id: int
    principal_id: int
    role: MembershipRole


class SpaceStore(ABC):
    @abstractmethod
    def find(self, space_id: int) -> Space:
        """Find a space by ID. Raises NotFoundError."""

    @abstractmethod
    def find_by_ref(self, space_ref: str) -> Space:
        """Find a space by path. Raises NotFoundError."""


class MembershipStore(ABC):
    @abstractmethod
    def find(self, space_id: int, principal_id: int) -> Membership:
        """Find a membership. Raises NotFoundError."""


class PermissionCache:
    """
    Resolves a principal's effective roles and permissions in a space.

    Roles are gathered from the space and all of its ancestors; a permission
    is granted if any of those roles carries it.
    """

    def __init__(
        self,
        space_store: SpaceStore,
        membership_store: MembershipStore,
        config: Optional[PermissionCacheConfig] = None,
    ):
        config = config or PermissionCacheConfig()
        self._spaces = space_store
        self._memberships = membership_store
        self._cache: TTLCache[Tuple[int, str], FrozenSet[MembershipRole]] = TTLCache(
            maxsize=config.maxsize, ttl=config.ttl_sec
        )
        self._lock = threading.Lock()

    def roles(self, ctx: Context, principal_id: int, space_ref: str) -> FrozenSet[MembershipRole]:
        key = (principal_id, "/".join(space_segments(space_ref)))
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        roles = self._find_roles(ctx, principal_id, key[1])
        with self._lock:
            self._cache[key] = roles
        return roles

    def check(self, ctx: Context, principal_id: int, space_ref: str, permission: Permission) -> bool:
        return any(
            permission in role.permissions()
            for role in self.roles(ctx, principal_id, space_ref)
        )

    def _find_roles(self, ctx: Context, principal_id: int, space_ref: str) -> FrozenSet[MembershipRole]:
        if not space_ref:
            return frozenset()

        space = self._spaces.find_by_ref(space_ref)
        roles = set()

        # Limit the walk to the path depth (acme/platform => at most 2 spaces).
        for _ in range(len(space_segments(space_ref))):
            ctx.raise_if_cancelled()
            try:
                membership = self._memberships.find(space.id, principal_id)
                roles.add(membership.role)
            except NotFoundError:
                pass

            if space.parent_id == 0:
                break
            space = self._spaces.find(space.parent_id)

        logger.debug(
            f"Resolved roles for principal {principal_id} in '{space_ref}': "
            f"{sorted(r.value for r in roles)}"
        )
        return frozenset(roles)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
