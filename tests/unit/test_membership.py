# tests/unit/test_membership.py: Unit tests for permission resolution.

import logging
from unittest.mock import MagicMock

import pytest

from branchguard.config import PermissionCacheConfig
from branchguard.context import background
from branchguard.membership import Membership, MembershipRole, Permission, PermissionCache, Space
from branchguard.store import InMemoryMembershipStore, InMemorySpaceStore
from branchguard.util.errors import EvaluationCancelledError, NotFoundError


@pytest.fixture
def spaces() -> InMemorySpaceStore:
    store = InMemorySpaceStore()
    store.add(Space(id=1, path="acme"))
    store.add(Space(id=2, path="acme/platform", parent_id=1))
    store.add(Space(id=3, path="acme/platform/core", parent_id=2))
    return store


@pytest.fixture
def memberships() -> InMemoryMembershipStore:
    store = InMemoryMembershipStore()
    store.add(Membership(space_id=1, principal_id=10, role=MembershipRole.SPACE_OWNER))
    store.add(Membership(space_id=2, principal_id=20, role=MembershipRole.CONTRIBUTOR))
    store.add(Membership(space_id=3, principal_id=20, role=MembershipRole.READER))
    return store


def test_roles_walk_up_to_ancestors(spaces, memberships):
    """Tests that roles granted on ancestor spaces are inherited."""
    cache = PermissionCache(spaces, memberships)
    ctx = background()

    assert cache.roles(ctx, 10, "acme/platform/core") == {MembershipRole.SPACE_OWNER}
    assert cache.roles(ctx, 20, "acme/platform/core") == {
        MembershipRole.READER,
        MembershipRole.CONTRIBUTOR,
    }
    assert cache.roles(ctx, 20, "acme") == frozenset()


def test_roles_for_stranger(spaces, memberships):
    """Tests that a principal without memberships has no roles."""
    cache = PermissionCache(spaces, memberships)
    assert cache.roles(background(), 99, "acme/platform") == frozenset()


def test_roles_empty_ref(spaces, memberships):
    """Tests that an empty space reference resolves to no roles."""
    cache = PermissionCache(spaces, memberships)
    assert cache.roles(background(), 10, "") == frozenset()


def test_check_permission(spaces, memberships):
    """Tests permission checks against inherited roles."""
    cache = PermissionCache(spaces, memberships)
    ctx = background()

    assert cache.check(ctx, 10, "acme/platform", Permission.REPO_EDIT) is True
    assert cache.check(ctx, 20, "acme/platform/core", Permission.REPO_PUSH) is True
    assert cache.check(ctx, 20, "acme/platform/core", Permission.REPO_EDIT) is False
    assert cache.check(ctx, 99, "acme", Permission.SPACE_VIEW) is False


def test_unknown_space(spaces, memberships):
    """Tests that resolving roles in an unknown space raises NotFoundError."""
    cache = PermissionCache(spaces, memberships)
    with pytest.raises(NotFoundError):
        cache.roles(background(), 10, "nowhere")


def test_results_are_cached(spaces, memberships):
    """Tests that repeated lookups are served from the cache until cleared."""
    membership_store = MagicMock(wraps=memberships)
    cache = PermissionCache(spaces, membership_store, PermissionCacheConfig(ttl_sec=300))
    ctx = background()

    cache.roles(ctx, 20, "acme/platform")
    calls = membership_store.find.call_count
    assert calls == 2

    cache.roles(ctx, 20, "/acme/platform/")
    assert membership_store.find.call_count == calls

    cache.clear()
    cache.roles(ctx, 20, "acme/platform")
    assert membership_store.find.call_count == calls * 2


def test_cancelled_lookup(spaces, memberships):
    """Tests that the ancestor walk stops on a cancelled context."""
    cache = PermissionCache(spaces, memberships)
    ctx = background()
    ctx.cancel()
    with pytest.raises(EvaluationCancelledError):
        cache.roles(ctx, 10, "acme/platform")


def test_role_permissions():
    """Tests the permissions carried by each role."""
    assert Permission.REPO_EDIT in MembershipRole.SPACE_OWNER.permissions()
    assert Permission.REPO_EDIT not in MembershipRole.CONTRIBUTOR.permissions()
    assert Permission.REPO_PUSH in MembershipRole.CONTRIBUTOR.permissions()
    assert MembershipRole.READER.permissions() == [Permission.REPO_VIEW, Permission.SPACE_VIEW]


def test_resolved_roles_are_logged(spaces, memberships, caplog):
    """Tests that role resolution logs the resolved roles at debug level."""
    logger = logging.getLogger("branchguard.membership")
    logger.addHandler(caplog.handler)
    try:
        with caplog.at_level(logging.DEBUG, logger="branchguard.membership"):
            PermissionCache(spaces, memberships).roles(background(), 20, "acme/platform")
    finally:
        logger.removeHandler(caplog.handler)

    assert "Resolved roles for principal 20 in 'acme/platform': ['contributor']" in caplog.messages
