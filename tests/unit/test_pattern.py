# tests/unit/test_pattern.py: Unit tests for rule applicability patterns.

import pytest

from branchguard.pattern import Pattern, parse_pattern
from branchguard.util.errors import PatternError


def test_empty_pattern_matches_everything():
    """Tests that a pattern without criteria applies to every branch."""
    pattern = parse_pattern(b"{}")
    assert pattern.matches("main", "main") is True
    assert pattern.matches("feature/x", "main") is True


def test_default_branch_pattern():
    """Tests that the default flag only matches the repository default branch."""
    pattern = parse_pattern(b'{"default":true}')
    assert pattern.matches("main", "main") is True
    assert pattern.matches("develop", "main") is False
    assert pattern.matches("develop", "develop") is True


def test_include_patterns():
    """Tests that include globs narrow the matching branches."""
    pattern = Pattern(include=["release/*", "develop"])
    assert pattern.matches("release/1.0", "main") is True
    assert pattern.matches("develop", "main") is True
    assert pattern.matches("main", "main") is False
    assert pattern.matches("feature/release", "main") is False


def test_default_or_include():
    """Tests that the default flag and include globs are alternatives."""
    pattern = Pattern(default=True, include=["release/*"])
    assert pattern.matches("main", "main") is True
    assert pattern.matches("release/2.0", "main") is True
    assert pattern.matches("feature/a", "main") is False


def test_exclude_overrides_include():
    """Tests that exclude globs win over include globs and the default flag."""
    pattern = Pattern(default=True, include=["release/*"], exclude=["release/legacy", "main"])
    assert pattern.matches("release/1.0", "main") is True
    assert pattern.matches("release/legacy", "main") is False
    assert pattern.matches("main", "main") is False


def test_exclude_only():
    """Tests that an exclude-only pattern matches everything else."""
    pattern = Pattern(exclude=["wip/**"])
    assert pattern.matches("main", "main") is True
    assert pattern.matches("wip/experiment", "main") is False


def test_double_star_include():
    """Tests that '**' spans path segments in branch names."""
    pattern = Pattern(include=["**/hotfix-*"])
    assert pattern.matches("team/a/hotfix-1", "main") is True
    assert pattern.matches("hotfix-2", "main") is True
    assert pattern.matches("team/a/feature", "main") is False


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"[]",
        b'{"default":"yes please"}',
        b'{"include":"main"}',
        b'{"unknown":true}',
        b'{"include":[""]}',
        b'{"exclude":["!main"]}',
    ],
)
def test_parse_pattern_errors(raw):
    """Tests that malformed pattern payloads raise a PatternError."""
    with pytest.raises(PatternError):
        parse_pattern(raw)


def test_globs_match_the_whole_branch_name():
    """Tests that a glob never matches a branch that only ends with or starts with it."""
    pattern = Pattern(include=["develop", "main"])
    assert pattern.matches("team/develop", "trunk") is False
    assert pattern.matches("feature/main", "trunk") is False
    assert pattern.matches("users/x/main", "trunk") is False
    assert pattern.matches("main/backport", "trunk") is False
    assert pattern.matches("main", "trunk") is True


def test_exclude_matches_the_whole_branch_name():
    """Tests that excluding a name does not exclude nested branches with the same suffix."""
    pattern = Pattern(exclude=["main"])
    assert pattern.matches("main", "develop") is False
    assert pattern.matches("users/bob/main", "develop") is True


def test_single_star_stays_in_one_segment():
    """Tests that '*' does not cross '/' while a trailing '**' does."""
    assert Pattern(include=["release/*"]).matches("release/1.0/hotfix", "main") is False
    assert Pattern(include=["*"]).matches("feature/x", "main") is False
    assert Pattern(include=["*"]).matches("feature", "main") is True
    assert Pattern(include=["release/**"]).matches("release/1.0/hotfix", "main") is True
    assert Pattern(include=["**/hotfix-*"]).matches("team/hotfix-1/followup", "main") is False


@pytest.mark.parametrize("glob", ["release/", "/main", "/"])
def test_slash_anchored_globs_are_rejected(glob):
    """Tests that globs with a leading or trailing '/' are rejected."""
    with pytest.raises(PatternError, match="must not start or end with '/'"):
        Pattern(include=[glob]).validate_globs()
