# src/branchguard/pattern.py: Branch applicability patterns.
# A rule's pattern decides which branches it protects: the repository's
# default branch, and/or branches matching include globs, minus branches
# matching exclude globs. Globs are compiled with pathspec's gitignore syntax
# but are anchored to the whole branch name: "main" never matches
# "feature/main", "*" stays within one segment and only "**" crosses '/'.

from __future__ import annotations

import json
import re
from functools import lru_cache
from typing import List

import pathspec
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .util.errors import PatternError


@lru_cache(maxsize=1024)
def _compile_glob(glob: str) -> re.Pattern:
    # The leading '/' roots the glob at the start of the branch name.
    return pathspec.util.lookup_pattern("gitignore")("/" + glob).regex


def _glob_matches(glob: str, branch: str) -> bool:
    regex = _compile_glob(glob)
    # gitignore lets a pattern match everything below it; only a trailing
    # "**" is meant to do that here.
    if glob == "**" or glob.endswith("/**"):
        return regex.match(branch) is not None
    return regex.fullmatch(branch) is not None


def _any_matches(globs: List[str], branch: str) -> bool:
    return any(_glob_matches(glob, branch) for glob in globs)


class Pattern(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    default: bool = False
    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)

    def validate_globs(self) -> None:
        """Raise PatternError if any include or exclude glob is unusable."""
        for kind, globs in (("include", self.include), ("exclude", self.exclude)):
            for glob in globs:
                if not glob.strip():
                    raise PatternError(f"empty {kind} pattern")
                if glob.startswith("!"):
                    raise PatternError(f"{kind} pattern '{glob}' must not be negated")
                if glob.startswith("/") or glob.endswith("/"):
                    raise PatternError(f"{kind} pattern '{glob}' must not start or end with '/'")
                try:
                    _compile_glob(glob)
                except ValueError as e:
                    raise PatternError(f"invalid {kind} pattern '{glob}': {e}") from e

    def matches(self, branch: str, default_branch: str) -> bool:
        """Check whether the pattern applies to a branch."""
        # Everything matches unless the default flag or include globs narrow it.
        matched = not self.default and not self.include
        matched = matched or (self.default and branch == default_branch)
        if not matched and self.include:
            matched = _any_matches(self.include, branch)
        if not matched:
            return False
        if self.exclude and _any_matches(self.exclude, branch):
            return False
        return True


def parse_pattern(raw: bytes) -> Pattern:
    """
    Parse and validate a raw JSON pattern payload.

    Raises:
        PatternError: If the payload is not valid JSON, has unknown fields or
            wrong types, or contains an unusable glob.
    """
    try:
        data = json.loads(raw or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PatternError(f"pattern is not valid JSON: {e}") from e
    try:
        pattern = Pattern.model_validate(data)
    except ValidationError as e:
        raise PatternError(f"pattern validation failed: {e}") from e
    pattern.validate_globs()
    return pattern
