# src/branchguard/util/paths.py: XDG-compliant path resolution.
# This module resolves the per-user configuration and data directories used
# to locate the default config file and rules file, and expands user supplied
# paths that may contain environment variables or a leading '~'.

import os
from pathlib import Path
import platformdirs

APP_NAME = "branchguard"


def get_xdg_config_home() -> Path:
    """Get the XDG_CONFIG_HOME path for the application."""
    return Path(platformdirs.user_config_dir(APP_NAME))


def get_xdg_data_home() -> Path:
    """Get the XDG_DATA_HOME path for the application."""
    return Path(platformdirs.user_data_dir(APP_NAME))


def get_default_config_path() -> Path:
    return get_xdg_config_home() / "config.yaml"


def get_default_rules_path() -> Path:
    return get_xdg_data_home() / "rules.yaml"


def expand_path(path: str | Path) -> Path:
    """Expand environment variables and user home directory in a path."""
    return Path(os.path.expandvars(os.path.expanduser(str(path)))).resolve()


def space_segments(ref: str) -> list[str]:
    """Split a space or repository path into its non-empty segments."""
    return [segment for segment in ref.strip("/").split("/") if segment]


def parent_ref(ref: str) -> str:
    """
    Return the parent path of a space or repository path.

    The parent of a root space is the empty string.
    """
    segments = space_segments(ref)
    return "/".join(segments[:-1])


def is_ancestor_ref(ancestor: str, ref: str) -> bool:
    """Check whether 'ancestor' is 'ref' itself or one of its parent paths."""
    ancestor_segments = space_segments(ancestor)
    ref_segments = space_segments(ref)
    if not ancestor_segments or len(ancestor_segments) > len(ref_segments):
        return False
    return ref_segments[: len(ancestor_segments)] == ancestor_segments
