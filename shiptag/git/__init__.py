"""Git operations module.

Usage:
    from shiptag.git import Repository

    repo = Repository(Path("/path/to/repo"))
    tags = repo.remote_tags("origin")
    if isinstance(tags, Ok):
        print(sorted(tags.value))
"""

from shiptag.git.repository import (
    GitError,
    Repository,
    clone,
    parse_ls_remote_tags,
)

__all__ = [
    "GitError",
    "Repository",
    "clone",
    "parse_ls_remote_tags",
]
