"""Exit codes for CLI commands.

The numeric values are process exit codes and must stay stable, since CI
jobs branch on them.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success (including "tag already exists" and "manifest unchanged")
    - 1: User error (manifest without a version, bad target list)
    - 2: Environment error (bad config, missing gh/cargo)
    - 3: Build error (a platform build failed, incomplete artifact set)
    - 4: Network error (tag listing or tag push failed)
    - 5: I/O error (staging area unreadable or reused)
    - 6: Publish error (release upsert failed, release locked)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    PUBLISH_ERROR = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
