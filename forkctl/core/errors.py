"""Exit codes for CLI commands.

CI runners only see the process exit status, so every failure class maps to
a stable, distinct code:
- 0: Success (including "upstream has no release")
- 1: User error (bad option, bad config value)
- 2: Environment error (missing cargo/ISCC/gh, no repository)
- 3: Build error (cargo or ISCC failed)
- 4: Network error (release query failed, push rejected)
- 5: I/O error (expected artifact missing, unreadable manifest)
- 6: Git error (dirty tree, merge conflict, merge failure)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes. Values must remain stable."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    GIT_ERROR = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
