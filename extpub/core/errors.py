"""Process exit codes.

0 success; 1 bad input, missing secrets, or an unreachable release or
asset; 2 a required tool (unzip, node, xcodebuild, zip) could not be
started; 3 such a tool exited non-zero; 5 a local file could not be read
or written.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    IO_ERROR = 5
