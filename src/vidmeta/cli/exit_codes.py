"""Exit codes for vidmeta CLI commands.

Per-record failures are reported in the output and never change the exit
code.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0

    # Bad configuration, ops, preset or batch pair; nothing was processed
    CONFIG_ERROR = 1

    # SIGINT/SIGTERM stopped the batch before every record ran
    INTERRUPTED = 2
