"""
Error types for stitch.

Every error raised on purpose by stitch derives from StitchError so the CLI
and MCP layers can report it uniformly.
"""


class StitchError(Exception):
    """Base class for all stitch errors."""
    pass


class RepoNotFoundError(StitchError):
    """Path is not inside a git repository."""

    def __init__(self, path: str | None = None):
        self.path = path
        if path:
            super().__init__(f"Not a git repository: {path}")
        else:
            super().__init__("Not a git repository (or any parent up to mount point)")


class NotInitializedError(StitchError):
    """The repository has no .stitch directory."""

    def __init__(self):
        super().__init__(
            "Stitch is not initialized in this repository. Run 'stitch init' first."
        )


class NoCurrentStitchError(StitchError):
    """An operation defaulted to the current stitch but none is set."""

    def __init__(self):
        super().__init__(
            "No current stitch. Start a new stitch with 'stitch start <title>' "
            "or switch to an existing one with 'stitch switch <id>'."
        )


class StitchNotFoundError(StitchError):
    """No stitch file exists for the requested ID."""

    def __init__(self, stitch_id: str):
        self.stitch_id = stitch_id
        super().__init__(f"Stitch not found: {stitch_id}")


class GitError(StitchError):
    """A git command failed."""

    def __init__(self, message: str, command: str, exit_code: int):
        self.command = command
        self.exit_code = exit_code
        super().__init__(f"Git error: {message}")


class ValidationError(StitchError):
    """Malformed stitch data or invalid input."""

    def __init__(self, message: str):
        super().__init__(f"Validation error: {message}")


class InvalidSupersededByError(StitchError):
    """A superseding stitch was given without status=superseded, or does not exist."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "--by can only be used with --status=superseded"
        )


class FinishForceRequiredError(StitchError):
    """Auto-detection disagrees with the requested status and --force was not given."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
