"""Custom exceptions for the globalization pipeline."""


class LexisError(Exception):
    """Base exception for pipeline errors."""

    pass


class ConfigurationError(LexisError):
    """Raised when required wiring (job store, credentials) is not configured."""

    pass


class FrameworkNotSupportedError(LexisError):
    """Raised when the cloned repository does not match a supported framework."""

    pass


class GitNotAvailableError(LexisError):
    """Raised when the git binary cannot be executed."""

    pass


class GitCommandError(LexisError):
    """Raised when a git subprocess exits with a non-zero status."""

    def __init__(self, message: str, returncode: int | None = None, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class TranslationCLIError(LexisError):
    """Raised when the translation CLI exits with a non-zero status."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class PushError(LexisError):
    """Raised when pushing the i18n branch fails."""

    pass


class GitHubIdentityError(LexisError):
    """Raised when a GitHub credential is present without an acting identity."""

    pass


class JobStateError(LexisError):
    """Raised when a job cannot make the requested status transition."""

    def __init__(self, message: str, status: str | None = None):
        super().__init__(message)
        self.status = status


class RepositoryError(LexisError):
    """Raised when a repository URL is invalid or the repository cannot be used."""

    pass
