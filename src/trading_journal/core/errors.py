"""Custom exception hierarchy for the journal analytics engine."""


class JournalError(Exception):
    """Base exception for all journal analytics errors."""


# --- Configuration ---
class ConfigError(JournalError):
    """Invalid or missing configuration."""


class RubricValidationError(ConfigError):
    """Playbook rubric weights or penalty are out of range."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


# --- Data ---
class DataError(JournalError):
    """Trade or playbook input could not be loaded."""
