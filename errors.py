class PlannerError(Exception):
    """Base class for routine planner failures."""


class ConfigurationError(PlannerError, ValueError):
    """No archetype or routine day is available for the requested parameters."""


class ProfileValidationError(PlannerError, ValueError):
    """The user profile is missing or malformed."""


class PersistenceError(PlannerError):
    """A read or write against the database failed."""
