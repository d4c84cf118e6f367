"""Exceptions raised by plan editing and configuration.

The reminder engine itself never raises these out of a tick or timer
callback; they are meant for the command layer that edits plans.
"""


class PillminderError(Exception):
    """Base class for all pillminder errors"""


class ConfigurationError(PillminderError):
    pass


class PlanError(PillminderError):
    """A requested plan edit cannot be applied"""


class DuplicateStageError(PlanError):
    def __init__(self, name: str):
        super().__init__(f"A stage named '{name}' already exists")
        self.name = name


class StageNotFoundError(PlanError):
    def __init__(self, name: str):
        super().__init__(f"No stage named '{name}' in the active plan")
        self.name = name


class InvalidStageError(PlanError):
    pass
