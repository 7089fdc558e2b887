"""Exceptions raised by the agent system."""


class SiteAgentsError(Exception):
    """Base class for agent system errors."""
    pass


class SettingsError(SiteAgentsError):
    """A configuration value could not be parsed."""
    pass


class AgentNotFoundError(SiteAgentsError, KeyError):
    """No agent is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"No agent registered as '{self.name}'"
