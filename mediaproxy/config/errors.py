"""Startup configuration errors."""


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing."""

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = missing_fields
        super().__init__(f"Missing required configuration: {', '.join(missing_fields)}")
