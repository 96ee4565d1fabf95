"""Errors raised while reconciling the WPC tracker."""


class ConfigurationError(ValueError):
    """A required column is missing from the tracked table or a reference source."""

    def __init__(self, source: str, missing: list[str]):
        self.source = source
        self.missing = list(missing)
        super().__init__(f"{source} missing required columns: {', '.join(self.missing)}")
