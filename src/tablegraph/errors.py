class DeclarationError(ValueError):
    """An entity declaration could not be read or decoded."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Failed to parse model {source}: {reason}")
        self.source = source
        self.reason = reason
