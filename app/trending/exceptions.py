# Domain exceptions raised by the trending core.
# The ingestion path logs and skips invalid tags; a bad weight is a caller bug.


class InvalidTagError(ValueError):
    """Raised when a tag is empty or unusable after normalization."""

    def __init__(self, raw: object, reason: str = "empty after normalization") -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"Invalid hashtag {raw!r}: {reason}")


class InvalidWeightError(ValueError):
    def __init__(self, weight: object) -> None:
        self.weight = weight
        super().__init__(f"Usage weight must be a positive integer, got {weight!r}")
