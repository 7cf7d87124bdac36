# Domain exceptions raised by the hashtag service layer.
# The controller layer catches these and converts them to HTTPException.


class HashtagNotFoundError(Exception):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Hashtag #{name} not found")


class IngestQueueUnavailableError(Exception):
    """Raised when queue-mode ingestion cannot hand the event to the worker."""

    pass
