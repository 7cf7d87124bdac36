from collections.abc import Iterable
from enum import Enum


class Role(str, Enum):
    """Roles the hashtag service acts on. Tokens may carry others."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @classmethod
    def from_claims(cls, values: Iterable[str]) -> list["Role"]:
        """Known roles from a token's roles claim, unknown ones dropped."""
        known = {r.value: r for r in cls}
        return [known[v] for v in values if v in known]


# May ban, feature or recategorize hashtags
MODERATION_ROLES: tuple[Role, ...] = (Role.MODERATOR, Role.ADMIN)
