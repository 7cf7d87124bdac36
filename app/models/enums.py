import enum

from sqlalchemy import Enum as SAEnum


class HashtagCategory(str, enum.Enum):
    """Closed set of discovery groups a hashtag can be filed under."""

    GENERAL = "general"
    TECHNOLOGY = "technology"
    MUSIC = "music"
    GAMING = "gaming"
    ART = "art"
    TRAVEL = "travel"
    FOOD = "food"
    HEALTH = "health"
    SPORTS = "sports"
    NEWS = "news"
    ENTERTAINMENT = "entertainment"
    EDUCATION = "education"


# Stored by value ("music"), not by member name ("MUSIC")
hashtag_category_enum = SAEnum(
    HashtagCategory,
    name="hashtag_category",
    values_callable=lambda members: [m.value for m in members],
    validate_strings=True,
)
