from app.models.enums import HashtagCategory
from app.models.hashtag import Hashtag

__all__ = [
    "Hashtag",
    "HashtagCategory",
]
