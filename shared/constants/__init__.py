from shared.constants.roles import MODERATION_ROLES, Role

__all__ = ["MODERATION_ROLES", "Role"]
