from enum import StrEnum

from tollgate.core.windows import WindowConfig


class UserTier(StrEnum):
    FREE = "free"
    PREMIUM = "premium"
    VIP = "vip"
    INTERNAL = "internal"


def build_key(resource: str, provider: str, identifier: str) -> str:
    """
    Join the parts of a hierarchical rate limit key.

    Example:
        >>> build_key("sms", "aliyun", "user:123")
        'sms:aliyun:user:123'
    """
    return f"{resource}:{provider}:{identifier}"


class PolicyResolver:
    """
    Decides the window limits that apply to a caller based on its tier.
    In a real app, the tier would come from a database or cache.
    """

    # None means unconstrained: no store round trip at all
    TIER_CONFIG: dict[UserTier, WindowConfig | None] = {
        UserTier.FREE: WindowConfig(per_second=2, per_minute=30, per_day=1_000),
        UserTier.PREMIUM: WindowConfig(per_second=10, per_minute=300, per_day=50_000),
        UserTier.VIP: WindowConfig(per_second=50, per_minute=3_000),
        UserTier.INTERNAL: None,
    }

    def get_policy(self, api_key: str | None) -> WindowConfig | None:
        return self.TIER_CONFIG[self.resolve_tier(api_key)]

    def resolve_tier(self, api_key: str | None) -> UserTier:
        """
        Simulates looking up a user's tier based on the key prefix.
        """
        if not api_key:
            return UserTier.FREE

        if api_key.startswith("int_"):
            return UserTier.INTERNAL
        elif api_key.startswith("vip_"):
            return UserTier.VIP
        elif api_key.startswith("prem_"):
            return UserTier.PREMIUM

        return UserTier.FREE
