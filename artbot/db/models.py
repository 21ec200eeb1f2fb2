# records of the four collections (dataclass)

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

PLAN_PROFESSIONAL = "professional"

@dataclass
class User:
    user_id: int
    username: Optional[str] = None
    full_name: Optional[str] = None

@dataclass
class Group:
    group_id: int
    title: Optional[str] = None

@dataclass
class Subscription:
    user_id: int
    # None = free tier
    plan: Optional[str] = None

@dataclass
class GiftCode:
    code: str
    plan: str = PLAN_PROFESSIONAL
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
