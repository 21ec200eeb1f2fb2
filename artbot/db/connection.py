from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict

import asyncpg

from artbot.db.models import GiftCode, Group, Subscription, User

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id BIGINT PRIMARY KEY,
    username TEXT,
    full_name TEXT
);
CREATE TABLE IF NOT EXISTS groups (
    group_id BIGINT PRIMARY KEY,
    title TEXT
);
CREATE TABLE IF NOT EXISTS subscriptions (
    user_id BIGINT PRIMARY KEY,
    plan TEXT
);
CREATE TABLE IF NOT EXISTS gift_codes (
    code TEXT PRIMARY KEY,
    plan TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

@dataclass
class FakeDatabase:
    users: Dict[int, User] = field(default_factory=dict)
    groups: Dict[int, Group] = field(default_factory=dict)
    subscriptions: Dict[int, Subscription] = field(default_factory=dict)  # key = user_id
    gift_codes: Dict[str, GiftCode] = field(default_factory=dict)  # key = code

async def get_db(use_fake: bool, dsn: str):
    """
    use_fake=True -> FakeDatabase.
    Otherwise -> asyncpg pool with the schema created.
    """
    if use_fake:
        return FakeDatabase()

    pool = await asyncpg.create_pool(dsn=dsn, min_size=1, max_size=10)
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA)
    return pool
