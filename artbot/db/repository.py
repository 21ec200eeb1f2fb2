from __future__ import annotations

from typing import Any, List, Optional

from artbot.db.models import GiftCode, Group, Subscription, User


class Repository:
    def __init__(self, db):
        self.db = db  # FakeDatabase or asyncpg.Pool

    def _is_fake(self) -> bool:
        return hasattr(self.db, "gift_codes") and hasattr(self.db, "subscriptions")

    @staticmethod
    def _row_to_user(row: Any) -> User:
        return User(user_id=row["user_id"], username=row["username"], full_name=row["full_name"])

    # -------------------- users / groups --------------------

    async def upsert_user(self, user_id: int, username: str | None, full_name: str | None) -> None:
        if self._is_fake():
            self.db.users[user_id] = User(user_id=user_id, username=username, full_name=full_name)
            return

        async with self.db.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO users (user_id, username, full_name)
                VALUES ($1, $2, $3)
                ON CONFLICT (user_id) DO UPDATE
                SET username=EXCLUDED.username,
                    full_name=EXCLUDED.full_name
                """,
                user_id, username, full_name,
            )

    async def list_users(self) -> List[User]:
        if self._is_fake():
            return list(self.db.users.values())

        async with self.db.acquire() as conn:
            rows = await conn.fetch("SELECT user_id, username, full_name FROM users ORDER BY user_id")
            return [self._row_to_user(r) for r in rows]

    async def upsert_group(self, group_id: int, title: str | None) -> None:
        if self._is_fake():
            self.db.groups[group_id] = Group(group_id=group_id, title=title)
            return

        async with self.db.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO groups (group_id, title)
                VALUES ($1, $2)
                ON CONFLICT (group_id) DO UPDATE
                SET title=EXCLUDED.title
                """,
                group_id, title,
            )

    async def list_groups(self) -> List[Group]:
        if self._is_fake():
            return list(self.db.groups.values())

        async with self.db.acquire() as conn:
            rows = await conn.fetch("SELECT group_id, title FROM groups ORDER BY group_id")
            return [Group(group_id=r["group_id"], title=r["title"]) for r in rows]

    # -------------------- subscriptions --------------------

    async def get_subscription(self, user_id: int) -> Optional[Subscription]:
        if self._is_fake():
            return self.db.subscriptions.get(user_id)

        async with self.db.acquire() as conn:
            row = await conn.fetchrow("SELECT user_id, plan FROM subscriptions WHERE user_id=$1", user_id)
            if row is None:
                return None
            return Subscription(user_id=row["user_id"], plan=row["plan"])

    async def set_plan(self, user_id: int, plan: str) -> Subscription:
        if self._is_fake():
            sub = Subscription(user_id=user_id, plan=plan)
            self.db.subscriptions[user_id] = sub
            return sub

        async with self.db.acquire() as conn:
            await self._set_plan_pg(conn, user_id, plan)
            return Subscription(user_id=user_id, plan=plan)

    @staticmethod
    async def _set_plan_pg(conn, user_id: int, plan: str) -> None:
        await conn.execute(
            """
            INSERT INTO subscriptions (user_id, plan)
            VALUES ($1, $2)
            ON CONFLICT (user_id) DO UPDATE
            SET plan=EXCLUDED.plan
            """,
            user_id, plan,
        )

    # -------------------- gift codes --------------------

    async def insert_gift_code(self, gift: GiftCode) -> bool:
        """
        Inserts an unused code. Returns False if the code already exists,
        the stored row is left untouched in that case.
        """
        if self._is_fake():
            if gift.code in self.db.gift_codes:
                return False
            self.db.gift_codes[gift.code] = gift
            return True

        async with self.db.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO gift_codes (code, plan, created_at)
                VALUES ($1, $2, $3)
                ON CONFLICT (code) DO NOTHING
                RETURNING code
                """,
                gift.code, gift.plan, gift.created_at,
            )
            return row is not None

    async def redeem_gift_code(self, code: str, user_id: int) -> Optional[GiftCode]:
        """
        Deletes the code if present and upgrades the user to its plan.
        The delete is the single source of truth for "used": of two
        concurrent calls with the same code only one gets the row back.
        """
        if self._is_fake():
            # pop is the claim; nothing suspends before it
            gift = self.db.gift_codes.pop(code, None)
            if gift is None:
                return None
            await self.set_plan(user_id, gift.plan)
            return gift

        async with self.db.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    "DELETE FROM gift_codes WHERE code=$1 RETURNING code, plan, created_at",
                    code,
                )
                if row is None:
                    return None
                await self._set_plan_pg(conn, user_id, row["plan"])
                return GiftCode(code=row["code"], plan=row["plan"], created_at=row["created_at"])
