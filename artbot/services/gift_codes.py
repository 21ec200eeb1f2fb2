from __future__ import annotations

import enum
import logging
import secrets
import string

from artbot.db.models import GiftCode, PLAN_PROFESSIONAL

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
MAX_ISSUE_ATTEMPTS = 5


class GiftCodeCollision(Exception):
    pass


class RedeemResult(enum.Enum):
    REDEEMED = "redeemed"
    INVALID_OR_USED = "invalid_or_used"


def generate_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


async def issue_code(repo, plan: str = PLAN_PROFESSIONAL) -> str:
    """
    Stores a fresh unused code and returns it.
    Uniqueness is checked by the insert itself; a taken code is regenerated.
    """
    for _ in range(MAX_ISSUE_ATTEMPTS):
        code = generate_code()
        if await repo.insert_gift_code(GiftCode(code=code, plan=plan)):
            logger.info("gift code issued | plan=%s", plan)
            return code
        logger.warning("gift code collision, regenerating")
    raise GiftCodeCollision(f"could not issue a unique code in {MAX_ISSUE_ATTEMPTS} attempts")


async def redeem_code(repo, code: str, user_id: int) -> RedeemResult:
    code = (code or "").strip()
    if not code:
        return RedeemResult.INVALID_OR_USED
    gift = await repo.redeem_gift_code(code, user_id)
    if gift is None:
        return RedeemResult.INVALID_OR_USED
    logger.info("gift code redeemed | user_id=%s plan=%s", user_id, gift.plan)
    return RedeemResult.REDEEMED
