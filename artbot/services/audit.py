import logging

from aiogram.exceptions import TelegramAPIError

logger = logging.getLogger(__name__)


def describe_user(user) -> str:
    full = f"{user.first_name or ''} {user.last_name or ''}".strip()
    return (
        f"User ID: {user.id}\n"
        f"Username: @{user.username}\n"
        f"Name: {full}"
    )


class AuditLogger:
    """Mirrors (input, response) pairs to the admin channel, if one is set."""

    def __init__(self, bot, channel_id: str | int | None = None):
        self.bot = bot
        self.channel_id = channel_id or None

    def set_channel(self, channel_id: str | int | None) -> None:
        self.channel_id = channel_id or None

    async def log(self, user, user_input: str, response: str) -> None:
        if not self.channel_id:
            return
        text = f"{describe_user(user)}\nUser input: {user_input}\nBot response: {response}"
        try:
            await self.bot.send_message(self.channel_id, text[:4096])
        except TelegramAPIError as e:
            logger.warning("Error sending log message to %s: %s", self.channel_id, e)
