import logging

from aiogram.types import ErrorEvent
from aiogram.exceptions import TelegramAPIError

logger = logging.getLogger("bot.errors")

APOLOGY = "Sorry, something went wrong. Please try again later."


async def on_error(event: ErrorEvent) -> bool:
    logger.error("Unhandled error in update %s", event.update.update_id, exc_info=event.exception)

    message = event.update.message
    if message is not None:
        try:
            await message.answer(APOLOGY)
        except TelegramAPIError as e:
            logger.warning("Could not deliver apology to %s: %s", message.chat.id, e)

    # an unanswered callback query keeps the button spinning
    call = event.update.callback_query
    if call is not None:
        try:
            await call.answer(APOLOGY, show_alert=True)
        except TelegramAPIError as e:
            logger.warning("Could not answer callback query %s: %s", call.id, e)
    return True
