# inline keyboards

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton


def proai_stop_keyboard(user_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="⏹ Stop", callback_data=f"proai:cancel:{user_id}")],
    ])
