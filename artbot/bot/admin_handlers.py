import html
import logging

from aiogram import Router
from aiogram.types import Message
from aiogram.filters import Command
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError

from artbot.bot.handlers import command_args, reply
from artbot.services.gift_codes import issue_code
from artbot.services.limits import is_owner

logger = logging.getLogger("bot.admin")

router = Router()

NOT_CAPABLE = "Ummmm, you are not capable of it."


def no_permission(settings) -> str:
    return f"You don't have permission to use this command. Please ask {settings.developer_handle} to do it."


def fmt_user(u) -> str:
    uname = f"@{html.escape(u.username)}" if u.username else "-"
    full = html.escape(u.full_name) if u.full_name else "-"
    return (
        f"<b>User ID:</b> {u.user_id}\n"
        f"<b>Username:</b> {uname}\n"
        f"<b>Name:</b> {full}\n"
        f"<b>Permanent Link:</b> <a href=\"tg://user?id={u.user_id}\">Open Chat</a>"
    )


@router.message(Command("setlogchannel"))
async def cmd_setlogchannel(message: Message, audit, settings):
    if not is_owner(message.from_user.id, settings):
        await reply(message, audit, no_permission(settings))
        return

    args = command_args(message).split()
    if len(args) != 1:
        await reply(message, audit, "Usage: /setlogchannel <log_channel_id>")
        return

    audit.set_channel(args[0])
    logger.info("log channel set to %s by %s", args[0], message.from_user.id)
    await reply(message, audit, f"Log channel set to {args[0]}")


@router.message(Command("generate"))
async def cmd_generate(message: Message, repo, audit, settings):
    if not is_owner(message.from_user.id, settings):
        await reply(message, audit, no_permission(settings))
        return

    code = await issue_code(repo)
    await reply(message, audit, f"Generated gift code: {code}")


@router.message(Command("users"))
async def cmd_users(message: Message, repo, audit, settings):
    if not is_owner(message.from_user.id, settings):
        await reply(message, audit, NOT_CAPABLE)
        return

    users = await repo.list_users()
    if not users:
        await reply(message, audit, "No users yet.")
        return

    for u in users:
        await reply(message, audit, fmt_user(u), parse_mode=ParseMode.HTML)


async def fan_out(bot, chat_ids, text: str) -> tuple[int, int]:
    """Sends text to every chat; a failed recipient is logged and skipped."""
    sent = failed = 0
    for chat_id in chat_ids:
        try:
            await bot.send_message(chat_id, text)
            sent += 1
        except TelegramAPIError as e:
            failed += 1
            logger.warning("Error sending message to %s: %s", chat_id, e)
    return sent, failed


@router.message(Command("broadcast"))
async def cmd_broadcast(message: Message, repo, audit, settings):
    if not is_owner(message.from_user.id, settings):
        await reply(message, audit, NOT_CAPABLE)
        return

    text = command_args(message)
    if not text:
        await reply(message, audit, "Usage: /broadcast <message>")
        return

    users = await repo.list_users()
    groups = await repo.list_groups()
    sent, failed = await fan_out(
        message.bot,
        [u.user_id for u in users] + [g.group_id for g in groups],
        text,
    )
    logger.info("broadcast done | sent=%s failed=%s", sent, failed)
    await reply(message, audit, "Broadcast message sent.")
