# /start, /help, generation commands, /redeem, group tracking

import logging

from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, ChatMemberUpdated, BufferedInputFile
from aiogram.filters import Command, CommandStart, ChatMemberUpdatedFilter, JOIN_TRANSITION
from aiogram.exceptions import TelegramAPIError

from artbot.bot.keyboards import proai_stop_keyboard
from artbot.services.batch import BatchAlreadyRunning
from artbot.services.gift_codes import RedeemResult, redeem_code
from artbot.services.limits import is_owner, is_professional
from artbot.utils.time import now_ms

logger = logging.getLogger("bot")

router = Router()

TELEGRAM_TEXT_LIMIT = 4096
GROUP_CHAT_TYPES = ("group", "supergroup")

HELP_TEXT = (
    "Available commands:\n"
    "/start - Start the bot\n"
    "/ai <prompt> - Generate an image based on the prompt\n"
    "/proai <prompt> - Generate a series of images based on the prompt (professional, no time limit)\n"
    "/cancel - Stop a running /proai series\n"
    "/modify <prompt> - Modify the last generated image\n"
    "/ask <query> - Get an answer to your query\n"
    "/dev - Get developer info\n"
    "/setlogchannel <id> - Set the log channel (owner only)\n"
    "/ping - Check the server response time\n"
    "/generate - Generate a gift code (owner only)\n"
    "/redeem <code> - Redeem a gift code to get a professional plan\n"
    "/users - Get the list of users (owner only)\n"
    "/broadcast <message> - Broadcast a message to all users and groups (owner only)"
)


def command_args(message: Message) -> str:
    """Text after the command token, '' if there is none."""
    parts = (message.text or "").split(maxsplit=1)
    return parts[1].strip() if len(parts) > 1 else ""


async def reply(message: Message, audit, text: str, **kwargs) -> None:
    await message.answer(text, **kwargs)
    await audit.log(message.from_user, message.text or "", text)


async def reply_photo(message: Message, audit, url: str) -> None:
    await message.answer_photo(url)
    await audit.log(message.from_user, message.text or "", url)


def split_text(text: str, limit: int = TELEGRAM_TEXT_LIMIT) -> list[str]:
    return [text[i:i + limit] for i in range(0, len(text), limit)] or [""]


@router.message(CommandStart())
async def cmd_start(message: Message, repo, audit, settings):
    user = message.from_user
    await repo.upsert_user(user.id, user.username, user.full_name)

    text = (
        "Hi! Send me a command /ai followed by your prompt to generate an image, "
        "or use /ask followed by your query to get an answer, or /dev to get developer info, "
        "or /help to get all commands info.\n\n"
        f"Developed by {settings.developer_handle}"
    )
    await reply(message, audit, text)


@router.message(Command("help"))
async def cmd_help(message: Message, audit):
    await reply(message, audit, HELP_TEXT)


@router.message(Command("ai"))
async def cmd_ai(message: Message, llm, limiter, last_images, audit, settings):
    user_id = message.from_user.id

    decision = await limiter.check_and_record(user_id)
    if not decision.allowed:
        seconds = f"{settings.ai_cooldown_seconds:g}"
        await reply(message, audit, f"Please wait for {seconds} seconds before using the /ai command again.")
        return

    prompt = command_args(message)
    if not prompt:
        await reply(message, audit, "Please provide a prompt after the /ai command.")
        return

    await message.answer("Generating image...")
    image_url = await llm.generate_image(prompt)
    if not image_url:
        await reply(
            message, audit,
            f"Sorry, there was an error generating the image. Please contact {settings.developer_handle} to fix it.",
        )
        return

    await reply_photo(message, audit, image_url)
    last_images.record(user_id, image_url)


@router.message(Command("proai"))
async def cmd_proai(message: Message, repo, llm, batches, last_images, audit, settings):
    user_id = message.from_user.id

    if not await is_professional(repo, user_id):
        await reply(message, audit, "You need to redeem a gift code to use the /proai command.")
        return

    prompt = command_args(message)
    if not prompt:
        await reply(message, audit, "Please provide a prompt after the /proai command.")
        return

    async def announce() -> None:
        await message.answer("Generating images...", reply_markup=proai_stop_keyboard(user_id))

    async def deliver(url: str) -> None:
        await reply_photo(message, audit, url)
        last_images.record(user_id, url)

    try:
        report = await batches.run(user_id, prompt, llm.generate_image, deliver, on_start=announce)
    except BatchAlreadyRunning:
        await reply(message, audit, "A /proai series is already running. Send /cancel to stop it.")
        return

    if report.failed:
        await reply(
            message, audit,
            "Sorry, there was an error generating one of the images. "
            f"Please contact {settings.developer_handle} to fix it.",
        )
    elif report.cancelled:
        await reply(message, audit, f"Stopped after {report.produced} of {report.requested} images.")


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, batches, audit, settings):
    target = message.from_user.id
    arg = command_args(message)
    if arg and is_owner(message.from_user.id, settings):
        try:
            target = int(arg)
        except ValueError:
            await reply(message, audit, "Usage: /cancel [user_id]")
            return

    if batches.cancel(target):
        await reply(message, audit, "Stopping the image series...")
    else:
        await reply(message, audit, "There is no running image series to stop.")


@router.callback_query(F.data.startswith("proai:cancel:"))
async def cb_proai_cancel(call: CallbackQuery, batches, settings):
    target = int(call.data.rsplit(":", 1)[-1])
    if call.from_user.id != target and not is_owner(call.from_user.id, settings):
        await call.answer("This is not your image series.", show_alert=True)
        return

    if batches.cancel(target):
        await call.answer("Stopping...")
    else:
        await call.answer("Nothing to stop.")


@router.message(Command("modify"))
async def cmd_modify(message: Message, llm, last_images, audit, settings):
    user_id = message.from_user.id
    modify_prompt = command_args(message)
    error_text = f"Sorry, there was an error modifying the image. Please contact {settings.developer_handle} to fix it."
    replied = message.reply_to_message

    if replied and replied.photo:
        if not modify_prompt:
            await reply(message, audit, "Please provide a prompt after the /modify command.")
            return

        await message.answer("Modifying the image...")
        # send bytes, not the file URL: the URL embeds the bot token
        try:
            buf = await message.bot.download(replied.photo[-1].file_id)
        except TelegramAPIError as e:
            logger.warning("photo download failed for user_id=%s: %s", user_id, e)
            await reply(message, audit, error_text)
            return

        image = await llm.edit_image(buf.getvalue(), modify_prompt)
        if not image:
            await reply(message, audit, error_text)
            return

        await message.answer_photo(BufferedInputFile(image, filename="modified.png"))
        await audit.log(message.from_user, message.text or "", "[modified photo]")
        return

    source_url = last_images.get(user_id)
    if not source_url:
        await reply(
            message, audit,
            "No image found to modify. Please generate an image first using /ai command "
            "or reply to an image with /modify command.",
        )
        return

    if not modify_prompt:
        await reply(message, audit, "Please provide a prompt after the /modify command.")
        return

    await message.answer("Modifying the last generated image...")
    image_url = await llm.generate_image(f"Modify this image: {source_url} with {modify_prompt}")
    if not image_url:
        await reply(message, audit, error_text)
        return

    await reply_photo(message, audit, image_url)
    last_images.record(user_id, image_url)


@router.message(Command("ask"))
async def cmd_ask(message: Message, llm, audit, settings):
    question = command_args(message)
    if not question:
        await reply(message, audit, "Please provide a query after the /ask command.")
        return

    await message.answer("Thinking...")
    answer = await llm.ask(question)
    if not answer:
        await reply(
            message, audit,
            f"Sorry, there was an error generating the answer. Please contact {settings.developer_handle} to fix it.",
        )
        return

    for chunk in split_text(answer):
        await message.answer(chunk)
    await audit.log(message.from_user, message.text or "", answer)


@router.message(Command("dev"))
async def cmd_dev(message: Message, audit, settings):
    await reply(message, audit, f"Developer {settings.developer_handle}")


@router.message(Command("ping"))
async def cmd_ping(message: Message, audit):
    start = now_ms()
    await message.answer("Pong!")
    elapsed = int(now_ms() - start)
    await reply(message, audit, f"Pong! {elapsed} ms")


@router.message(Command("redeem"))
async def cmd_redeem(message: Message, repo, audit):
    args = command_args(message).split()
    if len(args) != 1:
        await reply(message, audit, "Usage: /redeem <gift_code>")
        return

    result = await redeem_code(repo, args[0], message.from_user.id)
    if result is RedeemResult.REDEEMED:
        await reply(message, audit, "You have successfully redeemed the code and upgraded to the professional plan.")
    else:
        await reply(message, audit, "Invalid or already redeemed gift code.")


# --- groups ---

async def remember_group(repo, chat) -> None:
    if chat.type not in GROUP_CHAT_TYPES:
        return
    await repo.upsert_group(chat.id, chat.title)
    logger.info("Added to group: %s (%s)", chat.title, chat.id)


@router.message(F.new_chat_members)
async def on_new_chat_members(message: Message, repo):
    await remember_group(repo, message.chat)


@router.my_chat_member(ChatMemberUpdatedFilter(member_status_changed=JOIN_TRANSITION))
async def on_bot_added(event: ChatMemberUpdated, repo):
    await remember_group(repo, event.chat)
