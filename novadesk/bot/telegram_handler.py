from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.constants import ParseMode
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    TypeHandler,
    filters,
)

from novadesk.core.config_loader import format_lines
from novadesk.core.logger import logger
from novadesk.services.checkin_service import CheckinService

MENU_ACTIONS = ("CHECKIN", "INFO", "CONTACTO")


def build_menu(hotel: dict) -> InlineKeyboardMarkup:
    labels = hotel.get("menu", {})
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton(labels.get(action, action), callback_data=action)] for action in MENU_ACTIONS]
    )


async def log_update(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Trace every incoming update before the real handlers run."""
    kind = "callback_query" if update.callback_query else "message" if update.message else "other"
    logger.info(f"📩 update: {kind}")


async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    hotel = context.bot_data["hotel"]
    await update.message.reply_text(hotel["welcome"], reply_markup=build_menu(hotel))


async def handle_menu(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle the inline menu buttons (CHECKIN / INFO / CONTACTO)."""
    query = update.callback_query
    await query.answer()

    hotel = context.bot_data["hotel"]
    action = query.data
    if action == "CHECKIN":
        await query.message.reply_text(hotel["checkin_instructions"], parse_mode=ParseMode.MARKDOWN)
    elif action == "INFO":
        await query.message.reply_text(format_lines(hotel["info"]["title"], hotel["info"]["lines"]))
    elif action == "CONTACTO":
        await query.message.reply_text(format_lines(hotel["contact"]["title"], hotel["contact"]["lines"]))


async def handle_latest(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/ultimas: last five pre check-ins."""
    admin_ids = context.bot_data.get("admin_ids") or set()
    if admin_ids and update.effective_user.id not in admin_ids:
        logger.warning(f"🔒 /ultimas refused for user {update.effective_user.id}")
        return

    checkin: CheckinService = context.bot_data["checkin"]
    await update.message.reply_text(await checkin.latest_summary(5))


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Free text: store it when it looks like '<apellido> <reserva>', ignore it otherwise."""
    checkin: CheckinService = context.bot_data["checkin"]
    reply = await checkin.register(update.message.text or "")
    if reply is None:
        return
    await update.message.reply_text(reply, parse_mode=ParseMode.MARKDOWN)


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE):
    logger.opt(exception=context.error).error(f"🔥 Error while handling update: {context.error}")


def register_handlers(application: Application, checkin: CheckinService, hotel: dict, admin_ids=()):
    application.bot_data["checkin"] = checkin
    application.bot_data["hotel"] = hotel
    application.bot_data["admin_ids"] = set(admin_ids)

    application.add_handler(TypeHandler(Update, log_update), group=-1)
    application.add_handler(CommandHandler("start", handle_start))
    application.add_handler(CommandHandler("ultimas", handle_latest))
    application.add_handler(CallbackQueryHandler(handle_menu, pattern=r"^(CHECKIN|INFO|CONTACTO)$"))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    application.add_error_handler(handle_error)
    return application


def build_application(token: str, checkin: CheckinService, hotel: dict, admin_ids=(), webhook: bool = False) -> Application:
    builder = Application.builder().token(token)
    if webhook:
        # Updates arrive through the FastAPI route, no polling updater needed
        builder = builder.updater(None)
    return register_handlers(builder.build(), checkin, hotel, admin_ids)
