"""Main Telegram bot module."""
import logging
from html import escape
from typing import List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest
from telegram.ext import CallbackContext

from wordsbot.config import settings
from wordsbot.errors import ApiError, InvalidTransitionError, NotFoundError
from wordsbot.formatting import (
    format_card_header,
    format_grade_button,
    format_grade_legend,
    format_review_history,
    format_stats,
    format_word_detail,
    format_word_list,
)
from wordsbot.models.api_models import ReviewGrade
from wordsbot.models.review_models import ReviewState
from wordsbot.services.client_service import ClientService
from wordsbot.services.review_service import ReviewSession

# Get logger for this module
logger = logging.getLogger(__name__)

# Conversation states
LOGIN, MAIN_MENU, ADDING_WORD, REVIEWING = range(4)

# Button texts
MENU = "🏠 Menu"
VIEW_STATISTICS = "📊 Stats"
START_REVIEW = "🎯 Review"
MY_WORDS = "📖 My Words"
ADD_WORD = "➕ Add Word"
LOGOUT = "🚪 Logout"
SHOW_DEFINITION = "👀 Show Definition"
ADD_TO_LIST = "✅ Add to Study List"
ALL_WORDS = "All"

MSG_LOGIN = (
    "📚 Words\n"
    "Learn vocabulary with spaced repetition.\n\n"
    "Please send your username to continue.\n"
    "No password needed! Letters, numbers and underscores only."
)
MSG_ADD_WORD = "➕ Add New Word\n\nSend me a word (e.g., serendipity) to look it up."
MSG_SUBMITTING = "Submitting review..."
MSG_BUSY = "Please wait, your last answer is still being sent."

CALLBACK_REVIEW_PREFIX = "review_"
CALLBACK_REVEAL = "review_reveal"
CALLBACK_GRADE_PREFIX = "review_grade_"
CALLBACK_WORDS_PREFIX = "words_"


def msg_back_to(text: str) -> str: return f"🔙 {text}"


KB_BACK_TO_MENU = [InlineKeyboardButton(msg_back_to(MENU), callback_data="back_to_menu")]


def get_client(update: Update, context: CallbackContext) -> ClientService:
    """Get the client for this chat, creating it on first use."""
    client = context.chat_data.get("client")
    if client is None:
        client = ClientService(context.bot_data["api"], str(update.effective_chat.id))
        context.chat_data["client"] = client
    return client


async def log_received(update: Update, context_type: str) -> None:
    """Log message."""
    txt = ""
    if update.callback_query:
        txt = f" {update.callback_query.data}"
    elif update.message:
        txt = f" {update.message.text}"
    logger.info(f"Received @{context_type:8} from user {update.effective_user.username} ({update.effective_user.id}){txt}")


async def reply(update: Update, text: str, keyboard: Optional[List[List[InlineKeyboardButton]]] = None) -> None:
    """Edit the message behind a button press, or answer a text message."""
    reply_markup = InlineKeyboardMarkup(keyboard) if keyboard else None
    if update.callback_query:
        try:
            await update.callback_query.edit_message_text(text, reply_markup=reply_markup, parse_mode="HTML")
        except BadRequest as e:
            # Telegram rejects edits that leave the message unchanged
            logger.warning(f"Error editing message: {e}")
    else:
        await update.message.reply_text(text, reply_markup=reply_markup, parse_mode="HTML")


def main_menu_keyboard(client: ClientService) -> List[List[InlineKeyboardButton]]:
    due_today = client.stats.stats.due_today if client.stats and client.stats.stats else 0
    return [
        [InlineKeyboardButton(VIEW_STATISTICS, callback_data="statistics"),
         InlineKeyboardButton(f"{START_REVIEW} ({due_today})", callback_data="start_review")],
        [InlineKeyboardButton(MY_WORDS, callback_data="words_all"),
         InlineKeyboardButton(ADD_WORD, callback_data="add_word")],
        [InlineKeyboardButton(LOGOUT, callback_data="logout")],
    ]


async def show_menu(update: Update, context: CallbackContext, text: Optional[str] = None) -> int:
    """Show the main menu."""
    client = get_client(update, context)
    message = text or f"Welcome, {client.username}! 👋\nWhat would you like to do?"
    await reply(update, message, main_menu_keyboard(client))
    return MAIN_MENU


async def handle_start(update: Update, context: CallbackContext) -> int:
    """Validate any saved session and show the menu or the login prompt."""
    await log_received(update, "start")
    client = get_client(update, context)
    await client.start()
    if client.is_authenticated:
        return await show_menu(update, context)
    await reply(update, MSG_LOGIN)
    return LOGIN


async def handle_login(update: Update, context: CallbackContext) -> int:
    """Log in with the username the user sent."""
    await log_received(update, "login")
    client = get_client(update, context)
    try:
        result = await client.login(update.message.text)
    except ApiError as e:
        await reply(update, f"⚠️ {escape(e.message or 'Failed to login. Please try again.')}\n\n{MSG_LOGIN}")
        return LOGIN

    greeting = "Account created! " if result.created else ""
    return await show_menu(update, context, f"{greeting}Welcome, {result.identity.username}! 👋\nWhat would you like to do?")


async def handle_callback(update: Update, context: CallbackContext) -> int:
    """Handle callback queries from inline keyboard."""
    query = update.callback_query
    await query.answer()

    await log_received(update, "callback")

    client = get_client(update, context)
    if not client.is_authenticated:
        await reply(update, MSG_LOGIN)
        return LOGIN

    if query.data == "back_to_menu":
        return await show_menu(update, context)
    elif query.data == "statistics":
        return await show_statistics(update, context)
    elif query.data == "start_review":
        return await start_review(update, context)
    elif query.data.startswith(CALLBACK_WORDS_PREFIX):
        return await show_words(update, context)
    elif query.data == "add_word":
        return await add_word(update, context)
    elif query.data == "add_word_confirm":
        return await handle_add_word_confirm(update, context)
    elif query.data == "logout":
        return await handle_logout(update, context)

    return MAIN_MENU


async def show_statistics(update: Update, context: CallbackContext) -> int:
    """Show the latest statistics."""
    client = get_client(update, context)
    stats = client.stats.stats if client.stats else None
    if stats is None and client.stats:
        stats = await client.stats.refresh()
    if stats is None:
        await reply(update, "⚠️ Statistics are not available right now.", [KB_BACK_TO_MENU])
        return MAIN_MENU

    await reply(
        update,
        format_stats(stats, client.store.get_last_sync()),
        [KB_BACK_TO_MENU + [InlineKeyboardButton(START_REVIEW, callback_data="start_review")]],
    )
    return MAIN_MENU


async def show_words(update: Update, context: CallbackContext) -> int:
    """Show the study list, filtered by the status in the callback data."""
    client = get_client(update, context)
    status = update.callback_query.data[len(CALLBACK_WORDS_PREFIX):]
    status = None if status == "all" else status

    try:
        words = await client.words.list_words(client.username, status)
    except ApiError as e:
        await reply(update, f"⚠️ {escape(e.message)}", [KB_BACK_TO_MENU])
        return MAIN_MENU

    filters_row = [InlineKeyboardButton(ALL_WORDS, callback_data="words_all")] + [
        InlineKeyboardButton(word_status.capitalize(), callback_data=f"{CALLBACK_WORDS_PREFIX}{word_status}")
        for word_status in settings.review.word_statuses
    ]
    await reply(update, format_word_list(words, status), [filters_row, KB_BACK_TO_MENU])
    return MAIN_MENU


async def add_word(update: Update, context: CallbackContext) -> int:
    """Ask for a word to look up."""
    context.user_data.pop("pending_word", None)
    await reply(update, MSG_ADD_WORD, [KB_BACK_TO_MENU])
    return ADDING_WORD


async def handle_add_word_text(update: Update, context: CallbackContext) -> int:
    """Look up the word the user sent and offer to add it."""
    await log_received(update, "add")
    client = get_client(update, context)
    if not client.is_authenticated:
        await reply(update, MSG_LOGIN)
        return LOGIN

    try:
        detail = await client.words.lookup(update.message.text)
    except NotFoundError as e:
        await reply(update, f"⚠️ {escape(e.message or 'Word not found. Please try another word.')}", [KB_BACK_TO_MENU])
        return ADDING_WORD
    except ApiError as e:
        await reply(update, f"⚠️ {escape(e.message)}", [KB_BACK_TO_MENU])
        return ADDING_WORD

    context.user_data["pending_word"] = detail.word
    await reply(
        update,
        format_word_detail(detail),
        [[InlineKeyboardButton(ADD_TO_LIST, callback_data="add_word_confirm")], KB_BACK_TO_MENU],
    )
    return ADDING_WORD


async def handle_add_word_confirm(update: Update, context: CallbackContext) -> int:
    """Add the looked-up word to the study list."""
    client = get_client(update, context)
    word = context.user_data.get("pending_word")
    if not word:
        return await add_word(update, context)

    try:
        word = await client.words.add_to_study_list(client.username, word)
    except ApiError as e:
        await reply(
            update,
            f"⚠️ {escape(e.message or 'Failed to add word. It might already be in your list.')}",
            [[InlineKeyboardButton(ADD_WORD, callback_data="add_word")], KB_BACK_TO_MENU],
        )
        return ADDING_WORD

    context.user_data.pop("pending_word", None)
    await reply(
        update,
        f"\"{escape(word)}\" has been added to your study list!\nSend another word to add more.",
        [KB_BACK_TO_MENU],
    )
    return ADDING_WORD


def review_keyboard(review: ReviewSession) -> List[List[InlineKeyboardButton]]:
    """Buttons for the current card. None are offered while a grade is in flight."""
    if review.state is ReviewState.PRESENTING:
        return [[InlineKeyboardButton(SHOW_DEFINITION, callback_data=CALLBACK_REVEAL)], KB_BACK_TO_MENU]
    if review.state is ReviewState.REVEALING:
        per_row = settings.review.grade_buttons_per_row
        buttons = [
            InlineKeyboardButton(format_grade_button(grade), callback_data=f"{CALLBACK_GRADE_PREFIX}{int(grade)}")
            for grade in ReviewGrade
        ]
        return [buttons[i:i + per_row] for i in range(0, len(buttons), per_row)] + [KB_BACK_TO_MENU]
    if review.state.is_terminal:
        return [KB_BACK_TO_MENU]
    return []


def review_message(review: ReviewSession, note: Optional[str] = None, submitting: bool = False) -> str:
    """Text for the review view in its current state."""
    if review.state is ReviewState.EMPTY:
        if review.last_error is not None:
            return f"⚠️ Failed to load reviews: {escape(str(review.last_error))}"
        return (
            "🎉 All Done!\n\n"
            "You have no words due for review right now. Great job keeping up with your studies!\n"
            "Come back later or add more words to your study list."
        )
    if review.state is ReviewState.COMPLETED:
        return f"🎉 Review complete! You reviewed {review.reviewed} word{'s' if review.reviewed != 1 else ''}."

    item = review.current_item
    message = f"{format_card_header(review.cursor + 1, review.total)}\n\n"
    if review.state is ReviewState.PRESENTING:
        message += f"<b>{escape(item.word)}</b>\n\nDo you remember this word?"
    else:
        if review.detail is not None:
            message += format_word_detail(review.detail)
        else:
            message += f"<b>{escape(item.word)}</b>\n\n(No definition available)"
        message += f"\n\nHow well did you remember?\n{format_grade_legend()}"
        if submitting or review.state is ReviewState.SUBMITTING:
            message += f"\n\n{MSG_SUBMITTING}"
    if note:
        message += f"\n\n⚠️ {note}"
    return message


async def send_review(update: Update, review: ReviewSession, note: Optional[str] = None) -> int:
    await reply(update, review_message(review, note), review_keyboard(review))
    return MAIN_MENU if review.state.is_terminal else REVIEWING


async def start_review(update: Update, context: CallbackContext) -> int:
    """Start a new review pass."""
    client = get_client(update, context)
    review = client.new_review()
    try:
        await review.load()
    except ApiError:
        # The session is EMPTY with last_error set, which the message shows
        return await send_review(update, review)
    return await send_review(update, review)


async def handle_review(update: Update, context: CallbackContext) -> int:
    """Handle reveal and grade buttons during a review pass."""
    query = update.callback_query
    if not query.data.startswith(CALLBACK_REVIEW_PREFIX):
        return await handle_callback(update, context)

    client = get_client(update, context)
    review = client.review
    if review is None or review.state.is_terminal:
        await query.answer()
        return await show_menu(update, context)

    await log_received(update, "review")

    if not review.state.accepts_input:
        await query.answer(text=MSG_BUSY, show_alert=False)
        return REVIEWING

    try:
        if query.data == CALLBACK_REVEAL:
            await query.answer()
            review.reveal()
            return await send_review(update, review)

        await query.answer()
        grade = ReviewGrade.parse(int(query.data[len(CALLBACK_GRADE_PREFIX):]))
        if review.state is ReviewState.REVEALING:
            # Show the card without buttons until the grade is recorded
            await reply(update, review_message(review, submitting=True))
        await review.submit(grade)
    except InvalidTransitionError as e:
        logger.warning(f"Ignored review action {query.data}: {e}")
        return await send_review(update, review)
    except (ApiError, ValueError) as e:
        return await send_review(update, review, f"Failed to submit review: {escape(str(e))}. Please try again.")

    return await send_review(update, review)


async def handle_logout(update: Update, context: CallbackContext) -> int:
    """Log out and return to the login prompt."""
    client = get_client(update, context)
    await client.logout()
    context.user_data.clear()
    await reply(update, f"👋 Logged out.\n\n{MSG_LOGIN}")
    return LOGIN


async def handle_history(update: Update, context: CallbackContext) -> int:
    """Show the review history of a word: /history <word>."""
    await log_received(update, "history")
    client = get_client(update, context)
    if not client.is_authenticated:
        await client.start()
    if not client.is_authenticated:
        await reply(update, MSG_LOGIN)
        return LOGIN
    if not context.args:
        await reply(update, "Usage: /history &lt;word&gt;", [KB_BACK_TO_MENU])
        return MAIN_MENU

    word = " ".join(context.args)
    try:
        history = await client.words.review_history(client.username, word)
    except ApiError as e:
        await reply(update, f"⚠️ {escape(e.message)}", [KB_BACK_TO_MENU])
        return MAIN_MENU
    await reply(update, format_review_history(word, history), [KB_BACK_TO_MENU])
    return MAIN_MENU


async def handle_cancel(update: Update, context: CallbackContext) -> int:
    """Drop whatever is in progress and go back to the menu."""
    client = get_client(update, context)
    context.user_data.pop("pending_word", None)
    client.review = None
    if not client.is_authenticated:
        return await handle_start(update, context)
    return await show_menu(update, context)
