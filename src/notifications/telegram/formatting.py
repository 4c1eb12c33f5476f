"""Telegram message formatting utilities."""

import telegramify_markdown

# Parse mode matching the output of telegramify-markdown
PARSE_MODE = "MarkdownV2"


def format_message(markdown: str) -> tuple[str, str]:
    """Convert Markdown to Telegram's MarkdownV2 format.

    :param markdown: Standard Markdown text.
    :returns: Tuple of (markdownv2_text, parse_mode).
    """
    return telegramify_markdown.markdownify(markdown), PARSE_MODE
