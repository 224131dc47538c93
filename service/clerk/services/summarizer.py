"""
AI summaries for Reads links.

Pipeline: fetch page -> readability article -> text -> strip markdown
links -> cap at 2500 words -> chat completion -> cap at 500 characters.

The article is flattened to plain text rather than markdown: get_text keeps
anchor text and drops hrefs, so no URLs reach the prompt. Link stripping
then only has to catch markdown link syntax that is literally part of the
page text (markdown served as text/plain, code-heavy posts).

Callers fall back to the backend's metadata description when this fails,
so every failure is raised as one of FetchError / SummarizationError /
ConfigurationError rather than swallowed here.
"""

import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup
from openai import AsyncOpenAI, OpenAIError
from readability import Document

from clerk.errors import ConfigurationError, FetchError, SummarizationError
from clerk.utils.normalize import truncate_string, MAX_DESCRIPTION_LENGTH

logger = logging.getLogger("clerk_bot.summarizer")

MAX_CONTENT_WORDS = 2500
SUMMARY_MODEL = "gpt-3.5-turbo"
SUMMARY_TEMPERATURE = 0.4
SUMMARY_MAX_TOKENS = 125  # ~500 characters at ~4 characters per token

_MARKDOWN_LINK = re.compile(r'\[([^\]]+)]\(([^)]+)\)')


def truncate_to_word_count(text: str, num_words: int) -> str:
    """Keep the first num_words whitespace-separated words, joined by single spaces."""
    return " ".join(text.split()[:num_words])


def remove_links_from_markdown(text: str) -> str:
    """Replace every [text](url) with just its text."""
    return _MARKDOWN_LINK.sub(r'\1', text)


def html_to_text(html: str) -> str:
    """Flatten article HTML to text, one block per line. Anchors keep their text, not their href."""
    soup = BeautifulSoup(html, "lxml")
    for element in soup(["script", "style", "noscript"]):
        element.decompose()
    return soup.get_text("\n", strip=True)


async def fetch_content_from_url(url: str, http_client: Optional[httpx.AsyncClient] = None) -> str:
    """
    Fetch a page and return its main article as plain text.

    Args:
        url: Page to read
        http_client: Optional client to reuse (a temporary one is opened otherwise)

    Returns:
        Article text without markdown links, at most MAX_CONTENT_WORDS words

    Raises:
        FetchError: download failed, or no article-like content was found
    """
    try:
        if http_client is None:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                response = await client.get(url)
        else:
            response = await http_client.get(url)
        response.raise_for_status()

        article_html = Document(response.text).summary()
        text = html_to_text(article_html)
    except Exception as e:
        raise FetchError(f"Failed to fetch content from URL {url}: {e}") from e

    if not text:
        raise FetchError(f"No article content found at {url}")

    markdown = remove_links_from_markdown(text)
    return truncate_to_word_count(markdown, MAX_CONTENT_WORDS)


async def generate_summary(content: str, ai_client: AsyncOpenAI, model: str = SUMMARY_MODEL) -> str:
    """
    Ask the chat completion API for a summary under 500 characters.

    Raises:
        SummarizationError: the API call failed or returned no text
    """
    try:
        response = await ai_client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": "You are a helpful assistant."},
                {
                    "role": "user",
                    "content": "Can you help create a summary under 500 character of the following webpage?",
                },
                {"role": "user", "content": "The article is formatted as markdown."},
                {"role": "user", "content": f"The article is as follows: \n{content}"},
            ],
            temperature=SUMMARY_TEMPERATURE,
            max_tokens=SUMMARY_MAX_TOKENS,
        )
    except OpenAIError as e:
        raise SummarizationError(f"Failed to generate summary: {e}") from e

    summary = response.choices[0].message.content if response.choices else None
    if not summary:
        raise SummarizationError("Summary response had no content")

    return summary.strip()


async def summarize_url(
    url: str,
    ai_client: Optional[AsyncOpenAI],
    http_client: Optional[httpx.AsyncClient] = None,
    model: str = SUMMARY_MODEL,
) -> str:
    """
    Summarize the article at `url` in at most 500 characters.

    Raises ConfigurationError before touching the network when no AI
    client is configured.
    """
    if ai_client is None:
        raise ConfigurationError("No AI client configured for summarization")

    content = await fetch_content_from_url(url, http_client)
    logger.debug(f"Fetched {len(content.split())} words from {url}")

    summary = await generate_summary(content, ai_client, model=model)
    return truncate_string(summary, MAX_DESCRIPTION_LENGTH)
