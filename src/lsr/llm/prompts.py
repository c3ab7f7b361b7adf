"""Prompt templates for page and batch translation."""

from __future__ import annotations

_FORMATTING_RULES = """\
Text extracted from PDF pages loses its formatting, so infer headings from the text itself:
1. ALL-CAPS phrases such as "PART ONE" or "INTRODUCTION" are headings.
2. Short standalone lines (fewer than 10 words) that read like a title are headings.
3. Chapter markers such as "Chapter 1" or "Prologue" are headings.

Output format:
- Use Markdown heading syntax for detected headings: ## for book or part titles, \
### for chapter titles.
- Leave one blank line between a heading and the body text.
- Keep the original paragraph structure.
- Return ONLY the translation, with no commentary.

Example (en → zh):
Input:
PART ONE SAVING APPLE When Time published a cover story...

Wrong output (heading merged into body):
第一部分 拯救苹果 当《时代》杂志发表...

Correct output:
## 第一部分 拯救苹果

当《时代》杂志发表一篇封面故事...
"""

PAGE_TRANSLATION_SYSTEM = (
    """\
You are a book translator with an eye for typesetting. Translate text extracted \
from a PDF from {source_lang} to {target_lang} and faithfully restore the book's structure.

Sentences may run across page boundaries, so the end of the previous page and the \
start of the next page are provided as reference. Translate ONLY the current page; \
never translate the reference context.

"""
    + _FORMATTING_RULES
)

PAGE_TRANSLATION_USER = """\
[End of previous page (reference only)]:
...{prev_context}

[Current page (translate this)]:
{text}

[Start of next page (reference only)]:
{next_context}...
"""

BATCH_TRANSLATION_SYSTEM = (
    """\
You are a book translator with an eye for typesetting. Translate text extracted \
from a PDF from {source_lang} to {target_lang} and faithfully restore the book's structure.

The input contains {count} pages separated by "{delimiter_label}". Translate each page \
in order and join the translations with EXACTLY the same separator "{delimiter_label}". \
Each page starts with a 【PAGE n】 tag; do not include the tag in the output.

"""
    + _FORMATTING_RULES
    + """
Each page's translation must be separated by "{delimiter_label}", for example:
## Page one heading

Page one body...{delimiter}## Page two heading

Page two body...
"""
)


def format_page_messages(
    text: str,
    prev_context: str,
    next_context: str,
    source_lang: str,
    target_lang: str,
) -> list[dict[str, str]]:
    """Build chat messages for a single-page translation."""
    system = PAGE_TRANSLATION_SYSTEM.format(source_lang=source_lang, target_lang=target_lang)
    user = PAGE_TRANSLATION_USER.format(
        prev_context=prev_context,
        text=text,
        next_context=next_context,
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def format_batch_messages(
    text: str,
    delimiter: str,
    count: int,
    source_lang: str,
    target_lang: str,
) -> list[dict[str, str]]:
    """Build chat messages for a multi-page batch joined by delimiter."""
    system = BATCH_TRANSLATION_SYSTEM.format(
        source_lang=source_lang,
        target_lang=target_lang,
        count=count,
        delimiter=delimiter,
        delimiter_label=delimiter.strip(),
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": text},
    ]
