"""Parse convention-based Markdown articles.

Translation Words articles (``bible/{kt,names,other}/<word>.md``):

    # title
    ## Definition
    ## Translation Suggestions
    ## Bible References      (``* [1:1](...)`` items)

Translation Academy articles (``<section>/<slug>/01.md``, with the title and
subtitle in sibling ``title.md`` and ``sub-title.md``):

    ### Description
    ### Examples From the Bible   (or "Example from Scripture")
    ### Translation Strategies

Missing sections default to empty strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

TITLE_PATTERN = re.compile(r"^#\s+(.+)$", re.MULTILINE)
REFERENCE_ITEM_PATTERN = re.compile(r"\*\s+\[([^\]]+)\]")

WORD_CATEGORIES = {
    "kt": "Key Term",
    "names": "Name",
    "other": "Other",
}

ACADEMY_SECTIONS = ("translate", "checking", "process", "intro")


def extract_section(content: str, heading: str, level: int = 2) -> str:
    """Return the trimmed body under a heading, up to the next same-level heading.

    ``heading`` is a regular expression matched against the heading text.
    """
    marker = "#" * level
    pattern = re.compile(
        rf"^{marker}\s+{heading}:?\s*\n(.*?)(?=^{marker}\s|\Z)",
        re.MULTILINE | re.DOTALL,
    )
    match = pattern.search(content)
    return match.group(1).strip() if match else ""


def extract_title(content: str) -> str | None:
    match = TITLE_PATTERN.search(content)
    return match.group(1).strip() if match else None


@dataclass
class TranslationWord:
    id: str
    category: str  # kt, names, other
    title: str
    definition: str = ""
    translation_suggestions: str = ""
    bible_references: list[str] = field(default_factory=list)
    content: str = ""

    @property
    def category_label(self) -> str:
        return WORD_CATEGORIES.get(self.category, "Other")


def word_category(path: str) -> str:
    """Category from a ``bible/<category>/`` path segment; ``other`` if absent."""
    for category in WORD_CATEGORIES:
        if f"bible/{category}/" in path or path.startswith(f"{category}/"):
            return category
    return "other"


def parse_translation_word(content: str, word_id: str, path: str) -> TranslationWord:
    """Parse a Translation Words article."""
    references_body = extract_section(content, r"Bible References")
    return TranslationWord(
        id=word_id,
        category=word_category(path),
        title=extract_title(content) or word_id,
        definition=extract_section(content, r"Definition"),
        translation_suggestions=extract_section(content, r"Translation Suggestions"),
        bible_references=REFERENCE_ITEM_PATTERN.findall(references_body),
        content=content,
    )


@dataclass
class AcademyArticle:
    id: str
    title: str
    category: str
    subtitle: str = ""
    description: str = ""
    examples: str = ""
    strategies: str = ""
    content: str = ""


def academy_category(article_id: str) -> str:
    for section in ACADEMY_SECTIONS:
        if article_id.startswith(f"{section}/") or f"/{section}/" in article_id:
            return section
    return "translate"


def _title_from_id(article_id: str) -> str:
    slug = article_id.rsplit("/", 1)[-1]
    return " ".join(part.capitalize() for part in slug.replace("_", "-").split("-"))


def parse_academy_article(
    content: str,
    article_id: str,
    title: str | None = None,
    subtitle: str | None = None,
) -> AcademyArticle:
    """Parse a Translation Academy ``01.md`` body.

    An explicit ``title`` (from ``title.md``) wins over a ``#`` heading in the
    body, which wins over a title derived from the id.
    """
    resolved_title = (title or "").strip() or extract_title(content)
    return AcademyArticle(
        id=article_id,
        title=resolved_title or _title_from_id(article_id),
        category=academy_category(article_id),
        subtitle=(subtitle or "").strip(),
        description=extract_section(content, r"Description", level=3),
        examples=extract_section(
            content, r"Examples? (?:[Ff]rom the Bible|[Ff]rom Scripture)", level=3
        ),
        strategies=extract_section(content, r"Translation Strategies?", level=3),
        content=content,
    )
