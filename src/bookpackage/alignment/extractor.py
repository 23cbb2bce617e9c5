"""Alignment Extractor: word tokens and source-word groups for one verse.

Walks a verse token tree in document order. Text runs and ``\\w`` words
become ``WordToken`` records with character spans over the concatenated verse
text and a sequential ``word_index`` starting at 0. Words inside an alignment
milestone take the innermost milestone's (strong, lemma, source word) and are
grouped on that key, so one source word aligned to several scattered target
words ("In" ... "beginning") yields a single group with two instances.

Output is a pure function of the input tree: group ids are
``{verse_ref}-group-{n}`` with n in discovery order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from bookpackage.ingest.usfm_parser import UsfmVerse, VerseObject, parse_verses

ALIGNMENT_TAG = "zaln"


@dataclass(frozen=True)
class TokenAlignment:
    """Source attribution copied onto an aligned word token."""

    strong: str
    lemma: str
    source_word: str
    group_id: str
    instance_in_group: int
    total_in_group: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "strong": self.strong,
            "lemma": self.lemma,
            "source_word": self.source_word,
            "group_id": self.group_id,
            "instance_in_group": self.instance_in_group,
            "total_in_group": self.total_in_group,
        }


@dataclass(frozen=True)
class WordToken:
    id: str
    text: str
    start: int
    end: int
    word_index: int
    is_highlightable: bool
    kind: str  # word, text, punctuation
    alignment: TokenAlignment | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "span": {"start": self.start, "end": self.end},
            "word_index": self.word_index,
            "is_highlightable": self.is_highlightable,
            "kind": self.kind,
            "alignment": self.alignment.to_dict() if self.alignment else None,
        }


@dataclass(frozen=True)
class AlignmentInstance:
    token_id: str
    text: str
    position: int  # word_index of the token
    occurrence: int  # 1-based, in document order


@dataclass
class AlignmentGroup:
    group_id: str
    strong: str
    lemma: str
    source_word: str
    verse_ref: str
    instances: list[AlignmentInstance] = field(default_factory=list)

    @property
    def total_instances(self) -> int:
        return len(self.instances)

    @property
    def is_multi_instance(self) -> bool:
        """More than one target token is aligned to this source word."""
        return self.total_instances > 1

    @property
    def is_non_contiguous(self) -> bool:
        """Some instances are separated by at least one other token."""
        positions = [i.position for i in self.instances]
        return any(b - a > 1 for a, b in zip(positions, positions[1:]))

    def to_dict(self) -> dict[str, Any]:
        return {
            "group_id": self.group_id,
            "strong": self.strong,
            "lemma": self.lemma,
            "source_word": self.source_word,
            "verse_ref": self.verse_ref,
            "instances": [
                {
                    "token_id": i.token_id,
                    "text": i.text,
                    "position": i.position,
                    "occurrence": i.occurrence,
                }
                for i in self.instances
            ],
            "total_instances": self.total_instances,
            "is_non_contiguous": self.is_non_contiguous,
        }


@dataclass
class AlignmentResult:
    verse_ref: str
    text: str
    tokens: list[WordToken] = field(default_factory=list)
    groups: list[AlignmentGroup] = field(default_factory=list)

    def group_for_token(self, token_id: str) -> AlignmentGroup | None:
        for group in self.groups:
            if any(i.token_id == token_id for i in group.instances):
                return group
        return None

    def tokens_for_group(self, group_id: str) -> list[WordToken]:
        """Tokens of a group, in document order."""
        return [
            t
            for t in self.tokens
            if t.alignment is not None and t.alignment.group_id == group_id
        ]

    @property
    def non_contiguous_groups(self) -> list[AlignmentGroup]:
        return [g for g in self.groups if g.is_non_contiguous]

    def to_dict(self) -> dict[str, Any]:
        return {
            "verse_ref": self.verse_ref,
            "text": self.text,
            "tokens": [t.to_dict() for t in self.tokens],
            "groups": [g.to_dict() for g in self.groups],
        }


def _token_kind(text: str) -> str:
    return "word" if text.strip().isalpha() else "punctuation"


class _Walker:
    def __init__(self, verse_ref: str):
        self.verse_ref = verse_ref
        self.buffer = ""
        self.word_index = 0
        self.tokens: list[WordToken] = []
        # (token position, group key, occurrence) for aligned tokens
        self.aligned: list[tuple[int, tuple[str, str, str], int]] = []
        self.groups: dict[tuple[str, str, str], AlignmentGroup] = {}

    def _advance(self, text: str) -> tuple[int, int, int]:
        start = len(self.buffer)
        self.buffer += text
        index = self.word_index
        self.word_index += 1
        return start, len(self.buffer), index

    def visit(self, node: VerseObject, context: VerseObject | None) -> None:
        if node.type == "text":
            if not node.text.strip():
                self.buffer += node.text
                return
            start, end, index = self._advance(node.text)
            self.tokens.append(
                WordToken(
                    id=f"{self.verse_ref}-token-{index}",
                    text=node.text,
                    start=start,
                    end=end,
                    word_index=index,
                    is_highlightable=False,
                    kind=_token_kind(node.text),
                )
            )
        elif node.type == "word" and node.tag == "w":
            self._visit_word(node, context)
        elif node.type == "milestone" and node.tag == ALIGNMENT_TAG:
            for child in node.children:
                self.visit(child, node)

    def _visit_word(self, node: VerseObject, context: VerseObject | None) -> None:
        start, end, index = self._advance(node.text)
        token_id = f"{self.verse_ref}-word-{index}"
        self.tokens.append(
            WordToken(
                id=token_id,
                text=node.text,
                start=start,
                end=end,
                word_index=index,
                is_highlightable=True,
                kind="word",
            )
        )
        if context is None:
            return

        key = (
            context.attribute("x-strong", "strong"),
            context.attribute("x-lemma", "lemma"),
            context.attribute("x-content", "content"),
        )
        group = self.groups.get(key)
        if group is None:
            group = AlignmentGroup(
                group_id=f"{self.verse_ref}-group-{len(self.groups) + 1}",
                strong=key[0],
                lemma=key[1],
                source_word=key[2],
                verse_ref=self.verse_ref,
            )
            self.groups[key] = group
        occurrence = group.total_instances + 1
        group.instances.append(
            AlignmentInstance(
                token_id=token_id, text=node.text, position=index, occurrence=occurrence
            )
        )
        self.aligned.append((len(self.tokens) - 1, key, occurrence))

    def result(self) -> AlignmentResult:
        tokens = list(self.tokens)
        # Totals are only final once the whole verse has been walked
        for position, key, occurrence in self.aligned:
            group = self.groups[key]
            tokens[position] = _with_alignment(
                tokens[position],
                TokenAlignment(
                    strong=group.strong,
                    lemma=group.lemma,
                    source_word=group.source_word,
                    group_id=group.group_id,
                    instance_in_group=occurrence,
                    total_in_group=group.total_instances,
                ),
            )
        return AlignmentResult(
            verse_ref=self.verse_ref,
            text=self.buffer,
            tokens=tokens,
            groups=list(self.groups.values()),
        )


def _with_alignment(token: WordToken, alignment: TokenAlignment) -> WordToken:
    return WordToken(
        id=token.id,
        text=token.text,
        start=token.start,
        end=token.end,
        word_index=token.word_index,
        is_highlightable=token.is_highlightable,
        kind=token.kind,
        alignment=alignment,
    )


def extract_alignment(
    verse_objects: Iterable[VerseObject | dict[str, Any]], verse_ref: str
) -> AlignmentResult:
    """Walk one verse's token tree into word tokens and alignment groups.

    Args:
        verse_objects: Top-level nodes, as ``VerseObject`` or usfm-js dicts
        verse_ref: Reference used to build token and group ids ("GEN 1:1")
    """
    walker = _Walker(verse_ref)
    for obj in verse_objects:
        node = obj if isinstance(obj, VerseObject) else VerseObject.from_dict(obj)
        walker.visit(node, None)
    return walker.result()


def extract_verse(verse: UsfmVerse) -> AlignmentResult:
    return extract_alignment(verse.objects, verse.reference)


def extract_book_alignments(
    usfm: str, book: str | None = None
) -> list[AlignmentResult]:
    """Run the extractor over every verse of a USFM book, in order."""
    return [extract_verse(verse) for verse in parse_verses(usfm, book)]
