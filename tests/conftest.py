"""Shared fixtures: an in-memory Door43 served through httpx.MockTransport."""

from __future__ import annotations

import base64
import re

import httpx
import pytest

from bookpackage.config import Settings
from bookpackage.ingest.client import Door43Client

BASE_URL = "https://door43.test"
ORG = "unfoldingWord"

REPO_PATTERN = re.compile(r"^/api/v1/repos/([^/]+)/([^/]+)$")
CONTENTS_PATTERN = re.compile(r"^/api/v1/repos/([^/]+)/([^/]+)/contents/(.+)$")
RAW_PATTERN = re.compile(r"^/([^/]+)/([^/]+)/raw/branch/([^/]+)/(.+)$")


class FakeDoor43:
    """Catalog, repos, contents and raw endpoints over in-memory repositories.

    Files are stored per (full_name, path), optionally restricted to a set of
    refs. ``fail()`` queues status codes returned before the normal answer for
    any URL containing a fragment. ``serve_page()`` answers one path with an
    HTML body instead of JSON.
    """

    def __init__(self):
        self.repos: dict[str, dict] = {}
        self.files: dict[tuple[str, str], tuple[str, set[str] | None]] = {}
        self.catalog_excluded: set[str] = set()
        self.failures: dict[str, list[int]] = {}
        self.pages: dict[str, str] = {}
        self.requests: list[httpx.Request] = []

    @property
    def request_count(self) -> int:
        return len(self.requests)

    def requested_paths(self, method: str | None = None) -> list[str]:
        return [
            r.url.path for r in self.requests if method is None or r.method == method
        ]

    def add_repo(
        self,
        name: str,
        owner: str = ORG,
        default_branch: str = "master",
        tag: str | None = None,
        in_catalog: bool = True,
    ) -> str:
        full_name = f"{owner}/{name}"
        self.repos[full_name] = {
            "name": name,
            "owner": {"login": owner},
            "full_name": full_name,
            "default_branch": default_branch,
            "branch_or_tag_name": tag or default_branch,
            "subject": "Bible",
            "stage": "prod",
            "updated_at": "2024-01-01T00:00:00Z",
        }
        if not in_catalog:
            self.catalog_excluded.add(full_name)
        return full_name

    def add_file(
        self, full_name: str, path: str, content: str, refs: list[str] | None = None
    ) -> None:
        self.files[(full_name, path)] = (content, set(refs) if refs else None)

    def fail(self, fragment: str, *statuses: int) -> None:
        self.failures.setdefault(fragment, []).extend(statuses)

    def serve_page(self, path: str, body: str = "<html>maintenance</html>") -> None:
        self.pages[path] = body

    def _file(self, full_name: str, path: str, ref: str | None) -> str | None:
        entry = self.files.get((full_name, path))
        if entry is None:
            return None
        content, refs = entry
        if refs is not None and ref not in refs:
            return None
        return content

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for fragment, queue in self.failures.items():
            if fragment in url and queue:
                return httpx.Response(queue.pop(0))

        path = request.url.path
        if path in self.pages:
            return httpx.Response(
                200, text=self.pages[path], headers={"Content-Type": "text/html"}
            )
        if path == "/api/v1/catalog/search":
            owner = request.url.params.get("owner", "")
            lang = request.url.params.get("lang", "")
            data = [
                repo
                for full_name, repo in self.repos.items()
                if full_name not in self.catalog_excluded
                and repo["owner"]["login"].lower() == owner.lower()
                and repo["name"].startswith(f"{lang}_")
            ]
            return httpx.Response(200, json={"ok": True, "data": data})

        match = CONTENTS_PATTERN.match(path)
        if match:
            full_name = f"{match.group(1)}/{match.group(2)}"
            content = self._file(
                full_name, match.group(3), request.url.params.get("ref")
            )
            if content is None:
                return httpx.Response(404, json={"message": "not found"})
            encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
            return httpx.Response(
                200,
                json={
                    "name": match.group(3).rsplit("/", 1)[-1],
                    "path": match.group(3),
                    "type": "file",
                    "encoding": "base64",
                    "content": encoded,
                },
            )

        match = REPO_PATTERN.match(path)
        if match:
            repo = self.repos.get(f"{match.group(1)}/{match.group(2)}")
            if repo is None:
                return httpx.Response(404, json={"message": "not found"})
            return httpx.Response(200, json=repo)

        match = RAW_PATTERN.match(path)
        if match:
            full_name = f"{match.group(1)}/{match.group(2)}"
            content = self._file(full_name, match.group(4), match.group(3))
            if content is None:
                return httpx.Response(404)
            return httpx.Response(200, text=content)

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def manifest_yaml(identifier: str, projects: list[tuple[str, str, str]]) -> str:
    """Resource-container manifest with (identifier, title, path) projects."""
    lines = [
        "dublin_core:",
        "  conformsto: 'rc0.2'",
        f"  identifier: '{identifier}'",
        "  language:",
        "    identifier: 'en'",
        "    title: 'English'",
        "projects:",
    ]
    for sort, (project_id, title, path) in enumerate(projects, start=1):
        lines += [
            f"  - title: '{title}'",
            "    versification: 'ufw'",
            f"    identifier: '{project_id}'",
            f"    sort: {sort}",
            f"    path: '{path}'",
            "    categories:",
            "      - 'bible-ot'",
        ]
    return "\n".join(lines) + "\n"


JONAH_ULT = (
    "\\id JON EN_ULT en_English_ltr unfoldingWord Literal Text\n"
    "\\usfm 3.0\n"
    "\\h Jonah\n"
    "\\mt Jonah\n"
    "\n"
    "\\c 1\n"
    "\\p\n"
    '\\v 1 \\zaln-s |x-strong="H1697" x-lemma="דָּבָר" x-occurrence="1" '
    'x-occurrences="1" x-content="דְּבַר"\\*\\w Now|x-occurrence="1" '
    'x-occurrences="1"\\w* \\w the|x-occurrence="1" x-occurrences="1"\\w* '
    '\\w word|x-occurrence="1" x-occurrences="1"\\w*\\zaln-e\\* \\w of|x-occurrence="1" '
    'x-occurrences="1"\\w* \\zaln-s |x-strong="H3068" x-lemma="יְהוָה" '
    'x-occurrence="1" x-occurrences="1" x-content="יְהוָ֔ה"\\*\\w Yahweh|x-occurrence="1" '
    'x-occurrences="1"\\w*\\zaln-e\\* \\w came|x-occurrence="1" x-occurrences="1"\\w*.\n'
    "\\v 2 \\w Arise|x-occurrence=\"1\" x-occurrences=\"1\"\\w*, \\w go|x-occurrence=\"1\" "
    'x-occurrences="1"\\w*.\n'
)

JONAH_UST = "\\id JON EN_UST\n\\c 1\n\\p\n\\v 1 One day Yahweh spoke to Jonah.\n"

JONAH_NOTES = (
    "Reference\tID\tTags\tSupportReference\tQuote\tOccurrence\tNote\n"
    "front:intro\tabcd\t\t\t\t0\t# Introduction to Jonah\n"
    "1:intro\tefgh\t\t\t\t0\t# Jonah 1 General Notes\n"
    "1:1\tqw12\tgrammar\trc://*/ta/man/translate/writing-newevent\tוַֽיְהִי֙\t1\t"
    "This introduces a new event.\n"
    "1:2\txy34\t\trc://*/ta/man/translate/figs-metaphor\tק֠וּם\t1\tArise is a call to act.\n"
    "1:3-4\tzz99\t\t\tוַיָּ֤קָם\t1\tJonah flees.\n"
)

JONAH_WORDS_LINKS = (
    "Reference\tID\tTags\tOrigWords\tOccurrence\tTWLink\n"
    "1:1\ta1b2\tkeyterm\tדְּבַר\t1\trc://*/tw/dict/bible/kt/wordofgod\n"
    "1:1\tc3d4\tname\tיְהוָ֔ה\t1\trc://*/tw/dict/bible/kt/yahweh\n"
    "1:2\te5f6\tname\tנִֽינְוֵ֛ה\t1\trc://*/tw/dict/bible/names/nineveh\n"
)

JONAH_QUESTIONS = (
    "Reference\tID\tTags\tQuote\tOccurrence\tQuestion\tResponse\n"
    "1:2\tq001\t\t\t\tWhat did Yahweh tell Jonah to do?\tTo go to Nineveh.\n"
    "1:3\tq002\t\t\t\tWhere did Jonah go?\tTo Tarshish.\n"
)

GOD_ARTICLE = """# God

## Definition:

In the Bible, the term "God" refers to the eternal being who created the universe.

## Translation Suggestions:

* Ways to translate "God" could include "Deity" or "Creator."

## Bible References:

* [1 John 1:7](rc://en/tn/help/1jn/01/07)
* [Genesis 1:1](rc://en/tn/help/gen/01/01)

## Word Data:

* Strong's: H0410, G2316
"""

METAPHOR_ARTICLE = """### Description

A metaphor is a figure of speech in which one concept is used in place of another.

### Examples From the Bible

> Listen to this message, you cows of Bashan (Amos 4:1)

### Translation Strategies

(1) Use a simile instead.
"""


@pytest.fixture
def door43() -> FakeDoor43:
    """Door43 with Jonah resources in the usual unfoldingWord layout.

    - en_ult: manifest with ./32-JON.usfm
    - en_ust: absent; en_gst backs it up
    - en_tn, en_twl: manifest projects
    - en_tq: not in the catalog, no manifest project for jon (found by probing)
    - en_tw, en_ta: article repositories
    """
    fake = FakeDoor43()

    ult = fake.add_repo("en_ult", tag="v80")
    fake.add_file(
        ult,
        "manifest.yaml",
        manifest_yaml("ult", [("jon", "Jonah", "./32-JON.usfm")]),
    )
    fake.add_file(ult, "32-JON.usfm", JONAH_ULT)

    gst = fake.add_repo("en_gst")
    fake.add_file(
        gst, "manifest.yaml", manifest_yaml("gst", [("jon", "Jonah", "./32-JON.usfm")])
    )
    fake.add_file(gst, "32-JON.usfm", JONAH_UST)

    tn = fake.add_repo("en_tn", tag="v70")
    fake.add_file(
        tn, "manifest.yaml", manifest_yaml("tn", [("jon", "Jonah", "./tn_JON.tsv")])
    )
    fake.add_file(tn, "tn_JON.tsv", JONAH_NOTES)

    twl = fake.add_repo("en_twl")
    fake.add_file(
        twl, "manifest.yaml", manifest_yaml("twl", [("jon", "Jonah", "./twl_JON.tsv")])
    )
    fake.add_file(twl, "twl_JON.tsv", JONAH_WORDS_LINKS)

    tq = fake.add_repo("en_tq", in_catalog=False)
    fake.add_file(tq, "manifest.yaml", manifest_yaml("tq", []))
    fake.add_file(tq, "tq_JON.tsv", JONAH_QUESTIONS)

    tw = fake.add_repo("en_tw")
    fake.add_file(tw, "bible/kt/god.md", GOD_ARTICLE)
    fake.add_file(tw, "bible/names/nineveh.md", "# Nineveh\n\n## Facts:\n\nA city.\n")

    ta = fake.add_repo("en_ta")
    fake.add_file(ta, "translate/figs-metaphor/01.md", METAPHOR_ARTICLE)
    fake.add_file(ta, "translate/figs-metaphor/title.md", "Metaphor\n")
    fake.add_file(
        ta, "translate/figs-metaphor/sub-title.md", "What is a metaphor?\n"
    )
    return fake


@pytest.fixture
def settings() -> Settings:
    return Settings(base_url=BASE_URL, api_token=None, backoff_base=0.01)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def client(door43, settings, recording_sleep) -> Door43Client:
    return Door43Client(settings, transport=door43.transport, sleep=recording_sleep)
