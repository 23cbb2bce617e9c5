"""Door43 book translation packages.

Resolves the content repositories behind Bible-translation resources,
fetches and parses their files into cached per-book packages, loads single
articles on demand, and extracts word alignment groups from scripture markup.
"""

__version__ = "0.1.0"
