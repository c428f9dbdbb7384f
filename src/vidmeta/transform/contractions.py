"""Undo apostrophe loss in downloader-restricted filenames.

Restricted filename modes turn ``don't`` into ``don t`` or ``don_t``.
Restoration works on whole words and keeps the case of the original
letters. Lone-``s`` repair joins a stray possessive ``s`` back onto the
word before it.
"""

import re

# Word stems followed by the contraction ending they take.
_CONTRACTIONS: dict[str, tuple[str, ...]] = {
    "t": (
        "ain",
        "aren",
        "can",
        "couldn",
        "didn",
        "doesn",
        "don",
        "hadn",
        "hasn",
        "haven",
        "isn",
        "mightn",
        "mustn",
        "needn",
        "shan",
        "shouldn",
        "wasn",
        "weren",
        "won",
        "wouldn",
    ),
    "m": ("i",),
    "re": ("they", "we", "what", "who", "you"),
    "ve": (
        "could",
        "i",
        "might",
        "must",
        "should",
        "they",
        "we",
        "would",
        "you",
    ),
    "ll": ("he", "i", "it", "she", "that", "they", "we", "you"),
    "s": (
        "he",
        "here",
        "it",
        "let",
        "she",
        "that",
        "there",
        "what",
        "where",
        "who",
    ),
}


def _alternative(i: int, ending: str, words: tuple[str, ...]) -> str:
    alternatives = "|".join(words)
    return (
        rf"(?<![A-Za-z0-9])(?P<w{i}>{alternatives})"
        rf"[ _](?P<e{i}>{ending})(?![A-Za-z0-9])"
    )


_CONTRACTION_RE = re.compile(
    "|".join(
        _alternative(i, ending, words)
        for i, (ending, words) in enumerate(_CONTRACTIONS.items())
    ),
    re.IGNORECASE,
)

_LONE_S_DELIMS = r" .\[()\]\-_,!'&=;#@$%+{}"
_LONE_S_RE = re.compile(rf"(\w)[ _]s(?=[{_LONE_S_DELIMS}]|$)")


def _join(match: re.Match[str]) -> str:
    groups = {k: v for k, v in match.groupdict().items() if v is not None}
    word = next(v for k, v in groups.items() if k.startswith("w"))
    ending = next(v for k, v in groups.items() if k.startswith("e"))
    return f"{word}'{ending}"


def restore_contractions(value: str) -> str:
    """Rewrite ``don t``/``don_t`` style words as ``don't``.

    The matched letters are reused, so ``DON_T`` becomes ``DON'T``.
    """
    return _CONTRACTION_RE.sub(_join, value)


def repair_lone_s(value: str) -> str:
    """Join ``word s`` and ``word_s`` into ``words`` until stable."""
    while True:
        repaired = _LONE_S_RE.sub(r"\1s", value)
        if repaired == value:
            return repaired
        value = repaired
