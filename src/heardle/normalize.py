from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from enum import StrEnum


class VersionKind(StrEnum):
    """Alternate-version markers found in catalog titles."""

    remix = "remix"
    mix = "mix"
    edit = "edit"
    version = "version"
    instrumental = "instrumental"
    language = "language"
    live = "live"
    soundtrack = "soundtrack"


@dataclass
class TitleInfo:
    """Grouping key and version markers extracted from a catalog title."""

    title: str
    key: str
    versions: list[VersionKind]

    @property
    def is_alternate_version(self) -> bool:
        return bool(self.versions)


class GuessNormalizer:
    """
    Deterministic text normalizer for guesses and song titles.

    The guess rule, applied identically to guess and title before comparing:

    1. NFKC, invisible characters removed, whitespace collapsed and trimmed
    2. casefold
    3. typographic quotes, dashes and ellipsis canonicalized, then every
       character that is neither a word character nor whitespace removed
    4. whitespace collapsed again

    Diacritics are kept: "Beyoncé" and "Beyonce" are different answers.
    """

    VERSION_PATTERNS: list[tuple[str, VersionKind]] = [
        (r"remix", VersionKind.remix),
        (r"\bmix(?:ed)?\b", VersionKind.mix),
        (r"\bedit\b", VersionKind.edit),
        (r"\bversion\b|\bver\.", VersionKind.version),
        (r"instrumental|\binst\.", VersionKind.instrumental),
        (r"\b(?:japanese|korean|english|kor|eng|jap)\b", VersionKind.language),
        (r"\blive\b", VersionKind.live),
        (r"soundtrack|\bfrom\b|\bost\b", VersionKind.soundtrack),
    ]

    def normalize_guess(self, text: str) -> str:
        s = self._apply_unicode_whitespace(text)
        s = s.casefold()
        s = self._apply_punctuation_canonicalization(s)
        s = self._strip_punctuation(s)
        return self._final_compaction(s)

    def titles_match(self, guess: str, title: str) -> bool:
        """True when ``guess`` names ``title`` under the guess rule."""
        normalized_title = self.normalize_guess(title)
        if not normalized_title:
            # Title made only of punctuation: compare the visible text instead.
            return (
                self._apply_unicode_whitespace(guess).casefold()
                == self._apply_unicode_whitespace(title).casefold()
            )
        return self.normalize_guess(guess) == normalized_title

    def title_info(self, title: str) -> TitleInfo:
        """
        Describe a catalog title for filtering and deduplication.

        Version markers are only looked for inside (...) / [...] groups or
        between " - " separators, so a song called "Mixed Up" is not a mix.
        """
        s = self._apply_unicode_whitespace(title)
        qualifiers = re.findall(r"[\(\[]([^\)\]]*)[\)\]]", s)
        qualifiers += re.findall(r"\s-\s*([^-]+?)\s*-(?:\s|$)", s)

        versions: list[VersionKind] = []
        for qualifier in qualifiers:
            for pattern, kind in self.VERSION_PATTERNS:
                if re.search(pattern, qualifier, re.IGNORECASE) and kind not in versions:
                    versions.append(kind)

        return TitleInfo(title=title, key=self._grouping_key(s), versions=versions)

    def _grouping_key(self, s: str) -> str:
        """Collapse spelling variants of one song title onto one key."""
        s = re.sub(r"\s*\([^)]*\)\s*", " ", s)
        s = re.sub(r"\s*\[[^\]]*\]\s*", " ", s)
        s = s.casefold()
        s = self._apply_punctuation_canonicalization(s)
        s = re.sub(r"\s*&\s*", " and ", s)
        s = re.sub(r"\s*\+\s*", " plus ", s)
        s = re.sub(r"\bpt\.?\s*(\d+)\b", r"part \1", s)
        s = re.sub(r"\bpart\s*(\d+)\b", r"part \1", s)
        s = re.sub(r"\bvol\.?\s*(\d+)\b", r"volume \1", s)
        s = re.sub(r"\bno\.?\s*(\d+)\b", r"number \1", s)
        s = re.sub(r"[-_,.]", " ", s)
        s = self._strip_punctuation(s)
        return self._final_compaction(s)

    def _apply_unicode_whitespace(self, s: str) -> str:
        """Normalize to NFKC and collapse whitespace."""
        s = unicodedata.normalize("NFKC", s)
        s = re.sub(r"[\u200b-\u200d\ufeff]", "", s)
        s = s.replace("\u00a0", " ")
        s = re.sub(r"\s+", " ", s)
        return s.strip()

    def _apply_punctuation_canonicalization(self, s: str) -> str:
        """Canonicalize quotes, dashes, and ellipsis."""
        s = s.replace("\u2018", "'").replace("\u2019", "'")
        s = s.replace("\u201c", '"').replace("\u201d", '"')
        s = s.replace("\u2013", "-").replace("\u2014", "-")
        s = s.replace("\u2026", "...")
        return s

    def _strip_punctuation(self, s: str) -> str:
        return re.sub(r"[^\w\s]", "", s)

    def _final_compaction(self, s: str) -> str:
        # Removing punctuation can leave Hangul jamo adjacent; recompose them
        s = unicodedata.normalize("NFKC", s)
        return re.sub(r"\s+", " ", s).strip()


## Tests


def test_unicode_whitespace():
    norm = GuessNormalizer()
    assert norm._apply_unicode_whitespace("hello\u00a0world  \u200btest") == "hello world test"


def test_guess_case_and_whitespace():
    norm = GuessNormalizer()
    assert norm.normalize_guess("  DYNAMITE ") == "dynamite"
    assert norm.normalize_guess("Feel   Special") == "feel special"


def test_guess_punctuation():
    norm = GuessNormalizer()
    assert norm.normalize_guess("What is Love?") == "what is love"
    assert norm.normalize_guess("Don\u2019t Stop") == "dont stop"
    assert norm.titles_match("dont stop", "Don't Stop")


def test_diacritics_kept():
    norm = GuessNormalizer()
    assert not norm.titles_match("cafe", "Café")
    assert norm.titles_match("CAFÉ", "Café")


def test_non_latin_titles():
    norm = GuessNormalizer()
    assert norm.titles_match("트와이스", "트와이스")
    assert norm.titles_match(" 사랑 ", "사랑")


def test_partial_title_does_not_match():
    norm = GuessNormalizer()
    assert not norm.titles_match("Golden", "Golden (Extended)")
    assert not norm.titles_match("RUN", "Run BTS")


def test_punctuation_only_title():
    norm = GuessNormalizer()
    assert norm.titles_match("!!!", "!!!")
    assert not norm.titles_match("", "!!!")


def test_title_info_versions():
    norm = GuessNormalizer()
    assert norm.title_info("FANCY (Remix)").versions == [VersionKind.remix]
    assert norm.title_info("Feel Special - Japanese ver. -").is_alternate_version
    assert not norm.title_info("Mixed Up").is_alternate_version


def test_title_info_grouping_key():
    norm = GuessNormalizer()
    assert norm.title_info("Love & Hate Pt.2").key == "love and hate part 2"
    assert norm.title_info("Love and Hate (Part 2)").key == "love and hate"
    assert norm.title_info("FANCY").key == norm.title_info("Fancy (Inst.)").key
