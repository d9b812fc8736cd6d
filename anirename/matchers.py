"""Rule chains for locating episode, season and special markers.

Every episode rule has a name and a priority.  ``match_episode`` tries the
rules in priority order and returns the first hit, tagging heuristic hits
with ``Confidence.LOW`` so callers can tell "guessed" from "found".
"""
import re
from dataclasses import dataclass

from .models import Confidence, EpisodeMatch, SpecialType


# Bracket values that are resolutions, never episode numbers
RESOLUTION_VALUES = frozenset({480, 540, 576, 720, 1080, 1440, 2160, 4320})

CHINESE_NUMERALS = {
    '一': 1, '二': 2, '三': 3, '四': 4, '五': 5,
    '六': 6, '七': 7, '八': 8, '九': 9, '十': 10,
}

ROMAN_NUMERALS = {
    'II': 2, 'III': 3, 'IV': 4, 'V': 5,
    'VI': 6, 'VII': 7, 'VIII': 8, 'IX': 9,
}

# Integer standing on its own: start or separator before, end, separator,
# bracket or "v2" revision suffix after
STANDALONE_INT = re.compile(
    r'(?<![^\s\-_.:：])(\d{1,4})(?:[vV]\d)?(?![^\s\-_.\[(【（])'
)

BRACKETED = re.compile(r'\[[^\]]*\]|【[^】]*】|\([^)]*\)|（[^）]*）')

MOVIE_PATTERN = re.compile(
    r'剧场版|劇場版|(?<![A-Za-z])(?:movie|theater|theatrical|gekij[oō]u?ban)(?![A-Za-z])',
    re.IGNORECASE,
)

# Order matters: OAD before OVA before the generic SP family
SPECIAL_PATTERNS = [
    (re.compile(r'(?<![A-Za-z])OAD(?![A-Za-z])', re.IGNORECASE), SpecialType.OAD),
    (re.compile(r'(?<![A-Za-z])OVA(?![A-Za-z])', re.IGNORECASE), SpecialType.OVA),
    (
        re.compile(
            r'(?<![A-Za-z])(?:SP|Specials?)(?![A-Za-z])'
            r'|特典|特別|特别|番外|总集篇|總集篇|总集編',
            re.IGNORECASE,
        ),
        SpecialType.SP,
    ),
]

# Number directly following a special marker ("OVA 02", "SP01", "OAD-3")
SPECIAL_NUMBER = re.compile(r'[\s\-_.#]*(\d{1,3})(?!\d)')


@dataclass(frozen=True)
class EpisodeRule:
    """A single regex rule of the episode chain."""
    name: str
    priority: int
    pattern: re.Pattern
    season_group: int | None = None
    reject: frozenset = frozenset()

    def search(self, text: str) -> EpisodeMatch | None:
        for m in self.pattern.finditer(text):
            value = int(m.group('ep'))
            if value in self.reject:
                continue
            season = int(m.group(self.season_group)) if self.season_group else None
            return EpisodeMatch(
                value=value,
                confidence=Confidence.HIGH,
                rule=self.name,
                start=m.start(),
                end=m.end(),
                season=season,
            )
        return None


EPISODE_RULES = sorted([
    EpisodeRule(
        "sxey", 1,
        re.compile(r'(?<![A-Za-z])[Ss](\d{1,2})[Ee](?P<ep>\d{1,4})(?!\d)'),
        season_group=1,
    ),
    EpisodeRule("chinese", 2, re.compile(r'第\s*(?P<ep>\d{1,4})\s*[集话話]')),
    EpisodeRule("ep", 3, re.compile(r'(?<![A-Za-z])[Ee][Pp]\.?\s*(?P<ep>\d{1,4})(?!\d)')),
    EpisodeRule("e", 4, re.compile(r'(?<![A-Za-z])[Ee](?P<ep>\d{1,4})(?!\d)')),
    EpisodeRule(
        "bracket", 5,
        re.compile(r'[\[【](?P<ep>\d{1,4})(?:[vV]\d)?[\]】]'),
        reject=RESOLUTION_VALUES,
    ),
    EpisodeRule("underscore_s", 6, re.compile(r'_[Ss](?P<ep>\d{1,4})(?!\d)')),
], key=lambda rule: rule.priority)


def _bracket_spans(text: str) -> list[tuple[int, int]]:
    return [m.span() for m in BRACKETED.finditer(text)]


def standalone_integers(text: str) -> list[re.Match]:
    """All standalone integer tokens that are not inside a bracketed segment."""
    spans = _bracket_spans(text)
    return [
        m for m in STANDALONE_INT.finditer(text)
        if not any(start <= m.start() < end for start, end in spans)
    ]


def _after_hyphen(text: str, pos: int) -> bool:
    return text[:pos].rstrip().endswith('-')


def match_delimiter(text: str) -> EpisodeMatch | None:
    """Positional fallback rule.

    A number following a hyphen separator ("Title - 05") is trusted; the
    last such number wins.  Otherwise the last standalone integer is taken,
    which is only a guess when the title itself holds numbers.
    """
    candidates = standalone_integers(text)
    if not candidates:
        return None

    hyphenated = [m for m in candidates if _after_hyphen(text, m.start())]
    if hyphenated:
        chosen, confidence, rule = hyphenated[-1], Confidence.HIGH, "hyphen"
    else:
        chosen = candidates[-1]
        confidence = Confidence.HIGH if len(candidates) == 1 else Confidence.LOW
        rule = "standalone"

    return EpisodeMatch(
        value=int(chosen.group(1)),
        confidence=confidence,
        rule=rule,
        start=chosen.start(),
        end=chosen.end(),
    )


def match_episode(text: str) -> EpisodeMatch | None:
    """Run the episode chain and return the first match."""
    for rule in EPISODE_RULES:
        result = rule.search(text)
        if result:
            return result
    return match_delimiter(text)


def first_marker_position(text: str) -> int | None:
    """Start of the earliest explicit episode or special marker in *text*."""
    positions = []
    for rule in EPISODE_RULES:
        if rule.name == "bracket":
            continue
        result = rule.search(text)
        if result:
            positions.append(result.start)
    special = match_special(text)
    if special:
        positions.append(special.start)
    hyphenated = [
        m.start() for m in standalone_integers(text)
        if _after_hyphen(text, m.start())
    ]
    if hyphenated:
        positions.append(hyphenated[-1])
    return min(positions) if positions else None


# ---------------------------------------------------------------------------
# Specials
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SpecialMatch:
    special_type: SpecialType
    number: int | None
    start: int
    end: int


def match_special(text: str) -> SpecialMatch | None:
    """Find an OVA/OAD/SP marker and the number attached to it, if any."""
    for pattern, special_type in SPECIAL_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        number = None
        end = m.end()
        num = SPECIAL_NUMBER.match(text, m.end())
        if num:
            number = int(num.group(1))
            end = num.end()
        return SpecialMatch(special_type, number, m.start(), end)
    return None


def is_special_keyword(text: str) -> bool:
    """True when *text* is nothing but a special marker, e.g. a "[OVA]" tag."""
    special = match_special(text.strip())
    return special is not None and special.start == 0 and special.end == len(text.strip())


def is_movie(text: str) -> bool:
    return MOVIE_PATTERN.search(text) is not None


# ---------------------------------------------------------------------------
# Seasons
# ---------------------------------------------------------------------------

def _chinese_to_int(token: str) -> int | None:
    if token.isdigit():
        return int(token)
    if token in CHINESE_NUMERALS:
        return CHINESE_NUMERALS[token]
    # 十一 .. 十九, 二十
    if len(token) == 2 and token[0] == '十':
        return 10 + CHINESE_NUMERALS.get(token[1], 0)
    if len(token) == 2 and token[1] == '十':
        return CHINESE_NUMERALS.get(token[0], 0) * 10
    return None


SEASON_RULES = [
    ("season_number", re.compile(r'(?<![A-Za-z])[Ss](\d{1,2})(?=[\s\]\[】\-_.]|$)'), int),
    ("season_word", re.compile(r'[Ss]eason\s*(\d{1,2})'), int),
    ("ordinal", re.compile(r'(?<!\d)(\d{1,2})(?:st|nd|rd|th)\s*[Ss]eason'), int),
    ("chinese_season", re.compile(r'第\s*([一二三四五六七八九十\d]{1,3})\s*季'), _chinese_to_int),
    ("roman", re.compile(r'(?<![^\s\[\]【】])(VIII|VII|VI|IV|IX|III|II|V)(?=\s*(?:[-\[【]|$))'),
     ROMAN_NUMERALS.get),
]

# Season markers stripped from title guesses
SEASON_CLEANUP = [
    re.compile(r'[Ss]eason\s*\d{1,2}'),
    re.compile(r'(?<!\d)\d{1,2}(?:st|nd|rd|th)\s*[Ss]eason'),
    re.compile(r'第\s*[一二三四五六七八九十\d]{1,3}\s*季'),
    re.compile(r'(?<![^\s\[\]【】])(?:VIII|VII|VI|IV|IX|III|II|V)(?=\s*(?:[-\[【]|$))'),
    re.compile(r'(?<![A-Za-z])[Ss]\d{1,2}(?=[\s\]\[】\-_.]|$)'),
]


def match_season(text: str) -> int | None:
    """Return the season number announced in *text*, if any."""
    sxey = EPISODE_RULES[0].search(text)
    if sxey and sxey.season is not None:
        return sxey.season
    for _name, pattern, convert in SEASON_RULES:
        m = pattern.search(text)
        if m:
            value = convert(m.group(1))
            if value:
                return value
    return None
