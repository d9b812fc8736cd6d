"""Tag stripping for anime release filenames.

Splits a filename stem into a title guess (used as the catalog search
query) and a residual (the part holding the episode number), removing
release-group brackets and resolution/codec/source noise on the way.

The *matchers* module knows what episode markers look like; this module
only decides where the title ends.
"""

import re

from .matchers import (
    BRACKETED,
    EPISODE_RULES,
    SEASON_CLEANUP,
    SPECIAL_PATTERNS,
    first_marker_position,
    is_special_keyword,
    standalone_integers,
)
from .models import StrippedName

# ---------------------------------------------------------------------------
# Pattern groups
# ---------------------------------------------------------------------------

# Square or lenticular brackets; group 1 or 2 holds the content
TAG_PATTERN = re.compile(r'\[([^\]]*)\]|【([^】]*)】')

CATALOG_ID_PATTERN = re.compile(r'tmdbid[=-](\d+)', re.IGNORECASE)

# Resolution / quality
_RESOLUTION = (
    r'(?<![A-Za-z0-9])(\d{3,4}[pPiI]|[248][kK]|\d{3,4}[xX×]\d{3,4}|UHD|FHD)'
    r'(?![A-Za-z0-9])'
)

# Video codec / bit depth
_CODEC = (
    r'(?<![A-Za-z0-9])([xXhH]\.?26[45]|HEVC|AVC|AV1|VP9|XviD|DivX'
    r'|Hi10P?|Ma10P?|10-?bit|8-?bit)(?![A-Za-z0-9])'
)

# Audio codec / channels
_AUDIO = (
    r'(?<![A-Za-z0-9])(AAC|AC3|E-?AC-?3|FLAC|OPUS|DTS(?:-?HD)?|TrueHD|Atmos'
    r'|LPCM|MP3)(?:x\d)?(?![A-Za-z0-9])'
    r'|(?<![\d.])(2\.0|5\.1|7\.1)(?![\d.])'
)

# Source / rip type
_SOURCE = (
    r'(?<![A-Za-z0-9])(WEB[- ]?DL|WEB[- ]?Rip|BD[- ]?Rip|BDRemux|Blu[- ]?Ray'
    r'|DVD[- ]?Rip|HDTV|HDRip|TVRip|REMUX)(?![A-Za-z0-9])'
)

# Subtitle language / packaging
_SUBS = (
    r'(?<![A-Za-z0-9])(CHS|CHT|BIG5|JPSC|JPTC|SRTx\d|ASSx\d)(?![A-Za-z0-9])'
    r'|[简繁日中英双雙]{1,3}(?:内封|內封|内嵌|內嵌|外挂|外掛|字幕|双语|雙語)'
    r'|简繁|简日|繁日|简体|简體|繁体|繁體|简中|繁中'
)

# Collected noise patterns (order matters: longest tokens first)
_ALL_NOISE = [
    _SOURCE,
    _RESOLUTION,
    _CODEC,
    _AUDIO,
    _SUBS,
]

# Bracket tags that name a fansub group or a release season, never a title
_GROUP_HINTS = re.compile(r'字幕|新番|组|組|社|raws?\b', re.IGNORECASE)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def remove_noise(text: str) -> str:
    """Remove resolution, codec, audio, source and subtitle tags."""
    for pattern in _ALL_NOISE:
        text = re.sub(pattern, ' ', text, flags=re.IGNORECASE)
    return text


def normalize_title(text: str) -> str:
    """Cluster key for a title: case- and whitespace-insensitive."""
    return ''.join(text.split()).casefold()


def clean_title(title: str) -> str:
    """Clean up a title guess.

    Removes parenthesised segments, special and season markers, everything
    after a subtitle colon, and separator noise at both ends.
    """
    name = BRACKETED.sub(' ', title)
    name = TAG_PATTERN.sub(' ', name)

    for pattern, _ in SPECIAL_PATTERNS:
        name = pattern.sub(' ', name)
    for pattern in SEASON_CLEANUP:
        name = pattern.sub(' ', name)

    name = re.split(r'：|:\s', name, maxsplit=1)[0]

    # Scene style "Spy.x.Family" uses dots as spaces
    if ' ' not in name.strip():
        name = re.sub(r'[._]', ' ', name)
    else:
        name = name.replace('_', ' ')

    name = re.sub(r'\s+', ' ', name)
    name = re.sub(r'^[\s\-_.]+|[\s\-_.]+$', '', name)
    return name


def _tag_text(match: re.Match) -> str:
    return match.group(1) if match.group(1) is not None else match.group(2)


def _is_episode_tag(tag: str) -> bool:
    bracket_rule = next(r for r in EPISODE_RULES if r.name == "bracket")
    return bracket_rule.search(f"[{tag.strip()}]") is not None


def _is_title_candidate(tag: str) -> bool:
    stripped = remove_noise(tag).strip(' -_.')
    if len(stripped) <= 2 or stripped.isdigit():
        return False
    if CATALOG_ID_PATTERN.search(tag) or is_special_keyword(tag):
        return False
    return not _GROUP_HINTS.search(tag)


def find_title_boundary(text: str) -> int | None:
    """Index where the title ends and the episode part begins.

    Explicit markers win.  Failing those, the last standalone integer with
    some text before it marks the boundary; an integer at the very start is
    part of the title ("86", "3-gatsu no Lion").
    """
    marker = first_marker_position(text)
    if marker is not None and text[:marker].strip(' -_.'):
        return marker

    candidates = [
        m for m in standalone_integers(text)
        if text[:m.start()].strip(' -_.:：')
    ]
    if candidates:
        return candidates[-1].start()
    return marker


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_catalog_id(folder_name: str) -> int | None:
    """Return the TMDB id carried by a ``[tmdbid=NNN]`` folder marker."""
    for match in TAG_PATTERN.finditer(folder_name):
        found = CATALOG_ID_PATTERN.fullmatch(_tag_text(match).strip())
        if found:
            return int(found.group(1))
    return None


def strip_tags(raw_name: str, keep_tags: bool = False) -> StrippedName:
    """Split a filename stem into title guess, residual and kept tags.

    Parameters
    ----------
    raw_name:
        The filename stem (no extension).
    keep_tags:
        When *True*, removed bracket tags are returned verbatim, in order,
        so they can be appended to the new filename.

    Returns
    -------
    StrippedName
        *residual* is empty when the name holds no episode token at all.
    """
    tag_matches = list(TAG_PATTERN.finditer(raw_name))
    tags = [_tag_text(m) for m in tag_matches]
    consumed: set[int] = set()

    episode_idx = next(
        (i for i, tag in enumerate(tags) if _is_episode_tag(tag)), None
    )

    if episode_idx is not None:
        # "[Group][Title][22][1080P]": the episode sits in its own bracket
        consumed.add(episode_idx)
        head = raw_name[:tag_matches[episode_idx].start()]
        title = clean_title(remove_noise(TAG_PATTERN.sub(' ', head)))
        if not title:
            candidates = [
                i for i in range(episode_idx) if _is_title_candidate(tags[i])
            ]
            if len(candidates) > 1 and candidates[0] == 0:
                candidates = candidates[1:]
            if candidates:
                title_idx = max(candidates, key=lambda i: len(tags[i]))
                consumed.add(title_idx)
                title = clean_title(remove_noise(tags[title_idx]))
        residual = f"[{tags[episode_idx].strip()}]"
    else:
        flat = remove_noise(TAG_PATTERN.sub(' ', raw_name))
        boundary = find_title_boundary(flat)
        if boundary is None:
            title, residual = clean_title(flat), ""
        else:
            title = clean_title(flat[:boundary])
            # Keep the hyphen separator so the extractor sees "- 05"
            head = flat[:boundary].rstrip()
            start = len(head) - 1 if head.endswith('-') else boundary
            residual = re.sub(r'\s+', ' ', flat[start:]).strip()

    # "[OVA]" style tags classify the episode; hand them to the extractor
    for i, tag in enumerate(tags):
        if is_special_keyword(tag):
            consumed.add(i)
            residual = f"{residual} {tag.strip()}".strip()

    preserved: tuple[str, ...] = ()
    if keep_tags:
        preserved = tuple(
            tag for i, tag in enumerate(tags)
            if i not in consumed
            and tag.strip()
            and not CATALOG_ID_PATTERN.search(tag)
        )

    return StrippedName(title_guess=title, residual=residual, preserved_tags=preserved)
