"""Functions for dealing with the character encoding of post files.

Two different things go wrong:

1. the file isn't utf-8 at all (someone saved it as latin-1 or similar)
2. the file is valid utf-8 but the text inside it was, at some point, decoded
   with the wrong charset and then re-encoded ("mojibake") - so an apostrophe
   shows up as "â€™"

The first is detected with charset-normalizer.  The second is detected by
looking for runs of characters that are what utf-8 multibyte sequences look
like when read as cp1252.

"""

import re
import codecs
from logging import getLogger
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import charset_normalizer

from . import exc
from .value_objs import LintIssue, LintLevel

logger = getLogger(__name__)

# utf-8 continuation bytes (0x80-0xBF) as they appear after being decoded as
# cp1252.  The C1 controls are included for the five bytes cp1252 leaves
# undefined.
_CP1252_CONTINUATION = (
    "\u0080-¿"
    "ŒœŠšŸŽžƒˆ˜"
    "–—‘-„†-•…‰‹›€™"
)

# Only the lead bytes that western text actually produces: 0xC2/0xC3 (latin-1
# letters and symbols), 0xC5 (latin extended-a) and 0xE2 (punctuation, €, ™).
# Other letters followed by punctuation are far more often just correct text,
# eg: "Gruß“".  A 0xE2 run may be one byte short when the last one was lost.
MOJIBAKE_REGEX = re.compile(
    f"[ÂÃÅ][{_CP1252_CONTINUATION}]|â[{_CP1252_CONTINUATION}]{{1,2}}"
)

# what a repair is allowed to produce
_PLAUSIBLE_RANGES = [
    (0x00A0, 0x024F),  # latin-1 supplement and latin extended
    (0x2000, 0x206F),  # general punctuation
    (0x20A0, 0x20CF),  # currency symbols
    (0x2100, 0x214F),  # letterlike symbols
]


def decode_post_bytes(raw: bytes, path: Path) -> Tuple[str, List[LintIssue]]:
    """Decode the bytes of a post file.

    Posts should be utf-8, and a byte order mark is tolerated.  Anything else
    is decoded on a best-effort basis and flagged.

    """
    if raw.startswith(codecs.BOM_UTF8):
        raw = raw[len(codecs.BOM_UTF8) :]
    try:
        return raw.decode("utf-8"), []
    except UnicodeDecodeError as e:
        logger.warning("%s is not valid utf-8 (%s), detecting encoding", path, e)

    match = charset_normalizer.from_bytes(raw).best()
    if match is None:
        raise exc.WrongEncodingException(path)
    logger.info("detected %s for %s", match.encoding, path)
    issue = LintIssue(
        path,
        None,
        None,
        f"file is {match.encoding}, not utf-8 - it should be re-saved as utf-8",
    )
    return str(match), [issue]


def _to_cp1252_bytes(text: str) -> bytes:
    buf = bytearray()
    for char in text:
        try:
            buf.extend(char.encode("cp1252"))
        except UnicodeEncodeError:
            if ord(char) < 256:
                # one of the bytes cp1252 doesn't define, which latin-1
                # decoding passes through as a C1 control
                buf.append(ord(char))
            else:
                raise
    return bytes(buf)


def _repair_sequence(sequence: str) -> Optional[str]:
    """Returns the repaired text, or None if it can't be repaired."""
    try:
        repaired = _to_cp1252_bytes(sequence).decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return None
    if not all(_is_plausible(char) for char in repaired):
        return None
    return repaired


def _is_plausible(char: str) -> bool:
    return any(low <= ord(char) <= high for low, high in _PLAUSIBLE_RANGES)


def find_mojibake(text: str) -> Iterator[Tuple[int, str]]:
    """Yield (line number, sequence) for each suspicious run in the text."""
    for line_number, line in enumerate(text.splitlines(), start=1):
        for match in MOJIBAKE_REGEX.finditer(line):
            yield line_number, match.group(0)


def repair_mojibake(text: str) -> str:
    """Repair what can be repaired and leave the rest as it is."""

    def repl(match: "re.Match[str]") -> str:
        sequence = match.group(0)
        repaired = _repair_sequence(sequence)
        return sequence if repaired is None else repaired

    return MOJIBAKE_REGEX.sub(repl, text)


def lint_encoding(
    text: str, path: Path, field: Optional[str] = None, line_offset: int = 0
) -> List[LintIssue]:
    issues = []
    for line_number, sequence in find_mojibake(text):
        repaired = _repair_sequence(sequence)
        if repaired is not None:
            message = f"mojibake: {sequence!r} should be {repaired!r}"
        else:
            message = f"mojibake: {sequence!r} can't be repaired automatically"
        issues.append(
            LintIssue(
                path,
                field,
                line_number + line_offset if field is None else None,
                message,
                LintLevel.WARNING,
            )
        )
    return issues
