"""Recording MBID lookup from embedded ID3 UFID frames."""

from __future__ import annotations
import logging

from mutagen.id3 import ID3, ID3NoHeaderError
from mutagen import MutagenError

log = logging.getLogger("tags")

MUSICBRAINZ_OWNER = "http://musicbrainz.org"


def read_recording_id(path: str) -> str | None:
    """Return the MusicBrainz recording id stored in `path`, if any."""
    try:
        tag = ID3(path)
    except ID3NoHeaderError:
        return None
    except (MutagenError, OSError) as e:
        log.debug("Could not read tags from %s: %s", path, e)
        return None

    for frame in tag.getall("UFID"):
        if frame.owner != MUSICBRAINZ_OWNER:
            continue
        try:
            value = frame.data.decode("utf-8")
        except UnicodeDecodeError:
            continue
        if value:
            return value
    return None
