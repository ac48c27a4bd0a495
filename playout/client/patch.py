"""
JSON-patch documents for playlist mutation

The server applies these to the stored playlist on PATCH /api/playlist and
expands any {"$ref": ...} entry into the referenced tracks. Operation order
inside a document is significant.
"""

from typing import Any, Dict, List

Patch = List[Dict[str, Any]]


def _op(op: str, path: str, value: Any) -> Dict[str, Any]:
    return {"op": op, "path": path, "value": value}


def patch_append(ref: str) -> Patch:
    """Append an unresolved reference to the track list"""
    return [_op("add", "/playlist/track/-", {"$ref": ref})]


def patch_clear() -> Patch:
    """Remove every track"""
    return [_op("replace", "/playlist/track", [])]


def patch_position(index: int, position: float) -> Patch:
    """
    Record the current track and the offset into it

    Args:
        index: Current entry index
        position: Seconds into the current entry
    """
    return [
        _op("replace", "/index", index),
        _op("replace", "/position", position),
    ]


def patch_replace(ref: str, kind: str, creator: str, title: str) -> Patch:
    """
    Replace the whole playlist with a single reference

    The playlist is rewound to the first entry, retitled and emptied before
    the reference is appended, so applying the document always yields a
    playlist containing only {"$ref": ref}.

    Args:
        ref: Server relative locator, e.g. /music/search?q=...
        kind: Playlist type (music, video, podcast, stream)
        creator: Playlist creator shown in the header
        title: Playlist title shown in the header
    """
    return [
        _op("replace", "/index", 0),
        _op("replace", "/position", 0),
        _op("replace", "/type", kind),
        _op("replace", "/playlist/creator", creator),
        _op("replace", "/playlist/title", title),
        _op("replace", "/playlist/track", []),
        _op("add", "/playlist/track/-", {"$ref": ref}),
    ]
