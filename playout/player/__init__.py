"""
Playback package
ICY stream reading, decoding, audio output and the playback engine
"""

from .player import Player, PlayerOptions, Action
from .speaker import Speaker
from .decoder import decode, select_decoder, AudioFormat
from .icy import IcyHeaders, IcyMetadata, IcyReader

__all__ = [
    'Player',
    'PlayerOptions',
    'Action',
    'Speaker',
    'decode',
    'select_decoder',
    'AudioFormat',
    'IcyHeaders',
    'IcyMetadata',
    'IcyReader',
]
