"""
Playout: command line client for a personal Takeout music service

Playout authenticates against a Takeout server, retrieves server-curated
playlists and radio stations, streams audio (library tracks through presigned
media URLs and Internet radio streams with inline ICY metadata) and reports
listening activity back to the server and optionally to ListenBrainz.

## Core Architecture

**Configuration (`playout/config/`)**
- YAML settings with environment variable overrides
- Token store for the device pairing code and the bearer credentials

**Service Client (`playout/client/`)**
- Request layer with per-call bearer selection and transparent access token renewal
- API surface for code exchange, home, radio, playlist, progress, locate and activity
- JSON-patch builder for playlist mutations
- Typed models for playlists, stations, offsets and activity events

**Playback Engine (`playout/player/`)**
- Single event loop driving a playlist track by track
- ICY metadata extraction for radio streams
- Decoder dispatch for FLAC, MP3, Ogg Vorbis and WAV
- Mid-track notification used for listen reporting
- Audio output through sounddevice

**Activity (`playout/activity/`)**
- Translates playback callbacks into playlist position updates, track events and scrobbles

**Utilities (`playout/utils/`)**
- Console/file logging and small formatting helpers

## Usage

    playout auth code        # pair this device, enter the code on the server
    playout auth check       # exchange the code for tokens
    playout play -a "Joy Division" --shuffle
    playout play --stream "Radio Paradise"
"""

# Version information for the Playout package
__version__ = "0.9.0"

# Contact advertised in the User-Agent header
__contact__ = "https://takeout.fm/"

__description__ = "Command line player for a personal Takeout music service"

__all__ = [
    "__version__",
    "__contact__",
    "__description__",
]
