"""
Main CLI interface for Playout

Command line entry point built with Click. Command groups:

- Pairing and credentials (auth code, auth check, auth status, auth logout,
  auth listenbrainz)
- Server views (playlist, home, radio, progress)
- Playback (play: search, radio station or stream, or the current playlist),
  with single key controls while playing
- Configuration (config show)

Every command is wrapped by handle_error: failures print a red error line,
are logged, and exit with status 1 (130 when interrupted).
"""

import functools
import signal
import sys
import threading

import click

from . import __version__
from .activity import ActivityReporter, ListenBrainz
from .client import get_client, reset_client, TYPE_MUSIC, TYPE_STREAM
from .config.auth import get_token_store, reset_token_store
from .config.settings import get_settings, reload_settings
from .exceptions import PlayoutError
from .player import Player, PlayerOptions, Speaker
from .utils.helpers import build_query, format_duration, mmss, truncate_string
from .utils.logger import configure_from_settings, get_current_log_file, get_logger
from .view import KeyControl, SimpleView

logger = get_logger(__name__)


def handle_error(func):
    """
    Decorator to handle CLI errors

    Args:
        func: The CLI command function to wrap

    Returns:
        Wrapped function printing the error and exiting non-zero
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\nInterrupted", fg='yellow'))
            sys.exit(130)
        except Exception as e:
            logger.debug(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def _client():
    """Service client for the configured server"""
    if not get_settings().server.endpoint:
        raise PlayoutError("No server endpoint configured, set server.endpoint or PLAYOUT_ENDPOINT")
    return get_client()


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    Playout - play music from a Takeout server
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"Playout v{__version__}")
        return

    if config:
        reload_settings(config)
        reset_token_store()
        reset_client()

    ctx.obj['verbose'] = verbose
    configure_from_settings(verbose=verbose)
    if verbose:
        logger.debug("Verbose mode enabled")

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Pairing

@cli.group()
def auth():
    """
    Device pairing and credentials

    Pair with `auth code`, enter the code on the server, then `auth check`.
    """
    pass


@auth.command('code')
@handle_error
def auth_code():
    """Request a pairing code"""
    client = _client()
    access_code = client.code()
    get_token_store().update_access_code(access_code.code, access_code.access_token)
    click.echo(f"code is {access_code.code}")


@auth.command('check')
@handle_error
def auth_check():
    """Exchange the entered pairing code for tokens"""
    store = get_token_store()
    if not store.code():
        raise PlayoutError("No pairing code, run 'playout auth code' first")
    tokens = _client().check_code()
    if not tokens.refresh_token or not tokens.media_token:
        raise PlayoutError("Server returned incomplete tokens")
    store.update_tokens(tokens.access_token, tokens.refresh_token, tokens.media_token)
    click.echo("Successfully paired")


@auth.command('status')
@handle_error
def auth_status():
    """Show pairing status"""
    settings = get_settings()
    store = get_token_store()
    click.echo(f"Server: {settings.server.endpoint or '(unset)'}")
    if store.is_authenticated():
        click.echo("Authentication Status: Paired")
    elif store.code():
        click.echo(f"Authentication Status: Waiting for code {store.code()}")
        click.echo("   Run 'playout auth check' after entering the code")
    else:
        click.echo("Authentication Status: Not paired")
        click.echo("   Run 'playout auth code' to pair")
    click.echo(f"ListenBrainz: {'configured' if store.listenbrainz_token() else 'not configured'}")


@auth.command('logout')
@handle_error
def auth_logout():
    """Remove stored credentials"""
    get_token_store().revoke()
    reset_token_store()
    reset_client()
    click.echo("Successfully logged out")


@auth.command('listenbrainz')
@click.argument('token')
@handle_error
def auth_listenbrainz(token):
    """Store a ListenBrainz user token"""
    get_token_store().update_listenbrainz_token(token)
    click.echo("ListenBrainz token saved")
    if not get_settings().activity.enable_listenbrainz:
        click.echo("   Set activity.enable_listenbrainz to submit listens")


# Views

@cli.command()
@handle_error
def playlist():
    """List the current playlist"""
    current = _client().playlist()
    for entry in current.entries:
        location = entry.location[0] if entry.location else ""
        size = entry.size[0] if entry.size else 0
        click.echo(f"{entry.creator} / {entry.album} / {entry.title} / {location} / {size}")


@cli.command()
@handle_error
def home():
    """Show recently added and new releases"""
    view = _client().home()

    def year(release):
        return f" ({release.date.year})" if release.date else ""

    click.echo("Recently added:")
    for release in view.added_releases:
        click.echo(f"   {release.artist} / {release.name}{year(release)}")
    click.echo("\nNew releases:")
    for release in view.new_releases:
        click.echo(f"   {release.artist} / {release.name}{year(release)}")
    if view.new_episodes:
        click.echo("\nNew episodes:")
        for episode in view.new_episodes:
            click.echo(f"   {episode.author} / {episode.title}")


@cli.command()
@handle_error
def radio():
    """List radio stations and streams"""
    view = _client().radio()
    groups = [
        ("Artist", view.artist), ("Genre", view.genre), ("Similar", view.similar),
        ("Period", view.period), ("Series", view.series), ("Other", view.other),
        ("Streams", view.stream),
    ]
    for name, stations in groups:
        if not stations:
            continue
        click.echo(f"{name}:")
        for station in stations:
            click.echo(f"   {station.name}")


@cli.command()
@handle_error
def progress():
    """Show resumable playback positions"""
    view = _client().progress()
    if not view.offsets:
        click.echo("No progress")
        return
    for offset in view.offsets:
        total = f" / {format_duration(offset.duration)}" if offset.duration else ""
        when = offset.date.strftime('%Y-%m-%d %H:%M') if offset.date else ""
        click.echo(f"{offset.etag}  {format_duration(offset.offset)}{total}  {when}")


# Playback

def _select_playlist(client, query, filters, shuffle, best, radio_name, stream_name):
    """Replace the server playlist per the play options, or return the current one"""
    if radio_name or stream_name:
        view = client.radio()
        station = view.find(stream_name or radio_name, stream=bool(stream_name))
        if station is None:
            raise PlayoutError("radio/stream not found")
        kind = TYPE_STREAM if stream_name else TYPE_MUSIC
        return client.replace(station.ref, kind, station.creator, station.name)

    query = query or build_query(**filters)
    if query:
        return client.search_replace(query, shuffle=shuffle, best=best)
    return client.playlist()


def _print_entries(current, offsets):
    for i, entry in enumerate(current.entries):
        line = f"{i:2d}. {truncate_string(entry.creator, 37):<37} {truncate_string(entry.title, 50)}"
        offset = offsets.get(entry.etag) if entry.etag else None
        if offset is not None and offset.is_valid() and offset.offset > 0:
            line += f" [{mmss(offset.offset)}]"
        click.echo(line)


def _run(current_player, view):
    """Run the engine on a worker thread, stopping it on SIGINT/SIGTERM or the quit key"""
    previous = {}
    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, lambda *_: current_player.stop())

    engine = threading.Thread(target=current_player.start, name="player", daemon=True)
    keys = KeyControl(current_player)
    view.start(current_player)
    try:
        engine.start()
        keys.start()
        while not current_player.wait(0.5):
            pass
        engine.join(timeout=2)
    finally:
        keys.stop()
        view.stop()
        for signum, handler in previous.items():
            signal.signal(signum, handler)


@cli.command()
@click.option('--query', '-q', help='Search query')
@click.option('--artist', '-a', help='Artist')
@click.option('--release', '-r', help='Release/album name')
@click.option('--title', '-t', help='Song title')
@click.option('--genre', '-g', help='Genre')
@click.option('--singles', '-s', is_flag=True, help='Songs released as singles')
@click.option('--popular', '-p', is_flag=True, help='Popular songs')
@click.option('--cover', '-c', is_flag=True, help='Cover songs')
@click.option('--live', '-l', is_flag=True, help='Live songs')
@click.option('--before', help='Released on or before date (YYYY, YYYY-MM or YYYY-MM-DD)')
@click.option('--after', help='Released on or after date (YYYY, YYYY-MM or YYYY-MM-DD)')
@click.option('--shuffle', '-x', is_flag=True, help='Radio style shuffle')
@click.option('--best', '-b', is_flag=True, help='Best matches')
@click.option('--radio', 'radio_name', metavar='NAME', help='Play a radio station')
@click.option('--stream', 'stream_name', metavar='NAME', help='Play a radio stream')
@click.option('--repeat', is_flag=True, help='Start over after the last track')
@handle_error
def play(query, artist, release, title, genre, singles, popular, cover, live,
         before, after, shuffle, best, radio_name, stream_name, repeat):
    """
    Play music

    Replaces the server playlist with a search, a radio station or a stream
    and plays it. Without options the current playlist is played.

    While playing: n next, p previous, space pause, q quit.
    """
    settings = get_settings()
    client = _client()

    offsets = client.progress().by_etag()

    filters = {
        'artist': artist, 'release': release, 'title': title, 'genre': genre,
        'popular': popular, 'single': singles, 'cover': cover, 'live': live,
        'before': before, 'after': after,
    }
    current = _select_playlist(client, query, filters, shuffle, best, radio_name, stream_name)
    if len(current) == 0:
        raise PlayoutError("playlist empty")
    logger.console_info(f"Playlist: {current.spiff.header.title or 'untitled'} ({len(current)} tracks)")
    _print_entries(current, offsets)

    store = get_token_store()
    scrobbler = None
    if settings.activity.enable_listenbrainz and store.listenbrainz_token():
        scrobbler = ListenBrainz(store.listenbrainz_token())
    reporter = ActivityReporter(client, settings, scrobbler=scrobbler)
    view = SimpleView()
    repeat = repeat or settings.playback.repeat

    def on_track(p):
        view.on_track(p)
        reporter.on_track(p)

    def on_error(p, error):
        view.on_error(p, error)
        if p.has_next() or repeat:
            p.next()
        else:
            p.stop()

    options = PlayerOptions(
        repeat=repeat,
        buffer=settings.playback.buffer,
        on_track=on_track,
        on_pause=reporter.on_pause,
        on_listen=reporter.on_listen,
        on_error=on_error,
    )
    speaker = Speaker(device=settings.playback.device)
    current_player = Player(client, current, options, speaker=speaker)
    try:
        _run(current_player, view)
    finally:
        speaker.close()
        reporter.close()


# Configuration

@cli.group()
def config():
    """Configuration management"""
    pass


@config.command()
@handle_error
def show():
    """Show current configuration"""
    settings = get_settings()
    source = settings.loaded_from or "defaults"
    click.echo(f"Current Configuration ({source}):")
    for section, values in settings.as_dict().items():
        click.echo(f"\n{section.capitalize()}:")
        for key, value in values.items():
            click.echo(f"   {key}: {value}")
    click.echo(f"\nToken file: {settings.get_token_storage_path()}")
    log_file = get_current_log_file()
    if log_file:
        click.echo(f"Log file: {log_file}")


if __name__ == '__main__':
    cli()
