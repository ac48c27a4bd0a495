"""
Configuration management for Playout

This module handles loading, validation, and management of application settings
from YAML files and environment variables. It provides a single settings object
shared by the CLI, the service client and the playback engine.

The configuration is organized into logical sections using dataclasses:
- Server settings (service endpoint)
- Playback preferences (repeat, output buffer, output device)
- Activity reporting switches (track events, ListenBrainz)
- Logging, network and storage locations

Credentials are not part of the settings; they live in the token store
(see config.auth) which is written by the pairing commands.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
from dataclasses import asdict, dataclass
from dotenv import load_dotenv

from .. import __version__, __contact__

# Load environment variables from .env file if present
load_dotenv()


@dataclass
class ServerConfig:
    """
    Takeout server settings

    The endpoint is prefixed to every API path, e.g. https://takeout.example.com
    """
    endpoint: str = ""


@dataclass
class PlaybackConfig:
    """
    Playback engine preferences

    buffer is the audio output buffer duration in seconds; the engine sizes
    the output stream as sample rate times this value.
    """
    repeat: bool = False
    buffer: float = 1.0
    device: Optional[Union[int, str]] = None


@dataclass
class ActivityConfig:
    """
    Listening activity reporting

    Track activity posts a TrackEvent to the server once a track is half
    played; ListenBrainz submits now-playing and single listens when a
    ListenBrainz token is stored.
    """
    enable_track_activity: bool = False
    enable_listenbrainz: bool = False


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    Controls application logging behavior including log levels, file output,
    rotation, and console formatting.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class NetworkConfig:
    """
    Network and HTTP configuration settings

    The user agent is sent with every API call and every media request.
    """
    user_agent: str = f"Playout/{__version__} ({__contact__})"


@dataclass
class SecurityConfig:
    """
    Security and storage configuration

    Controls where the token store and configuration directory live.
    """
    token_storage_path: str = "~/.config/playout/tokens.yaml"
    config_directory: str = "~/.config/playout/"


class Settings:
    """
    Playout settings

    Values come from the first YAML file found, then PLAYOUT_* environment
    variables (also read from .env) override individual keys.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings from config file or environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations
        """
        self.config_path = config_path
        self.loaded_from: Optional[Path] = None

        # Initialize all configuration objects with default values
        self.server = ServerConfig()
        self.playback = PlaybackConfig()
        self.activity = ActivityConfig()
        self.logging = LoggingConfig()
        self.network = NetworkConfig()
        self.security = SecurityConfig()

        # Load configuration from various sources in order of precedence
        self._load_config()
        self._load_environment_variables()
        self._create_directories()

    def _sections(self) -> Dict[str, Any]:
        return {
            'server': self.server,
            'playback': self.playback,
            'activity': self.activity,
            'logging': self.logging,
            'network': self.network,
            'security': self.security,
        }

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        The explicit path wins, then ./config.yaml, the user directories and
        /etc/playout. Only the first existing file is read.
        """
        config_paths = [
            self.config_path,
            Path("config.yaml"),
            Path.home() / ".config" / "playout" / "config.yaml",
            Path.home() / ".playout" / "config.yaml",
            Path("/etc/playout/config.yaml"),
        ]

        config_data = {}
        for path in config_paths:
            if path and Path(path).exists():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        config_data = yaml.safe_load(f) or {}
                    self.loaded_from = Path(path)
                    break
                except Exception as e:
                    print(f"Warning: Failed to load config from {path}: {e}")

        self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Unknown sections and keys are ignored.

        Args:
            config_data: Dictionary containing configuration sections
        """
        config_mapping = self._sections()

        for section_name, section_data in config_data.items():
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)

    def _load_environment_variables(self) -> None:
        """
        Load configuration overrides from environment variables

        Environment variables take precedence over file-based configuration.
        """
        env_mappings = {
            'PLAYOUT_ENDPOINT': lambda v: setattr(self.server, 'endpoint', v),
            'PLAYOUT_TOKENS': lambda v: setattr(self.security, 'token_storage_path', v),
            'PLAYOUT_LOG_LEVEL': lambda v: setattr(self.logging, 'level', v),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def _create_directories(self) -> None:
        """
        Create the configuration directory so the token store can be written
        """
        directory = Path(self.security.config_directory).expanduser()
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            print(f"Warning: Failed to create directory {directory}: {e}")

    def get_config_directory(self) -> Path:
        """
        Get the expanded config directory path

        Returns:
            Path object for the configuration directory
        """
        return Path(self.security.config_directory).expanduser()

    def get_token_storage_path(self) -> Path:
        """
        Get the expanded token storage path

        Returns:
            Path object for the token storage file
        """
        return Path(self.security.token_storage_path).expanduser()

    def save_config(self, path: Optional[str] = None) -> Path:
        """
        Save current configuration to file

        Args:
            path: Custom path to save config, defaults to user config directory

        Returns:
            Path the configuration was written to

        Raises:
            Exception: If the configuration cannot be saved
        """
        if not path:
            path = self.get_config_directory() / "config.yaml"
        else:
            path = Path(path)

        config_data = self.as_dict()

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                yaml.dump(config_data, f, default_flow_style=False, indent=2)
        except Exception as e:
            raise Exception(f"Failed to save config to {path}: {e}")
        return path

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        """Configuration sections as plain dictionaries (used by `config show`)"""
        return {
            name: asdict(section)
            for name, section in self._sections().items()
        }

    def validate(self) -> bool:
        """
        Validate current configuration

        Returns:
            True if configuration is valid, False otherwise
        """
        errors = []

        if not self.server.endpoint:
            errors.append("Server endpoint is required (server.endpoint or PLAYOUT_ENDPOINT)")
        elif not self.server.endpoint.startswith(('http://', 'https://')):
            errors.append(f"Invalid server endpoint: {self.server.endpoint}")

        try:
            if float(self.playback.buffer) <= 0:
                errors.append(f"Invalid playback buffer: {self.playback.buffer}")
        except (TypeError, ValueError):
            errors.append(f"Invalid playback buffer: {self.playback.buffer}")

        if errors:
            print("Configuration validation errors:")
            for error in errors:
                print(f"  - {error}")
            return False

        return True

    def __str__(self) -> str:
        sections = [
            f"Endpoint: {self.server.endpoint or '(unset)'}",
            f"Repeat: {'on' if self.playback.repeat else 'off'}",
            f"Buffer: {self.playback.buffer}s",
        ]
        return f"Settings({', '.join(sections)})"


# Global settings instance for singleton pattern
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance

    Returns:
        The global Settings instance
    """
    return settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global settings
    settings = Settings(config_path)
    return settings
