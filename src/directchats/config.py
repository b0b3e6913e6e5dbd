"""Configuration management for the directchats CLI and client.

Manages configuration files in ~/.config/directchats/:
- config.yaml: Global config (named sources and the default source)

Multi-source support:
- Sources define remote homeservers and local .directchats paths
- Each source has a name, type (remote/local), and connection info
- Commands accept --source to specify which source to use
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "directchats"


def get_global_config_path() -> Path:
    """Get the global config file path."""
    return get_config_dir() / "config.yaml"


def ensure_config_dir() -> Path:
    """Ensure config directory exists and return its path."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


@dataclass
class Source:
    """A directchats source (remote homeserver or local directory)."""

    name: str
    type: Literal["remote", "local"]
    url: str | None = None  # For remote sources
    access_token: str | None = None  # For remote sources
    path: str | None = None  # For local sources
    user_id: str | None = None  # Account to act as on local sources

    def to_dict(self) -> dict:
        """Convert to dictionary for YAML serialization."""
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
        }
        if self.type == "remote":
            data["url"] = self.url
            if self.access_token:
                data["access_token"] = self.access_token
        else:
            data["path"] = self.path
            if self.user_id:
                data["user_id"] = self.user_id
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Source":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            type=data["type"],
            url=data.get("url"),
            access_token=data.get("access_token"),
            path=data.get("path"),
            user_id=data.get("user_id"),
        )

    def get_client(self, user_id: str | None = None):
        """Get a DirectChats client for this source."""
        from .client import DirectChats

        if self.type == "remote":
            assert self.url is not None
            return DirectChats.remote(url=self.url, access_token=self.access_token)
        return DirectChats.local(path=self.path, user_id=user_id or self.user_id)


@dataclass
class GlobalConfig:
    """Global configuration."""

    sources: list[Source] = field(default_factory=list)
    default_source: str | None = None

    def save(self) -> None:
        """Save config to file."""
        ensure_config_dir()
        path = get_global_config_path()

        data: dict[str, Any] = {}
        if self.sources:
            data["sources"] = [s.to_dict() for s in self.sources]
        if self.default_source:
            data["default_source"] = self.default_source

        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def load(cls) -> "GlobalConfig":
        """Load config from file, or return defaults."""
        path = get_global_config_path()

        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        sources = [Source.from_dict(s_data) for s_data in data.get("sources", [])]

        return cls(
            sources=sources,
            default_source=data.get("default_source"),
        )

    @classmethod
    def exists(cls) -> bool:
        """Check if config file exists."""
        return get_global_config_path().exists()

    def get_source(self, name: str) -> Source | None:
        """Get a source by name."""
        for source in self.sources:
            if source.name == name:
                return source
        return None

    def add_source(self, source: Source) -> None:
        """Add a source, replacing if name exists."""
        self.sources = [s for s in self.sources if s.name != source.name]
        self.sources.append(source)

    def remove_source(self, name: str) -> bool:
        """Remove a source by name. Returns True if found."""
        original_len = len(self.sources)
        self.sources = [s for s in self.sources if s.name != name]
        if self.default_source == name:
            self.default_source = None
        return len(self.sources) < original_len

    def get_default_source(self) -> Source | None:
        """Get the default source, if set and exists."""
        if not self.default_source:
            return None
        return self.get_source(self.default_source)
