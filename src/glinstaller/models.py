"""Shared domain models for the Greenlight installer."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Set


@dataclass(frozen=True)
class BigBlueButtonServer:
    """Remote BigBlueButton server Greenlight talks to."""

    host: str
    secret: str

    @property
    def endpoint(self) -> str:
        return f"https://{self.host}/bigbluebutton/api"


@dataclass(frozen=True)
class RunParameters:
    """Operator input, validated once before any host inspection."""

    hostname: str
    email: str
    bigbluebutton: Optional[BigBlueButtonServer] = None


@dataclass
class HostFacts:
    """Facts gathered from the host during this run. Never persisted."""

    os_release: str = ""
    os_codename: str = ""
    architecture: str = ""
    is_root: bool = False
    ip: Optional[str] = None
    internal_ip: Optional[str] = None
    external_ip: Optional[str] = None
    listening_ports: Set[int] = field(default_factory=set)
    installed_packages: Set[str] = field(default_factory=set)

    @property
    def behind_nat(self) -> bool:
        return self.internal_ip is not None


@dataclass(frozen=True)
class InstallPaths:
    """Every filesystem location the installer reads or writes."""

    data_dir: Path = field(default_factory=lambda: Path.home() / "greenlight-v3")
    sites_available: Path = Path("/etc/nginx/sites-available")
    sites_enabled: Path = Path("/etc/nginx/sites-enabled")
    access_log_dir: Path = Path("/var/log/nginx")
    nginx_fragments_dir: Path = Path("/etc/greenlight/nginx")
    assets_dir: Path = Path("/var/www/greenlight-default/assets")
    docker_source_list: Path = Path("/etc/apt/sources.list.d/docker.list")
    compose_binary: Path = Path("/usr/local/bin/docker-compose")
    dpkg_lock: Path = Path("/var/lib/dpkg/lock")

    @property
    def env_file(self) -> Path:
        return self.data_dir / ".env"

    @property
    def compose_file(self) -> Path:
        return self.data_dir / "docker-compose.yml"
