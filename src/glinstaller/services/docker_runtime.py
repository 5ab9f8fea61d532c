"""Docker runtime installation and compose tool detection."""

import os
import platform
import shutil
import subprocess
from typing import Callable, List

from glinstaller.constants import (
    COMPOSE_DOWNLOAD_URL,
    COMPOSE_VERSION,
    DOCKER_APT_REPOSITORY,
    DOCKER_GPG_URL,
    DOCKER_PACKAGES,
    DOCKER_PREREQUISITES,
    EXECUTABLE_MODE,
)
from glinstaller.errors import PackageInstallError
from glinstaller.errors_catalog import actionable_error


class DockerRuntimeService:
    """Installs Docker CE and resolves the compose command to use."""

    def __init__(
        self,
        logger,
        console,
        run_cmd: Callable,
        package_service,
        download_service,
        paths,
        subprocess_module=subprocess,
        which: Callable = shutil.which,
    ):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd
        self.packages = package_service
        self.downloads = download_service
        self.paths = paths
        self.subprocess = subprocess_module
        self.which = which

    def get_docker_compose_cmd(self) -> List[str]:
        try:
            self.subprocess.run(["docker", "compose", "version"], check=True, capture_output=True)
            return ["docker", "compose"]
        except (self.subprocess.CalledProcessError, FileNotFoundError):
            try:
                self.subprocess.run(["docker-compose", "--version"], check=True, capture_output=True)
                return ["docker-compose"]
            except (self.subprocess.CalledProcessError, FileNotFoundError):
                raise PackageInstallError(
                    "Docker Compose is not available. Install Docker Compose v2 (`docker compose`) "
                    "or v1 (`docker-compose`) and try again."
                )

    def has_gpg_key(self) -> bool:
        result = self.run_cmd(["apt-key", "list"], check=False, capture_output=True)
        return "Docker" in (result.stdout or "")

    def add_gpg_key(self):
        self.logger.info("Adding the Docker repository signing key...")
        key = self.downloads.fetch_text(DOCKER_GPG_URL, error_cls=PackageInstallError)
        self.run_cmd(
            ["apt-key", "add", "-"],
            input_text=key,
            capture_output=True,
            error_cls=PackageInstallError,
        )

    def register_source(self, codename: str):
        source_list = self.paths.docker_source_list
        source_list.parent.mkdir(parents=True, exist_ok=True)
        source_list.write_text(
            f"deb [ arch=amd64 ] {DOCKER_APT_REPOSITORY} {codename} stable\n",
            encoding="utf-8",
        )
        self.logger.info("Registered Docker apt source in %s", source_list)

        # Older releases of this installer added the same repository inline.
        self.run_cmd(
            [
                "add-apt-repository",
                "--remove",
                f"deb [arch=amd64] {DOCKER_APT_REPOSITORY} {codename} stable",
            ],
            check=False,
            capture_output=True,
        )

    def install_compose_binary(self) -> bool:
        target = self.paths.compose_binary
        if os.access(target, os.X_OK):
            self.logger.debug("docker-compose already present at %s", target)
            return False

        url = COMPOSE_DOWNLOAD_URL.format(
            version=COMPOSE_VERSION,
            system=platform.system(),
            machine=platform.machine(),
        )
        self.downloads.download_file(
            url,
            str(target),
            description=f"Downloading docker-compose {COMPOSE_VERSION}...",
            mode=EXECUTABLE_MODE,
            error_cls=PackageInstallError,
        )
        return True

    def install_runtime(self, codename: str):
        self.console.print("[blue]Checking the Docker installation...[/blue]")
        self.packages.ensure(*DOCKER_PREREQUISITES)

        if not self.has_gpg_key():
            self.add_gpg_key()

        if not self.packages.is_installed("docker-ce"):
            self.register_source(codename)
            self.packages.refresh(force=True)
            self.packages.ensure(*DOCKER_PACKAGES)

        if self.which("docker") is None:
            raise PackageInstallError(actionable_error("docker_missing"))

        # The distro package ships a compose release too old for the Greenlight descriptor.
        if self.packages.is_installed("docker-compose"):
            self.packages.purge("docker-compose")

        self.install_compose_binary()
        self.console.print("[green]Docker is available.[/green]")
