"""apt/dpkg package management for the Greenlight installer."""

import time
from pathlib import Path
from typing import Callable, List

from glinstaller.constants import LOCK_POLL_SECONDS
from glinstaller.errors import PackageInstallError

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class PackageService:
    """Installs system packages idempotently, serialized on the dpkg lock."""

    def __init__(
        self,
        logger,
        console,
        run_cmd: Callable,
        lock_path: Path = Path("/var/lib/dpkg/lock"),
        lock_poll_seconds: float = LOCK_POLL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd
        self.lock_path = lock_path
        self.lock_poll_seconds = lock_poll_seconds
        self.sleep = sleep
        self.sources_fetched = False

    def lock_held(self) -> bool:
        result = self.run_cmd(
            ["fuser", str(self.lock_path)],
            check=False,
            capture_output=True,
            error_cls=PackageInstallError,
        )
        return result.returncode == 0

    def wait_for_lock(self):
        # The lock is usually held by unattended-upgrades on fresh servers.
        while self.lock_held():
            self.logger.info(
                "Sleeping for %s second(s) because of dpkg lock", self.lock_poll_seconds
            )
            self.sleep(self.lock_poll_seconds)

    def is_installed(self, name: str) -> bool:
        result = self.run_cmd(["dpkg", "-s", name], check=False, capture_output=True)
        return result.returncode == 0

    def refresh(self, force: bool = False):
        if self.sources_fetched and not force:
            return
        self.logger.info("Refreshing the package index...")
        self.run_cmd(["apt-get", "update"], env=APT_ENV, error_cls=PackageInstallError)
        self.sources_fetched = True

    def ensure(self, *names: str) -> List[str]:
        """Install the packages in *names* that are not installed yet.

        Returns the names that were actually installed.
        """
        self.wait_for_lock()

        missing = [name for name in names if not self.is_installed(name)]
        if missing:
            self.refresh()
            self.console.print(f"[blue]Installing {', '.join(missing)}...[/blue]")
            self.run_cmd(
                ["apt-get", "install", "-yq", *missing],
                env={**APT_ENV, "LC_CTYPE": "C.UTF-8"},
                error_cls=PackageInstallError,
            )
        else:
            self.logger.debug("Packages already installed: %s", ", ".join(names))

        self.wait_for_lock()
        return missing

    def purge(self, name: str):
        self.wait_for_lock()
        self.logger.info("Purging %s...", name)
        self.run_cmd(["apt-get", "purge", "-y", name], env=APT_ENV, error_cls=PackageInstallError)

    def upgrade_system(self):
        self.wait_for_lock()
        self.refresh()
        self.console.print("[blue]Upgrading system packages...[/blue]")
        self.run_cmd(
            [
                "apt-get",
                "-y",
                "-o",
                "Dpkg::Options::=--force-confdef",
                "-o",
                "Dpkg::Options::=--force-confnew",
                "dist-upgrade",
            ],
            env=APT_ENV,
            error_cls=PackageInstallError,
        )

    def autoremove(self):
        self.wait_for_lock()
        self.run_cmd(["apt-get", "auto-remove", "-y"], env=APT_ENV, error_cls=PackageInstallError)
