"""Lifecycle of the Greenlight compose stack."""

import time
from typing import Callable, List

from glinstaller.constants import GREENLIGHT_CONTAINER, STACK_SETTLE_SECONDS
from glinstaller.envfile import ComposeFile


class StackService:
    """Pulls, stops and starts the services of the compose descriptor."""

    def __init__(
        self,
        logger,
        console,
        run_cmd: Callable,
        compose_cmd_factory: Callable[[], List[str]],
        paths,
        settle_seconds: float = STACK_SETTLE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        verbose: bool = False,
    ):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd
        self.compose_cmd_factory = compose_cmd_factory
        self.paths = paths
        self.settle_seconds = settle_seconds
        self.sleep = sleep
        self.verbose = verbose
        self._compose_cmd = None

    @property
    def compose_cmd(self) -> List[str]:
        # Resolved lazily: the compose tool may only exist after the runtime install.
        if self._compose_cmd is None:
            self._compose_cmd = self.compose_cmd_factory()
        return self._compose_cmd

    def _compose(self, *args: str) -> List[str]:
        return self.compose_cmd + ["-f", str(self.paths.compose_file), *args]

    def refresh(self):
        services = ComposeFile.load(self.paths.compose_file).service_names()
        self.console.print("[blue]Pulling latest greenlight-v3 services images...[/blue]")
        self.logger.info("Pulling images for services: %s", ", ".join(services))
        self.run_cmd(self._compose("pull"), retry_count=2, retry_backoff_seconds=5.0)

    def is_running(self, name: str = GREENLIGHT_CONTAINER) -> bool:
        result = self.run_cmd(["docker", "ps"], capture_output=True)
        return name in (result.stdout or "")

    def reconcile(self):
        if self.is_running():
            self.console.print("[yellow]greenlight-v3 is updating...[/yellow]")
            self.logger.info("Shutting down greenlight-v3...")
            self.run_cmd(self._compose("down"))

        self.console.print("[blue]Starting greenlight-v3...[/blue]")
        self.run_cmd(self._compose("up", "-d"))
        self.sleep(self.settle_seconds)
        self.report_status()

    def report_status(self):
        result = self.run_cmd(self._compose("ps"), capture_output=True)
        for line in (result.stdout or "").splitlines():
            cleaned = line.rstrip()
            if not cleaned:
                continue
            self.logger.debug(cleaned)
            if self.verbose:
                self.console.print(f"[dim]{cleaned}[/dim]")
