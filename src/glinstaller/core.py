import logging
import subprocess
from typing import List, Optional

import requests
from rich.console import Console

from .constants import LOCK_POLL_SECONDS, STACK_SETTLE_SECONDS
from .errors import InstallerError
from .models import HostFacts, InstallPaths, RunParameters
from .services.app_config import AppConfigService
from .services.command_runner import CommandRunner
from .services.docker_runtime import DockerRuntimeService
from .services.download import DownloadService
from .services.guard import PreconditionGuard, build_parameters
from .services.packages import PackageService
from .services.probe import ProbeService
from .services.proxy import ProxyService
from .services.stack import StackService

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger("glinstaller")


class GreenlightInstaller:
    """Installs Greenlight v3 on a fresh host, or upgrades it in place."""

    def __init__(
        self,
        hostname: Optional[str],
        email: Optional[str],
        bigbluebutton: Optional[str] = None,
        verbose: bool = False,
        system_upgrade: bool = True,
        paths: Optional[InstallPaths] = None,
        settle_seconds: float = STACK_SETTLE_SECONDS,
        lock_poll_seconds: float = LOCK_POLL_SECONDS,
        command_runner: Optional[CommandRunner] = None,
        requests_module=requests,
    ):
        self.hostname = hostname
        self.email = email
        self.bigbluebutton = bigbluebutton
        self.verbose = verbose
        self.system_upgrade = system_upgrade
        self.paths = paths or InstallPaths()

        self.params: Optional[RunParameters] = None
        self.facts: Optional[HostFacts] = None

        self.command_runner = command_runner or CommandRunner(logger=logger)
        self.download_service = DownloadService(
            logger=logger,
            console=console,
            requests_module=requests_module,
        )
        self.package_service = PackageService(
            logger=logger,
            console=console,
            run_cmd=self._run_cmd,
            lock_path=self.paths.dpkg_lock,
            lock_poll_seconds=lock_poll_seconds,
        )
        self.proxy_service = ProxyService(
            logger=logger,
            console=console,
            run_cmd=self._run_cmd,
            package_service=self.package_service,
            paths=self.paths,
        )
        self.probe_service = ProbeService(
            logger=logger,
            console=console,
            run_cmd=self._run_cmd,
            package_service=self.package_service,
            download_service=self.download_service,
            proxy_service=self.proxy_service,
        )
        self.guard = PreconditionGuard(
            logger=logger,
            console=console,
            probe_service=self.probe_service,
            paths=self.paths,
        )
        self.docker_runtime_service = DockerRuntimeService(
            logger=logger,
            console=console,
            run_cmd=self._run_cmd,
            package_service=self.package_service,
            download_service=self.download_service,
            paths=self.paths,
            subprocess_module=subprocess,
        )
        self.app_config_service = AppConfigService(
            logger=logger,
            console=console,
            run_cmd=self._run_cmd,
            proxy_service=self.proxy_service,
            paths=self.paths,
        )
        self.stack_service = StackService(
            logger=logger,
            console=console,
            run_cmd=self._run_cmd,
            compose_cmd_factory=self.docker_runtime_service.get_docker_compose_cmd,
            paths=self.paths,
            settle_seconds=settle_seconds,
            verbose=self.verbose,
        )

    def _run_cmd(self, cmd: List[str], **kwargs) -> subprocess.CompletedProcess:
        return self.command_runner.run(cmd, **kwargs)

    def validate_parameters(self) -> RunParameters:
        self.params = build_parameters(self.hostname, self.email, self.bigbluebutton)
        return self.params

    def check_environment(self):
        """Gather host facts and run every precondition check."""
        self.facts = self.probe_service.gather()
        self.guard.check_host(self.params, self.facts)

    def upgrade_system(self):
        self.package_service.upgrade_system()

    def install_runtime(self):
        self.docker_runtime_service.install_runtime(self.facts.os_codename)

    def configure_proxy(self):
        self.console_say("Configuring nginx...")
        self.proxy_service.configure_site(self.params.hostname)

    def configure_application(self):
        self.console_say("Preparing and checking the environment to install/update greenlight-v3...")
        self.app_config_service.prepare_data_dir()
        self.app_config_service.pull_image()
        self.app_config_service.materialize_templates()
        self.app_config_service.apply_patches(self.params.bigbluebutton)
        self.app_config_service.install_proxy_fragment()

    def start_stack(self):
        self.stack_service.refresh()
        self.stack_service.reconcile()
        console.print(
            f"[bold green]greenlight-v3 is ready, You can VISIT: http://{self.params.hostname}/ ![/bold green]"
        )

    def console_say(self, message: str):
        console.print(f"[blue]{message}[/blue]")
        logger.info("gl-install: %s", message)

    def run(self) -> int:
        try:
            self.validate_parameters()
            logger.info("Starting gl-install for %s...", self.params.hostname)

            self.check_environment()
            console.print("[green]Checks passed, installing/upgrading Greenlight![/green]")

            if self.system_upgrade:
                self.upgrade_system()

            self.install_runtime()
            self.configure_proxy()
            self.configure_application()
            self.start_stack()

            if self.system_upgrade:
                self.package_service.autoremove()

            logger.info("DONE")
            return 0

        except KeyboardInterrupt:
            err_console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except InstallerError as exc:
            err_console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            return 1
        except Exception as exc:
            err_console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1
