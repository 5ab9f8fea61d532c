"""nginx reverse-proxy configuration for Greenlight."""

import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Callable

from glinstaller.constants import DIR_MODE, SITE_NAME
from glinstaller.errors import ProxyConfigTestError
from glinstaller.errors_catalog import actionable_error


class ProxyService:
    """Owns the nginx site file and the nginx service lifecycle."""

    def __init__(self, logger, console, run_cmd: Callable, package_service, paths, which: Callable = shutil.which):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd
        self.packages = package_service
        self.paths = paths
        self.which = which

    @property
    def site_path(self) -> Path:
        return self.paths.sites_available / SITE_NAME

    @property
    def enabled_path(self) -> Path:
        return self.paths.sites_enabled / SITE_NAME

    @property
    def default_site_path(self) -> Path:
        return self.paths.sites_enabled / "default"

    def render_site(self, hostname: str) -> str:
        return f"""server_tokens off;
server {{
  listen 80;
  listen [::]:80;
  server_name {hostname};

  access_log  {self.paths.access_log_dir}/greenlight.access.log;

  # Greenlight landing page.
  location / {{
    root   {self.paths.assets_dir};
    try_files $uri @bbb-fe;
  }}

  include {self.paths.nginx_fragments_dir}/*.nginx;
}}

"""

    def configure_site(self, hostname: str) -> bool:
        """Install nginx and enable the Greenlight site.

        The site file is written only when missing so manual edits survive
        upgrades. Returns True when the site file was created.
        """
        self.packages.ensure("nginx")

        for directory in (
            self.paths.access_log_dir,
            self.paths.nginx_fragments_dir,
            self.paths.assets_dir,
        ):
            directory.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)

        created = False
        if not self.site_path.exists():
            self.site_path.parent.mkdir(parents=True, exist_ok=True)
            self.site_path.write_text(self.render_site(hostname), encoding="utf-8")
            self.logger.info("Created nginx site %s", self.site_path)
            created = True
        else:
            self.logger.info("Keeping existing nginx site %s", self.site_path)

        if not self.enabled_path.exists() and not self.enabled_path.is_symlink():
            self.enabled_path.parent.mkdir(parents=True, exist_ok=True)
            self.enabled_path.symlink_to(self.site_path)
            self.logger.info("Enabled nginx site %s", self.enabled_path)

        if self.default_site_path.exists() or self.default_site_path.is_symlink():
            self.default_site_path.unlink()
            self.logger.info("Disabled the default nginx site")

        self.reload_service()
        return created

    def is_installed(self) -> bool:
        return self.which("nginx") is not None

    def is_active(self) -> bool:
        result = self.run_cmd(
            ["systemctl", "is-active", "--quiet", "nginx"],
            check=False,
            capture_output=True,
        )
        return result.returncode == 0

    def start(self):
        self.run_cmd(["systemctl", "start", "nginx"], capture_output=True)

    def stop(self):
        self.run_cmd(["systemctl", "stop", "nginx"], capture_output=True)

    def reload_service(self):
        self.run_cmd(["systemctl", "reload", "nginx"], capture_output=True)

    def test_config(self):
        result = self.run_cmd(["nginx", "-qt"], check=False, capture_output=True)
        if result.returncode != 0:
            details = (result.stderr or result.stdout or "no output").strip()
            raise ProxyConfigTestError(actionable_error("proxy_config_invalid", details=details))

    def reload(self):
        self.run_cmd(["nginx", "-qs", "reload"], capture_output=True, error_cls=ProxyConfigTestError)

    @contextmanager
    def paused(self):
        """Stop nginx for the duration of the block if it is running."""
        was_active = self.is_installed() and self.is_active()
        if was_active:
            self.logger.info("Stopping nginx temporarily...")
            self.stop()
        try:
            yield
        finally:
            if was_active:
                self.logger.info("Restarting nginx...")
                self.start()
