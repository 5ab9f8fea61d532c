"""Greenlight `.env` and compose descriptor provisioning."""

import os
import secrets
from typing import Callable, List, Optional
from urllib.parse import urlparse

from glinstaller.constants import (
    DEMO_BIGBLUEBUTTON_ENDPOINT,
    DEMO_BIGBLUEBUTTON_SECRET,
    DIR_MODE,
    GREENLIGHT_IMAGE,
    NGINX_FRAGMENT_NAME,
    POSTGRES_ADDRESS,
    POSTGRES_DATABASE,
    POSTGRES_USER,
    REDIS_ADDRESS,
    SECRET_FILE_MODE,
)
from glinstaller.envfile import ComposeFile, EnvFile
from glinstaller.models import BigBlueButtonServer


class AppConfigService:
    """Creates the Greenlight configuration once and patches it on every run.

    Every patch except the explicit BigBlueButton override only fills blank
    keys, so running the installer again leaves a configured system as is.
    """

    def __init__(
        self,
        logger,
        console,
        run_cmd: Callable,
        proxy_service,
        paths,
        token_hex: Callable[[int], str] = secrets.token_hex,
    ):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd
        self.proxy = proxy_service
        self.paths = paths
        self.token_hex = token_hex

    def prepare_data_dir(self) -> bool:
        if self.paths.data_dir.is_dir():
            return False
        self.paths.data_dir.mkdir(mode=DIR_MODE, parents=True)
        self.logger.info("Created %s", self.paths.data_dir)
        return True

    def pull_image(self):
        self.console.print(f"[blue]Pulling latest {GREENLIGHT_IMAGE} image...[/blue]")
        self.run_cmd(["docker", "pull", GREENLIGHT_IMAGE], retry_count=2, retry_backoff_seconds=5.0)

    def read_image_file(self, name: str) -> str:
        result = self.run_cmd(
            ["docker", "run", "--rm", "--entrypoint", "sh", GREENLIGHT_IMAGE, "-c", f"cat {name}"],
            capture_output=True,
        )
        return result.stdout or ""

    def materialize_templates(self) -> List[str]:
        """Copy `.env` and `docker-compose.yml` out of the image when missing."""
        created = []

        if not self.paths.env_file.exists():
            self.paths.env_file.write_text(self.read_image_file("sample.env"), encoding="utf-8")
            os.chmod(self.paths.env_file, SECRET_FILE_MODE)
            self.logger.info(".env file was created")
            created.append(str(self.paths.env_file))

        if not self.paths.compose_file.exists():
            self.paths.compose_file.write_text(
                self.read_image_file("docker-compose.yml"), encoding="utf-8"
            )
            self.logger.info("docker compose file was created")
            created.append(str(self.paths.compose_file))

        return created

    def database_password(self, env: EnvFile, compose: ComposeFile) -> str:
        """Reuse the password already wired into either file, else generate one."""
        database_url = env.get("DATABASE_URL")
        if database_url:
            password = urlparse(database_url).password
            if password:
                return password

        password = compose.get_environment("POSTGRES_PASSWORD")
        if password:
            return password

        return self.token_hex(24)

    def _fill(self, env: EnvFile, key: str, value: str) -> bool:
        changed = env.set(key, value)
        if env.is_blank(key):
            self.logger.warning(
                "%s is still empty in %s: only a commented-out value was found. "
                "Uncomment or set it by hand.",
                key,
                self.paths.env_file,
            )
        return changed

    def patch_env(
        self,
        env: EnvFile,
        password: str,
        bigbluebutton: Optional[BigBlueButtonServer] = None,
    ) -> bool:
        changed = False

        if bigbluebutton:
            # An explicit server always wins so operators can repoint the deployment.
            changed |= env.set("BIGBLUEBUTTON_ENDPOINT", bigbluebutton.endpoint, overwrite=True)
            changed |= env.set("BIGBLUEBUTTON_SECRET", bigbluebutton.secret, overwrite=True)
        else:
            changed |= self._fill(env, "BIGBLUEBUTTON_ENDPOINT", DEMO_BIGBLUEBUTTON_ENDPOINT)
            changed |= self._fill(env, "BIGBLUEBUTTON_SECRET", DEMO_BIGBLUEBUTTON_SECRET)

        if env.is_blank("SECRET_KEY_BASE"):
            changed |= self._fill(env, "SECRET_KEY_BASE", self.token_hex(64))

        changed |= self._fill(
            env,
            "DATABASE_URL",
            f"postgres://{POSTGRES_USER}:{password}@{POSTGRES_ADDRESS}/{POSTGRES_DATABASE}",
        )
        changed |= self._fill(env, "REDIS_URL", f"redis://{REDIS_ADDRESS}/")
        return changed

    def patch_compose(self, compose: ComposeFile, password: str) -> bool:
        return compose.set_environment_if_blank("POSTGRES_PASSWORD", password)

    def apply_patches(self, bigbluebutton: Optional[BigBlueButtonServer] = None) -> bool:
        self.console.print("[blue]Checking the configuration of greenlight-v3...[/blue]")
        env = EnvFile.load(self.paths.env_file)
        compose = ComposeFile.load(self.paths.compose_file)

        password = self.database_password(env, compose)
        self.patch_env(env, password, bigbluebutton)
        self.patch_compose(compose, password)

        env_changed = env.save(self.paths.env_file)
        compose_changed = compose.save(self.paths.compose_file)
        if env_changed or compose_changed:
            self.logger.info("greenlight-v3 configuration updated")
        else:
            self.logger.info("greenlight-v3 configuration already up to date")
        return env_changed or compose_changed

    def install_proxy_fragment(self):
        """Refresh the image's nginx fragment and load it."""
        self.paths.nginx_fragments_dir.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        fragment = self.paths.nginx_fragments_dir / NGINX_FRAGMENT_NAME
        fragment.write_text(self.read_image_file(NGINX_FRAGMENT_NAME), encoding="utf-8")
        self.logger.info("added greenlight-v3 nginx file")

        self.proxy.test_config()
        self.proxy.reload()
        self.console.print("[green]greenlight-v3 was successfully configured[/green]")
