import io
import subprocess

import pytest
from rich.console import Console

from glinstaller.errors import InstallerError
from glinstaller.models import InstallPaths


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None

    def error(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


class FakeRunner:
    """Stands in for CommandRunner; answers commands by longest matching prefix."""

    def __init__(self):
        self.calls = []
        self.kwargs = []
        self.rules = {}
        # An idle dpkg lock: fuser exits 1 when nobody holds the file.
        self.on("fuser", returncode=1)

    def on(self, *prefix, returncode=0, stdout="", stderr=""):
        self.rules[tuple(prefix)] = (returncode, stdout, stderr)
        return self

    def __call__(self, cmd, check=True, capture_output=False, error_cls=InstallerError, **kwargs):
        self.calls.append(list(cmd))
        self.kwargs.append(kwargs)

        returncode, stdout, stderr = 0, "", ""
        best = -1
        for prefix, response in self.rules.items():
            if tuple(cmd[: len(prefix)]) == prefix and len(prefix) > best:
                best = len(prefix)
                returncode, stdout, stderr = response

        if check and returncode != 0:
            raise error_cls(f"Command failed ({returncode}): {' '.join(cmd)}\n{stderr}")
        return subprocess.CompletedProcess(list(cmd), returncode, stdout=stdout, stderr=stderr)

    def run(self, cmd, **kwargs):
        return self(cmd, **kwargs)

    def ran(self, *prefix) -> bool:
        return any(tuple(call[: len(prefix)]) == prefix for call in self.calls)

    def count(self, *prefix) -> int:
        return sum(1 for call in self.calls if tuple(call[: len(prefix)]) == prefix)


@pytest.fixture
def logger():
    return DummyLogger()


@pytest.fixture
def console():
    return DummyConsole()


@pytest.fixture
def quiet_console():
    return Console(file=io.StringIO())


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def install_paths(tmp_path):
    root = tmp_path / "host"
    return InstallPaths(
        data_dir=root / "root" / "greenlight-v3",
        sites_available=root / "etc" / "nginx" / "sites-available",
        sites_enabled=root / "etc" / "nginx" / "sites-enabled",
        access_log_dir=root / "var" / "log" / "nginx",
        nginx_fragments_dir=root / "etc" / "greenlight" / "nginx",
        assets_dir=root / "var" / "www" / "greenlight-default" / "assets",
        docker_source_list=root / "etc" / "apt" / "sources.list.d" / "docker.list",
        compose_binary=root / "usr" / "local" / "bin" / "docker-compose",
        dpkg_lock=root / "var" / "lib" / "dpkg" / "lock",
    )
