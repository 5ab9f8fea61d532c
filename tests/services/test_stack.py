import pytest

from glinstaller.errors import InstallerError
from glinstaller.services.stack import StackService

COMPOSE = """services:
  postgres:
    image: postgres:14.6-alpine3.17
  redis:
    image: redis:6.2-alpine3.17
  app:
    image: bigbluebutton/greenlight:v3
    container_name: greenlight-v3
"""

DOCKER_PS = """CONTAINER ID   IMAGE                         COMMAND   STATUS   NAMES
3f2c1a9b8d7e   bigbluebutton/greenlight:v3   "bin/start"   Up 2 days   greenlight-v3
"""


@pytest.fixture
def stack(logger, console, runner, install_paths):
    install_paths.data_dir.mkdir(parents=True)
    install_paths.compose_file.write_text(COMPOSE, encoding="utf-8")
    sleeps = []
    service = StackService(
        logger=logger,
        console=console,
        run_cmd=runner,
        compose_cmd_factory=lambda: ["docker", "compose"],
        paths=install_paths,
        settle_seconds=5.0,
        sleep=sleeps.append,
    )
    service.sleeps = sleeps
    return service


def test_refresh_pulls_with_descriptor(stack, runner, install_paths):
    stack.refresh()

    assert runner.calls == [["docker", "compose", "-f", str(install_paths.compose_file), "pull"]]


def test_reconcile_starts_stack_when_not_running(stack, runner, install_paths):
    stack.reconcile()

    compose = ["docker", "compose", "-f", str(install_paths.compose_file)]
    assert runner.calls == [["docker", "ps"], compose + ["up", "-d"], compose + ["ps"]]
    assert stack.sleeps == [5.0]


def test_reconcile_restarts_running_stack(stack, runner, install_paths):
    runner.on("docker", "ps", stdout=DOCKER_PS)

    stack.reconcile()

    compose = ["docker", "compose", "-f", str(install_paths.compose_file)]
    assert runner.calls == [
        ["docker", "ps"],
        compose + ["down"],
        compose + ["up", "-d"],
        compose + ["ps"],
    ]


def test_compose_command_is_resolved_once(logger, console, runner, install_paths):
    calls = []

    def factory():
        calls.append(1)
        return ["docker-compose"]

    service = StackService(logger, console, runner, factory, install_paths, sleep=lambda _s: None)
    service.reconcile()
    service.reconcile()

    assert calls == [1]
    assert runner.ran("docker-compose", "-f")


def test_refresh_rejects_descriptor_without_services(stack, install_paths):
    install_paths.compose_file.write_text("version: '3'\n", encoding="utf-8")

    with pytest.raises(InstallerError, match="services"):
        stack.refresh()


COMPOSE_PS = """NAME            COMMAND       SERVICE   STATUS
greenlight-v3   "bin/start"   app       running

postgres        "postgres"    postgres  running
"""


class RecordingConsole:
    def __init__(self):
        self.lines = []

    def print(self, message, *_args, **_kwargs):
        self.lines.append(message)


@pytest.mark.parametrize("verbose, echoed", [(True, 3), (False, 0)])
def test_reconcile_echoes_container_status_when_verbose(logger, runner, install_paths, verbose, echoed):
    install_paths.data_dir.mkdir(parents=True)
    install_paths.compose_file.write_text(COMPOSE, encoding="utf-8")
    runner.on("docker", "compose", "-f", str(install_paths.compose_file), "ps", stdout=COMPOSE_PS)
    console = RecordingConsole()
    service = StackService(
        logger,
        console,
        runner,
        lambda: ["docker", "compose"],
        install_paths,
        sleep=lambda _s: None,
        verbose=verbose,
    )

    service.reconcile()

    dimmed = [line for line in console.lines if line.startswith("[dim]")]
    assert len(dimmed) == echoed
    if verbose:
        assert dimmed[1] == '[dim]greenlight-v3   "bin/start"   app       running[/dim]'
