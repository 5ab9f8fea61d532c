import logging
import os
from pathlib import Path

import click
from rich.logging import RichHandler

from .constants import LOCK_POLL_SECONDS, STACK_SETTLE_SECONDS
from .core import GreenlightInstaller
from .errors import InstallerError
from .models import InstallPaths
from .services.config_loader import ConfigLoader

DEFAULT_CONFIG_FILE = ".gl-install.yml"


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-s", "--hostname", required=False, help="Configure server with <hostname> (required).")
@click.option("-e", "--email", required=False, help="Email for Let's Encrypt certbot (required).")
@click.option(
    "-b",
    "--bigbluebutton",
    required=False,
    metavar="HOSTNAME:SECRET",
    help=(
        "The BigBlueButton server accessible on <hostname> with secret <secret> "
        "(defaults to the demo server, do not use for production)."
    ),
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("-v", "--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--skip-system-upgrade",
    is_flag=True,
    default=None,
    help="Do not run apt-get dist-upgrade and auto-remove around the installation.",
)
def main(hostname, email, bigbluebutton, config, verbose, log_file, skip_system_upgrade):
    """Install a Greenlight 3.x standalone server, or upgrade an existing one in place.

    \b
    Example:
        gl-install -s www.example.com -e info@example.com -b bbb.example.com:SECRET
    """
    logger = logging.getLogger("glinstaller")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except InstallerError as exc:
        raise click.ClickException(str(exc)) from exc

    hostname = _resolve_option(hostname, config_values, "hostname")
    email = _resolve_option(email, config_values, "email")
    bigbluebutton = _resolve_option(bigbluebutton, config_values, "bigbluebutton")
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    system_upgrade = bool(config_values.get("system_upgrade", True))
    if skip_system_upgrade:
        system_upgrade = False
    data_dir = config_values.get("data_dir")
    settle_seconds = float(config_values.get("settle_seconds", STACK_SETTLE_SECONDS))
    lock_poll_seconds = float(config_values.get("lock_poll_seconds", LOCK_POLL_SECONDS))

    if not hostname:
        raise click.ClickException("Missing required option '-s' (or provide hostname in config).")
    if not email:
        raise click.ClickException("Missing required option '-e' (or provide email in config).")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    paths = InstallPaths(data_dir=Path(data_dir).expanduser()) if data_dir else InstallPaths()

    installer = GreenlightInstaller(
        hostname=hostname,
        email=email,
        bigbluebutton=bigbluebutton,
        verbose=verbose,
        system_upgrade=system_upgrade,
        paths=paths,
        settle_seconds=settle_seconds,
        lock_poll_seconds=lock_poll_seconds,
    )

    raise SystemExit(installer.run())


if __name__ == "__main__":
    main()
