"""Precondition checks that must pass before the installer touches the host."""

import re
from typing import Optional

from glinstaller.constants import (
    CONFLICTING_PACKAGE_MARKER,
    PLACEHOLDER_BIGBLUEBUTTON,
    PLACEHOLDER_HOSTNAME,
    REQUIRED_PORTS,
    SUPPORTED_ARCHITECTURE,
    SUPPORTED_RELEASE,
)
from glinstaller.errors import (
    ConflictDetectedError,
    DnsMismatchError,
    InvalidParameterError,
    PlatformMismatchError,
    PrivilegeError,
    UnresolvableHostError,
)
from glinstaller.errors_catalog import actionable_error
from glinstaller.models import BigBlueButtonServer, HostFacts, RunParameters

_LOCATOR_PATTERN = re.compile(r"^.+:.+$")


def build_parameters(
    hostname: Optional[str],
    email: Optional[str],
    bigbluebutton: Optional[str] = None,
) -> RunParameters:
    """Validate operator input and freeze it into RunParameters.

    Runs before any host inspection so that values pasted from the docs are
    rejected first.
    """
    hostname = (hostname or "").strip()
    email = (email or "").strip()

    if hostname.lower() == PLACEHOLDER_HOSTNAME:
        raise InvalidParameterError(actionable_error("placeholder_hostname"))

    if not hostname or not email:
        raise InvalidParameterError(
            "You must provide a FQDN and an email address to generate a certificate."
        )

    if "@" not in email:
        raise InvalidParameterError(actionable_error("invalid_email", email=email))
    if email.rsplit("@", 1)[1].lower() == PLACEHOLDER_HOSTNAME:
        raise InvalidParameterError(actionable_error("placeholder_email"))

    server = None
    if bigbluebutton:
        locator = bigbluebutton.strip()
        if locator == PLACEHOLDER_BIGBLUEBUTTON:
            raise InvalidParameterError(actionable_error("placeholder_bigbluebutton"))
        if not _LOCATOR_PATTERN.match(locator):
            raise InvalidParameterError(actionable_error("invalid_bigbluebutton"))
        host, secret = locator.split(":", 1)
        server = BigBlueButtonServer(host=host, secret=secret)

    return RunParameters(hostname=hostname, email=email, bigbluebutton=server)


class PreconditionGuard:
    """Ordered, fail-fast host checks."""

    def __init__(self, logger, console, probe_service, paths):
        self.logger = logger
        self.console = console
        self.probe = probe_service
        self.paths = paths

    def is_fresh_install(self) -> bool:
        return not self.paths.data_dir.is_dir()

    def check_privileges(self, facts: HostFacts):
        if not facts.is_root:
            raise PrivilegeError(actionable_error("not_root"))

    def check_platform(self, facts: HostFacts):
        if facts.os_release != SUPPORTED_RELEASE:
            raise PlatformMismatchError(
                actionable_error(
                    "unsupported_release",
                    release=SUPPORTED_RELEASE,
                    detected=facts.os_release or "unknown",
                )
            )
        if facts.architecture != SUPPORTED_ARCHITECTURE:
            raise PlatformMismatchError(
                actionable_error("unsupported_architecture", detected=facts.architecture or "unknown")
            )

    def check_cohosting(self, params: RunParameters):
        if params.bigbluebutton and params.bigbluebutton.host.lower() == params.hostname.lower():
            raise ConflictDetectedError(actionable_error("bigbluebutton_cohosted"))

    def check_conflicts(self, facts: HostFacts):
        """Refuse to share a host with BigBlueButton, a foreign nginx or busy ports.

        Upgrade runs skip this: the original install already passed it and the
        installer's own nginx and containers now hold those ports.
        """
        if not self.is_fresh_install():
            self.logger.info(
                "Existing installation found in %s, skipping conflict checks.", self.paths.data_dir
            )
            return

        conflicting = sorted(
            name for name in facts.installed_packages if CONFLICTING_PACKAGE_MARKER in name
        )
        if conflicting:
            raise ConflictDetectedError(
                actionable_error("bigbluebutton_installed", packages=", ".join(conflicting))
            )

        if "nginx" in facts.installed_packages:
            raise ConflictDetectedError(actionable_error("nginx_preinstalled"))

        busy = sorted(set(REQUIRED_PORTS) & set(facts.listening_ports))
        if busy:
            raise ConflictDetectedError(
                actionable_error("ports_in_use", ports=", ".join(str(port) for port in busy))
            )

    def check_dns(self, params: RunParameters, facts: HostFacts):
        resolved = self.probe.resolve_dns(params.hostname)
        if not resolved:
            raise UnresolvableHostError(actionable_error("dns_unresolved", hostname=params.hostname))

        ip = self.probe.resolve_ip(params.hostname, facts)
        if resolved != ip:
            raise DnsMismatchError(
                actionable_error("dns_mismatch", hostname=params.hostname, resolved=resolved, ip=ip)
            )
        self.logger.info("%s resolves to this host (%s).", params.hostname, ip)

    def check_host(self, params: RunParameters, facts: HostFacts):
        self.check_privileges(facts)
        self.check_platform(facts)
        self.check_cohosting(params)
        self.check_conflicts(facts)
        self.check_dns(params, facts)
