"""Domain errors for the Greenlight installer."""


class InstallerError(RuntimeError):
    """Raised when the installation cannot continue safely."""


class PrivilegeError(InstallerError):
    """The installer is not running with root privileges."""


class PlatformMismatchError(InstallerError):
    """The host OS release or CPU architecture is not supported."""


class InvalidParameterError(InstallerError):
    """A run parameter is missing, malformed or a documentation placeholder."""


class ConflictDetectedError(InstallerError):
    """Pre-existing software or bound ports conflict with a fresh install."""


class DnsMismatchError(InstallerError):
    """The hostname resolves to an address that is not this host."""


class UnresolvableHostError(InstallerError):
    """No IP address could be determined for the hostname or the host."""


class PackageInstallError(InstallerError):
    """A system package or the container runtime failed to install."""


class ProxyConfigTestError(InstallerError):
    """nginx rejected the configuration it was asked to load."""
