"""Host inspection for the Greenlight installer.

Everything here only reads host state, with one exception: confirming that
the host sits behind NAT needs port 443, so nginx is paused for the duration
of that probe and restarted afterwards.
"""

import ipaddress
import os
import platform
import re
import shutil
import socket
import time
from contextlib import closing
from pathlib import Path
from typing import Callable, List, Optional, Set

from glinstaller.constants import (
    AZURE_METADATA_URL,
    CERTIFICATE_PORT,
    EC2_METADATA_URL,
    GCE_METADATA_URL,
    METADATA_TIMEOUT,
    NAT_PROBE_TIMEOUT,
    OPENDNS_RESOLVER,
)
from glinstaller.errors import InstallerError, UnresolvableHostError
from glinstaller.errors_catalog import actionable_error
from glinstaller.models import HostFacts


def _is_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def last_ipv4(output: str) -> Optional[str]:
    """Return the last line of ``dig +short`` output that is an IPv4 address."""
    addresses = [line.strip() for line in (output or "").splitlines() if _is_ipv4(line.strip())]
    return addresses[-1] if addresses else None


def _port_of(address: str) -> Optional[int]:
    port = address.rsplit(":", 1)[-1]
    return int(port) if port.isdigit() else None


class ProbeService:
    """Collects HostFacts from the local system and its cloud provider."""

    def __init__(
        self,
        logger,
        console,
        run_cmd: Callable,
        package_service,
        download_service,
        proxy_service,
        root: Path = Path("/"),
        socket_module=socket,
        sleep: Callable[[float], None] = time.sleep,
        which: Callable = shutil.which,
    ):
        self.logger = logger
        self.console = console
        self.run_cmd = run_cmd
        self.packages = package_service
        self.downloads = download_service
        self.proxy = proxy_service
        self.root = root
        self.socket = socket_module
        self.sleep = sleep
        self.which = which

    def _host_path(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    def _read(self, path: str) -> Optional[str]:
        try:
            return self._host_path(path).read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

    # -- platform -----------------------------------------------------------

    def is_root(self) -> bool:
        return os.geteuid() == 0

    def os_release(self) -> str:
        result = self.run_cmd(["lsb_release", "-r"], check=False, capture_output=True)
        return re.sub(r"^[^0-9]*", "", (result.stdout or "").strip())

    def os_codename(self) -> str:
        result = self.run_cmd(["lsb_release", "-cs"], check=False, capture_output=True)
        return (result.stdout or "").strip()

    def architecture(self) -> str:
        return platform.machine()

    def installed_packages(self) -> Set[str]:
        result = self.run_cmd(["dpkg", "-l"], check=False, capture_output=True)
        packages = set()
        for line in (result.stdout or "").splitlines():
            columns = line.split()
            if len(columns) >= 2 and columns[0] == "ii":
                packages.add(columns[1].split(":", 1)[0])
        return packages

    def listening_ports(self) -> Set[int]:
        result = self.run_cmd(["ss", "-lnt"], check=False, capture_output=True)
        ports = set()
        for line in (result.stdout or "").splitlines()[1:]:
            columns = line.split()
            if len(columns) >= 4:
                port = _port_of(columns[3])
                if port is not None:
                    ports.add(port)
        return ports

    def port_clearing(self, port: int) -> bool:
        """True while a socket bound to *port* is still in TIME-WAIT."""
        result = self.run_cmd(["ss", "-ant"], check=False, capture_output=True)
        for line in (result.stdout or "").splitlines():
            columns = line.split()
            if len(columns) >= 4 and columns[0] == "TIME-WAIT" and _port_of(columns[3]) == port:
                return True
        return False

    def gather(self) -> HostFacts:
        return HostFacts(
            os_release=self.os_release(),
            os_codename=self.os_codename(),
            architecture=self.architecture(),
            is_root=self.is_root(),
            listening_ports=self.listening_ports(),
            installed_packages=self.installed_packages(),
        )

    # -- addresses ----------------------------------------------------------

    def default_route_device(self) -> Optional[str]:
        if self._host_path("/sys/class/net/venet0:0").exists():
            # OpenVZ containers have no default route entry.
            return "venet0:0"

        routes = self._read("/proc/net/route") or ""
        for line in routes.splitlines()[1:]:
            columns = line.split()
            if len(columns) >= 2 and columns[1] == "00000000":
                return columns[0]
        return None

    def local_ip(self) -> Optional[str]:
        device = self.default_route_device()
        if device:
            result = self.run_cmd(
                ["ip", "-4", "-br", "address", "show", "dev", device],
                check=False,
                capture_output=True,
                env={"LANG": "C"},
            )
            for line in (result.stdout or "").splitlines():
                for address in line.split()[2:]:
                    if address == "127.0.0.1/8":
                        continue
                    return address.split("/", 1)[0]

        result = self.run_cmd(["hostname", "-I"], check=False, capture_output=True)
        tokens = (result.stdout or "").split()
        return tokens[0] if tokens else None

    def _ec2_ip(self, hostname: Optional[str]) -> Optional[str]:
        product_uuid = self._read("/sys/devices/virtual/dmi/id/product_uuid") or ""
        if not product_uuid.lower().startswith("ec2"):
            return None
        return self.downloads.fetch_text(EC2_METADATA_URL, timeout=METADATA_TIMEOUT).strip()

    def _azure_ip(self, hostname: Optional[str]) -> Optional[str]:
        leases = self._read("/var/lib/dhcp/dhclient.eth0.leases") or ""
        if "unknown-245" not in leases:
            return None
        return self.downloads.fetch_text(
            AZURE_METADATA_URL,
            headers={"Metadata": "true"},
            timeout=METADATA_TIMEOUT,
        ).strip()

    def _scaleway_ip(self, hostname: Optional[str]) -> Optional[str]:
        cache = self._read("/run/scw-metadata.cache")
        if cache is None:
            return None
        for line in cache.splitlines():
            if line.startswith("PUBLIC_IP_ADDRESS="):
                return line.split("=", 1)[1].strip()
        return None

    def _gce_ip(self, hostname: Optional[str]) -> Optional[str]:
        if self.which("dmidecode") is None:
            return None
        result = self.run_cmd(["dmidecode", "-s", "bios-vendor"], check=False, capture_output=True)
        if "Google" not in (result.stdout or ""):
            return None
        return self.downloads.fetch_text(
            GCE_METADATA_URL,
            headers={"Metadata-Flavor": "Google"},
            timeout=METADATA_TIMEOUT,
        ).strip()

    def _dns_ip(self, hostname: Optional[str]) -> Optional[str]:
        if not hostname:
            return None
        return self.resolve_dns(hostname, resolver=OPENDNS_RESOLVER)

    def external_ip(self, hostname: Optional[str]) -> Optional[str]:
        methods: List[Callable] = [
            self._ec2_ip,
            self._azure_ip,
            self._scaleway_ip,
            self._gce_ip,
            self._dns_ip,
        ]
        for method in methods:
            try:
                address = method(hostname)
            except InstallerError as exc:
                self.logger.debug("External IP lookup via %s failed: %s", method.__name__, exc)
                continue
            if address and _is_ipv4(address):
                self.logger.debug("External IP %s found via %s", address, method.__name__)
                return address
        return None

    def resolve_dns(self, hostname: str, resolver: Optional[str] = None) -> Optional[str]:
        self.packages.ensure("dnsutils")
        cmd = ["dig", "+short", hostname]
        if resolver:
            cmd.append(f"@{resolver}")
        result = self.run_cmd(cmd, check=False, capture_output=True)
        return last_ipv4(result.stdout)

    # -- NAT ----------------------------------------------------------------

    def wait_for_port_clearing(self, port: int):
        if self.port_clearing(port):
            self.console.print(f"[yellow]Waiting for port {port} to clear...[/yellow]")
        while self.port_clearing(port):
            self.sleep(1)

    def reachable_through(self, external_ip: str, port: int = CERTIFICATE_PORT) -> bool:
        """Listen on *port* locally and try to reach it through *external_ip*."""
        with self.proxy.paused():
            self.wait_for_port_clearing(port)
            try:
                listener = self.socket.socket(self.socket.AF_INET, self.socket.SOCK_STREAM)
            except OSError as exc:
                self.logger.warning("Could not open a listener for the NAT probe: %s", exc)
                return False

            with closing(listener):
                try:
                    listener.setsockopt(self.socket.SOL_SOCKET, self.socket.SO_REUSEADDR, 1)
                    listener.bind(("", port))
                    listener.listen(1)
                except OSError as exc:
                    self.logger.warning("Could not listen on port %s for the NAT probe: %s", port, exc)
                    return False

                try:
                    connection = self.socket.create_connection(
                        (external_ip, port), timeout=NAT_PROBE_TIMEOUT
                    )
                except OSError as exc:
                    self.logger.debug("NAT probe to %s:%s failed: %s", external_ip, port, exc)
                    return False
                connection.close()
                return True

    def resolve_ip(self, hostname: Optional[str], facts: HostFacts) -> str:
        """Fill ``facts.ip`` with the address this host is reachable on."""
        if facts.ip:
            return facts.ip

        local_ip = self.local_ip()
        external_ip = self.external_ip(hostname)
        facts.ip = local_ip
        facts.external_ip = external_ip

        if external_ip and external_ip != local_ip and self.reachable_through(external_ip):
            facts.internal_ip = local_ip
            facts.ip = external_ip
            self.console.print("Detected this server has an internal/external IP address.")
            self.console.print(f"      INTERNAL_IP: {facts.internal_ip}")
            self.console.print(f"    (external) IP: {facts.ip}")

        if not facts.ip:
            raise UnresolvableHostError(actionable_error("local_ip_unknown"))
        return facts.ip
