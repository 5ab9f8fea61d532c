import pytest

from glinstaller.errors import (
    ConflictDetectedError,
    DnsMismatchError,
    InvalidParameterError,
    PlatformMismatchError,
    PrivilegeError,
    UnresolvableHostError,
)
from glinstaller.models import HostFacts, RunParameters
from glinstaller.services.guard import PreconditionGuard, build_parameters


class FakeProbe:
    def __init__(self, resolved="5.6.7.8", own_ip="5.6.7.8"):
        self.resolved = resolved
        self.own_ip = own_ip
        self.resolve_ip_calls = 0

    def resolve_dns(self, hostname, resolver=None):
        return self.resolved

    def resolve_ip(self, hostname, facts):
        self.resolve_ip_calls += 1
        facts.ip = self.own_ip
        return self.own_ip


def _facts(**overrides):
    values = dict(
        os_release="20.04",
        os_codename="focal",
        architecture="x86_64",
        is_root=True,
        listening_ports={22},
        installed_packages={"openssl", "curl"},
    )
    values.update(overrides)
    return HostFacts(**values)


def _params(hostname="www.example.com", bigbluebutton=None):
    return build_parameters(hostname, "info@example.com", bigbluebutton)


@pytest.fixture
def guard(logger, console, install_paths):
    return PreconditionGuard(logger, console, FakeProbe(), install_paths)


def test_build_parameters_splits_locator_on_first_colon():
    params = build_parameters("gl.school.org", "admin@school.org", "bbb.school.org:se:cret")

    assert isinstance(params, RunParameters)
    assert params.bigbluebutton.host == "bbb.school.org"
    assert params.bigbluebutton.secret == "se:cret"
    assert params.bigbluebutton.endpoint == "https://bbb.school.org/bigbluebutton/api"


def test_build_parameters_without_locator():
    params = build_parameters("www.example.com", "info@example.com")

    assert params.bigbluebutton is None


def test_docs_hostname_is_rejected_first():
    with pytest.raises(InvalidParameterError, match="not the FQDN given in the docs"):
        build_parameters("bbb.example.com", "", "nonsense")


@pytest.mark.parametrize(
    "hostname, email, locator, message",
    [
        ("", "admin@school.org", None, "provide a FQDN and an email"),
        ("gl.school.org", "", None, "provide a FQDN and an email"),
        ("gl.school.org", "not-an-email", None, "valid email address"),
        ("gl.school.org", "admin@bbb.example.com", None, "not the email in the docs"),
        ("gl.school.org", "admin@school.org", "bbb.example.com:SECRET", "not the one in the example"),
        ("gl.school.org", "admin@school.org", "bbb.school.org", "<hostname>:<secret>"),
        ("gl.school.org", "admin@school.org", ":secret", "<hostname>:<secret>"),
    ],
)
def test_build_parameters_rejects_invalid_input(hostname, email, locator, message):
    with pytest.raises(InvalidParameterError, match=message):
        build_parameters(hostname, email, locator)


def test_non_root_is_rejected(guard):
    with pytest.raises(PrivilegeError):
        guard.check_host(_params(), _facts(is_root=False))


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"os_release": "22.04"}, "Ubuntu 20.04"),
        ({"architecture": "aarch64"}, "64-bit"),
    ],
)
def test_unsupported_platform_is_rejected(guard, overrides, message):
    with pytest.raises(PlatformMismatchError, match=message):
        guard.check_host(_params(), _facts(**overrides))


def test_cohosting_with_bigbluebutton_is_rejected(guard):
    params = _params(hostname="bbb.school.org", bigbluebutton="bbb.school.org:secret")

    with pytest.raises(ConflictDetectedError, match="matches that of the BigBlueButton server"):
        guard.check_host(params, _facts())


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"installed_packages": {"bbb-html5", "openssl"}}, "BigBlueButton modules"),
        ({"installed_packages": {"nginx", "openssl"}}, "Nginx is already installed"),
        ({"listening_ports": {22, 443}}, "443"),
        ({"listening_ports": {5050}}, "5050"),
    ],
)
def test_fresh_install_conflicts_are_rejected(guard, overrides, message):
    with pytest.raises(ConflictDetectedError, match=message):
        guard.check_host(_params(), _facts(**overrides))


def test_conflict_checks_are_skipped_on_upgrade(guard, install_paths):
    install_paths.data_dir.mkdir(parents=True)
    facts = _facts(installed_packages={"bbb-html5", "nginx"}, listening_ports={80, 443, 5050})

    guard.check_host(_params(), facts)

    assert facts.ip == "5.6.7.8"


def test_unrelated_high_ports_do_not_conflict(guard):
    guard.check_host(_params(), _facts(listening_ports={8080, 4443, 15050}))


def test_dns_mismatch_is_rejected(logger, console, install_paths):
    probe = FakeProbe(resolved="1.2.3.4", own_ip="5.6.7.8")
    guard = PreconditionGuard(logger, console, probe, install_paths)

    with pytest.raises(DnsMismatchError, match="resolved to 1.2.3.4 but didn't match this system 5.6.7.8"):
        guard.check_host(_params(hostname="a.example.com"), _facts())


def test_unresolvable_hostname_is_rejected(logger, console, install_paths):
    probe = FakeProbe(resolved=None)
    guard = PreconditionGuard(logger, console, probe, install_paths)

    with pytest.raises(UnresolvableHostError, match="Unable to resolve www.example.com"):
        guard.check_host(_params(), _facts())

    assert probe.resolve_ip_calls == 0
